"""Visibility resolution for identity protection.

Centralizes the precedence rules that decide how a person is shown, so that
reference rendering, consent scanning and the CLI all apply the same policy.

Precedence (highest first):
    1. REMOVED on the person default, the contributor preference or the
       global preference wins outright and cannot be overridden.
    2. Per-reference override, when not PENDING.
    3. Preference scoped to the viewing contributor, when not PENDING.
    4. Global preference (no contributor scope), when not PENDING.
    5. The person's own default (PENDING when the person is unknown).

PENDING means "no decision at this level" and defers to the next one.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from keepsake.identity.types import Visibility, coerce_visibility

PRIVACY_RANK: dict[Visibility, int] = {
    Visibility.APPROVED: 0,
    Visibility.BLURRED: 1,
    Visibility.ANONYMIZED: 1,
    Visibility.PENDING: 1,
    Visibility.REMOVED: 2,
}


def normalize_visibility(value: Any) -> Visibility:
    """Normalize a raw value. Missing or unrecognized values become PENDING."""
    return coerce_visibility(value)


def is_more_private_or_equal(candidate: Any, base: Any) -> bool:
    """Check that ``candidate`` discloses no more than ``base``."""
    return (
        PRIVACY_RANK[normalize_visibility(candidate)]
        >= PRIVACY_RANK[normalize_visibility(base)]
    )


@dataclass(frozen=True)
class VisibilitySignals:
    """The four independent inputs to the cascade, already normalized."""

    person: Visibility = Visibility.PENDING
    reference: Visibility = Visibility.PENDING
    contributor_preference: Visibility = Visibility.PENDING
    global_preference: Visibility = Visibility.PENDING

    @classmethod
    def from_raw(
        cls,
        *,
        person: Any = None,
        reference: Any = None,
        contributor_preference: Any = None,
        global_preference: Any = None,
    ) -> VisibilitySignals:
        return cls(
            person=normalize_visibility(person),
            reference=normalize_visibility(reference),
            contributor_preference=normalize_visibility(contributor_preference),
            global_preference=normalize_visibility(global_preference),
        )

    @property
    def is_vetoed(self) -> bool:
        return Visibility.REMOVED in (
            self.person,
            self.contributor_preference,
            self.global_preference,
        )


def resolve_signals(
    signals: VisibilitySignals, *, include_reference: bool = True
) -> Visibility:
    """Run the precedence cascade over normalized signals.

    ``include_reference=False`` is the narrower variant used before a
    reference exists (e.g. scanning submitted text); the removal veto and the
    remaining fallback order are identical.
    """
    if signals.is_vetoed:
        return Visibility.REMOVED

    cascade: list[Visibility] = []
    if include_reference:
        cascade.append(signals.reference)
    cascade.extend((signals.contributor_preference, signals.global_preference))

    for level in cascade:
        if level != Visibility.PENDING:
            return level
    return signals.person


def resolve_visibility(
    reference: Any = None,
    person: Any = None,
    contributor_preference: Any = None,
    global_preference: Any = None,
) -> Visibility:
    """Resolve the effective visibility of a person mentioned in a note."""
    return resolve_signals(
        VisibilitySignals.from_raw(
            person=person,
            reference=reference,
            contributor_preference=contributor_preference,
            global_preference=global_preference,
        )
    )


def resolve_preference_visibility(
    person: Any = None,
    contributor_preference: Any = None,
    global_preference: Any = None,
) -> Visibility:
    """Resolve visibility without a per-reference override."""
    return resolve_signals(
        VisibilitySignals.from_raw(
            person=person,
            contributor_preference=contributor_preference,
            global_preference=global_preference,
        ),
        include_reference=False,
    )


class PreferenceIndex:
    """Snapshot of visibility preferences keyed by (person, contributor).

    A ``None`` contributor is the global preference for that person. Rows are
    applied in order, so a later row for the same key replaces an earlier one.
    """

    def __init__(
        self, rows: Iterable[tuple[str, str | None, Any]] | None = None
    ) -> None:
        self._prefs: dict[tuple[str, str | None], Visibility] = {}
        for person_id, contributor_id, visibility in rows or ():
            self.set(person_id, contributor_id, visibility)

    def set(self, person_id: str, contributor_id: str | None, visibility: Any) -> None:
        self._prefs[(person_id, contributor_id)] = normalize_visibility(visibility)

    def get(self, person_id: str, contributor_id: str | None) -> Visibility:
        return self._prefs.get((person_id, contributor_id), Visibility.PENDING)

    def lookup(
        self, person_id: str | None, contributor_id: str | None
    ) -> tuple[Visibility, Visibility]:
        """Return ``(contributor_preference, global_preference)``."""
        if not person_id:
            return Visibility.PENDING, Visibility.PENDING
        contributor_pref = (
            self.get(person_id, contributor_id)
            if contributor_id is not None
            else Visibility.PENDING
        )
        return contributor_pref, self.get(person_id, None)

    def __len__(self) -> int:
        return len(self._prefs)


def can_reveal_identity(claim_exists: bool, resolved: Any) -> bool:
    """Whether a claimed person's identity can be linked at all.

    Unclaimed people are never revealed, and neither are REMOVED or PENDING.
    """
    if not claim_exists:
        return False
    return normalize_visibility(resolved) not in (
        Visibility.REMOVED,
        Visibility.PENDING,
    )


def shape_person_payload(
    *,
    claim_exists: bool,
    person_id: str,
    canonical_name: str | None,
    resolved: Any,
) -> dict[str, Any] | None:
    """Shape a person for API output; the name only appears when APPROVED."""
    state = normalize_visibility(resolved)
    if not claim_exists or state == Visibility.REMOVED:
        return None
    return {
        "id": person_id,
        "name": canonical_name if state == Visibility.APPROVED else None,
        "visibility": state.value,
    }
