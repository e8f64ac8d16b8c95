"""Redact reference rows into viewer-safe view models."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from keepsake.identity.labels import (
    build_author_payload,
    media_presentation_for,
    render_label,
)
from keepsake.identity.types import (
    LabelContext,
    RedactedReference,
    ReferenceKind,
    ReferenceRow,
    Visibility,
)
from keepsake.identity.visibility import VisibilitySignals, resolve_signals

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Someone"


def as_reference_row(row: ReferenceRow | Mapping[str, Any]) -> ReferenceRow:
    if isinstance(row, ReferenceRow):
        return row
    return ReferenceRow.model_validate(dict(row))


def effective_visibility(row: ReferenceRow) -> Visibility:
    """Resolve the effective visibility for a single reference row."""
    if row.type == ReferenceKind.LINK:
        return row.visibility

    prefs = row.visibility_preference
    signals = VisibilitySignals(
        person=row.person.visibility if row.person else Visibility.PENDING,
        reference=row.visibility,
        contributor_preference=(
            prefs.contributor_preference if prefs else Visibility.PENDING
        ),
        global_preference=prefs.global_preference if prefs else Visibility.PENDING,
    )
    return resolve_signals(signals)


def author_label_for(row: ReferenceRow) -> str:
    """The name the author entered, for author/admin eyes only."""
    return (
        (row.person.canonical_name if row.person else None)
        or row.display_name
        or (row.contributor.name if row.contributor else None)
        or DEFAULT_NAME
    )


def _redact_link(
    row: ReferenceRow, include_author_payload: bool
) -> RedactedReference | None:
    visibility = row.visibility
    if visibility == Visibility.REMOVED:
        return None

    label = row.display_name or ""
    return RedactedReference(
        id=row.id,
        type=ReferenceKind.LINK,
        url=row.url,
        display_name=row.display_name,
        role=row.role,
        note=row.note,
        visibility=visibility,
        identity_state=visibility,
        media_presentation=media_presentation_for(visibility),
        render_label=label,
        author_payload=(
            build_author_payload(visibility, label, label)
            if include_author_payload
            else None
        ),
    )


def _mask_note(note: str, row: ReferenceRow, name: str, label: str) -> str:
    from keepsake.identity.names import mask_names_in_content

    names = {name, row.display_name}
    names.discard(DEFAULT_NAME)
    return mask_names_in_content(
        note, [(n, label) for n in names if n and n.casefold() != label.casefold()]
    )


def _redact_person(
    row: ReferenceRow,
    include_author_payload: bool,
    context: LabelContext,
    placeholder: str | None,
) -> RedactedReference | None:
    state = effective_visibility(row)
    if state == Visibility.REMOVED:
        return None

    name = author_label_for(row)
    relationship = row.relationship_to_subject
    label = render_label(state, name, relationship, context, placeholder=placeholder)
    note = row.note
    if note and state != Visibility.APPROVED:
        note = _mask_note(note, row, name, label)

    return RedactedReference(
        id=row.id,
        type=ReferenceKind.PERSON,
        role=row.role,
        note=note,
        visibility=state,
        relationship_to_subject=relationship,
        person_display_name=label,
        identity_state=state,
        media_presentation=media_presentation_for(state),
        render_label=label,
        author_payload=(
            build_author_payload(state, name, label) if include_author_payload else None
        ),
    )


def redact_references(
    rows: Iterable[ReferenceRow | Mapping[str, Any]] | None,
    *,
    include_author_payload: bool = False,
    context: LabelContext = LabelContext.PROSE,
    placeholder: str | None = None,
) -> list[RedactedReference]:
    """Resolve, render and filter references for a viewer.

    References whose effective visibility is REMOVED are dropped entirely.
    Person display names never appear in link fields and vice versa.
    """
    if not rows:
        return []

    redacted: list[RedactedReference] = []
    dropped = 0
    for raw in rows:
        row = as_reference_row(raw)
        if row.type == ReferenceKind.LINK:
            item = _redact_link(row, include_author_payload)
        else:
            item = _redact_person(row, include_author_payload, context, placeholder)
        if item is None:
            dropped += 1
            continue
        redacted.append(item)

    if dropped:
        logger.debug(
            "references_removed",
            extra={"removed": dropped, "kept": len(redacted)},
        )
    return redacted
