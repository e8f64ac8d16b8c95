"""Submission-time consent scanning.

Detects names in freeform text before any reference exists and reports
which of them belong to people who have already approved being named.
Anything not reported must be treated as needing consent downstream.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from keepsake.identity.names import (
    NameDetector,
    detect_names,
    is_fictional_character,
    normalize_name,
)
from keepsake.identity.types import (
    ConsentContext,
    ConsentedPerson,
    PendingName,
    ReferenceRole,
    Visibility,
)
from keepsake.identity.visibility import resolve_preference_visibility

if TYPE_CHECKING:
    from keepsake.store.store import IdentityStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_NAMES = 20


async def _find_person_id(store: IdentityStore, name: str) -> str | None:
    person_id = await store.find_person_id_by_alias(name)
    if person_id:
        return person_id
    return await store.find_person_id_by_name(name)


async def _effective_visibility(
    store: IdentityStore, person_id: str, contributor_id: str | None
) -> Visibility:
    person_visibility = await store.get_person_visibility(person_id)
    prefs = await store.get_visibility_preferences(person_id, contributor_id)
    return resolve_preference_visibility(
        person_visibility,
        prefs.contributor_preference,
        prefs.global_preference,
    )


async def build_consent_context(
    content: str,
    store: IdentityStore,
    contributor_id: str | None,
    detector: NameDetector | None = None,
    max_names: int = DEFAULT_MAX_NAMES,
) -> ConsentContext:
    """Collect the names in ``content`` that are cleared for display.

    Only people whose effective visibility is exactly APPROVED are
    included. A lookup that fails is logged and the name is skipped, so a
    storage error can never clear a name.
    """
    context = ConsentContext()
    detected = detect_names(content, detector)
    if not detected:
        return context

    for name in detected[:max_names]:
        text = name.text.strip()
        if not text:
            continue
        try:
            person_id = await _find_person_id(store, text)
            if not person_id:
                continue
            state = await _effective_visibility(store, person_id, contributor_id)
            if state != Visibility.APPROVED:
                continue
            relationship = await store.latest_relationship(person_id)
        except SQLAlchemyError:
            logger.warning("consent_lookup_failed", exc_info=True)
            continue
        context.consented_names.append(
            ConsentedPerson(name=text, relationship=relationship)
        )

    logger.debug(
        "consent_context_built",
        extra={
            "detected": len(detected),
            "consented": len(context.consented_names),
        },
    )
    return context


async def register_pending_names(
    content: str,
    event_id: str,
    store: IdentityStore,
    contributor_id: str | None,
    *,
    detector: NameDetector | None = None,
    subject_names: Iterable[str] = (),
    extra_fictional: Iterable[str] = (),
    max_names: int = DEFAULT_MAX_NAMES,
) -> list[PendingName]:
    """Create pending person references for names found in an event.

    A new reference is created even when someone with the same name has
    consented elsewhere, since two people may share a name. Fictional
    characters and the subject's own names are skipped.
    """
    subjects = {normalize_name(n) for n in subject_names}
    fictional = list(extra_fictional)
    pending: list[PendingName] = []

    for name in detect_names(content, detector)[:max_names]:
        text = name.text.strip()
        if not text:
            continue
        key = normalize_name(text)
        if key in subjects or is_fictional_character(text, fictional):
            continue

        try:
            person_id = await _find_person_id(store, text)
            if not person_id:
                person = await store.create_person(text, created_by=contributor_id)
                person_id = person.id

            existing = await store.find_reference(event_id, person_id)
            if existing:
                if existing.get("visibility") in (None, Visibility.PENDING.value):
                    pending.append(
                        PendingName(name=text, person_id=person_id, status="existing")
                    )
                continue

            await store.add_reference(
                event_id,
                person_id=person_id,
                role=ReferenceRole.WITNESS.value,
                visibility=Visibility.PENDING,
                added_by=contributor_id,
            )
        except SQLAlchemyError:
            logger.warning(
                "pending_name_failed", extra={"event_id": event_id}, exc_info=True
            )
            continue
        pending.append(PendingName(name=text, person_id=person_id, status="created"))

    if pending:
        logger.info(
            "pending_names_registered",
            extra={"event_id": event_id, "count": len(pending)},
        )
    return pending
