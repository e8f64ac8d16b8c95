"""Contributors, events and the references that tie people to events."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from keepsake.identity.types import (
    ReferenceKind,
    ReferenceRow,
    Visibility,
    VisibilityChoice,
    VisibilityScope,
    coerce_visibility,
)
from keepsake.store.errors import StoreError
from keepsake.store.mappers import row_to_reference

if TYPE_CHECKING:
    from keepsake.store.store import IdentityStore

logger = logging.getLogger(__name__)


class ReferenceOpsMixin:
    """Contributor, event and reference operations."""

    async def create_contributor(
        self: IdentityStore, name: str, contributor_id: str | None = None
    ) -> str:
        contributor_id = contributor_id or str(uuid.uuid4())
        async with self._db.session() as session:
            await session.execute(
                text("""
                    INSERT INTO contributors (id, name, created_at)
                    VALUES (:id, :name, :now)
                """),
                {
                    "id": contributor_id,
                    "name": name,
                    "now": datetime.now(UTC).isoformat(),
                },
            )
        return contributor_id

    async def create_event(
        self: IdentityStore,
        content: str = "",
        *,
        contributor_id: str | None = None,
        title: str | None = None,
        event_id: str | None = None,
    ) -> str:
        event_id = event_id or str(uuid.uuid4())
        async with self._db.session() as session:
            await session.execute(
                text("""
                    INSERT INTO events (id, title, content, contributor_id, created_at)
                    VALUES (:id, :title, :content, :contributor_id, :now)
                """),
                {
                    "id": event_id,
                    "title": title,
                    "content": content,
                    "contributor_id": contributor_id,
                    "now": datetime.now(UTC).isoformat(),
                },
            )
        return event_id

    async def get_event_content(self: IdentityStore, event_id: str) -> str | None:
        async with self._db.session() as session:
            result = await session.execute(
                text("SELECT content FROM events WHERE id = :id"), {"id": event_id}
            )
            row = result.fetchone()
        return row.content if row else None

    async def add_reference(
        self: IdentityStore,
        event_id: str,
        *,
        type: ReferenceKind = ReferenceKind.PERSON,
        person_id: str | None = None,
        contributor_id: str | None = None,
        url: str | None = None,
        display_name: str | None = None,
        role: str | None = None,
        note: str | None = None,
        visibility: Visibility = Visibility.PENDING,
        relationship_to_subject: str | None = None,
        added_by: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        reference_id = str(uuid.uuid4())
        async with self._db.session() as session:
            await session.execute(
                text("""
                    INSERT INTO event_references
                        (id, event_id, type, person_id, contributor_id, url, display_name,
                         role, note, visibility, relationship_to_subject, added_by, created_at)
                    VALUES
                        (:id, :event_id, :type, :person_id, :contributor_id, :url, :display_name,
                         :role, :note, :visibility, :relationship, :added_by, :created_at)
                """),
                {
                    "id": reference_id,
                    "event_id": event_id,
                    "type": ReferenceKind(type).value,
                    "person_id": person_id,
                    "contributor_id": contributor_id,
                    "url": url,
                    "display_name": display_name,
                    "role": role,
                    "note": note,
                    "visibility": coerce_visibility(visibility).value,
                    "relationship": relationship_to_subject,
                    "added_by": added_by,
                    "created_at": (created_at or datetime.now(UTC)).isoformat(),
                },
            )
        logger.debug(
            "reference_added",
            extra={
                "reference_id": reference_id,
                "event_id": event_id,
                "person_id": person_id,
            },
        )
        return reference_id

    async def get_reference(
        self: IdentityStore, reference_id: str
    ) -> dict[str, Any] | None:
        async with self._db.session() as session:
            result = await session.execute(
                text("SELECT * FROM event_references WHERE id = :id"),
                {"id": reference_id},
            )
            row = result.fetchone()
        return dict(row._mapping) if row else None

    async def find_reference(
        self: IdentityStore, event_id: str, person_id: str
    ) -> dict[str, Any] | None:
        """The first reference to ``person_id`` on ``event_id``, if any."""
        async with self._db.session() as session:
            result = await session.execute(
                text("""
                    SELECT * FROM event_references
                    WHERE event_id = :event_id AND person_id = :person_id
                    ORDER BY created_at
                    LIMIT 1
                """),
                {"event_id": event_id, "person_id": person_id},
            )
            row = result.fetchone()
        return dict(row._mapping) if row else None

    async def set_reference_visibility(
        self: IdentityStore, reference_id: str, visibility: Visibility
    ) -> bool:
        async with self._db.session() as session:
            result = await session.execute(
                text("""
                    UPDATE event_references SET visibility = :visibility
                    WHERE id = :id
                """),
                {"visibility": coerce_visibility(visibility).value, "id": reference_id},
            )
        return result.rowcount > 0

    async def latest_relationship(self: IdentityStore, person_id: str) -> str | None:
        """Most recently recorded relationship to the subject for a person."""
        async with self._db.session() as session:
            result = await session.execute(
                text("""
                    SELECT relationship_to_subject FROM event_references
                    WHERE person_id = :pid AND relationship_to_subject IS NOT NULL
                    ORDER BY created_at DESC
                    LIMIT 1
                """),
                {"pid": person_id},
            )
            row = result.fetchone()
        return row.relationship_to_subject if row else None

    async def list_reference_rows(
        self: IdentityStore,
        event_id: str,
        author_contributor_id: str | None = None,
    ) -> list[ReferenceRow]:
        """Load an event's references ready for redaction.

        Preferences are looked up for the event's author, since a
        per-contributor preference records whom the person trusts to name
        them. ``author_contributor_id`` overrides the stored author.
        """
        async with self._db.session() as session:
            if author_contributor_id is None:
                event_result = await session.execute(
                    text("SELECT contributor_id FROM events WHERE id = :id"),
                    {"id": event_id},
                )
                event_row = event_result.fetchone()
                author_contributor_id = event_row.contributor_id if event_row else None

            result = await session.execute(
                text("""
                    SELECT r.id, r.type, r.url, r.display_name, r.role, r.note,
                           r.visibility, r.relationship_to_subject, r.person_id,
                           p.canonical_name AS person_canonical_name,
                           p.visibility AS person_visibility,
                           c.name AS contributor_name
                    FROM event_references r
                    LEFT JOIN people p ON p.id = r.person_id
                    LEFT JOIN contributors c ON c.id = r.contributor_id
                    WHERE r.event_id = :event_id
                    ORDER BY r.created_at, r.id
                """),
                {"event_id": event_id},
            )
            rows = result.fetchall()

        person_ids = [row.person_id for row in rows if row.person_id]
        prefs = await self.load_preference_index(person_ids)

        references = []
        for row in rows:
            preference = None
            if row.person_id:
                contributor_pref, global_pref = prefs.lookup(
                    row.person_id, author_contributor_id
                )
                preference = {
                    "contributor_preference": contributor_pref,
                    "global_preference": global_pref,
                }
            references.append(row_to_reference(row, preference))
        return references

    async def apply_visibility_choice(
        self: IdentityStore,
        reference_id: str,
        visibility: Visibility | str,
        scope: VisibilityScope | str | None = None,
        contributor_id: str | None = None,
    ) -> VisibilityScope:
        """Apply a person's choice about how they are shown.

        - this_note: only this reference changes
        - by_author: a per-contributor preference, plus this reference
        - all_notes: the person default and global preference, plus this reference

        A scope that lacks what it needs (no contributor, no linked person)
        narrows to this_note. Returns the scope actually applied.

        Raises:
            ValueError: ``pending`` or an unknown visibility was requested.
            StoreError: the reference does not exist.
        """
        choice = VisibilityChoice(
            visibility=visibility, scope=scope, contributor_id=contributor_id
        )
        reference = await self.get_reference(reference_id)
        if reference is None:
            raise StoreError(f"Reference not found: {reference_id}")

        person_id = reference.get("person_id")
        applied = choice.scope
        if applied == VisibilityScope.BY_AUTHOR and not (
            choice.contributor_id and person_id
        ):
            applied = VisibilityScope.THIS_NOTE
        if applied == VisibilityScope.ALL_NOTES and not person_id:
            applied = VisibilityScope.THIS_NOTE

        if applied == VisibilityScope.BY_AUTHOR:
            await self.set_visibility_preference(
                person_id, choice.visibility, contributor_id=choice.contributor_id
            )
        elif applied == VisibilityScope.ALL_NOTES:
            async with self._db.session() as session:
                await session.execute(
                    text("""
                        UPDATE people SET visibility = :visibility, updated_at = :now
                        WHERE id = :id
                    """),
                    {
                        "visibility": choice.visibility.value,
                        "now": datetime.now(UTC).isoformat(),
                        "id": person_id,
                    },
                )
            await self.set_visibility_preference(person_id, choice.visibility)

        await self.set_reference_visibility(reference_id, choice.visibility)

        if applied != choice.scope:
            logger.info(
                "visibility_scope_narrowed",
                extra={
                    "reference_id": reference_id,
                    "requested": choice.scope.value,
                    "applied": applied.value,
                },
            )
        logger.info(
            "visibility_choice_applied",
            extra={
                "reference_id": reference_id,
                "person_id": person_id,
                "scope": applied.value,
                "visibility": choice.visibility.value,
            },
        )
        return applied
