"""Standing visibility preferences per (person, contributor)."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import bindparam, text

from keepsake.identity.types import PreferenceSnapshot, Visibility, coerce_visibility
from keepsake.identity.visibility import PreferenceIndex

if TYPE_CHECKING:
    from keepsake.store.store import IdentityStore

logger = logging.getLogger(__name__)


class PreferenceOpsMixin:
    """Read and write ``visibility_preferences``."""

    async def get_visibility_preferences(
        self: IdentityStore, person_id: str, contributor_id: str | None
    ) -> PreferenceSnapshot:
        """Return the contributor-scoped and global preference for a person.

        Without a contributor only the global row is consulted.
        """
        async with self._db.session() as session:
            result = await session.execute(
                text("""
                    SELECT contributor_id, visibility FROM visibility_preferences
                    WHERE person_id = :pid
                      AND (contributor_id IS NULL OR contributor_id = :cid)
                    ORDER BY updated_at
                """),
                {"pid": person_id, "cid": contributor_id},
            )
            # Newest row last so it wins on legacy duplicate globals
            rows = result.fetchall()

        contributor_pref = Visibility.PENDING
        global_pref = Visibility.PENDING
        for row in rows:
            if row.contributor_id is None:
                global_pref = coerce_visibility(row.visibility)
            elif contributor_id and row.contributor_id == contributor_id:
                contributor_pref = coerce_visibility(row.visibility)
        return PreferenceSnapshot(
            contributor_preference=contributor_pref, global_preference=global_pref
        )

    async def set_visibility_preference(
        self: IdentityStore,
        person_id: str,
        visibility: Visibility,
        contributor_id: str | None = None,
    ) -> None:
        """Upsert the preference for ``(person_id, contributor_id)``.

        ``contributor_id=None`` writes the global preference. SQLite treats
        NULLs as distinct in unique constraints, so the existing row is
        looked up explicitly rather than relying on ON CONFLICT.
        """
        visibility = coerce_visibility(visibility)
        if visibility == Visibility.PENDING:
            raise ValueError("pending is not a storable preference")

        now = datetime.now(UTC).isoformat()
        async with self._db.session() as session:
            if contributor_id is None:
                result = await session.execute(
                    text("""
                        SELECT id FROM visibility_preferences
                        WHERE person_id = :pid AND contributor_id IS NULL
                        ORDER BY updated_at DESC
                        LIMIT 1
                    """),
                    {"pid": person_id},
                )
            else:
                result = await session.execute(
                    text("""
                        SELECT id FROM visibility_preferences
                        WHERE person_id = :pid AND contributor_id = :cid
                    """),
                    {"pid": person_id, "cid": contributor_id},
                )
            existing = result.fetchone()

            if existing:
                await session.execute(
                    text("""
                        UPDATE visibility_preferences
                        SET visibility = :visibility, updated_at = :now
                        WHERE id = :id
                    """),
                    {"visibility": visibility.value, "now": now, "id": existing.id},
                )
            else:
                await session.execute(
                    text("""
                        INSERT INTO visibility_preferences
                            (id, person_id, contributor_id, visibility, created_at, updated_at)
                        VALUES (:id, :pid, :cid, :visibility, :now, :now)
                    """),
                    {
                        "id": str(uuid.uuid4()),
                        "pid": person_id,
                        "cid": contributor_id,
                        "visibility": visibility.value,
                        "now": now,
                    },
                )

        logger.info(
            "visibility_preference_set",
            extra={
                "person_id": person_id,
                "scope": "contributor" if contributor_id else "global",
                "visibility": visibility.value,
            },
        )

    async def load_preference_index(
        self: IdentityStore, person_ids: Iterable[str]
    ) -> PreferenceIndex:
        """Load every preference row for the given people in one query."""
        ids = sorted(set(person_ids))
        if not ids:
            return PreferenceIndex()

        stmt = text("""
            SELECT person_id, contributor_id, visibility FROM visibility_preferences
            WHERE person_id IN :ids
            ORDER BY updated_at
        """).bindparams(bindparam("ids", expanding=True))
        async with self._db.session() as session:
            result = await session.execute(stmt, {"ids": ids})
            rows = result.fetchall()
        return PreferenceIndex(
            (row.person_id, row.contributor_id, row.visibility) for row in rows
        )
