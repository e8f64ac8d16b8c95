"""Person operations: create, read, aliases, name resolution."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import text

from keepsake.identity.types import PersonRecord, Visibility, coerce_visibility
from keepsake.store.mappers import row_to_person

if TYPE_CHECKING:
    from keepsake.store.store import IdentityStore

logger = logging.getLogger(__name__)


class PeopleOpsMixin:
    """Person CRUD and name-to-person resolution."""

    async def create_person(
        self: IdentityStore,
        name: str,
        *,
        created_by: str | None = None,
        visibility: Visibility = Visibility.PENDING,
        aliases: list[str] | None = None,
    ) -> PersonRecord:
        now = datetime.now(UTC)
        person_id = str(uuid.uuid4())
        alias_values = [a.strip() for a in (aliases or []) if a.strip()]

        async with self._db.session() as session:
            await session.execute(
                text("""
                    INSERT INTO people (id, canonical_name, visibility, created_by, created_at, updated_at)
                    VALUES (:id, :name, :visibility, :created_by, :now, :now)
                """),
                {
                    "id": person_id,
                    "name": name.strip(),
                    "visibility": coerce_visibility(visibility).value,
                    "created_by": created_by,
                    "now": now.isoformat(),
                },
            )
            for alias in alias_values:
                await session.execute(
                    text("""
                        INSERT INTO person_aliases (person_id, alias, created_by, created_at)
                        VALUES (:pid, :alias, :created_by, :now)
                    """),
                    {
                        "pid": person_id,
                        "alias": alias,
                        "created_by": created_by,
                        "now": now.isoformat(),
                    },
                )

        logger.debug(
            "person_created",
            extra={"person_id": person_id, "alias_count": len(alias_values)},
        )
        return PersonRecord(
            id=person_id,
            canonical_name=name.strip(),
            visibility=visibility,
            created_by=created_by,
            aliases=alias_values,
            created_at=now,
        )

    async def get_person(self: IdentityStore, person_id: str) -> PersonRecord | None:
        async with self._db.session() as session:
            result = await session.execute(
                text("SELECT * FROM people WHERE id = :id"), {"id": person_id}
            )
            row = result.fetchone()
            if not row:
                return None
            alias_result = await session.execute(
                text(
                    "SELECT alias FROM person_aliases WHERE person_id = :id ORDER BY id"
                ),
                {"id": person_id},
            )
            aliases = [r.alias for r in alias_result.fetchall()]
        return row_to_person(row, aliases)

    async def list_people(self: IdentityStore, limit: int | None = None) -> list[PersonRecord]:
        sql = "SELECT * FROM people ORDER BY canonical_name"
        params: dict[str, int] = {}
        if limit is not None:
            sql += " LIMIT :limit"
            params["limit"] = limit

        async with self._db.session() as session:
            result = await session.execute(text(sql), params)
            rows = result.fetchall()
            alias_result = await session.execute(
                text("SELECT person_id, alias FROM person_aliases ORDER BY id")
            )
            aliases: dict[str, list[str]] = {}
            for r in alias_result.fetchall():
                aliases.setdefault(r.person_id, []).append(r.alias)
        return [row_to_person(row, aliases.get(row.id)) for row in rows]

    async def add_alias(
        self: IdentityStore,
        person_id: str,
        alias: str,
        created_by: str | None = None,
    ) -> bool:
        """Attach an alias. Returns False if the person already has it."""
        alias = alias.strip()
        if not alias:
            return False

        async with self._db.session() as session:
            result = await session.execute(
                text("""
                    SELECT 1 FROM person_aliases
                    WHERE person_id = :pid AND lower(alias) = lower(:alias)
                """),
                {"pid": person_id, "alias": alias},
            )
            if result.fetchone():
                return False
            await session.execute(
                text("""
                    INSERT INTO person_aliases (person_id, alias, created_by, created_at)
                    VALUES (:pid, :alias, :created_by, :now)
                """),
                {
                    "pid": person_id,
                    "alias": alias,
                    "created_by": created_by,
                    "now": datetime.now(UTC).isoformat(),
                },
            )
        return True

    async def find_person_id_by_alias(self: IdentityStore, name: str) -> str | None:
        """Case-insensitive exact alias match."""
        ids = await self._person_ids_by_alias(name, limit=1)
        return ids[0] if ids else None

    async def find_person_id_by_name(self: IdentityStore, name: str) -> str | None:
        """Case-insensitive exact canonical name match."""
        ids = await self._person_ids_by_canonical_name(name, limit=1)
        return ids[0] if ids else None

    async def _person_ids_by_alias(
        self: IdentityStore, name: str, limit: int = 5
    ) -> list[str]:
        async with self._db.session() as session:
            result = await session.execute(
                text("""
                    SELECT person_id FROM person_aliases
                    WHERE lower(alias) = lower(:name)
                    ORDER BY id
                    LIMIT :limit
                """),
                {"name": name.strip(), "limit": limit},
            )
            return [r.person_id for r in result.fetchall()]

    async def _person_ids_by_canonical_name(
        self: IdentityStore, name: str, limit: int = 5
    ) -> list[str]:
        async with self._db.session() as session:
            result = await session.execute(
                text("""
                    SELECT id FROM people
                    WHERE lower(canonical_name) = lower(:name)
                    ORDER BY created_at
                    LIMIT :limit
                """),
                {"name": name.strip(), "limit": limit},
            )
            return [r.id for r in result.fetchall()]

    async def get_person_visibility(
        self: IdentityStore, person_id: str
    ) -> Visibility | None:
        async with self._db.session() as session:
            result = await session.execute(
                text("SELECT visibility FROM people WHERE id = :id"), {"id": person_id}
            )
            row = result.fetchone()
        if not row:
            return None
        return coerce_visibility(row.visibility)

    async def can_use_person_id(
        self: IdentityStore, person_id: str, contributor_id: str | None
    ) -> bool:
        """Whether a contributor may attach a reference to this person.

        Approved people are usable by anyone and removed people by no one.
        Otherwise the person must have been created by the contributor or
        referenced by them before.
        """
        async with self._db.session() as session:
            result = await session.execute(
                text("SELECT visibility, created_by FROM people WHERE id = :id"),
                {"id": person_id},
            )
            row = result.fetchone()
            if not row:
                return False

            visibility = coerce_visibility(row.visibility)
            if visibility == Visibility.APPROVED:
                return True
            if visibility == Visibility.REMOVED:
                return False
            if not contributor_id:
                return False
            if row.created_by == contributor_id:
                return True

            ref_result = await session.execute(
                text("""
                    SELECT 1 FROM event_references
                    WHERE person_id = :pid AND added_by = :cid
                    LIMIT 1
                """),
                {"pid": person_id, "cid": contributor_id},
            )
            return ref_result.fetchone() is not None

    async def resolve_person_id_by_name(
        self: IdentityStore, name: str, contributor_id: str | None
    ) -> str | None:
        """Find a usable person for a typed name, creating one if needed.

        Aliases are searched first, then canonical names. A canonical name
        hit records the typed name as an alias. With no usable match a new
        pending person is created.
        """
        trimmed = name.strip()
        if not trimmed:
            return None

        for person_id in await self._person_ids_by_alias(trimmed):
            if await self.can_use_person_id(person_id, contributor_id):
                return person_id

        for person_id in await self._person_ids_by_canonical_name(trimmed):
            if await self.can_use_person_id(person_id, contributor_id):
                await self.add_alias(person_id, trimmed, created_by=contributor_id)
                logger.debug("person_alias_backfilled", extra={"person_id": person_id})
                return person_id

        person = await self.create_person(
            trimmed, created_by=contributor_id, aliases=[trimmed]
        )
        return person.id
