"""Row mappers for converting database rows to domain types."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from keepsake.identity.types import PersonRecord, ReferenceRow

if TYPE_CHECKING:
    from sqlalchemy.engine import Row


def parse_datetime(value: Any) -> datetime | None:
    """Parse a stored timestamp (ISO string or datetime)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def row_to_person(row: Row[Any], aliases: list[str] | None = None) -> PersonRecord:
    return PersonRecord(
        id=row.id,
        canonical_name=row.canonical_name,
        visibility=row.visibility,
        created_by=row.created_by,
        aliases=aliases or [],
        created_at=parse_datetime(row.created_at),
    )


def row_to_reference(
    row: Row[Any], preference: dict[str, Any] | None = None
) -> ReferenceRow:
    """Convert a joined event_references row to a ReferenceRow.

    Expects the person columns aliased as ``person_*`` and the referenced
    contributor's name as ``contributor_name``.
    """
    person = None
    if row.person_id:
        person = {
            "id": row.person_id,
            "canonical_name": row.person_canonical_name,
            "visibility": row.person_visibility,
        }
    contributor = None
    if row.contributor_name is not None:
        contributor = {"name": row.contributor_name}

    return ReferenceRow.model_validate(
        {
            "id": row.id,
            "type": row.type,
            "url": row.url,
            "display_name": row.display_name,
            "role": row.role,
            "note": row.note,
            "visibility": row.visibility,
            "relationship_to_subject": row.relationship_to_subject,
            "person": person,
            "contributor": contributor,
            "visibility_preference": preference,
        }
    )
