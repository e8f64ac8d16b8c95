"""SQLAlchemy ORM models."""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

VISIBILITY_CHECK = (
    "visibility IN ('approved', 'pending', 'anonymized', 'blurred', 'removed')"
)


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all models."""


class Contributor(Base):
    """Someone who submits memories."""

    __tablename__ = "contributors"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )


class Person(Base):
    """Canonical identity for someone mentioned in memories.

    A person may or may not be a registered contributor. ``visibility`` is
    the person's own default; preferences and per-reference overrides are
    layered on top of it at render time.
    """

    __tablename__ = "people"
    __table_args__ = (CheckConstraint(VISIBILITY_CHECK, name="ck_people_visibility"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    canonical_name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    visibility: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    created_by: Mapped[str | None] = mapped_column(
        String, ForeignKey("contributors.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )


class PersonAlias(Base):
    """Alternate spelling or name form used for text matching."""

    __tablename__ = "person_aliases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[str] = mapped_column(
        String, ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True
    )
    alias: Mapped[str] = mapped_column(String, nullable=False, index=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )


class Event(Base):
    """A submitted memory."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str | None] = mapped_column(String, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    contributor_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("contributors.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )


class EventReference(Base):
    """A person or link appearing in one memory.

    ``visibility`` is the per-reference override; ``pending`` means no
    override has been set here.
    """

    __tablename__ = "event_references"
    __table_args__ = (
        CheckConstraint(VISIBILITY_CHECK, name="ck_event_references_visibility"),
        Index("ix_event_references_person_created", "person_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String, nullable=False, default="person")
    person_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("people.id", ondelete="SET NULL"), nullable=True
    )
    contributor_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("contributors.id", ondelete="SET NULL"), nullable=True
    )
    url: Mapped[str | None] = mapped_column(String, nullable=True)
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    role: Mapped[str | None] = mapped_column(String, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    visibility: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    relationship_to_subject: Mapped[str | None] = mapped_column(String, nullable=True)
    added_by: Mapped[str | None] = mapped_column(
        String, ForeignKey("contributors.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )


class VisibilityPreference(Base):
    """Standing visibility choice for a person.

    ``contributor_id`` NULL is the global preference for all contributors.
    """

    __tablename__ = "visibility_preferences"
    __table_args__ = (
        UniqueConstraint("person_id", "contributor_id"),
        # NULLs are distinct in the constraint above: one global row per person
        Index(
            "uq_visibility_preferences_global",
            "person_id",
            unique=True,
            sqlite_where=text("contributor_id IS NULL"),
            postgresql_where=text("contributor_id IS NULL"),
        ),
        CheckConstraint(
            "visibility IN ('approved', 'anonymized', 'blurred', 'removed')",
            name="ck_visibility_preferences_visibility",
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    person_id: Mapped[str] = mapped_column(
        String, ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True
    )
    contributor_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("contributors.id", ondelete="CASCADE"), nullable=True
    )
    visibility: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )
