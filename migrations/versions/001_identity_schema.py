"""Identity schema.

Revision ID: 001
Revises:
Create Date: 2026-10-16

Contributors, people and their aliases, events, event references and
standing visibility preferences.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

VISIBILITY_CHECK = (
    "visibility IN ('approved', 'pending', 'anonymized', 'blurred', 'removed')"
)


def upgrade() -> None:
    op.create_table(
        "contributors",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "people",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("canonical_name", sa.String(), nullable=False),
        sa.Column(
            "visibility", sa.String(), nullable=False, server_default="pending"
        ),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(VISIBILITY_CHECK, name="ck_people_visibility"),
        sa.ForeignKeyConstraint(
            ["created_by"], ["contributors.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_people_canonical_name", "people", ["canonical_name"])

    op.create_table(
        "person_aliases",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("person_id", sa.String(), nullable=False),
        sa.Column("alias", sa.String(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_person_aliases_person_id", "person_aliases", ["person_id"])
    op.create_index("ix_person_aliases_alias", "person_aliases", ["alias"])

    op.create_table(
        "events",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("contributor_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["contributor_id"], ["contributors.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "event_references",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False, server_default="person"),
        sa.Column("person_id", sa.String(), nullable=True),
        sa.Column("contributor_id", sa.String(), nullable=True),
        sa.Column("url", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column(
            "visibility", sa.String(), nullable=False, server_default="pending"
        ),
        sa.Column("relationship_to_subject", sa.String(), nullable=True),
        sa.Column("added_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(VISIBILITY_CHECK, name="ck_event_references_visibility"),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["contributor_id"], ["contributors.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["added_by"], ["contributors.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_event_references_event_id", "event_references", ["event_id"]
    )
    op.create_index(
        "ix_event_references_person_created",
        "event_references",
        ["person_id", "created_at"],
    )

    op.create_table(
        "visibility_preferences",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("person_id", sa.String(), nullable=False),
        sa.Column("contributor_id", sa.String(), nullable=True),
        sa.Column("visibility", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "visibility IN ('approved', 'anonymized', 'blurred', 'removed')",
            name="ck_visibility_preferences_visibility",
        ),
        sa.ForeignKeyConstraint(["person_id"], ["people.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["contributor_id"], ["contributors.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("person_id", "contributor_id"),
    )
    op.create_index(
        "ix_visibility_preferences_person_id",
        "visibility_preferences",
        ["person_id"],
    )
    op.create_index(
        "uq_visibility_preferences_global",
        "visibility_preferences",
        ["person_id"],
        unique=True,
        sqlite_where=sa.text("contributor_id IS NULL"),
        postgresql_where=sa.text("contributor_id IS NULL"),
    )


def downgrade() -> None:
    op.drop_table("visibility_preferences")
    op.drop_table("event_references")
    op.drop_table("events")
    op.drop_table("person_aliases")
    op.drop_table("people")
    op.drop_table("contributors")
