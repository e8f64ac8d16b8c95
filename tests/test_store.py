"""Tests for the identity store.

Tests focus on:
- People, aliases and name resolution
- Preference upserts and batch loading
- Reference rows joined for redaction
- Applying visibility choices at each scope
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from keepsake.config.models import DatabaseConfig
from keepsake.db.engine import Database
from keepsake.identity.references import redact_references
from keepsake.identity.types import (
    ReferenceKind,
    Visibility,
    VisibilityScope,
)
from keepsake.store import IdentityStore, StoreError, create_store


class TestPeople:
    """Tests for person CRUD and aliases."""

    async def test_create_and_get(self, store: IdentityStore, author_id: str):
        person = await store.create_person(
            " Julie Smith ", created_by=author_id, aliases=["Jules", "  "]
        )
        assert person.canonical_name == "Julie Smith"
        assert person.visibility == Visibility.PENDING

        loaded = await store.get_person(person.id)
        assert loaded is not None
        assert loaded.canonical_name == "Julie Smith"
        assert loaded.aliases == ["Jules"]
        assert loaded.created_by == author_id
        assert loaded.created_at is not None

    async def test_get_missing(self, store: IdentityStore):
        assert await store.get_person("nope") is None
        assert await store.get_person_visibility("nope") is None

    async def test_list_people_sorted(self, store: IdentityStore):
        await store.create_person("Zed Zulu")
        await store.create_person("Anna Adams", aliases=["Annie"])

        people = await store.list_people()
        assert [p.canonical_name for p in people] == ["Anna Adams", "Zed Zulu"]
        assert people[0].aliases == ["Annie"]
        assert len(await store.list_people(limit=1)) == 1

    async def test_add_alias(self, store: IdentityStore):
        person = await store.create_person("Julie Smith")
        assert await store.add_alias(person.id, "Jules")
        assert not await store.add_alias(person.id, "JULES")
        assert not await store.add_alias(person.id, "   ")

        loaded = await store.get_person(person.id)
        assert loaded.aliases == ["Jules"]

    async def test_lookups_are_case_insensitive(self, store: IdentityStore):
        person = await store.create_person("Julie Smith", aliases=["Jules"])
        assert await store.find_person_id_by_alias("jules") == person.id
        assert await store.find_person_id_by_name("JULIE SMITH") == person.id
        assert await store.find_person_id_by_alias("Julie Smith") is None
        assert await store.find_person_id_by_name("Julie") is None


class TestCanUsePersonId:
    """Tests for can_use_person_id."""

    async def test_approved_usable_by_anyone(self, store: IdentityStore):
        person = await store.create_person("Julie Smith", visibility=Visibility.APPROVED)
        assert await store.can_use_person_id(person.id, None)

    async def test_removed_usable_by_no_one(self, store: IdentityStore, author_id: str):
        person = await store.create_person(
            "Julie Smith", created_by=author_id, visibility=Visibility.REMOVED
        )
        assert not await store.can_use_person_id(person.id, author_id)

    async def test_pending_requires_relationship(
        self, store: IdentityStore, author_id: str, event_id: str
    ):
        other = await store.create_contributor("Olive Other")
        person = await store.create_person("Julie Smith", created_by=author_id)

        assert await store.can_use_person_id(person.id, author_id)
        assert not await store.can_use_person_id(person.id, other)
        assert not await store.can_use_person_id(person.id, None)

        await store.add_reference(event_id, person_id=person.id, added_by=other)
        assert await store.can_use_person_id(person.id, other)

    async def test_missing_person(self, store: IdentityStore, author_id: str):
        assert not await store.can_use_person_id("nope", author_id)


class TestResolvePersonIdByName:
    """Tests for resolve_person_id_by_name."""

    async def test_blank_name(self, store: IdentityStore, author_id: str):
        assert await store.resolve_person_id_by_name("  ", author_id) is None

    async def test_alias_match(self, store: IdentityStore, author_id: str):
        person = await store.create_person(
            "Robert Jones", created_by=author_id, aliases=["Bob"]
        )
        assert await store.resolve_person_id_by_name("bob", author_id) == person.id

    async def test_canonical_match_backfills_alias(
        self, store: IdentityStore, author_id: str
    ):
        person = await store.create_person("Julie Smith", created_by=author_id)
        resolved = await store.resolve_person_id_by_name("julie smith", author_id)

        assert resolved == person.id
        loaded = await store.get_person(person.id)
        assert loaded.aliases == ["julie smith"]

    async def test_creates_pending_person(self, store: IdentityStore, author_id: str):
        person_id = await store.resolve_person_id_by_name("Carl Doe", author_id)
        person = await store.get_person(person_id)

        assert person.canonical_name == "Carl Doe"
        assert person.visibility == Visibility.PENDING
        assert person.aliases == ["Carl Doe"]
        assert person.created_by == author_id

    async def test_unusable_match_creates_new_person(
        self, store: IdentityStore, author_id: str
    ):
        other = await store.create_contributor("Olive Other")
        mine = await store.create_person("Julie Smith", created_by=author_id)

        resolved = await store.resolve_person_id_by_name("Julie Smith", other)
        assert resolved != mine.id

    async def test_approved_match_shared(self, store: IdentityStore, author_id: str):
        other = await store.create_contributor("Olive Other")
        person = await store.create_person(
            "Julie Smith", created_by=author_id, visibility=Visibility.APPROVED
        )
        assert await store.resolve_person_id_by_name("Julie Smith", other) == person.id


class TestPreferences:
    """Tests for visibility preferences."""

    async def test_defaults_are_pending(self, store: IdentityStore, author_id: str):
        person = await store.create_person("Julie Smith")
        prefs = await store.get_visibility_preferences(person.id, author_id)
        assert prefs.contributor_preference == Visibility.PENDING
        assert prefs.global_preference == Visibility.PENDING

    async def test_global_and_contributor(self, store: IdentityStore, author_id: str):
        person = await store.create_person("Julie Smith")
        await store.set_visibility_preference(person.id, Visibility.APPROVED)
        await store.set_visibility_preference(
            person.id, Visibility.ANONYMIZED, contributor_id=author_id
        )

        prefs = await store.get_visibility_preferences(person.id, author_id)
        assert prefs.contributor_preference == Visibility.ANONYMIZED
        assert prefs.global_preference == Visibility.APPROVED

        without = await store.get_visibility_preferences(person.id, None)
        assert without.contributor_preference == Visibility.PENDING
        assert without.global_preference == Visibility.APPROVED

    async def test_upsert_keeps_one_row_per_scope(
        self, store: IdentityStore, author_id: str
    ):
        person = await store.create_person("Julie Smith")
        await store.set_visibility_preference(person.id, Visibility.APPROVED)
        await store.set_visibility_preference(person.id, Visibility.BLURRED)
        await store.set_visibility_preference(person.id, "approved", author_id)
        await store.set_visibility_preference(person.id, "removed", author_id)

        index = await store.load_preference_index([person.id])
        assert len(index) == 2
        assert index.lookup(person.id, author_id) == (
            Visibility.REMOVED,
            Visibility.BLURRED,
        )

    async def test_pending_rejected(self, store: IdentityStore):
        person = await store.create_person("Julie Smith")
        with pytest.raises(ValueError):
            await store.set_visibility_preference(person.id, Visibility.PENDING)

    async def test_empty_index(self, store: IdentityStore):
        assert len(await store.load_preference_index([])) == 0

    async def _insert_global(
        self, store: IdentityStore, pref_id, person_id, value, when
    ):
        async with store.db.session() as session:
            await session.execute(
                text("""
                    INSERT INTO visibility_preferences
                        (id, person_id, contributor_id, visibility, created_at, updated_at)
                    VALUES (:id, :pid, NULL, :visibility, :when, :when)
                """),
                {"id": pref_id, "pid": person_id, "visibility": value, "when": when},
            )

    async def test_second_global_row_rejected(self, store: IdentityStore):
        person = await store.create_person("Julie Smith")
        await store.set_visibility_preference(person.id, Visibility.APPROVED)

        with pytest.raises(IntegrityError):
            await self._insert_global(
                store, "dup", person.id, "removed", "2026-01-01T00:00:00+00:00"
            )

    async def test_newest_global_row_wins_on_legacy_duplicates(
        self, store: IdentityStore, author_id: str
    ):
        person = await store.create_person("Julie Smith")
        async with store.db.session() as session:
            await session.execute(text("DROP INDEX uq_visibility_preferences_global"))
        # Newer row inserted first so insertion order disagrees with recency
        await self._insert_global(
            store, "newer", person.id, "removed", "2026-01-02T00:00:00+00:00"
        )
        await self._insert_global(
            store, "older", person.id, "approved", "2026-01-01T00:00:00+00:00"
        )

        prefs = await store.get_visibility_preferences(person.id, author_id)
        assert prefs.global_preference == Visibility.REMOVED
        index = await store.load_preference_index([person.id])
        assert index.lookup(person.id, None)[1] == Visibility.REMOVED


class TestReferences:
    """Tests for reference storage and listing."""

    async def test_add_and_find(self, store: IdentityStore, event_id: str):
        person = await store.create_person("Julie Smith")
        ref_id = await store.add_reference(
            event_id, person_id=person.id, role="witness", note="On the boat"
        )

        ref = await store.get_reference(ref_id)
        assert ref["person_id"] == person.id
        assert ref["visibility"] == "pending"
        assert ref["type"] == "person"
        assert (await store.find_reference(event_id, person.id))["id"] == ref_id
        assert await store.find_reference(event_id, "nope") is None
        assert await store.get_reference("nope") is None

    async def test_set_reference_visibility(self, store: IdentityStore, event_id: str):
        ref_id = await store.add_reference(event_id, display_name="Someone")
        assert await store.set_reference_visibility(ref_id, Visibility.BLURRED)
        assert (await store.get_reference(ref_id))["visibility"] == "blurred"
        assert not await store.set_reference_visibility("nope", Visibility.BLURRED)

    async def test_event_content(self, store: IdentityStore, event_id: str):
        content = await store.get_event_content(event_id)
        assert "Julie Smith" in content
        assert await store.get_event_content("nope") is None

    async def test_latest_relationship(self, store: IdentityStore, event_id: str):
        person = await store.create_person("Julie Smith")
        await store.add_reference(
            event_id,
            person_id=person.id,
            relationship_to_subject="friend",
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        await store.add_reference(
            event_id,
            person_id=person.id,
            relationship_to_subject="cousin",
            created_at=datetime(2024, 6, 1, tzinfo=UTC),
        )
        await store.add_reference(
            event_id,
            person_id=person.id,
            created_at=datetime(2024, 9, 1, tzinfo=UTC),
        )
        assert await store.latest_relationship(person.id) == "cousin"

    async def test_list_reference_rows(
        self, store: IdentityStore, author_id: str, event_id: str
    ):
        person = await store.create_person("Julie Smith")
        await store.add_reference(event_id, person_id=person.id, visibility="blurred")
        await store.add_reference(event_id, contributor_id=author_id)
        await store.add_reference(
            event_id,
            type=ReferenceKind.LINK,
            url="https://example.com/obit",
            display_name="Obituary",
        )

        rows = await store.list_reference_rows(event_id)
        assert len(rows) == 3
        by_type = {(r.type, r.person is not None): r for r in rows}

        person_row = by_type[(ReferenceKind.PERSON, True)]
        assert person_row.person.canonical_name == "Julie Smith"
        assert person_row.visibility == Visibility.BLURRED
        assert person_row.visibility_preference is not None

        contributor_row = by_type[(ReferenceKind.PERSON, False)]
        assert contributor_row.contributor.name == "Alice Author"

        link_row = by_type[(ReferenceKind.LINK, False)]
        assert link_row.url == "https://example.com/obit"
        assert link_row.visibility_preference is None

        labels = sorted(r.render_label for r in redact_references(rows))
        assert labels == ["J.S.", "Obituary", "someone"]

    async def test_preferences_follow_event_author(
        self, store: IdentityStore, author_id: str, event_id: str
    ):
        other = await store.create_contributor("Olive Other")
        person = await store.create_person("Julie Smith", visibility=Visibility.APPROVED)
        await store.add_reference(event_id, person_id=person.id)
        await store.set_visibility_preference(
            person.id, Visibility.ANONYMIZED, contributor_id=author_id
        )
        await store.set_visibility_preference(
            person.id, Visibility.REMOVED, contributor_id=other
        )

        [row] = await store.list_reference_rows(event_id)
        assert row.visibility_preference.contributor_preference == Visibility.ANONYMIZED

        [as_other] = await store.list_reference_rows(
            event_id, author_contributor_id=other
        )
        assert as_other.visibility_preference.contributor_preference == (
            Visibility.REMOVED
        )
        assert redact_references([as_other]) == []


class TestApplyVisibilityChoice:
    """Tests for apply_visibility_choice."""

    @pytest.fixture
    async def person_ref(self, store: IdentityStore, event_id: str):
        person = await store.create_person("Julie Smith")
        ref_id = await store.add_reference(event_id, person_id=person.id)
        return person.id, ref_id

    async def test_this_note(self, store: IdentityStore, person_ref):
        person_id, ref_id = person_ref
        applied = await store.apply_visibility_choice(ref_id, "approved")

        assert applied == VisibilityScope.THIS_NOTE
        assert (await store.get_reference(ref_id))["visibility"] == "approved"
        assert await store.get_person_visibility(person_id) == Visibility.PENDING
        assert len(await store.load_preference_index([person_id])) == 0

    async def test_by_author(self, store: IdentityStore, author_id: str, person_ref):
        person_id, ref_id = person_ref
        applied = await store.apply_visibility_choice(
            ref_id, Visibility.BLURRED, VisibilityScope.BY_AUTHOR, author_id
        )

        assert applied == VisibilityScope.BY_AUTHOR
        prefs = await store.get_visibility_preferences(person_id, author_id)
        assert prefs.contributor_preference == Visibility.BLURRED
        assert prefs.global_preference == Visibility.PENDING
        assert (await store.get_reference(ref_id))["visibility"] == "blurred"

    async def test_by_author_without_contributor_narrows(
        self, store: IdentityStore, person_ref
    ):
        person_id, ref_id = person_ref
        applied = await store.apply_visibility_choice(ref_id, "blurred", "by_author")

        assert applied == VisibilityScope.THIS_NOTE
        assert len(await store.load_preference_index([person_id])) == 0

    async def test_all_notes(self, store: IdentityStore, person_ref):
        person_id, ref_id = person_ref
        applied = await store.apply_visibility_choice(ref_id, "anonymized", "all_notes")

        assert applied == VisibilityScope.ALL_NOTES
        assert await store.get_person_visibility(person_id) == Visibility.ANONYMIZED
        prefs = await store.get_visibility_preferences(person_id, None)
        assert prefs.global_preference == Visibility.ANONYMIZED

    async def test_all_notes_removal_hides_everywhere(
        self, store: IdentityStore, author_id: str, event_id: str, person_ref
    ):
        person_id, ref_id = person_ref
        second_event = await store.create_event("Julie again", contributor_id=author_id)
        await store.add_reference(second_event, person_id=person_id, visibility="approved")

        await store.apply_visibility_choice(ref_id, "removed", "all_notes")

        assert redact_references(await store.list_reference_rows(event_id)) == []
        assert redact_references(await store.list_reference_rows(second_event)) == []

    async def test_link_reference_narrows(self, store: IdentityStore, event_id: str):
        ref_id = await store.add_reference(
            event_id, type="link", url="https://x", display_name="Obituary"
        )
        applied = await store.apply_visibility_choice(ref_id, "removed", "all_notes")
        assert applied == VisibilityScope.THIS_NOTE
        assert (await store.get_reference(ref_id))["visibility"] == "removed"

    async def test_unknown_scope_is_this_note(self, store: IdentityStore, person_ref):
        _, ref_id = person_ref
        assert await store.apply_visibility_choice(ref_id, "approved", "everywhere") == (
            VisibilityScope.THIS_NOTE
        )

    @pytest.mark.parametrize("visibility", ["pending", "public", ""])
    async def test_invalid_visibility_rejected(
        self, store: IdentityStore, person_ref, visibility
    ):
        _, ref_id = person_ref
        with pytest.raises(ValueError):
            await store.apply_visibility_choice(ref_id, visibility)
        assert (await store.get_reference(ref_id))["visibility"] == "pending"

    async def test_missing_reference(self, store: IdentityStore):
        with pytest.raises(StoreError):
            await store.apply_visibility_choice("nope", "approved")


class TestCreateStore:
    async def test_connects_and_creates_tables(self, tmp_path):
        db = Database(database_path=tmp_path / "fresh" / "store.db")
        store = await create_store(db, create_tables=True)
        try:
            contributor = await store.create_contributor("Alice Author")
            assert contributor
            assert store.db is db
        finally:
            await db.disconnect()

    def test_from_config_path(self, tmp_path):
        db = Database.from_config(DatabaseConfig(path=tmp_path / "nested" / "k.db"))
        assert db.url == f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'k.db'}"
        assert (tmp_path / "nested").is_dir()

    def test_from_config_url_wins(self, tmp_path):
        config = DatabaseConfig(
            url="sqlite+aiosqlite:///other.db", path=tmp_path / "x.db"
        )
        assert Database.from_config(config).url == "sqlite+aiosqlite:///other.db"
        assert not (tmp_path / "x.db").exists()

    def test_requires_location(self):
        with pytest.raises(ValueError):
            Database()
