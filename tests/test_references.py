"""Tests for reference redaction."""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from keepsake.identity.references import (
    author_label_for,
    effective_visibility,
    redact_references,
)
from keepsake.identity.types import (
    LabelContext,
    MediaPresentation,
    ReferenceKind,
    ReferenceRow,
    Visibility,
)


def person_row(
    ref_id: str,
    name: str,
    *,
    person_visibility: str = "pending",
    visibility: str = "pending",
    relationship: str | None = None,
    contributor_pref: str | None = None,
    global_pref: str | None = None,
) -> dict:
    row = {
        "id": ref_id,
        "type": "person",
        "visibility": visibility,
        "relationship_to_subject": relationship,
        "person": {
            "id": f"person-{ref_id}",
            "canonical_name": name,
            "visibility": person_visibility,
        },
    }
    if contributor_pref or global_pref:
        row["visibility_preference"] = {
            "contributor_preference": contributor_pref,
            "global_preference": global_pref,
        }
    return row


class TestRedactReferences:
    """Tests for redact_references."""

    def test_empty_input(self):
        assert redact_references(None) == []
        assert redact_references([]) == []

    def test_override_beats_blurred_default(self):
        [ref] = redact_references(
            [
                person_row(
                    "r1", "Julie Smith", person_visibility="blurred", visibility="approved"
                )
            ]
        )
        assert ref.identity_state == Visibility.APPROVED
        assert ref.render_label == "Julie Smith"
        assert ref.person_display_name == "Julie Smith"

    def test_contributor_preference_beats_global_and_default(self):
        [ref] = redact_references(
            [
                person_row(
                    "r1",
                    "Julie Smith",
                    person_visibility="approved",
                    contributor_pref="anonymized",
                    global_pref="approved",
                    relationship="cousin",
                )
            ]
        )
        assert ref.identity_state == Visibility.ANONYMIZED
        assert ref.render_label == "a cousin"

    def test_removed_person_dropped_despite_override(self):
        refs = redact_references(
            [
                person_row(
                    "r1", "Julie Smith", person_visibility="removed", visibility="approved"
                )
            ]
        )
        assert refs == []

    def test_note_masks_hidden_name(self):
        row = person_row("r1", "Julie Smith", relationship="cousin")
        row["display_name"] = "Jules"
        row["note"] = "Julie Smith drove. Jules brought pie."
        [ref] = redact_references([row])
        assert ref.note == "a cousin drove. a cousin brought pie."

    def test_note_masked_with_blurred_label(self):
        row = person_row("r1", "Julie Smith", visibility="blurred")
        row["note"] = "Julie Smith drove"
        [ref] = redact_references([row], context=LabelContext.INLINE)
        assert ref.note == "J.S. drove"

    def test_note_kept_when_approved(self):
        row = person_row("r1", "Julie Smith", visibility="approved")
        row["note"] = "Julie Smith drove"
        [ref] = redact_references([row])
        assert ref.note == "Julie Smith drove"

    def test_blurred_reference(self):
        [ref] = redact_references([person_row("r1", "Julie Smith", visibility="blurred")])
        assert ref.render_label == "J.S."
        assert ref.media_presentation == MediaPresentation.BLURRED

    def test_pending_without_relationship(self):
        [ref] = redact_references([person_row("r1", "Julie Smith")])
        assert ref.render_label == "someone"
        assert ref.identity_state == Visibility.PENDING

    def test_inline_context_placeholder(self):
        [ref] = redact_references(
            [person_row("r1", "Julie Smith")], context=LabelContext.INLINE
        )
        assert ref.render_label == "[person]"

    def test_author_payload_only_when_requested(self):
        rows = [person_row("r1", "Julie Smith", visibility="anonymized")]
        [plain] = redact_references(rows)
        [with_author] = redact_references(rows, include_author_payload=True)

        assert plain.author_payload is None
        assert with_author.author_payload is not None
        assert with_author.author_payload.author_label == "Julie Smith"
        assert with_author.author_payload.canApprove is False

    def test_name_fallbacks(self):
        rows = [
            {"id": "r1", "type": "person", "display_name": "Bobby", "visibility": "approved"},
            {
                "id": "r2",
                "type": "person",
                "contributor": {"name": "Carol King"},
                "visibility": "approved",
            },
            {"id": "r3", "type": "person", "visibility": "approved"},
        ]
        labels = [ref.render_label for ref in redact_references(rows)]
        assert labels == ["Bobby", "Carol King", "Someone"]

    def test_links_pass_through(self):
        [ref] = redact_references(
            [
                {
                    "id": "l1",
                    "type": "link",
                    "url": "https://example.com/obit",
                    "display_name": "Obituary",
                    "visibility": "approved",
                }
            ]
        )
        assert ref.type == ReferenceKind.LINK
        assert ref.url == "https://example.com/obit"
        assert ref.display_name == "Obituary"
        assert ref.person_display_name is None

    def test_removed_link_dropped(self):
        refs = redact_references(
            [{"id": "l1", "type": "link", "url": "https://x", "visibility": "removed"}]
        )
        assert refs == []

    def test_person_fields_never_leak_into_link_fields(self):
        [ref] = redact_references([person_row("r1", "Julie Smith")])
        data = ref.to_dict()
        assert "url" not in data
        assert "display_name" not in data
        assert "Julie" not in json.dumps(data)

    def test_malformed_rows_are_safe(self):
        rows = [
            {
                "id": 7,
                "type": "mystery",
                "visibility": "public",
                "person": "not-a-dict",
                "visibility_preference": ["approved"],
                "display_name": "Julie Smith",
            }
        ]
        [ref] = redact_references(rows)
        assert ref.id == "7"
        assert ref.type == ReferenceKind.PERSON
        assert ref.identity_state == Visibility.PENDING
        assert "Julie" not in ref.render_label

    def test_accepts_reference_row_models(self):
        row = ReferenceRow.model_validate(person_row("r1", "Julie", visibility="approved"))
        assert effective_visibility(row) == Visibility.APPROVED
        assert author_label_for(row) == "Julie"
        assert redact_references([row])[0].render_label == "Julie"

    @given(
        states=st.lists(
            st.tuples(
                st.sampled_from(list(Visibility)),
                st.sampled_from(list(Visibility)),
            ),
            min_size=1,
            max_size=12,
        )
    )
    def test_removed_filtering_counts_and_no_leakage(self, states):
        rows = []
        removed_names = []
        for i, (person_vis, override) in enumerate(states):
            name = f"Person{chr(65 + i)}xq"
            rows.append(
                person_row(
                    f"r{i}", name, person_visibility=person_vis.value, visibility=override.value
                )
            )
            if Visibility.REMOVED in (person_vis, override):
                removed_names.append(name)

        refs = redact_references(rows, include_author_payload=True)

        assert len(refs) == len(rows) - len(removed_names)
        dumped = json.dumps([r.to_dict() for r in refs])
        for name in removed_names:
            assert name not in dumped


class TestEffectiveVisibility:
    @pytest.mark.parametrize(
        "kwargs,expected",
        [
            ({"global_pref": "approved"}, Visibility.APPROVED),
            ({"global_pref": "approved", "contributor_pref": "blurred"}, Visibility.BLURRED),
            ({"global_pref": "removed", "visibility": "approved"}, Visibility.REMOVED),
            ({"person_visibility": "anonymized"}, Visibility.ANONYMIZED),
        ],
    )
    def test_cascade(self, kwargs, expected):
        row = ReferenceRow.model_validate(person_row("r1", "Julie", **kwargs))
        assert effective_visibility(row) == expected
