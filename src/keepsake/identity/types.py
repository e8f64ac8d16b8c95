"""Public types for the identity subsystem.

Input rows arrive loosely typed from storage or callers. Every visibility
field is normalized at the boundary, so business logic only ever sees the
closed ``Visibility`` enum.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Enums
# =============================================================================


class Visibility(str, Enum):
    """Disclosure level for a person.

    - APPROVED: real name may be shown
    - PENDING: no decision yet (safe default)
    - ANONYMIZED: shown only as a relationship phrase or placeholder
    - BLURRED: shown as initials, media blurred
    - REMOVED: never rendered (absorbing)
    """

    APPROVED = "approved"
    PENDING = "pending"
    ANONYMIZED = "anonymized"
    BLURRED = "blurred"
    REMOVED = "removed"


class MediaPresentation(str, Enum):
    """Treatment for photos/avatars tied to a person."""

    NORMAL = "normal"
    BLURRED = "blurred"
    HIDDEN = "hidden"


class ReferenceKind(str, Enum):
    PERSON = "person"
    LINK = "link"


class ReferenceRole(str, Enum):
    WITNESS = "witness"
    HEARD_FROM = "heard_from"
    SOURCE = "source"
    RELATED = "related"


class LabelContext(str, Enum):
    """Where a label is displayed.

    PROSE labels sit in reference lists and sentences ("someone"), INLINE
    labels replace a name in place inside rendered content ("[person]").
    """

    PROSE = "prose"
    INLINE = "inline"


class VisibilityScope(str, Enum):
    """How widely a visibility choice applies."""

    THIS_NOTE = "this_note"
    BY_AUTHOR = "by_author"
    ALL_NOTES = "all_notes"


_VISIBILITY_VALUES = {v.value for v in Visibility}


def coerce_visibility(value: Any) -> Visibility:
    """Map any raw value onto the enum; unknown input becomes PENDING."""
    if isinstance(value, Visibility):
        return value
    if isinstance(value, str) and value in _VISIBILITY_VALUES:
        return Visibility(value)
    return Visibility.PENDING


def _coerce_kind(value: Any) -> ReferenceKind:
    # Unknown kinds take the person path, which redacts.
    if isinstance(value, ReferenceKind):
        return value
    if value == ReferenceKind.LINK.value:
        return ReferenceKind.LINK
    return ReferenceKind.PERSON


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


# =============================================================================
# Reference input rows
# =============================================================================


class PersonSnapshot(BaseModel):
    """The referenced person as seen at render time."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    canonical_name: str | None = None
    visibility: Visibility = Visibility.PENDING

    @field_validator("visibility", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> Visibility:
        return coerce_visibility(v)

    @field_validator("id", "canonical_name", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str | None:
        return _optional_str(v)


class ContributorSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _as_str(cls, v: Any) -> str | None:
        return _optional_str(v)


class PreferenceSnapshot(BaseModel):
    """Standing preferences that apply to the viewing contributor."""

    model_config = ConfigDict(extra="ignore")

    contributor_preference: Visibility = Visibility.PENDING
    global_preference: Visibility = Visibility.PENDING

    @field_validator("contributor_preference", "global_preference", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> Visibility:
        return coerce_visibility(v)


class ReferenceRow(BaseModel):
    """A person or link appearing inside one piece of content."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: ReferenceKind = ReferenceKind.PERSON
    url: str | None = None
    display_name: str | None = None
    role: str | None = None
    note: str | None = None
    visibility: Visibility = Visibility.PENDING
    relationship_to_subject: str | None = None
    person: PersonSnapshot | None = None
    contributor: ContributorSnapshot | None = None
    visibility_preference: PreferenceSnapshot | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_kind(cls, v: Any) -> ReferenceKind:
        return _coerce_kind(v)

    @field_validator("visibility", mode="before")
    @classmethod
    def _normalize_visibility(cls, v: Any) -> Visibility:
        return coerce_visibility(v)

    @field_validator(
        "url", "display_name", "role", "note", "relationship_to_subject", mode="before"
    )
    @classmethod
    def _as_str(cls, v: Any) -> str | None:
        return _optional_str(v)

    @field_validator("person", "contributor", "visibility_preference", mode="before")
    @classmethod
    def _drop_non_mappings(cls, v: Any) -> Any:
        if v is None or isinstance(v, (dict, BaseModel)):
            return v
        return None


# =============================================================================
# Redacted output
# =============================================================================


class AuthorPayload(BaseModel):
    """Author/admin-only view of a reference.

    Capability flags default to False; granting them is the job of an
    authorization check outside this package.
    """

    author_label: str
    render_label: str
    identity_state: Visibility
    media_presentation: MediaPresentation
    canApprove: bool = False
    canAnonymize: bool = False
    canRemove: bool = False
    canInvite: bool = False
    canEditDescriptor: bool = False


class RedactedReference(BaseModel):
    """Viewer-safe reference handed to the presentation layer."""

    id: str
    type: ReferenceKind
    url: str | None = None
    display_name: str | None = None
    role: str | None = None
    note: str | None = None
    visibility: Visibility
    relationship_to_subject: str | None = None
    person_display_name: str | None = None
    identity_state: Visibility
    media_presentation: MediaPresentation
    render_label: str
    author_payload: AuthorPayload | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class PersonViewerPayload(BaseModel):
    """Person payload for general viewers (no raw identifiers)."""

    id: str
    identity_state: Visibility
    media_presentation: MediaPresentation
    render_label: str


class PersonAuthorPayload(PersonViewerPayload):
    """Person payload for the author who entered the name."""

    author_label: str
    descriptor: str | None = None
    canApprove: bool = False
    canAnonymize: bool = False
    canRemove: bool = False
    canInvite: bool = False
    canEditDescriptor: bool = False


# =============================================================================
# Name detection and consent
# =============================================================================


@dataclass
class DetectedName:
    """A person-like name found in submitted text.

    ``start``/``end`` index into the original (HTML-bearing) string.
    """

    text: str
    start: int
    end: int
    person_id: str | None = None
    visibility: Visibility | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"text": self.text, "start": self.start, "end": self.end}
        if self.person_id:
            d["person_id"] = self.person_id
        if self.visibility:
            d["visibility"] = self.visibility.value
        return d


@dataclass
class KnownPerson:
    id: str
    name: str
    visibility: Visibility | None = None


@dataclass
class ConsentedPerson:
    name: str
    relationship: str | None = None


@dataclass
class ConsentContext:
    """Names in a submission that are already cleared for display."""

    consented_names: list[ConsentedPerson] = field(default_factory=list)


@dataclass
class PendingName:
    name: str
    person_id: str
    status: str  # "created" | "existing"


@dataclass
class PersonVisibilitySource:
    """A person reference before it is scoped to a viewer."""

    id: str
    author_label: str
    identity_state: Visibility
    descriptor: str | None = None
    media_presentation: MediaPresentation | None = None
    can_approve: bool = False
    can_anonymize: bool = False
    can_remove: bool = False
    can_invite: bool = False
    can_edit_descriptor: bool = False


class VisibilityChoice(BaseModel):
    """A person's request to change how they are shown."""

    visibility: Visibility
    scope: VisibilityScope = VisibilityScope.THIS_NOTE
    contributor_id: str | None = None

    @field_validator("scope", mode="before")
    @classmethod
    def _default_scope(cls, v: Any) -> Any:
        if v in {s.value for s in VisibilityScope} or isinstance(v, VisibilityScope):
            return v
        return VisibilityScope.THIS_NOTE

    @field_validator("visibility")
    @classmethod
    def _not_pending(cls, v: Visibility) -> Visibility:
        if v == Visibility.PENDING:
            raise ValueError("pending is not a selectable visibility")
        return v


class PersonRecord(BaseModel):
    """A stored person with aliases."""

    id: str
    canonical_name: str
    visibility: Visibility = Visibility.PENDING
    created_by: str | None = None
    aliases: list[str] = Field(default_factory=list)
    created_at: datetime | None = None

    @field_validator("visibility", mode="before")
    @classmethod
    def _normalize(cls, v: Any) -> Visibility:
        return coerce_visibility(v)
