"""Identity visibility: who may be named, and how.

Public API:
- resolve_visibility, resolve_preference_visibility: Effective state for a person
- render_label, build_person_payloads: Viewer-facing labels
- redact_references: Resolve, render and filter reference rows
- detect_names, mask_names_in_content, mask_content_for_viewer: Freeform text
- build_consent_context, register_pending_names: Submission-time scanning
"""

from keepsake.identity.consent import build_consent_context, register_pending_names
from keepsake.identity.labels import (
    build_author_payload,
    build_person_payloads,
    initials,
    media_presentation_for,
    render_label,
)
from keepsake.identity.names import (
    CapitalizedNameDetector,
    NameDetector,
    detect_and_match_names,
    detect_names,
    get_masked_name,
    is_fictional_character,
    mask_content_for_viewer,
    mask_content_with_references,
    mask_names_in_content,
    strip_html,
)
from keepsake.identity.references import redact_references
from keepsake.identity.relationships import RELATIONSHIP_DISPLAY, relationship_label
from keepsake.identity.types import (
    ConsentContext,
    DetectedName,
    LabelContext,
    MediaPresentation,
    RedactedReference,
    ReferenceKind,
    ReferenceRow,
    Visibility,
    VisibilityScope,
)
from keepsake.identity.visibility import (
    PRIVACY_RANK,
    PreferenceIndex,
    can_reveal_identity,
    normalize_visibility,
    resolve_preference_visibility,
    resolve_visibility,
    shape_person_payload,
)

__all__ = [
    # Types
    "ConsentContext",
    "DetectedName",
    "LabelContext",
    "MediaPresentation",
    "RedactedReference",
    "ReferenceKind",
    "ReferenceRow",
    "Visibility",
    "VisibilityScope",
    # Resolver
    "PRIVACY_RANK",
    "PreferenceIndex",
    "can_reveal_identity",
    "normalize_visibility",
    "resolve_preference_visibility",
    "resolve_visibility",
    "shape_person_payload",
    # Labels
    "RELATIONSHIP_DISPLAY",
    "build_author_payload",
    "build_person_payloads",
    "initials",
    "media_presentation_for",
    "relationship_label",
    "render_label",
    # References
    "redact_references",
    # Names
    "CapitalizedNameDetector",
    "NameDetector",
    "detect_and_match_names",
    "detect_names",
    "get_masked_name",
    "is_fictional_character",
    "mask_content_for_viewer",
    "mask_content_with_references",
    "mask_names_in_content",
    "strip_html",
    # Consent
    "build_consent_context",
    "register_pending_names",
]
