"""Label rendering: what a viewer sees in place of (or as) a person's name.

The real name is only ever returned for ``Visibility.APPROVED``. Every other
state yields initials, a relationship phrase, a placeholder, or nothing.
"""

from __future__ import annotations

from typing import Any

from keepsake.identity.relationships import relationship_label
from keepsake.identity.types import (
    AuthorPayload,
    LabelContext,
    MediaPresentation,
    PersonAuthorPayload,
    PersonViewerPayload,
    PersonVisibilitySource,
    Visibility,
    coerce_visibility,
)

PROSE_PLACEHOLDER = "someone"
INLINE_PLACEHOLDER = "[person]"


def placeholder_for(
    context: LabelContext = LabelContext.PROSE,
    *,
    prose: str = PROSE_PLACEHOLDER,
    inline: str = INLINE_PLACEHOLDER,
) -> str:
    return inline if context == LabelContext.INLINE else prose


def initials(name: str | None, placeholder: str = PROSE_PLACEHOLDER) -> str:
    """Blur a name to initials.

    "Julie Anne Smith" -> "J.S.", "Cher" -> "C.", "" -> placeholder.
    """
    parts = (name or "").split()
    if not parts:
        return placeholder
    if len(parts) >= 2:
        return f"{parts[0][0]}.{parts[-1][0]}."
    return f"{parts[0][0]}."


def render_label(
    state: Any,
    name: str | None,
    relationship: str | None = None,
    context: LabelContext = LabelContext.PROSE,
    *,
    placeholder: str | None = None,
) -> str:
    """Compute the label a viewer is allowed to see."""
    visibility = coerce_visibility(state)
    fallback = placeholder if placeholder is not None else placeholder_for(context)

    if visibility == Visibility.APPROVED:
        return name or fallback
    if visibility == Visibility.REMOVED:
        return ""
    if visibility == Visibility.BLURRED:
        return initials(name, fallback)

    # ANONYMIZED and PENDING: relational masking when we know the relationship
    return relationship_label(relationship) or fallback


def media_presentation_for(state: Any) -> MediaPresentation:
    visibility = coerce_visibility(state)
    if visibility == Visibility.BLURRED:
        return MediaPresentation.BLURRED
    if visibility == Visibility.REMOVED:
        return MediaPresentation.HIDDEN
    return MediaPresentation.NORMAL


def build_author_payload(
    state: Visibility, author_label: str, label: str
) -> AuthorPayload:
    """Author/admin view. Capabilities stay False until an outside check grants them."""
    return AuthorPayload(
        author_label=author_label,
        render_label=label,
        identity_state=state,
        media_presentation=media_presentation_for(state),
    )


def build_descriptor_label(
    state: Any,
    author_label: str,
    descriptor: str | None = None,
    *,
    pending_placeholder: str = INLINE_PLACEHOLDER,
    anonymized_fallback: str = "a contributor",
) -> str:
    """Label for a person described by free text instead of a taxonomy key."""
    visibility = coerce_visibility(state)
    if visibility == Visibility.APPROVED:
        return author_label
    if visibility == Visibility.ANONYMIZED:
        return (descriptor or "").strip() or anonymized_fallback
    if visibility == Visibility.BLURRED:
        return initials(author_label, pending_placeholder)
    if visibility == Visibility.PENDING:
        return pending_placeholder
    return ""


def build_person_payloads(
    source: PersonVisibilitySource,
    *,
    pending_placeholder: str = INLINE_PLACEHOLDER,
    anonymized_fallback: str = "a contributor",
) -> tuple[PersonViewerPayload, PersonAuthorPayload]:
    """Build the viewer and author payloads for one person reference."""
    media = source.media_presentation or MediaPresentation.HIDDEN
    label = build_descriptor_label(
        source.identity_state,
        source.author_label,
        source.descriptor,
        pending_placeholder=pending_placeholder,
        anonymized_fallback=anonymized_fallback,
    )
    viewer = PersonViewerPayload(
        id=source.id,
        identity_state=source.identity_state,
        media_presentation=media,
        render_label=label,
    )
    author = PersonAuthorPayload(
        **viewer.model_dump(),
        author_label=source.author_label,
        descriptor=source.descriptor,
        canApprove=source.can_approve,
        canAnonymize=source.can_anonymize,
        canRemove=source.can_remove,
        canInvite=source.can_invite,
        canEditDescriptor=source.can_edit_descriptor,
    )
    return viewer, author
