"""Relationship-to-subject taxonomy."""

from __future__ import annotations

RELATIONSHIP_OPTIONS: dict[str, str] = {
    # Family
    "parent": "Parent",
    "child": "Child",
    "sibling": "Sibling",
    "cousin": "Cousin",
    "aunt_uncle": "Aunt/Uncle",
    "niece_nephew": "Niece/Nephew",
    "grandparent": "Grandparent",
    "grandchild": "Grandchild",
    "in_law": "In-law",
    "spouse": "Spouse/Partner",
    # Social
    "friend": "Friend",
    "neighbor": "Neighbor",
    "coworker": "Coworker",
    "classmate": "Classmate",
    # Other
    "acquaintance": "Acquaintance",
    "other": "Other",
    "unknown": "I don't know",
}

# Phrases used in place of a hidden name ("a cousin" instead of "Sarah")
RELATIONSHIP_DISPLAY: dict[str, str] = {
    "parent": "a parent",
    "child": "a child",
    "sibling": "a sibling",
    "cousin": "a cousin",
    "aunt_uncle": "an aunt or uncle",
    "niece_nephew": "a niece or nephew",
    "grandparent": "a grandparent",
    "grandchild": "a grandchild",
    "in_law": "an in-law",
    "spouse": "a spouse",
    "friend": "a friend",
    "neighbor": "a neighbor",
    "coworker": "a coworker",
    "classmate": "a classmate",
    "acquaintance": "an acquaintance",
    "other": "someone",
    "unknown": "someone",
}

# Keys that carry no information about the person
_UNINFORMATIVE = frozenset({"other", "unknown"})


def normalize_relationship(value: str | None) -> str | None:
    """Lowercase and trim a relationship key; blank becomes None."""
    if not value:
        return None
    key = value.strip().lower().replace(" ", "_").replace("-", "_")
    return key or None


def relationship_label(value: str | None) -> str | None:
    """Return the display phrase for a known, informative relationship key."""
    key = normalize_relationship(value)
    if key is None or key in _UNINFORMATIVE:
        return None
    return RELATIONSHIP_DISPLAY.get(key)


def is_known_relationship(value: str | None) -> bool:
    key = normalize_relationship(value)
    return key is not None and key in RELATIONSHIP_OPTIONS
