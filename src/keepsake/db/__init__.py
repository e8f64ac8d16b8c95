"""Database layer."""

from keepsake.db.engine import Database
from keepsake.db.models import (
    Base,
    Contributor,
    Event,
    EventReference,
    Person,
    PersonAlias,
    VisibilityPreference,
)

__all__ = [
    # Engine
    "Database",
    # Models
    "Base",
    "Contributor",
    "Event",
    "EventReference",
    "Person",
    "PersonAlias",
    "VisibilityPreference",
]
