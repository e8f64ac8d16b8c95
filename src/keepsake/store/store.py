"""Identity store facade over the async database.

Implementation is split across focused mixin modules:
- people: Person CRUD, aliases, name resolution
- preferences: Standing visibility preferences
- references: Contributors, events, references, visibility choices
"""

from __future__ import annotations

import logging

from keepsake.db.engine import Database
from keepsake.store.people import PeopleOpsMixin
from keepsake.store.preferences import PreferenceOpsMixin
from keepsake.store.references import ReferenceOpsMixin

logger = logging.getLogger(__name__)


class IdentityStore(
    PeopleOpsMixin,
    PreferenceOpsMixin,
    ReferenceOpsMixin,
):
    """Persistence for people, references and visibility preferences.

    Every method opens its own session, so each call commits on its own.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @property
    def db(self) -> Database:
        return self._db


async def create_store(db: Database, *, create_tables: bool = False) -> IdentityStore:
    """Connect ``db`` if needed and return a store bound to it."""
    try:
        _ = db.engine
    except RuntimeError:
        await db.connect()
    if create_tables:
        await db.create_all()
        logger.debug("identity_tables_ready")
    return IdentityStore(db)
