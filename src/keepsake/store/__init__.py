"""Persistence for the identity subsystem."""

from keepsake.store.errors import StoreError
from keepsake.store.store import IdentityStore, create_store

__all__ = [
    "IdentityStore",
    "StoreError",
    "create_store",
]
