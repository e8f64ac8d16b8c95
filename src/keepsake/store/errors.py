"""Store exceptions."""


class StoreError(Exception):
    """Raised when an explicit mutation targets a row that does not exist."""
