"""CLI command modules."""

from keepsake.cli.commands import (
    config,
    database,
    people,
    references,
    scan,
    visibility,
)

__all__ = [
    "config",
    "database",
    "people",
    "references",
    "scan",
    "visibility",
]
