"""Shared runtime bootstrap helpers for CLI entrypoints."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import typer

from keepsake.cli.console import error
from keepsake.config import ConfigError, KeepsakeConfig, load_config
from keepsake.db.engine import Database
from keepsake.logging import configure_logging
from keepsake.store import IdentityStore, create_store


def get_config(config_path: Path | None) -> KeepsakeConfig:
    """Load config and configure logging, exiting with status 1 on failure."""
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ConfigError) as e:
        error(str(e))
        raise typer.Exit(1) from None
    configure_logging(
        config.logging.level,
        use_rich=True,
        log_to_file=config.logging.log_to_file,
    )
    return config


@asynccontextmanager
async def open_store(
    config: KeepsakeConfig, *, create_tables: bool = False
) -> AsyncIterator[IdentityStore]:
    """Connect to the configured database for the duration of a command."""
    db = Database.from_config(config.database)
    store = await create_store(db, create_tables=create_tables)
    try:
        yield store
    finally:
        await db.disconnect()
