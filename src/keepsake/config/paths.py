"""Centralized path management for Keepsake.

All local state (config, database, logs) is stored under a single base
directory. The base directory can be overridden with the KEEPSAKE_HOME
environment variable.

Default location: ~/.keepsake
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "KEEPSAKE_HOME"


@lru_cache(maxsize=1)
def get_keepsake_home() -> Path:
    """Get the base directory for all Keepsake data.

    Resolution order:
    1. KEEPSAKE_HOME environment variable (if set)
    2. ~/.keepsake

    Returns:
        Path to the Keepsake home directory.
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".keepsake"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_keepsake_home() / "config.toml"


def get_database_path() -> Path:
    """Get the default SQLite database path."""
    return get_keepsake_home() / "data" / "keepsake.db"


def get_logs_path() -> Path:
    """Get the default logs directory path."""
    return get_keepsake_home() / "logs"


def get_all_paths() -> dict[str, Path]:
    """Get all standard paths for display."""
    return {
        "home": get_keepsake_home(),
        "config": get_config_path(),
        "database": get_database_path(),
        "logs": get_logs_path(),
    }
