"""Configuration loading from TOML files and environment variables."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from keepsake.config.models import ConfigError, KeepsakeConfig
from keepsake.config.paths import get_config_path

logger = logging.getLogger(__name__)

ENV_OVERRIDES = [
    ("database", "url", "KEEPSAKE_DATABASE_URL"),
    ("logging", "level", "KEEPSAKE_LOG_LEVEL"),
]


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.keepsake/config.toml (or KEEPSAKE_HOME)
        Path("/etc/keepsake/config.toml"),  # System-wide
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Environment variables take precedence over file values."""
    for section_key, key, env_var in ENV_OVERRIDES:
        value = os.environ.get(env_var)
        if not value:
            continue
        section = config.get(section_key)
        if not isinstance(section, dict):
            section = {}
            config[section_key] = section
        section[key] = value
    return config


def find_config_path(path: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    for default_path in _get_default_config_paths():
        expanded = default_path.expanduser()
        if expanded.exists():
            return expanded
    return None


def load_config(path: Path | None = None) -> KeepsakeConfig:
    """Load configuration from TOML file.

    With no explicit path the default locations are searched; when none
    exists the defaults are used. Environment overrides always apply.

    Args:
        path: Explicit path to config file.

    Returns:
        Validated KeepsakeConfig instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        ConfigError: If the file is not valid TOML or fails validation.
    """
    config_path = find_config_path(path)

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
        logger.debug("config_loaded", extra={"config_path": str(config_path)})

    raw_config = _apply_env_overrides(raw_config)

    try:
        return KeepsakeConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def get_default_config() -> KeepsakeConfig:
    """Get a default configuration for development/testing."""
    return KeepsakeConfig()
