"""Configuration module."""

from keepsake.config.loader import find_config_path, get_default_config, load_config
from keepsake.config.models import (
    ConfigError,
    DatabaseConfig,
    IdentityConfig,
    KeepsakeConfig,
    LoggingConfig,
)
from keepsake.config.paths import (
    get_config_path,
    get_database_path,
    get_keepsake_home,
    get_logs_path,
)

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "IdentityConfig",
    "KeepsakeConfig",
    "LoggingConfig",
    "find_config_path",
    "get_config_path",
    "get_database_path",
    "get_default_config",
    "get_keepsake_home",
    "get_logs_path",
    "load_config",
]
