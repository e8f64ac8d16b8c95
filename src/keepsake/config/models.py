"""Configuration models using Pydantic."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from keepsake.config.paths import get_database_path
from keepsake.identity.labels import INLINE_PLACEHOLDER, PROSE_PLACEHOLDER

logger = logging.getLogger(__name__)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DatabaseConfig(BaseModel):
    """Configuration for the identity database.

    ``url`` wins over ``path`` when both are set.
    """

    url: str | None = None
    path: Path = Field(default_factory=get_database_path)

    def resolved_url(self) -> str:
        if self.url:
            return self.url
        return f"sqlite+aiosqlite:///{self.path.expanduser()}"


class IdentityConfig(BaseModel):
    """Name detection and label rendering settings."""

    max_names_per_submission: int = Field(default=20, ge=1)
    prose_placeholder: str = PROSE_PLACEHOLDER
    inline_placeholder: str = INLINE_PLACEHOLDER
    # Names of the person being remembered; never recorded as people.
    subject_names: list[str] = Field(default_factory=list)
    fictional_names: list[str] = Field(default_factory=list)

    @field_validator("prose_placeholder", "inline_placeholder")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("placeholder must not be empty")
        return v


class LoggingConfig(BaseModel):
    level: LogLevel = "INFO"
    log_to_file: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


class ConfigError(Exception):
    """Configuration error."""

    pass


class KeepsakeConfig(BaseModel):
    """Root configuration model."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
