"""Tests for configuration loading, models and paths."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from keepsake.config.loader import find_config_path, get_default_config, load_config
from keepsake.config.models import (
    ConfigError,
    DatabaseConfig,
    IdentityConfig,
    KeepsakeConfig,
    LoggingConfig,
)
from keepsake.config.paths import (
    ENV_VAR,
    get_all_paths,
    get_config_path,
    get_database_path,
    get_keepsake_home,
    get_logs_path,
)


class TestPaths:
    """Tests for path management."""

    def test_default_is_home_dot_keepsake(self, monkeypatch):
        monkeypatch.delenv(ENV_VAR, raising=False)
        get_keepsake_home.cache_clear()

        assert get_keepsake_home() == Path.home() / ".keepsake"

    def test_respects_env_var(self, keepsake_home):
        assert get_keepsake_home() == keepsake_home.resolve()

    def test_derived_paths(self, keepsake_home):
        home = keepsake_home.resolve()
        assert get_config_path() == home / "config.toml"
        assert get_database_path() == home / "data" / "keepsake.db"
        assert get_logs_path() == home / "logs"
        assert set(get_all_paths()) == {"home", "config", "database", "logs"}


class TestModels:
    """Tests for config models."""

    def test_defaults(self, keepsake_home):
        config = KeepsakeConfig()
        assert config.database.url is None
        assert config.database.path == keepsake_home.resolve() / "data" / "keepsake.db"
        assert config.identity.max_names_per_submission == 20
        assert config.identity.prose_placeholder == "someone"
        assert config.identity.inline_placeholder == "[person]"
        assert config.logging.level == "INFO"

    def test_database_url_wins(self, tmp_path):
        config = DatabaseConfig(url="sqlite+aiosqlite:///other.db", path=tmp_path / "x.db")
        assert config.resolved_url() == "sqlite+aiosqlite:///other.db"

    def test_database_path_url(self, tmp_path):
        config = DatabaseConfig(path=tmp_path / "x.db")
        assert config.resolved_url() == f"sqlite+aiosqlite:///{tmp_path / 'x.db'}"

    def test_log_level_uppercased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_identity_validation(self):
        with pytest.raises(ValidationError):
            IdentityConfig(max_names_per_submission=0)
        with pytest.raises(ValidationError):
            IdentityConfig(inline_placeholder="  ")


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_explicit_file(self, config_file, tmp_path):
        config = load_config(config_file)
        assert config.identity.max_names_per_submission == 10
        assert config.identity.subject_names == ["Valerie", "Val"]
        assert config.logging.level == "WARNING"
        assert config.database.path == tmp_path / "cli.db"

    def test_finds_config_in_current_directory(self, config_file):
        assert find_config_path() == Path("config.toml")
        assert load_config().identity.max_names_per_submission == 10

    def test_no_file_uses_defaults(self):
        assert find_config_path() is None
        assert load_config() == get_default_config()

    def test_home_config(self, keepsake_home):
        keepsake_home.mkdir(parents=True)
        (keepsake_home / "config.toml").write_text(
            "[identity]\nprose_placeholder = \"a friend\"\n"
        )
        assert load_config().identity.prose_placeholder == "a friend"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("not valid toml [[[")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[identity]\nmax_names_per_submission = -1\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_env_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("KEEPSAKE_DATABASE_URL", "sqlite+aiosqlite:///env.db")
        monkeypatch.setenv("KEEPSAKE_LOG_LEVEL", "error")

        config = load_config(config_file)
        assert config.database.resolved_url() == "sqlite+aiosqlite:///env.db"
        assert config.logging.level == "ERROR"

    def test_env_overrides_without_file(self, monkeypatch):
        monkeypatch.setenv("KEEPSAKE_LOG_LEVEL", "debug")
        assert load_config().logging.level == "DEBUG"
