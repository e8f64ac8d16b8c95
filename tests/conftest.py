"""Shared test fixtures and factories."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from keepsake.config.models import DatabaseConfig, KeepsakeConfig
from keepsake.db.engine import Database
from keepsake.db.models import Base
from keepsake.store import IdentityStore

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def keepsake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point KEEPSAKE_HOME at a temp dir and clear env overrides."""
    from keepsake.config.paths import get_keepsake_home

    home = tmp_path / "keepsake-home"
    monkeypatch.setenv("KEEPSAKE_HOME", str(home))
    monkeypatch.delenv("KEEPSAKE_DATABASE_URL", raising=False)
    monkeypatch.delenv("KEEPSAKE_LOG_LEVEL", raising=False)
    monkeypatch.chdir(tmp_path)
    get_keepsake_home.cache_clear()
    yield home
    get_keepsake_home.cache_clear()


@pytest.fixture
def config_toml_content(tmp_path: Path) -> str:
    """Valid TOML config content."""
    return f"""
[database]
path = "{(tmp_path / "cli.db").as_posix()}"

[identity]
max_names_per_submission = 10
subject_names = ["Valerie", "Val"]

[logging]
level = "warning"
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


@pytest.fixture
def config(tmp_path: Path) -> KeepsakeConfig:
    return KeepsakeConfig(database=DatabaseConfig(path=tmp_path / "config.db"))


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a temporary test database."""
    db_path = tmp_path / "test.db"
    db = Database(database_path=db_path)
    await db.connect()

    # Create all tables
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db

    await db.disconnect()


@pytest.fixture
async def store(database: Database) -> IdentityStore:
    return IdentityStore(database)


@pytest.fixture
async def author_id(store: IdentityStore) -> str:
    return await store.create_contributor("Alice Author")


@pytest.fixture
async def event_id(store: IdentityStore, author_id: str) -> str:
    return await store.create_event(
        "<p>Julie Smith and Bob Jones went fishing.</p>",
        contributor_id=author_id,
    )


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})
