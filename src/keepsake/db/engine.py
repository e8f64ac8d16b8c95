"""Async SQLAlchemy database engine."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from keepsake.config.models import DatabaseConfig
from keepsake.db.models import Base


class Database:
    """Async database connection manager."""

    def __init__(
        self, database_url: str | None = None, database_path: Path | None = None
    ):
        """Initialize database.

        Args:
            database_url: Full database URL (takes precedence).
            database_path: Path to SQLite database file.
        """
        if database_url:
            self._url = database_url
        elif database_path:
            database_path.parent.mkdir(parents=True, exist_ok=True)
            self._url = f"sqlite+aiosqlite:///{database_path}"
        else:
            raise ValueError("Either database_url or database_path must be provided")

        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> Database:
        """Build from `[database]` settings; an explicit url beats the sqlite path."""
        if not config.url:
            config.path.expanduser().parent.mkdir(parents=True, exist_ok=True)
        return cls(database_url=config.resolved_url())

    @property
    def url(self) -> str:
        return self._url

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the session factory."""
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._session_factory

    async def connect(self) -> None:
        """Initialize the database connection."""
        self._engine = create_async_engine(
            self._url,
            echo=False,
            pool_pre_ping=True,
        )
        if self._url.startswith("sqlite"):
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_fks)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create any missing tables (tests and `keepsake db init`)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def disconnect(self) -> None:
        """Close the database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session.

        Usage:
            async with db.session() as session:
                result = await session.execute(...)
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def _enable_sqlite_fks(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
