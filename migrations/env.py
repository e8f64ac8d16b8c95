"""Alembic environment for the identity database."""

import asyncio

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from keepsake.config import load_config
from keepsake.db.models import Base

target_metadata = Base.metadata


def _database_url() -> str:
    if url := context.config.get_main_option("sqlalchemy.url"):
        return url
    config = load_config()
    if not config.database.url:
        config.database.path.expanduser().parent.mkdir(parents=True, exist_ok=True)
    return config.database.resolved_url()


def run_migrations_offline() -> None:
    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def _do_run_migrations(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(_database_url())
    async with engine.connect() as connection:
        await connection.run_sync(_do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
