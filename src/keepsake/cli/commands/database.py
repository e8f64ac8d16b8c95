"""Database management commands."""

from __future__ import annotations

import asyncio
import subprocess
import sys
from pathlib import Path
from typing import Annotated

import typer

from keepsake.cli.console import console, error, success


def register(app: typer.Typer) -> None:
    """Register the db command group."""
    db_app = typer.Typer(help="Database management commands")

    @db_app.command("init")
    def db_init(
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Create any missing tables in the configured database."""
        from keepsake.cli.runtime import get_config, open_store

        config = get_config(config_path)

        async def run() -> None:
            async with open_store(config, create_tables=True):
                pass

        asyncio.run(run())
        success("Database initialized")

    @db_app.command("migrate")
    def db_migrate(
        revision: Annotated[
            str,
            typer.Option(
                "--revision",
                "-r",
                help="Target revision",
            ),
        ] = "head",
    ) -> None:
        """Run database migrations."""
        console.print(f"[bold]Running migrations to {revision}...[/bold]")
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", revision],
            capture_output=False,
        )
        if result.returncode == 0:
            success("Migrations completed successfully")
        else:
            error("Migration failed")
            raise typer.Exit(1)

    app.add_typer(db_app, name="db")
