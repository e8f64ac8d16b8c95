"""People management commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import click
import typer

from keepsake.cli.console import (
    console,
    create_table,
    error,
    success,
    visibility_text,
)

if TYPE_CHECKING:
    from keepsake.config import KeepsakeConfig


def register(app: typer.Typer) -> None:
    """Register the people command."""

    @app.command()
    def people(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: list, add"),
        ] = None,
        name: Annotated[
            str | None,
            typer.Argument(help="Canonical name (for add)"),
        ] = None,
        alias: Annotated[
            list[str] | None,
            typer.Option("--alias", "-a", help="Alias to record (repeatable)"),
        ] = None,
        visibility: Annotated[
            str,
            typer.Option("--visibility", help="Initial visibility"),
        ] = "pending",
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Manage person records.

        Examples:
            keepsake people list
            keepsake people add "Jane Smith" --alias Janie
        """
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from keepsake.cli.runtime import get_config

        if action == "list":
            config = get_config(config_path)
            asyncio.run(_people_list(config))
        elif action == "add":
            if not name or not name.strip():
                error("A name is required: keepsake people add NAME")
                raise typer.Exit(1)
            from keepsake.identity.types import Visibility

            try:
                initial = Visibility(visibility)
            except ValueError:
                error(f"Invalid visibility: {visibility}")
                raise typer.Exit(1) from None
            config = get_config(config_path)
            asyncio.run(_people_add(config, name, alias or [], initial))
        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: list, add")
            raise typer.Exit(1)


async def _people_list(config: KeepsakeConfig) -> None:
    from keepsake.cli.runtime import open_store

    async with open_store(config) as store:
        records = await store.list_people()

    if not records:
        console.print("[dim]No people found.[/dim]")
        return

    table = create_table(
        f"People ({len(records)})",
        [
            ("ID", {"style": "dim", "max_width": 12}),
            ("Name", "bold"),
            ("Visibility", ""),
            ("Aliases", ""),
            ("Created", "dim"),
        ],
    )
    for person in records:
        aliases = ", ".join(person.aliases) if person.aliases else "-"
        created = person.created_at.strftime("%Y-%m-%d") if person.created_at else "-"
        table.add_row(
            person.id[:12],
            person.canonical_name,
            visibility_text(person.visibility),
            aliases,
            created,
        )
    console.print(table)


async def _people_add(
    config: KeepsakeConfig, name: str, aliases: list[str], visibility
) -> None:
    from keepsake.cli.runtime import open_store

    async with open_store(config) as store:
        person = await store.create_person(
            name, visibility=visibility, aliases=aliases
        )
    success(f"Created person {person.id}")
