"""Visibility choice commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from keepsake.cli.console import error, success, warning


def register(app: typer.Typer) -> None:
    """Register the visibility command group."""
    visibility_app = typer.Typer(help="Change how a person is shown")

    @visibility_app.command("set")
    def visibility_set(
        reference_id: Annotated[str, typer.Argument(help="Reference to update")],
        visibility: Annotated[
            str,
            typer.Argument(help="approved, anonymized, blurred or removed"),
        ],
        scope: Annotated[
            str,
            typer.Option(
                "--scope",
                "-s",
                help="this_note, by_author or all_notes",
            ),
        ] = "this_note",
        contributor: Annotated[
            str | None,
            typer.Option(
                "--contributor",
                help="Contributor the choice applies to (by_author)",
            ),
        ] = None,
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Apply a visibility choice to a reference."""
        from pydantic import ValidationError

        from keepsake.cli.runtime import get_config, open_store
        from keepsake.store import StoreError

        config = get_config(config_path)

        async def run():
            async with open_store(config) as store:
                return await store.apply_visibility_choice(
                    reference_id, visibility, scope, contributor
                )

        try:
            applied = asyncio.run(run())
        except ValidationError:
            error(f"Invalid visibility: {visibility}")
            raise typer.Exit(1) from None
        except StoreError as e:
            error(str(e))
            raise typer.Exit(1) from None

        if applied.value != scope:
            warning(f"Applied as {applied.value}")
        success(f"Visibility set to {visibility}")

    app.add_typer(visibility_app, name="visibility")
