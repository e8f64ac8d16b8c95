"""Viewer-facing reference listing."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer

from keepsake.cli.console import console, create_table, visibility_text


def register(app: typer.Typer) -> None:
    """Register the references command."""

    @app.command()
    def references(
        event_id: Annotated[str, typer.Argument(help="Event to list references for")],
        author: Annotated[
            str | None,
            typer.Option(
                "--author",
                help="Contributor whose preferences apply (default: event author)",
            ),
        ] = None,
        include_author_payload: Annotated[
            bool,
            typer.Option("--author-payload", help="Include author-only fields"),
        ] = False,
        as_json: Annotated[
            bool,
            typer.Option("--json", help="Print JSON instead of a table"),
        ] = False,
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Show an event's references as a viewer would see them."""
        from keepsake.cli.runtime import get_config, open_store
        from keepsake.identity.references import redact_references

        config = get_config(config_path)

        async def load():
            async with open_store(config) as store:
                return await store.list_reference_rows(event_id, author)

        rows = asyncio.run(load())
        redacted = redact_references(
            rows,
            include_author_payload=include_author_payload,
            placeholder=config.identity.prose_placeholder,
        )

        if as_json:
            console.print_json(json.dumps([r.to_dict() for r in redacted]))
            return

        if not redacted:
            console.print("[dim]No visible references.[/dim]")
            return

        table = create_table(
            f"References ({len(redacted)} of {len(rows)})",
            [
                ("ID", {"style": "dim", "max_width": 12}),
                ("Type", ""),
                ("Label", "bold"),
                ("State", ""),
                ("Media", "dim"),
            ],
        )
        for ref in redacted:
            table.add_row(
                ref.id[:12],
                ref.type.value,
                ref.render_label or "-",
                visibility_text(ref.identity_state),
                ref.media_presentation.value,
            )
        console.print(table)
