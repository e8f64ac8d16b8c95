"""Submission-time name scanning and masking commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from keepsake.cli.console import console, create_table, dim, error, success


def _read_content(file: Path) -> str:
    if not file.exists():
        error(f"File not found: {file}")
        raise typer.Exit(1)
    return file.read_text(encoding="utf-8")


def register(app: typer.Typer) -> None:
    """Register the scan and mask commands."""

    @app.command()
    def scan(
        file: Annotated[Path, typer.Argument(help="Text or HTML file to scan")],
        contributor: Annotated[
            str | None,
            typer.Option("--contributor", help="Submitting contributor"),
        ] = None,
        register_event: Annotated[
            str | None,
            typer.Option(
                "--register",
                help="Create pending references on this event for unknown names",
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
        """Detect names in a submission and report which are cleared."""
        from keepsake.cli.runtime import get_config, open_store
        from keepsake.identity.consent import (
            build_consent_context,
            register_pending_names,
        )
        from keepsake.identity.names import detect_names

        content = _read_content(file)
        config = get_config(config_path)
        identity = config.identity

        detected = detect_names(content)
        if not detected:
            dim("No names detected.")
            return

        async def run():
            async with open_store(config) as store:
                context = await build_consent_context(
                    content,
                    store,
                    contributor,
                    max_names=identity.max_names_per_submission,
                )
                pending = []
                if register_event:
                    pending = await register_pending_names(
                        content,
                        register_event,
                        store,
                        contributor,
                        subject_names=identity.subject_names,
                        extra_fictional=identity.fictional_names,
                        max_names=identity.max_names_per_submission,
                    )
                return context, pending

        context, pending = asyncio.run(run())
        cleared = {p.name.lower(): p for p in context.consented_names}

        table = create_table(
            f"Names ({len(detected)})",
            [
                ("Name", "bold"),
                ("Span", "dim"),
                ("Status", ""),
                ("Relationship", ""),
            ],
        )
        for name in detected:
            person = cleared.get(name.text.lower())
            table.add_row(
                name.text,
                f"{name.start}-{name.end}",
                "[green]cleared[/green]" if person else "[yellow]needs consent[/yellow]",
                (person.relationship or "-") if person else "-",
            )
        console.print(table)

        if pending:
            created = sum(1 for p in pending if p.status == "created")
            success(
                f"{created} pending reference(s) created, "
                f"{len(pending) - created} already pending"
            )

    @app.command()
    def mask(
        file: Annotated[Path, typer.Argument(help="Text or HTML file to mask")],
        event_id: Annotated[
            str,
            typer.Option("--event", "-e", help="Event whose references apply"),
        ],
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Print content with hidden people replaced by their labels."""
        from keepsake.cli.runtime import get_config, open_store
        from keepsake.identity.names import mask_content_for_viewer

        content = _read_content(file)
        config = get_config(config_path)

        async def load():
            async with open_store(config) as store:
                return await store.list_reference_rows(event_id)

        rows = asyncio.run(load())
        masked = mask_content_for_viewer(
            content, rows, placeholder=config.identity.inline_placeholder
        )
        console.print(masked, markup=False, highlight=False, soft_wrap=True)
