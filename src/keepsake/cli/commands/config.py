"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from keepsake.cli.console import console, create_table, error, success


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: $KEEPSAKE_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Manage configuration."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from rich.syntax import Syntax

        from keepsake.config import ConfigError, load_config
        from keepsake.config.paths import get_config_path

        expanded_path = path.expanduser() if path else get_config_path()

        if action == "show":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            content = expanded_path.read_text()
            syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
            console.print(f"[bold]Config file: {expanded_path}[/bold]\n")
            console.print(syntax)

        elif action == "validate":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            try:
                config_obj = load_config(expanded_path)
            except ConfigError as e:
                error("Configuration validation failed:")
                console.print(str(e), markup=False)
                raise typer.Exit(1) from None

            table = create_table(
                "Configuration Summary",
                [("Setting", "cyan"), ("Value", "green")],
            )
            table.add_row(
                "Database",
                "url (from config)"
                if config_obj.database.url
                else str(config_obj.database.path),
            )
            identity = config_obj.identity
            table.add_row("Max names per submission", str(identity.max_names_per_submission))
            table.add_row("Prose placeholder", identity.prose_placeholder)
            table.add_row("Inline placeholder", identity.inline_placeholder)
            table.add_row("Subject names", str(len(identity.subject_names)))
            table.add_row("Log level", config_obj.logging.level)

            success("Configuration is valid!")
            console.print()
            console.print(table)

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)
