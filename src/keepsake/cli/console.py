"""Shared console utilities for CLI commands."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from keepsake.identity.types import Visibility, coerce_visibility

# Shared console instance for all CLI commands
console = Console()


def error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]{msg}[/red]")


def warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]{msg}[/yellow]")


def success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]{msg}[/green]")


def dim(msg: str) -> None:
    """Print a dimmed message."""
    console.print(f"[dim]{msg}[/dim]")


VISIBILITY_STYLES: dict[Visibility, str] = {
    Visibility.APPROVED: "green",
    Visibility.ANONYMIZED: "cyan",
    Visibility.BLURRED: "yellow",
    Visibility.REMOVED: "red",
    Visibility.PENDING: "dim",
}


def visibility_text(state: object) -> str:
    """Rich markup for a visibility state; unknown values read as pending."""
    visibility = coerce_visibility(state)
    style = VISIBILITY_STYLES[visibility]
    return f"[{style}]{visibility.value}[/{style}]"


def create_table(
    title: str,
    columns: list[tuple[str, str | dict]],
) -> Table:
    """Create a styled table with consistent formatting.

    Args:
        title: Table title.
        columns: List of (name, style) or (name, kwargs_dict) tuples.
    """
    table = Table(title=title)
    for name, style_or_kwargs in columns:
        if isinstance(style_or_kwargs, dict):
            table.add_column(name, **style_or_kwargs)
        else:
            table.add_column(name, style=style_or_kwargs)
    return table
