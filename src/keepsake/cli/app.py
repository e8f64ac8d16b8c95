"""Main CLI application."""

import typer

from keepsake.cli.commands import (
    config,
    database,
    people,
    references,
    scan,
    visibility,
)

app = typer.Typer(
    name="keepsake",
    help="Keepsake - identity visibility for shared memories",
    no_args_is_help=True,
)

config.register(app)
database.register(app)
people.register(app)
visibility.register(app)
references.register(app)
scan.register(app)


if __name__ == "__main__":
    app()
