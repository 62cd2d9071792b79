"""Main CLI application using Typer."""

import typer
from rich.console import Console

from notico import __version__
from notico.cli.commands.config import config_app
from notico.cli.commands.folders import folders_app
from notico.cli.commands.items import items_app
from notico.cli.commands.sync import sync_app

app = typer.Typer(
    name="notico",
    help="Notico - offline-first notes, links and reminders",
    add_completion=False,
)
console = Console()

# Register subcommands
app.add_typer(config_app, name="config")
app.add_typer(items_app, name="items")
app.add_typer(folders_app, name="folders")
app.add_typer(sync_app, name="sync")


def version_callback(value: bool) -> None:
    """Show version information."""
    if value:
        console.print(f"Notico version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    )
) -> None:
    """Notico CLI - keep notes in sync across devices, online or not."""
    pass


if __name__ == "__main__":
    app()
