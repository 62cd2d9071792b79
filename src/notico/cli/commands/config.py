"""Configuration management commands."""

import typer
from rich.console import Console
from rich.table import Table

from notico.cli.client import clear_online_cache
from notico.cli.config import (
    get_config_file,
    load_config,
    set_config_value,
)

config_app = typer.Typer(
    name="config",
    help="Manage CLI configuration",
)
console = Console()

NUMERIC_KEYS = {"sync_debounce_seconds", "connectivity_poll_seconds"}


@config_app.command("show")
def config_show() -> None:
    """Display current configuration."""
    config = load_config()

    if not config:
        console.print("[yellow]No configuration found.[/yellow]")
        console.print(f"Config file: [dim]{get_config_file()}[/dim]")
        return

    table = Table(title="Notico Configuration", show_header=True, header_style="bold magenta")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    for key, value in sorted(config.items()):
        table.add_row(key, str(value))

    console.print(table)
    console.print(f"\nConfig file: [dim]{get_config_file()}[/dim]")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key to set"),
    value: str = typer.Argument(..., help="Value to set"),
) -> None:
    """Set a configuration value.

    Examples:
        notico config set server_url http://localhost:8000
        notico config set sync_debounce_seconds 2
    """
    stored: str | float = value
    if key in NUMERIC_KEYS:
        try:
            stored = float(value)
        except ValueError as exc:
            console.print(f"[red]{key} must be a number.[/red]")
            raise typer.Exit(code=1) from exc

    set_config_value(key, stored)
    if key == "server_url":
        clear_online_cache()
    console.print(f"[green]✓[/green] Set [cyan]{key}[/cyan] = [green]{stored}[/green]")
    console.print(f"Config file: [dim]{get_config_file()}[/dim]")
