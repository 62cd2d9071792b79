"""Folder CLI commands working against the local replica."""

import typer
from rich.console import Console
from rich.table import Table

from notico.cli.cache.models import CachedFolder
from notico.cli.commands.sync import sync_after_change
from notico.cli.sync.engine import SyncEngine

folders_app = typer.Typer(name="folders", help="Manage folders")
console = Console()
NO_SYNC_OPTION = typer.Option(False, "--no-sync", help="Queue the change without syncing")


def _resolve_folder(engine: SyncEngine, ref: str) -> CachedFolder:
    folder = engine.find_folder(ref)
    if folder is None:
        console.print(f"[red]Folder '{ref}' not found.[/red]")
        raise typer.Exit(code=1)
    return folder


@folders_app.command("add")
def add_folder(
    name: str = typer.Argument(..., help="Folder name"),
    color: str | None = typer.Option(None, "--color", help="Display color"),
    no_sync: bool = NO_SYNC_OPTION,
) -> None:
    """Create a folder."""
    engine = SyncEngine()
    try:
        folder = engine.create_folder(name, color=color)
        console.print(f"[green]✓ Created folder '{folder.name}' ({folder.client_id}).[/green]")
        sync_after_change(engine, no_sync)
    finally:
        engine.close()


@folders_app.command("list")
def list_folders() -> None:
    """List folders from the local replica."""
    engine = SyncEngine()
    try:
        folders = engine.list_folders()
        if not folders:
            console.print("No folders found.")
            return

        table = Table(title="Folders", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="green")
        table.add_column("Color", style="white")
        table.add_column("Items", style="yellow")

        for folder in folders:
            count = len(engine.list_items(folder_id=folder.client_id))
            table.add_row(folder.client_id[:8], folder.name, folder.color or "-", str(count))

        console.print(table)
    finally:
        engine.close()


@folders_app.command("rename")
def rename_folder(
    ref: str = typer.Argument(..., help="Folder name or id"),
    new_name: str = typer.Argument(..., help="New folder name"),
    no_sync: bool = NO_SYNC_OPTION,
) -> None:
    """Rename a folder."""
    engine = SyncEngine()
    try:
        folder = _resolve_folder(engine, ref)
        old_name = folder.name
        engine.update_folder(folder.client_id, name=new_name)
        console.print(f"[green]✓ Renamed '{old_name}' to '{new_name}'.[/green]")
        sync_after_change(engine, no_sync)
    finally:
        engine.close()


@folders_app.command("rm")
def remove_folder(
    ref: str = typer.Argument(..., help="Folder name or id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    no_sync: bool = NO_SYNC_OPTION,
) -> None:
    """Delete a folder and every item in it."""
    engine = SyncEngine()
    try:
        folder = _resolve_folder(engine, ref)
        count = len(engine.list_items(folder_id=folder.client_id))
        if count and not yes:
            typer.confirm(
                f"Delete folder '{folder.name}' and its {count} item(s)?", abort=True
            )
        engine.delete_folder(folder.client_id)
        console.print(f"[green]✓ Deleted folder '{folder.name}' ({count} item(s)).[/green]")
        sync_after_change(engine, no_sync)
    finally:
        engine.close()
