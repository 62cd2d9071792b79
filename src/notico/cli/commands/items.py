"""Item CLI commands working against the local replica."""

from datetime import datetime
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from notico.cli.cache.models import CachedItem, ItemType
from notico.cli.commands.sync import sync_after_change
from notico.cli.sync.engine import SyncEngine

items_app = typer.Typer(name="items", help="Manage notes, links and reminders")
console = Console()
TYPE_OPTION = typer.Option(ItemType.NOTE, "--type", "-t", help="Item type")
CONTENT_OPTION = typer.Option(None, "--content", "-c", help="Body text")
URL_OPTION = typer.Option(None, "--url", help="Link target (url items)")
REMIND_OPTION = typer.Option(None, "--remind", help="Reminder time (ISO 8601)")
TAG_OPTION = typer.Option(None, "--tag", help="Tag (repeatable)")
COLOR_OPTION = typer.Option(None, "--color", help="Display color")
FOLDER_OPTION = typer.Option(None, "--folder", "-f", help="Folder name or id")
NO_SYNC_OPTION = typer.Option(False, "--no-sync", help="Queue the change without syncing")


def _parse_reminder(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        console.print(f"[red]Invalid reminder time '{value}'.[/red] Use ISO 8601.")
        raise typer.Exit(code=1) from exc


def _resolve_folder_id(engine: SyncEngine, ref: str | None) -> str | None:
    if ref is None:
        return None
    folder = engine.find_folder(ref)
    if folder is None:
        console.print(f"[red]Folder '{ref}' not found.[/red]")
        raise typer.Exit(code=1)
    return folder.client_id


def _resolve_item(engine: SyncEngine, ref: str) -> CachedItem:
    """Find a live item by client id or unique client id prefix."""
    item = engine.get_item(ref)
    if item is not None and not item.deleted:
        return item

    matches = [i for i in engine.list_items() if i.client_id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        console.print(f"[red]'{ref}' matches {len(matches)} items; use a longer id.[/red]")
    else:
        console.print(f"[red]Item '{ref}' not found.[/red]")
    raise typer.Exit(code=1)


def _render_items_table(items: list[CachedItem]) -> None:
    table = Table(title="Items", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Type", style="yellow")
    table.add_column("Title", style="green")
    table.add_column("Tags", style="white")
    table.add_column("Updated", style="dim")

    for item in items:
        title = f"📌 {item.title}" if item.pinned else item.title
        table.add_row(
            item.client_id[:8],
            item.type.value,
            title,
            ", ".join(item.get_tags_list()) or "-",
            item.updated_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


def _render_item_detail(item: CachedItem) -> None:
    lines = [
        f"[bold]ID:[/bold] {item.client_id}",
        f"[bold]Server ID:[/bold] {item.server_id or 'not synced'}",
        f"[bold]Type:[/bold] {item.type.value}",
    ]
    if item.url:
        lines.append(f"[bold]URL:[/bold] {item.url}")
    if item.reminder_date:
        state = "done" if item.reminder_completed else "pending"
        lines.append(f"[bold]Reminder:[/bold] {item.reminder_date.isoformat()} ({state})")
    if item.folder_id:
        lines.append(f"[bold]Folder:[/bold] {item.folder_id}")
    tags = item.get_tags_list()
    if tags:
        lines.append(f"[bold]Tags:[/bold] {', '.join(tags)}")
    lines.append(f"[bold]Updated:[/bold] {item.updated_at.isoformat()}")
    if item.content:
        lines.append("")
        lines.append(item.content)

    console.print(Panel("\n".join(lines), title=item.title, border_style="cyan"))


@items_app.command("add")
def add_item(
    title: str = typer.Argument(..., help="Item title"),
    item_type: ItemType = TYPE_OPTION,
    content: str | None = CONTENT_OPTION,
    url: str | None = URL_OPTION,
    remind: str | None = REMIND_OPTION,
    tags: list[str] | None = TAG_OPTION,
    pin: bool = typer.Option(False, "--pin", help="Pin the item"),
    color: str | None = COLOR_OPTION,
    folder: str | None = FOLDER_OPTION,
    no_sync: bool = NO_SYNC_OPTION,
) -> None:
    """Create an item."""
    engine = SyncEngine()
    try:
        item = engine.create_item(
            title,
            item_type=item_type,
            content=content or "",
            url=url,
            reminder_date=_parse_reminder(remind),
            tags=tags,
            pinned=pin,
            color=color,
            folder_id=_resolve_folder_id(engine, folder),
        )
        console.print(f"[green]✓ Created {item.type.value} '{item.title}' ({item.client_id}).[/green]")
        sync_after_change(engine, no_sync)
    finally:
        engine.close()


@items_app.command("list")
def list_items(
    item_type: str | None = typer.Option(
        None, "--type", "-t", help="note, url, reminder or all"
    ),
    folder: str | None = FOLDER_OPTION,
    search: str | None = typer.Option(
        None, "--search", "-s", help="Whitespace-separated terms that must all match"
    ),
) -> None:
    """List items from the local replica."""
    engine = SyncEngine()
    try:
        try:
            items = engine.list_items(
                item_type=item_type,
                folder_id=_resolve_folder_id(engine, folder),
                search_terms=search,
            )
        except ValueError as exc:
            console.print(f"[red]Unknown item type '{item_type}'.[/red]")
            raise typer.Exit(code=1) from exc

        if not items:
            console.print("No items found.")
            return
        _render_items_table(items)
    finally:
        engine.close()


@items_app.command("show")
def show_item(
    client_id: str = typer.Argument(..., help="Item id or id prefix"),
) -> None:
    """Show one item."""
    engine = SyncEngine()
    try:
        _render_item_detail(_resolve_item(engine, client_id))
    finally:
        engine.close()


@items_app.command("edit")
def edit_item(
    client_id: str = typer.Argument(..., help="Item id or id prefix"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    content: str | None = CONTENT_OPTION,
    url: str | None = URL_OPTION,
    remind: str | None = REMIND_OPTION,
    done: bool | None = typer.Option(
        None, "--done/--not-done", help="Mark a reminder completed or not"
    ),
    tags: list[str] | None = TAG_OPTION,
    color: str | None = COLOR_OPTION,
    folder: str | None = FOLDER_OPTION,
    no_sync: bool = NO_SYNC_OPTION,
) -> None:
    """Edit fields of an item."""
    engine = SyncEngine()
    try:
        item = _resolve_item(engine, client_id)
        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        if url is not None:
            changes["url"] = url
        if remind is not None:
            changes["reminder_date"] = _parse_reminder(remind)
        if done is not None:
            changes["reminder_completed"] = done
        if tags:
            changes["tags"] = tags
        if color is not None:
            changes["color"] = color
        if folder is not None:
            changes["folder_id"] = _resolve_folder_id(engine, folder)

        if not changes:
            console.print("[yellow]Nothing to change.[/yellow]")
            return

        engine.update_item(item.client_id, **changes)
        console.print(f"[green]✓ Updated '{item.title}'.[/green]")
        sync_after_change(engine, no_sync)
    finally:
        engine.close()


@items_app.command("pin")
def pin_item(
    client_id: str = typer.Argument(..., help="Item id or id prefix"),
    off: bool = typer.Option(False, "--off", help="Unpin instead"),
    no_sync: bool = NO_SYNC_OPTION,
) -> None:
    """Pin an item so it lists first."""
    engine = SyncEngine()
    try:
        item = _resolve_item(engine, client_id)
        engine.update_item(item.client_id, pinned=not off)
        state = "Unpinned" if off else "Pinned"
        console.print(f"[green]✓ {state} '{item.title}'.[/green]")
        sync_after_change(engine, no_sync)
    finally:
        engine.close()


@items_app.command("rm")
def remove_item(
    client_id: str = typer.Argument(..., help="Item id or id prefix"),
    no_sync: bool = NO_SYNC_OPTION,
) -> None:
    """Delete an item."""
    engine = SyncEngine()
    try:
        item = _resolve_item(engine, client_id)
        engine.delete_item(item.client_id)
        console.print(f"[green]✓ Deleted '{item.title}'.[/green]")
        sync_after_change(engine, no_sync)
    finally:
        engine.close()
