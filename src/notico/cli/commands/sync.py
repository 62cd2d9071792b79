"""Sync CLI commands for manual sync control."""

import anyio
import typer
from rich.console import Console
from rich.table import Table

from notico.cli.client import get_server_url, is_online
from notico.cli.sync.engine import SyncEngine
from notico.cli.sync.protocol import SyncResult, SyncStatus
from notico.cli.sync.scheduler import SyncScheduler

sync_app = typer.Typer(
    name="sync", help="Synchronize with the server", invoke_without_command=True
)
console = Console()
FAILED_CYCLE_STATUSES = (SyncStatus.TRANSPORT_FAILED, SyncStatus.APPLY_FAILED)


def _render_failures(result: SyncResult) -> None:
    """Render per-operation failures table."""
    if not result.had_failures:
        return

    table = Table(title="Failed Operations", show_header=True, header_style="bold yellow")
    table.add_column("Entity", style="cyan")
    table.add_column("Client ID", style="white")
    table.add_column("Status", style="red")
    table.add_column("Error", style="dim")

    for failure in result.failures:
        table.add_row(
            failure.entity.value,
            failure.client_id,
            failure.status,
            failure.error or "-",
        )

    console.print(table)


def report_background_sync(engine: SyncEngine, result: SyncResult) -> None:
    """Summarize a sync triggered by a local change; never fails the command."""
    if result.status == SyncStatus.COMPLETED:
        console.print(
            f"[dim]Synced: pushed {result.pushed}, pulled {result.pulled}.[/dim]"
        )
        _render_failures(result)
    elif result.status == SyncStatus.OFFLINE:
        console.print(
            f"[yellow]⚠ Offline - {engine.pending_count()} change(s) queued.[/yellow]"
        )
    elif result.status in FAILED_CYCLE_STATUSES:
        console.print("[yellow]⚠ Sync failed - changes kept for the next sync.[/yellow]")
        if result.error_message:
            console.print(f"[dim]{result.error_message}[/dim]")


def sync_after_change(engine: SyncEngine, no_sync: bool) -> None:
    """Run a cycle after a local mutation unless the user opted out."""
    if no_sync:
        console.print(f"[dim]{engine.pending_count()} change(s) queued.[/dim]")
        return
    result = anyio.run(engine.perform_sync)
    report_background_sync(engine, result)


@sync_app.callback()
def sync_main(ctx: typer.Context) -> None:
    """Run a full sync cycle (push queued changes, pull server changes)."""
    if ctx.invoked_subcommand is not None:
        return

    engine = SyncEngine()
    try:
        console.print("[cyan]Syncing...[/cyan]")
        result = anyio.run(engine.perform_sync)

        if result.status == SyncStatus.OFFLINE:
            console.print(f"[red]Unable to reach server at {get_server_url()}.[/red]")
            console.print("Changes stay queued until the server is reachable.")
            raise typer.Exit(code=1)
        if result.status in FAILED_CYCLE_STATUSES:
            console.print("[red]✗ Sync failed.[/red]")
            if result.error_message:
                console.print(f"[dim]{result.error_message}[/dim]")
            raise typer.Exit(code=1)

        console.print(
            f"[green]✓ Sync complete: pushed {result.pushed}, pulled {result.pulled}.[/green]"
        )
        if result.had_failures:
            console.print("\n[yellow]Some operations failed:[/yellow]")
            _render_failures(result)
    finally:
        engine.close()


@sync_app.command("status")
def sync_status() -> None:
    """Show connectivity, queued changes and the last sync time."""
    online = anyio.run(is_online)

    if online:
        console.print(f"[green]Server: {get_server_url()}[/green]")
        console.print("[green]Status: Online[/green]")
    else:
        console.print(f"[red]Unable to reach server at {get_server_url()}.[/red]")
        console.print("[yellow]Status: Offline[/yellow]")

    engine = SyncEngine()
    try:
        pending = engine.pending_count()
        last_sync = engine.last_sync_at() or "never"
    finally:
        engine.close()

    if pending == 0:
        console.print("[green]No pending changes.[/green]")
    else:
        console.print(f"[yellow]Pending changes: {pending}[/yellow]")
    console.print(f"Last sync: [dim]{last_sync}[/dim]")


@sync_app.command("bootstrap")
def sync_bootstrap() -> None:
    """Pull every item and folder from the server (first run on a device)."""
    engine = SyncEngine()
    try:
        result = anyio.run(engine.initial_sync)
    finally:
        engine.close()

    if result.status == SyncStatus.OFFLINE:
        console.print(f"[red]Unable to reach server at {get_server_url()}.[/red]")
        raise typer.Exit(code=1)
    if result.status in FAILED_CYCLE_STATUSES:
        console.print("[red]✗ Bootstrap failed.[/red]")
        if result.error_message:
            console.print(f"[dim]{result.error_message}[/dim]")
        raise typer.Exit(code=1)

    console.print(f"[green]✓ Pulled {result.pulled} entities.[/green]")


@sync_app.command("watch")
def sync_watch(
    interval: float | None = typer.Option(
        None, "--interval", help="Connectivity poll interval in seconds"
    ),
) -> None:
    """Keep syncing: on reconnect and periodically, until interrupted."""
    engine = SyncEngine()
    try:
        anyio.run(_sync_watch_async, engine, interval)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
    finally:
        engine.close()


async def _sync_watch_async(engine: SyncEngine, interval: float | None) -> None:
    scheduler = SyncScheduler(engine, poll_seconds=interval)
    scheduler.start()
    console.print(
        f"[cyan]Watching {get_server_url()} every {scheduler.poll_seconds:g}s "
        "(Ctrl+C to stop)...[/cyan]"
    )
    try:
        while True:
            result = await scheduler.request_sync()
            if result.status == SyncStatus.COMPLETED and (result.pushed or result.pulled):
                report_background_sync(engine, result)
            await anyio.sleep(scheduler.poll_seconds)
    finally:
        await scheduler.close()
