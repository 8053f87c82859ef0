# Copyright (c) 2025 mcp-keeper Project
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""CLI interface for mcp-keeper."""

import asyncio
import json
import logging
from datetime import datetime
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from mcp_keeper import __version__
from mcp_keeper.clients import HANDLERS, get_client, parse_client_type
from mcp_keeper.config import config
from mcp_keeper.errors import KeeperError, UnknownClientError
from mcp_keeper.lockfile import LockFileManager, RollbackBuffer, resolve_lockfile_path
from mcp_keeper.models import ClientType, LockState, ProbeResult, ServerEntry, SyncAction, SyncActionType
from mcp_keeper.probe import HealthStatus, check_server_health, get_server_statuses, run_bounded, verify_servers
from mcp_keeper.probe.status import entry_from_lock
from mcp_keeper.sync import (
    ClientSnapshot,
    apply_sync_actions,
    compute_diff,
    compute_diff_from_client,
    diff_client_configs,
    get_client_configs,
)
from mcp_keeper.updates import available_updates

app = typer.Typer(
    name="mcp-keeper",
    help="Keep MCP server entries in sync across AI clients",
    rich_markup_mode="markdown"
)
console = Console()

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2

ACTION_STYLE = {
    SyncActionType.ADD: ("+", "green", "missing, will add"),
    SyncActionType.EXTRA: ("?", "yellow", "extra (not in source)"),
    SyncActionType.REMOVE: ("-", "red", "extra, will remove"),
    SyncActionType.CHANGED: ("~", "yellow", "changed, will update"),
    SyncActionType.OK: ("·", "dim", "in sync"),
}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"mcp-keeper version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")
) -> None:
    """mcp-keeper - one lockfile, every AI client."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _display_name(client: ClientType) -> str:
    return HANDLERS[client].display_name


def _parse_client_or_exit(name: str) -> ClientType:
    try:
        return parse_client_type(name)
    except UnknownClientError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_USAGE)


def _read_lock_state() -> LockState:
    try:
        return LockFileManager().read_lock_state()
    except KeeperError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_FAILURE)


def _print_sync_table(actions: List[SyncAction]) -> None:
    table = Table(title="Sync Plan")
    table.add_column("Server", style="cyan")
    table.add_column("Client")
    table.add_column("Status")

    for action in actions:
        icon, color, text = ACTION_STYLE[action.action]
        table.add_row(action.server, _display_name(action.client), f"[{color}]{icon} {text}[/{color}]")

    console.print(table)

    for action in actions:
        if action.details:
            console.print(f"[yellow]~[/yellow] {action.server} on {_display_name(action.client)}:")
            for detail in action.details:
                console.print(f"    {detail}")


def _count(actions: List[SyncAction], kind: SyncActionType) -> int:
    return sum(1 for a in actions if a.action == kind)


@app.command()
def sync(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview changes without applying them"),
    remove: bool = typer.Option(False, "--remove", help="Remove servers that are not in the source of truth"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Use a client as source of truth instead of the lockfile"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt")
) -> None:
    """Sync MCP server configs across all detected AI clients."""
    source_client = _parse_client_or_exit(source) if source else None

    with console.status("Reading client configs..."):
        snapshot: ClientSnapshot = get_client_configs()

    for client, reason in snapshot.skipped.items():
        console.print(f"[yellow]Skipping {_display_name(client)}: {reason}[/yellow]")

    if not snapshot.configs:
        console.print("[yellow]No AI clients detected. Install Claude Desktop, Cursor, VS Code or Windsurf first.[/yellow]")
        return

    if source_client is not None:
        if source_client not in snapshot.configs:
            console.print(f"[red]Source client {_display_name(source_client)} is not detected or its config is unreadable[/red]")
            raise typer.Exit(EXIT_FAILURE)
        console.print(f"Using {_display_name(source_client)} as source of truth")
        actions = compute_diff_from_client(source_client, snapshot.configs, remove=remove)
    else:
        actions = compute_diff(_read_lock_state(), snapshot.configs, remove=remove)

    if actions:
        _print_sync_table(actions)

    adds = _count(actions, SyncActionType.ADD)
    removes = _count(actions, SyncActionType.REMOVE)
    changes = _count(actions, SyncActionType.CHANGED)
    extras = _count(actions, SyncActionType.EXTRA)

    if not (adds or removes or changes or extras):
        console.print("[green]All clients are in sync.[/green]")
        return

    parts = []
    if adds:
        parts.append(f"[green]{adds} to add[/green]")
    if removes:
        parts.append(f"[red]{removes} to remove[/red]")
    if changes:
        parts.append(f"[yellow]{changes} to update[/yellow]")
    if extras:
        parts.append(f"[yellow]{extras} extra (informational)[/yellow]")
    console.print(" · ".join(parts))

    if dry_run:
        console.print("Dry run, no changes applied.")
        raise typer.Exit(EXIT_FAILURE)

    if not (adds or removes or changes):
        console.print("No additions needed. Extra servers left untouched.")
        raise typer.Exit(EXIT_FAILURE)

    if not yes and not typer.confirm("Apply these changes to client configs?", default=True):
        console.print("Cancelled, no changes applied.")
        return

    result = apply_sync_actions(actions, snapshot.handlers, update_changed=source_client is not None)

    if result.applied:
        console.print(f"[green]Added {result.applied} server(s) to client configs[/green]")
    if result.updated:
        console.print(f"[green]Updated {result.updated} server(s) in client configs[/green]")
    if result.removed:
        console.print(f"[green]Removed {result.removed} server(s) from client configs[/green]")
    for error in result.errors:
        console.print(f"[red]Failed to sync '{error.server}' on {_display_name(error.client)}: {error.error}[/red]")

    if result.failed:
        console.print("[yellow]Sync complete with errors.[/yellow]")
        raise typer.Exit(EXIT_FAILURE)
    console.print("[green]Sync complete.[/green]")


@app.command()
def diff(
    client_a: str = typer.Argument(..., help="Source client (claude-desktop, cursor, vscode, windsurf)"),
    client_b: str = typer.Argument(..., help="Target client"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON")
) -> None:
    """Show config differences between two AI clients."""
    a = _parse_client_or_exit(client_a)
    b = _parse_client_or_exit(client_b)
    if a == b:
        console.print("[red]The two clients must be different[/red]")
        raise typer.Exit(EXIT_USAGE)

    try:
        config_a = get_client(a).read_config()
        config_b = get_client(b).read_config()
    except KeeperError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    diffs = diff_client_configs(config_a, config_b)

    if json_output:
        typer.echo(json.dumps({
            "clientA": a.value,
            "clientB": b.value,
            "diffs": [{"server": d.server, "change": d.change, "details": d.details} for d in diffs],
        }, indent=2, ensure_ascii=False))
        return

    label_a, label_b = _display_name(a), _display_name(b)
    console.print(f"[bold]{label_a}[/bold] → [bold]{label_b}[/bold]")

    if not diffs:
        console.print("[green]No differences, configs are identical.[/green]")
        return

    for d in diffs:
        if d.change == "added":
            console.print(f"  [green]+[/green] {d.server} (only in {label_b})")
        elif d.change == "removed":
            console.print(f"  [red]-[/red] {d.server} (only in {label_a})")
        else:
            console.print(f"  [yellow]~[/yellow] {d.server} (changed)")
            for detail in d.details:
                console.print(f"      {detail}")


@app.command()
def rollback(
    index: Optional[int] = typer.Argument(None, help="Snapshot to restore (0 = most recent)"),
    list_snapshots: bool = typer.Option(False, "--list", "-l", help="List available snapshots"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt")
) -> None:
    """Restore a previous lockfile snapshot."""
    buffer = RollbackBuffer()
    snapshots = buffer.list()

    if list_snapshots or index is None:
        if not snapshots:
            console.print("[yellow]No snapshots available. Snapshots are created on each lockfile write.[/yellow]")
            return

        table = Table(title="Lockfile Snapshots (0 = most recent)")
        table.add_column("Index", style="cyan")
        table.add_column("Created")
        table.add_column("Size", justify="right")
        for snap in snapshots:
            created = datetime.fromisoformat(snap.created_at).astimezone().strftime("%Y-%m-%d %H:%M:%S")
            table.add_row(str(snap.index), created, f"{snap.size_bytes} B")
        console.print(table)

        if index is None:
            return

    if index < 0:
        console.print(f"[red]Invalid index {index}, must be a non-negative integer[/red]")
        raise typer.Exit(EXIT_USAGE)

    try:
        content = buffer.read(index)
    except KeeperError as e:
        console.print(f"[red]{e}. Use --list to see available snapshots.[/red]")
        raise typer.Exit(EXIT_FAILURE)

    try:
        count = len(json.loads(content).get("servers") or {})
        console.print(f"Snapshot [{index}] contains {count} server(s)")
    except (ValueError, AttributeError):
        logger.debug(f"Snapshot [{index}] is not a readable lockfile")

    lockfile_path = resolve_lockfile_path()
    if not yes and not typer.confirm(f"Restore snapshot [{index}] to {lockfile_path}?", default=False):
        console.print("Cancelled.")
        return

    try:
        buffer.restore(index, lockfile_path)
    except (KeeperError, OSError) as e:
        console.print(f"[red]Restore failed: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    console.print(f"[green]✓ Lockfile restored from snapshot [{index}][/green]")
    console.print(f"  Written to: {lockfile_path}")


def _status_row(result: ProbeResult) -> List[str]:
    status = "[green]alive[/green]" if result.alive else "[red]dead[/red]"
    latency = f"{result.latency_ms:g}ms" if result.alive and result.latency_ms is not None else "-"
    return [result.name, status, latency, result.message or ""]


@app.command()
def status(
    server: Optional[str] = typer.Option(None, "--server", help="Check a specific server by name"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON")
) -> None:
    """Show live process status for installed MCP servers."""
    state = _read_lock_state()

    with console.status(f"Probing {server}..." if server else "Probing all servers..."):
        results = asyncio.run(get_server_statuses(state, server))

    if json_output:
        typer.echo(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        return

    if not results:
        console.print("[yellow]No MCP servers installed[/yellow]")
        return

    table = Table(title="Server Status")
    table.add_column("Server", style="cyan")
    table.add_column("Status")
    table.add_column("Response", justify="right")
    table.add_column("Error")
    for result in results:
        table.add_row(*_status_row(result))
    console.print(table)

    alive = sum(1 for r in results if r.alive)
    console.print(f"[green]{alive} alive[/green] · [red]{len(results) - alive} dead[/red]")

    updates = [u for u in available_updates() if u.server in state.servers]
    for update in updates:
        console.print(
            f"[yellow]Update available:[/yellow] {update.server} "
            f"{update.current_version} → {update.latest_version} ({update.update_type})"
        )


def _installed_entries(state: LockState, snapshot: ClientSnapshot) -> Dict[str, ServerEntry]:
    """
    Launch specs for installed servers.

    A client's entry is preferred because it carries real env values; the
    lockfile entry is used for servers no readable client has.
    """
    entries: Dict[str, ServerEntry] = {}
    for client in sorted(snapshot.configs, key=lambda c: c.value):
        for name, entry in snapshot.configs[client].servers.items():
            if name in state.servers and name not in entries and entry.command:
                entries[name] = entry
    for name, lock_entry in state.servers.items():
        entries.setdefault(name, entry_from_lock(lock_entry))
    return entries


@app.command()
def test(
    server: Optional[str] = typer.Argument(None, help="Server name to test"),
    all_servers: bool = typer.Option(False, "--all", "-a", help="Test all installed servers")
) -> None:
    """Test MCP server connectivity with an initialize and tools/list handshake."""
    state = _read_lock_state()

    if all_servers:
        names = sorted(state.servers)
    elif server:
        names = [server]
    else:
        console.print("[red]Specify a server name or use --all[/red]")
        raise typer.Exit(EXIT_USAGE)

    missing = [n for n in names if n not in state.servers]
    entries = _installed_entries(state, get_client_configs())
    targets = {n: entries[n] for n in names if n in entries}

    with console.status(f"Testing {len(names)} server(s)..."):
        results = asyncio.run(verify_servers(targets)) if targets else []

    for name in missing:
        console.print(f"  [red]✗[/red] [bold]{name}[/bold] not installed")

    for result in results:
        latency = f"({result.latency_ms:g}ms)" if result.latency_ms is not None else ""
        if result.alive:
            console.print(f"  [green]✓[/green] [bold]{result.name}[/bold] {latency}")
            if result.tools:
                console.print(f"    Tools: {', '.join(result.tools)}")
        else:
            console.print(f"  [red]✗[/red] [bold]{result.name}[/bold] {latency}")
            console.print(f"    [red]{result.message or 'failed'}[/red] (state: {result.state.value})")

    passed = sum(1 for r in results if r.alive)
    failed = len(names) - passed
    console.print(f"\n[green]{passed} passed[/green], [red]{failed} failed[/red]")

    if failed:
        raise typer.Exit(EXIT_FAILURE)


@app.command()
def doctor(
    server: Optional[str] = typer.Argument(None, help="Check a single server")
) -> None:
    """Check MCP server health and configuration."""
    state = _read_lock_state()
    entries = _installed_entries(state, get_client_configs())

    if server is not None:
        if server not in entries:
            console.print(f"[red]{server} is not installed[/red]")
            raise typer.Exit(EXIT_FAILURE)
        entries = {server: entries[server]}

    if not entries:
        console.print("[yellow]No MCP servers installed[/yellow]")
        return

    def job(name: str, entry: ServerEntry):
        return lambda: check_server_health(name, entry)

    with console.status("Running health checks..."):
        outcomes = asyncio.run(run_bounded(
            {name: job(name, entry) for name, entry in sorted(entries.items())},
            config.probe.concurrency,
        ))

    healthy = 0
    unhealthy = 0
    for name, outcome in outcomes.items():
        if not outcome.ok:
            console.print(f"[red]●[/red] [bold]{name}[/bold]: check failed ({outcome.error})")
            unhealthy += 1
            continue

        result = outcome.value
        color = "green" if result.status == HealthStatus.HEALTHY else "red"
        console.print(f"[{color}]●[/{color}] [bold]{name}[/bold]")
        for check in result.checks:
            icon = "[dim]-[/dim]" if check.skipped else ("[green]✓[/green]" if check.passed else "[red]✗[/red]")
            console.print(f"    {icon} {check.name}: {check.message}")

        if result.status == HealthStatus.HEALTHY:
            healthy += 1
        else:
            unhealthy += 1

    console.print(f"Summary: [green]{healthy} healthy[/green], [red]{unhealthy} unhealthy[/red]")
    if unhealthy:
        raise typer.Exit(EXIT_FAILURE)


if __name__ == "__main__":
    app()
