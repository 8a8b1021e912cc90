"""CLI — Stored session management."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from walkthrough_recorder.exceptions import (
    MalformedSessionError,
    SessionNotFoundError,
    SessionStoreError,
)
from walkthrough_recorder.recording.models import RecordedSession
from walkthrough_recorder.recording.schema import dump_session, parse_session
from walkthrough_recorder.recording.store import SessionStore

app = typer.Typer(help="List, inspect, import, export, and delete recorded sessions.")
console = Console()

T = TypeVar("T")

DbOption = Annotated[
    Path | None, typer.Option("--db", help="Session database path (overrides config).")
]
ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
]


def _db_path(db: Path | None, config: Path | None) -> Path:
    if db is not None:
        return db
    from walkthrough_recorder.config import Settings

    return Settings.load(config_file=config).session_db_path()


def _with_store(db_path: Path, op: Callable[[SessionStore], Awaitable[T]]) -> T:
    async def _run() -> T:
        async with SessionStore(db_path) as store:
            return await op(store)

    try:
        return asyncio.run(_run())
    except SessionStoreError as exc:
        console.print(f"[red]Error: {exc.message}[/red]")
        raise typer.Exit(1)
    except MalformedSessionError as exc:
        console.print(f"[red]Stored session is malformed: {exc.message}[/red]")
        raise typer.Exit(1)


def _load_or_exit(db_path: Path, name: str) -> RecordedSession:
    session = _with_store(db_path, lambda store: store.get(name))
    if session is None:
        console.print(f"[red]{SessionNotFoundError(name).message}[/red]")
        raise typer.Exit(1)
    return session


@app.command("list")
def list_sessions(db: DbOption = None, config: ConfigOption = None) -> None:
    """List stored sessions."""
    rows: list[dict[str, Any]] = _with_store(_db_path(db, config), lambda store: store.list())

    if not rows:
        console.print("[yellow]No stored sessions.[/yellow]")
        return

    table = Table(title="Sessions")
    table.add_column("Name", style="cyan")
    table.add_column("Created")
    table.add_column("Duration (ms)", justify="right")
    table.add_column("Entries", justify="right")
    table.add_column("Events", justify="right")
    table.add_column("Audio")

    for row in rows:
        table.add_row(
            row["name"],
            row["created_at"] or "",
            str(row["duration_ms"]),
            str(row["entry_count"]),
            str(row["event_count"]),
            "yes" if row["has_audio"] else "no",
        )
    console.print(table)


@app.command("show")
def show_session(
    name: str = typer.Argument(help="Stored session name."),
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """Show a session summary and its timeline composition."""
    session = _load_or_exit(_db_path(db, config), name)
    summary = session.to_summary_dict()

    console.print(f"[bold]Session:[/bold] {name} ({summary['session_id']})")
    console.print(f"[bold]Created:[/bold] {summary['created_at']}")
    console.print(f"[bold]Duration:[/bold] {summary['duration_ms']} ms")
    console.print(f"[bold]Audio:[/bold] {session.audio_track if session.has_audio else 'none'}")

    table = Table(title="Timeline")
    table.add_column("Kind", style="cyan")
    table.add_column("Count", justify="right")
    for kind, count in session.count_by_kind().items():
        table.add_row(kind, str(count))
    console.print(table)


@app.command("events")
def list_events(
    name: str = typer.Argument(help="Stored session name."),
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """List the discrete events of a session in timeline order."""
    session = _load_or_exit(_db_path(db, config), name)

    table = Table(title=f"Events: {name}")
    table.add_column("Time (ms)", justify="right", style="cyan")
    table.add_column("Event")
    table.add_column("Data")
    for entry in session.discrete_events():
        table.add_row(
            str(entry.timestamp),
            entry.event_type or "",
            json.dumps(entry.event_data or {}, sort_keys=True),
        )
    console.print(table)


@app.command("export")
def export_session(
    name: str = typer.Argument(help="Stored session name."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file path."),
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """Export a session as serialized JSON."""
    session = _load_or_exit(_db_path(db, config), name)
    json_str = json.dumps(dump_session(session), indent=2)

    if output:
        output.write_text(json_str)
        console.print(f"[green]Session written to {output}[/green]")
    else:
        typer.echo(json_str)


@app.command("import")
def import_session(
    session_file: Path = typer.Argument(help="Path to a serialized session JSON file."),
    name: str = typer.Argument(help="Name to store the session under."),
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """Validate a serialized session and store it."""
    if not session_file.exists():
        console.print(f"[red]File not found: {session_file}[/red]")
        raise typer.Exit(1)

    try:
        session = parse_session(session_file.read_text())
    except MalformedSessionError as exc:
        console.print(f"[red]Invalid session: {exc.message}[/red]")
        raise typer.Exit(1)

    _with_store(_db_path(db, config), lambda store: store.save(name, session))
    console.print(
        f"[green]Imported[/green] {name} "
        f"({len(session.events)} entries, {session.duration_ms} ms)"
    )


@app.command("delete")
def delete_session(
    name: str = typer.Argument(help="Stored session name."),
    db: DbOption = None,
    config: ConfigOption = None,
) -> None:
    """Delete a stored session."""
    deleted = _with_store(_db_path(db, config), lambda store: store.delete(name))
    if not deleted:
        console.print(f"[red]{SessionNotFoundError(name).message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Session {name} deleted.[/green]")
