"""
Event log commands: tail, inspect
"""

import json
import os
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from dcb.core.errors import EventStoreError
from dcb.core.events import Event
from dcb.core.query import Query
from dcb.log import FileEventStore

DEFAULT_LOG_PATH = "/tmp/dcb/events.jsonl"

app = typer.Typer()
console = Console()


def _open_log(log_path: str) -> FileEventStore:
    # FileEventStore creates missing files; a reader must not.
    if not os.path.isfile(log_path):
        raise FileNotFoundError(log_path)
    return FileEventStore(log_path)


def _event_to_dict(event: Event, show_payload: bool = True) -> Dict[str, Any]:
    return {
        "id": event.id,
        "type": event.type,
        "tags": list(event.tags),
        "timestamp": event.timestamp.isoformat(),
        "data": event.data if show_payload else "<hidden>",
    }


def _fail(message: str, json_output: bool, **extra: Any) -> None:
    if json_output:
        print(json.dumps({"error": message, **extra}))
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(2)


@app.command()
def tail(
    log_path: str = typer.Option(DEFAULT_LOG_PATH, "--log", "-l", help="Path to event log file"),
    lines: Optional[int] = typer.Option(None, "--lines", "-n", help="Number of events to show"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show the last events of the log.

    Examples:
        dcb log tail
        dcb log tail --lines 10
        dcb log tail --json
    """
    try:
        with _open_log(log_path) as store:
            events: List[Event] = list(store.read())
    except FileNotFoundError:
        _fail("Log file not found", json_output, path=log_path)
    except EventStoreError as e:
        _fail(str(e), json_output)

    if lines:
        events = events[-lines:]

    if json_output:
        records = [_event_to_dict(e) for e in events]
        print(json.dumps({"events": records, "count": len(records)}, indent=2))
        return

    if not events:
        console.print("[yellow]Event log is empty[/yellow]")
        return

    table = Table(title=f"Event Log: {log_path}")
    table.add_column("Id", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Tags", style="yellow")
    table.add_column("Timestamp", style="dim")
    for event in events:
        table.add_row(
            str(event.id), event.type, ", ".join(event.tags), event.timestamp.isoformat()
        )
    console.print(table)
    console.print(f"\n[bold]Total events:[/bold] {len(events)}")


@app.command()
def inspect(
    log_path: str = typer.Option(DEFAULT_LOG_PATH, "--log", "-l", help="Path to event log file"),
    tags: Optional[List[str]] = typer.Option(
        None, "--tag", help="Only events carrying any of these tags (repeatable)"
    ),
    types: Optional[List[str]] = typer.Option(
        None, "--type", "-t", help="Only events of these types (repeatable)"
    ),
    show_payload: bool = typer.Option(False, "--payload", "-p", help="Show full payload"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Inspect events matching a tag/type query.

    Examples:
        dcb log inspect --tag course:c1
        dcb log inspect --tag course:c1 --type StudentSubscribedToCourse
        dcb log inspect --payload --json
    """
    query = Query.of(tags=tags or None, types=types or None)
    try:
        with _open_log(log_path) as store:
            events = list(store.read(query))
    except FileNotFoundError:
        _fail("Log file not found", json_output, path=log_path)
    except EventStoreError as e:
        _fail(str(e), json_output)

    if json_output:
        records = [_event_to_dict(e, show_payload) for e in events]
        print(
            json.dumps(
                {"query": query.to_dict(), "events": records, "count": len(records)}, indent=2
            )
        )
        return

    if not events:
        console.print("[yellow]No events match the query[/yellow]")
        return

    for event in events:
        console.print(f"\n[bold cyan]Event {event.id}[/bold cyan]")
        console.print(f"  Type: [green]{event.type}[/green]")
        console.print(f"  Tags: [yellow]{', '.join(event.tags)}[/yellow]")
        console.print(f"  Timestamp: {event.timestamp.isoformat()}")
        if show_payload:
            console.print("  Payload:")
            console.print(
                Syntax(json.dumps(event.data, indent=2), "json", theme="monokai", line_numbers=False)
            )

    console.print(f"\n[bold]Total events:[/bold] {len(events)} ({query})")
