"""
History Ledger CLI

Inspection commands over a ledger database. All query commands print JSON on
stdout; diagnostics go to stderr.

Usage:
    history-ledger init --db audit.db
    history-ledger history --type part --id 42
    history-ledger undelete-data --type part --id 42
    history-ledger time-travel --type part --id 42 --until 2025-01-15T12:00:00+00:00
    history-ledger existed --type part --id 42 --at 2025-01-15T12:00:00+00:00
    history-ledger actors --type part --id 42
    history-ledger logs --limit 20
"""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from typing_extensions import Annotated

from history_ledger.kernel.errors import LedgerError
from history_ledger.kernel.logging import configure_logging
from history_ledger.kernel.settings import LedgerSettings
from history_ledger.ledger import HistoryLedger
from history_ledger.log.models import LogEntry
from history_ledger.log.store import SortDirection
from history_ledger.log.targets import TargetRef, target_from

app = typer.Typer(
    name="history-ledger",
    help="History Ledger - audit log history and time travel queries",
    add_completion=False,
)

DbOption = Annotated[Optional[Path], typer.Option("--db", help="Database path")]
TypeOption = Annotated[str, typer.Option("--type", help="Entity category (e.g. part)")]
IdOption = Annotated[int, typer.Option("--id", help="Entity ID")]


def get_settings() -> LedgerSettings:
    """Read settings from the environment and configure logging for this run"""
    try:
        settings = LedgerSettings.from_env()
    except ValueError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(1)

    # Log to stderr so stdout stays valid JSON
    configure_logging(
        json_output=settings.json_logs,
        log_level=settings.log_level,
        stream=sys.stderr,
    )
    return settings


def get_ledger(settings: LedgerSettings, db_path: Optional[Path] = None) -> HistoryLedger:
    """Open an existing ledger database"""
    db = db_path or settings.db_path
    if not db.exists():
        typer.echo(f"Error: Database not found: {db}", err=True)
        typer.echo(f"Run 'history-ledger init --db {db}' to initialize", err=True)
        raise typer.Exit(1)
    return HistoryLedger(db)


def get_target(category: str, element_id: int) -> TargetRef:
    try:
        return target_from(category, element_id)
    except LedgerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def parse_instant(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        typer.echo(f"Error: Not an ISO-8601 timestamp: {value}", err=True)
        raise typer.Exit(1)


def parse_order(value: str) -> SortDirection:
    try:
        return SortDirection(value.upper())
    except ValueError:
        typer.echo(f"Error: Order must be ASC or DESC, got {value}", err=True)
        raise typer.Exit(1)


def emit(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2))


def dump_entries(entries: list[LogEntry]) -> list[dict[str, Any]]:
    return [entry.model_dump(mode="json") for entry in entries]


@app.command()
def init(
    db: DbOption = None,
) -> None:
    """Initialize a new ledger database"""
    settings = get_settings()
    db = db or settings.db_path
    if db.exists():
        typer.echo(f"Error: Database already exists: {db}", err=True)
        raise typer.Exit(1)

    HistoryLedger(db)
    typer.echo(f"Initialized ledger database: {db}")


@app.command()
def history(
    category: TypeOption,
    element_id: IdOption,
    order: Annotated[str, typer.Option("--order", help="DESC (newest first) or ASC")] = "DESC",
    limit: Annotated[Optional[int], typer.Option("--limit", min=0, help="Maximum entries")] = None,
    offset: Annotated[Optional[int], typer.Option("--offset", min=0, help="Entries to skip")] = None,
    db: DbOption = None,
) -> None:
    """Show the history of an element"""
    settings = get_settings()
    ledger = get_ledger(settings, db)
    entries = ledger.get_element_history(
        get_target(category, element_id),
        parse_order(order),
        limit if limit is not None else settings.default_page_size,
        offset,
    )
    emit(dump_entries(entries))


@app.command("undelete-data")
def undelete_data(
    category: TypeOption,
    element_id: IdOption,
    db: DbOption = None,
) -> None:
    """Show the latest deletion entry of an element"""
    settings = get_settings()
    ledger = get_ledger(settings, db)
    try:
        entry = ledger.get_undelete_data(category, element_id)
    except LedgerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    emit(entry.model_dump(mode="json"))


@app.command("time-travel")
def time_travel(
    category: TypeOption,
    element_id: IdOption,
    until: Annotated[str, typer.Option("--until", help="ISO-8601 instant (inclusive)")],
    db: DbOption = None,
) -> None:
    """Show the changes to revert to see an element as of a past instant"""
    settings = get_settings()
    ledger = get_ledger(settings, db)
    entries = ledger.get_time_travel_data(get_target(category, element_id), parse_instant(until))
    emit(dump_entries(entries))


@app.command()
def existed(
    category: TypeOption,
    element_id: IdOption,
    at: Annotated[str, typer.Option("--at", help="ISO-8601 instant")],
    db: DbOption = None,
) -> None:
    """Check whether an element had been created before an instant"""
    settings = get_settings()
    ledger = get_ledger(settings, db)
    target = get_target(category, element_id)
    instant = parse_instant(at)
    emit(
        {
            "target": str(target),
            "at": instant.isoformat(),
            "existed": ledger.element_existed_at(target, instant),
        }
    )


@app.command()
def actors(
    category: TypeOption,
    element_id: IdOption,
    db: DbOption = None,
) -> None:
    """Show who created and who last edited an element"""
    settings = get_settings()
    ledger = get_ledger(settings, db)
    target = get_target(category, element_id)
    creator = ledger.get_creating_user(target)
    last_editor = ledger.get_last_editing_user(target)
    emit(
        {
            "target": str(target),
            "created_by": creator.model_dump() if creator else None,
            "last_edited_by": last_editor.model_dump() if last_editor else None,
        }
    )


@app.command()
def logs(
    order: Annotated[str, typer.Option("--order", help="DESC (newest first) or ASC")] = "DESC",
    limit: Annotated[Optional[int], typer.Option("--limit", min=0, help="Maximum entries")] = None,
    offset: Annotated[Optional[int], typer.Option("--offset", min=0, help="Entries to skip")] = None,
    db: DbOption = None,
) -> None:
    """List all log entries by timestamp"""
    settings = get_settings()
    ledger = get_ledger(settings, db)
    entries = ledger.get_logs_ordered_by_timestamp(
        parse_order(order),
        limit if limit is not None else settings.default_page_size,
        offset,
    )
    emit(dump_entries(entries))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
