"""Command-line interface for the screen time tools."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from pathlib import Path
from typing import List, Optional

import typer

from .aggregation import build_daily_summary, build_hourly, format_minutes
from .config import ScreenTimeSettings
from .models import DailySummary
from .resolver import NameResolver
from .server_runner import run_dashboard
from .store import InvalidInputError, QueryFailedError

app = typer.Typer(help="macOS Screen Time timelines and daily-note summaries.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _settings(
    db_path: Optional[Path],
    min_seconds: Optional[int],
    note_folder: Optional[Path] = None,
    sqlite_binary: Optional[str] = None,
) -> ScreenTimeSettings:
    return ScreenTimeSettings.from_options(
        note_folder=note_folder,
        minimum_duration_seconds=min_seconds,
        store_path=db_path,
        sqlite_binary=sqlite_binary,
    )


SQLITE_BINARY_HELP = (
    "Query through this sqlite3 executable instead of in-process SQLite "
    "(useful when only the terminal has Full Disk Access)."
)


def _load_summary(day: str, settings: ScreenTimeSettings, resolver: NameResolver) -> DailySummary:
    try:
        intervals = settings.fetch_usage(day)
    except (InvalidInputError, QueryFailedError) as exc:
        typer.echo(f"Screen Time error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    hourly = build_hourly(intervals, settings.minimum_duration_seconds, resolver)
    return build_daily_summary(day, hourly)


def _target_day(date_option: Optional[str], yesterday: bool) -> str:
    if date_option:
        return date_option
    day = date.today() - timedelta(days=1) if yesterday else date.today()
    return day.isoformat()


@app.command()
def summary(
    date_option: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to summarize. Defaults to today.",
    ),
    yesterday: bool = typer.Option(False, "--yesterday", help="Summarize yesterday."),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of knowledgeC.db. Defaults to the macOS location.",
    ),
    min_seconds: Optional[int] = typer.Option(
        None,
        "--min-seconds",
        min=0,
        help="Ignore usage intervals shorter than this many seconds.",
    ),
    sqlite_binary: Optional[str] = typer.Option(None, "--sqlite-binary", help=SQLITE_BINARY_HELP),
) -> None:
    """Print the hourly app usage table for a day."""
    settings = _settings(db_path, min_seconds, sqlite_binary=sqlite_binary)
    day = _target_day(date_option, yesterday)
    daily = _load_summary(day, settings, NameResolver())
    if not daily.hourly:
        typer.echo(f"No Screen Time data found for {day}")
        return

    typer.echo(f"Screen Time for {day}")
    typer.echo("-" * 40)
    for bucket in daily.hourly:
        for app_usage in bucket.apps:
            typer.echo(f"  {bucket.hour}  {app_usage.name:<28} {format_minutes(app_usage.minutes)}")
    typer.echo()
    typer.echo(f"Total: {format_minutes(daily.total_minutes)}")


@app.command()
def insert(
    date_option: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to insert. Defaults to today.",
    ),
    yesterday: bool = typer.Option(False, "--yesterday", help="Insert yesterday's usage."),
    note_folder: Optional[Path] = typer.Option(
        None,
        "--notes",
        path_type=Path,
        help="Daily notes folder; notes live at <folder>/YYYY/MM/YYYY-MM-DD.md.",
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of knowledgeC.db."
    ),
    min_seconds: Optional[int] = typer.Option(
        None,
        "--min-seconds",
        min=0,
        help="Ignore usage intervals shorter than this many seconds.",
    ),
    sqlite_binary: Optional[str] = typer.Option(None, "--sqlite-binary", help=SQLITE_BINARY_HELP),
) -> None:
    """Write the Screen Time section into a daily note."""
    from .daily_note import insert_screen_time_section

    settings = _settings(db_path, min_seconds, note_folder, sqlite_binary)
    day = _target_day(date_option, yesterday)
    typer.echo(f"Fetching Screen Time for {day}...")
    daily = _load_summary(day, settings, NameResolver())
    if not daily.hourly:
        typer.echo(f"No Screen Time data found for {day}")
        return

    result = insert_screen_time_section(daily, settings.note_folder)
    typer.echo(result.message)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def resolve(
    identifiers: List[str] = typer.Argument(..., help="Bundle identifiers to resolve."),
) -> None:
    """Show the display name chosen for each bundle identifier."""
    resolver = NameResolver()
    for identifier in identifiers:
        typer.echo(f"{identifier}\t{resolver.resolve(identifier)}")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the dashboard."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port for the dashboard."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of knowledgeC.db."
    ),
    note_folder: Optional[Path] = typer.Option(
        None, "--notes", path_type=Path, help="Daily notes folder."
    ),
    min_seconds: Optional[int] = typer.Option(
        None,
        "--min-seconds",
        min=0,
        help="Ignore usage intervals shorter than this many seconds.",
    ),
    sqlite_binary: Optional[str] = typer.Option(None, "--sqlite-binary", help=SQLITE_BINARY_HELP),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Automatically launch the dashboard in your default browser.",
    ),
) -> None:
    """Start the local timeline dashboard."""
    settings = ScreenTimeSettings.from_options(
        note_folder=note_folder,
        minimum_duration_seconds=min_seconds,
        store_path=db_path,
        sqlite_binary=sqlite_binary,
        dashboard_host=host,
        dashboard_port=port,
    )
    run_dashboard(settings, open_browser=open_browser)


if __name__ == "__main__":
    app()
