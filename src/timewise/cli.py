"""Command-line interface for TimeWise."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

import typer

from .clock import format_duration, format_minutes_label
from .config import EngineSettings
from .db import SqliteRepository
from .errors import DataIntegrityError
from .events import TimerEvent
from .paths import get_db_path, get_log_path
from .server_runner import run_service

app = typer.Typer(help="Personal activity timer and statistics.")

DB_OPTION_HELP = "Location of the TimeWise SQLite database."


@app.callback(no_args_is_help=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    log_file: bool = typer.Option(
        False, "--log-file", help="Also write logs to the data directory."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if log_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(handler)


def _repository(db_path: Optional[Path]) -> SqliteRepository:
    return SqliteRepository(db_path or get_db_path())


@app.command()
def track(
    activity_id: str = typer.Argument(..., help="Id of the activity to time."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
    tick_seconds: float = typer.Option(1.0, "--tick", min=0.1, help="Tick interval in seconds."),
) -> None:
    """Time one session in the foreground until Ctrl+C or auto-stop."""
    from .timer import TimerEngine
    from .scheduler import ThreadTicker

    settings = EngineSettings.from_options(tick_seconds=tick_seconds)
    repository = _repository(db_path)
    engine = TimerEngine(repository, ticker=ThreadTicker(settings.tick_interval))
    finished = threading.Event()

    def on_event(event: TimerEvent, snapshot: Any) -> None:
        if event is TimerEvent.TICK:
            typer.echo(f"\r{format_duration(snapshot.elapsed_seconds)}", nl=False)
        elif event is TimerEvent.AUTO_STOP:
            typer.echo(f"\nSession limit of {snapshot.activity.session_max} minutes reached.")
            finished.set()
        elif event is TimerEvent.STOP:
            finished.set()

    engine.subscribe(on_event)
    result = engine.start_session(activity_id)
    if not result.ok:
        typer.echo(f"Cannot start session: {result.error.value}", err=True)
        raise typer.Exit(code=1)

    remaining = engine.get_daily_remaining_seconds(activity_id, result.session.session_start)
    if remaining is not None:
        typer.echo(f"Daily allowance left: {format_minutes_label(remaining / 60)}")
    typer.echo("Tracking... press Ctrl+C to stop.")
    try:
        while not finished.wait(0.5):
            pass
    except KeyboardInterrupt:
        engine.stop()
    typer.echo("")
    session = repository.get_sessions()[-1]
    typer.echo(f"Recorded {format_duration(session.total_duration)}.")


@app.command()
def stats(
    period: str = typer.Option("daily", "--period", "-p", help="daily, weekly or monthly."),
    offset: int = typer.Option(0, "--offset", "-o", min=0, help="Windows to page back."),
    unit: Optional[str] = typer.Option(None, "--unit", help="Show the breakdown of one unit label."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Print bucketed totals and inactivity for a stats window."""
    from .reporting import SummaryPrinter
    from .stats import StatsEngine, find_unit

    try:
        result = StatsEngine(_repository(db_path)).get_stats(period, offset)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--period/--offset") from exc

    selected = None
    if unit is not None:
        selected = find_unit(result, unit)
        if selected is None:
            raise typer.BadParameter(
                f"{unit!r} is not in this window ({', '.join(result.labels)})",
                param_hint="--unit",
            )
    SummaryPrinter().print_stats(result, selected)


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Sessions to show."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """List recorded sessions, newest first."""
    from .history import get_history
    from .reporting import SummaryPrinter

    SummaryPrinter().print_history(get_history(_repository(db_path), limit=limit))


@app.command()
def plan(
    day: Optional[str] = typer.Option(None, "--date", "-d", help="YYYY-MM-DD; defaults to today."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Show the day structure and whether the planned workload fits."""
    from .planner import Planner
    from .reporting import SummaryPrinter

    planner = Planner(_repository(db_path))
    try:
        structure = planner.get_day_structure(day)
        feasibility = planner.check_daily_feasibility(day)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--date") from exc
    SummaryPrinter().print_plan(structure, feasibility)


@app.command("set-day")
def set_day(
    weekday: str = typer.Argument(..., help="monday ... sunday."),
    start: Optional[str] = typer.Option(None, "--start", help="Day start as HH:MM; 00:00 for a day off."),
    lunch_start: Optional[str] = typer.Option(None, "--lunch-start", help="Lunch break start as HH:MM."),
    lunch_minutes: Optional[int] = typer.Option(None, "--lunch-minutes", help="Lunch break length."),
    target_hours: Optional[float] = typer.Option(None, "--target", help="Work target in hours."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Change the day structure of one weekday."""
    from .clock import WEEKDAYS
    from .planner import Planner

    weekday = weekday.lower()
    if weekday not in WEEKDAYS:
        raise typer.BadParameter(f"{weekday!r} is not a weekday", param_hint="WEEKDAY")
    changes: dict[str, Any] = {}
    for key, value in (
        ("dayStartTimes", start),
        ("lunchBreakStartTimes", lunch_start),
        ("lunchBreakDurations", lunch_minutes),
        ("dailyWorkTargets", target_hours),
    ):
        if value is not None:
            changes[key] = {weekday: value}
    if not changes:
        typer.echo("Nothing to change.")
        return
    try:
        Planner(_repository(db_path)).set_day_structure(changes)
    except ValueError as exc:
        typer.echo(f"Day structure rejected: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Updated {weekday}.")


@app.command()
def activities(
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """List known activities and their limits."""
    rows = _repository(db_path).get_activities()
    if not rows:
        typer.echo("No activities defined. Use `timewise import` to load some.")
        return
    for activity in rows:
        limits = (
            f"session {format_minutes_label(activity.session_max)}, "
            f"daily {format_minutes_label(activity.daily_max)}"
        )
        archived = " [archived]" if activity.archived else ""
        typer.echo(f"{activity.id:<24} {activity.label:<30} {limits}{archived}")


@app.command("export")
def export_command(
    output: Path = typer.Argument(..., path_type=Path, help="File to write JSON to."),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Export activities, sessions and settings as JSON."""
    from .transfer import export_payload

    payload = export_payload(_repository(db_path))
    output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    typer.echo(
        f"Exported {len(payload['activities'])} activities "
        f"and {len(payload['logs'])} sessions."
    )


@app.command("import")
def import_command(
    source: Path = typer.Argument(..., path_type=Path, exists=True, dir_okay=False),
    merge: bool = typer.Option(
        False, "--merge", help="Merge into existing data instead of replacing it."
    ),
    db_path: Optional[Path] = typer.Option(None, "--db", path_type=Path, help=DB_OPTION_HELP),
) -> None:
    """Import a JSON export. Nothing is written if validation fails."""
    from .transfer import import_payload

    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
        parsed = import_payload(_repository(db_path), payload, merge=merge)
    except (json.JSONDecodeError, DataIntegrityError) as exc:
        typer.echo(f"Import failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Imported {len(parsed.activities)} activities and {len(parsed.sessions)} sessions.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the service."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the service."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help=DB_OPTION_HELP
    ),
    tick_seconds: float = typer.Option(1.0, "--tick", min=0.1, help="Tick interval in seconds."),
    open_browser: bool = typer.Option(
        True,
        "--open-browser/--no-open-browser",
        help="Open the API docs in your default browser.",
    ),
) -> None:
    """Start the local HTTP service for the timer and statistics."""
    run_service(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        settings=EngineSettings.from_options(tick_seconds=tick_seconds),
        open_browser=open_browser,
    )
