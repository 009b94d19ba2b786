"""[Layer: Presentation] Typer CLI Commands.

State is session-only: every invocation starts from freshly generated sample
data, so commands are read views over that seed.
"""

from importlib.metadata import PackageNotFoundError, version as get_package_version
from typing import Optional, Union

import typer

from daybook.config import Settings, get_settings
from daybook.core.dates import parse_day_key, to_day_key, utcnow
from daybook.core.sample_data import generate_tasks
from daybook.core.stats import compute_stats
from daybook.core.store import TaskStore
from daybook.core.views import (
    calendar_days,
    calendar_start,
    filter_by_status,
    group_by_day,
    matching_days,
    window_of,
)
from daybook.models import TaskInstance, TaskRecord, TaskStatus

_STATUS_MARKS = {
    TaskStatus.NOT_STARTED: "[ ]",
    TaskStatus.STARTED: "[~]",
    TaskStatus.COMPLETED: "[x]",
}


def _get_version() -> str:
    """Get version from package metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("daybook")
    except PackageNotFoundError:
        return "0.0.0-dev"


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"daybook {_get_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="daybook",
    help="Personal task tracker: inbox, recurring calendar, archive and undo.",
)


def build_store(settings: Optional[Settings] = None) -> TaskStore:
    """Fresh session store seeded with sample data."""
    settings = settings or get_settings()
    tasks = generate_tasks(
        count=settings.sample_task_count,
        seed=settings.sample_seed,
        owner=settings.owner_name,
    )
    return TaskStore(
        tasks,
        undo_window_seconds=settings.undo_window_seconds,
        owner=settings.owner_name,
    )


def _format_entry(entry: Union[TaskRecord, TaskInstance]) -> str:
    mark = _STATUS_MARKS[TaskStatus(entry.status)]
    line = f"{mark} {entry.text[:60]}{'...' if len(entry.text) > 60 else ''}"
    if isinstance(entry, TaskInstance):
        line += f" (every {entry.recurrence}, #{entry.parent_id})"
    else:
        line += f" (#{entry.id})"
    if entry.rating:
        line += f" [{entry.rating}]"
    return line


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Show the inbox when no command is provided."""
    if ctx.invoked_subcommand is None:
        inbox(query=None)


@app.command()
def inbox(
    query: Optional[str] = typer.Option(
        None, "--query", "-q", help="Case-insensitive text/notes filter"
    ),
) -> None:
    """List unscheduled tasks."""
    store = build_store()
    tasks = store.unscheduled_tasks(query)
    typer.echo(f"Inbox: {len(tasks)} tasks")
    for task in tasks:
        typer.echo(f"  {_format_entry(task)}")


@app.command()
def calendar(
    start: Optional[str] = typer.Option(
        None, "--start", "-s", help="First day (YYYY-MM-DD); default is 45 days ago"
    ),
    days: Optional[int] = typer.Option(
        None, "--days", "-d", help="Number of days to show"
    ),
    query: Optional[str] = typer.Option(
        None, "--query", "-q", help="Only days with matching tasks"
    ),
    status: Optional[list[TaskStatus]] = typer.Option(
        None, "--status", help="Only show these statuses (repeatable)"
    ),
) -> None:
    """Show scheduled tasks and recurring occurrences per day."""
    settings = get_settings()
    store = build_store(settings)

    if query and query.strip():
        day_list = matching_days(store.active_tasks(), query)
    else:
        if start is None:
            first = calendar_start(utcnow().date(), settings.calendar_lookback_days)
            start = to_day_key(first)
        elif parse_day_key(start) is None:
            raise typer.BadParameter(f"Invalid date: {start}", param_hint="--start")
        day_list = calendar_days(start, days or settings.calendar_span_days)

    window = window_of(day_list)
    if window is None:
        typer.echo("No days to show.")
        return
    visible = {d.key for d in day_list}
    entries = [e for e in store.expand(*window, query=query) if e.date in visible]
    if status:
        entries = filter_by_status(entries, status)
    by_day = group_by_day(entries)

    shown = 0
    for day in day_list:
        todays = by_day.get(day.key)
        if not todays:
            continue
        typer.echo(f"{day.weekday} {day.key}")
        for entry in todays:
            typer.echo(f"  {_format_entry(entry)}")
        shown += len(todays)
    typer.echo(f"{shown} entries between {window[0]} and {window[1]}")


@app.command()
def stats(
    period: str = typer.Option(
        "monthly",
        "--period",
        "-p",
        help="weekly, monthly, quarterly, semester or yearly",
    ),
    year: Optional[int] = typer.Option(None, "--year", "-y", help="Default: this year"),
    month: Optional[int] = typer.Option(None, "--month", "-m"),
    quarter: Optional[int] = typer.Option(None, "--quarter"),
    semester: Optional[int] = typer.Option(None, "--semester"),
    week: Optional[int] = typer.Option(None, "--week", "-w", help="ISO week number"),
) -> None:
    """Print completion statistics for a period."""
    store = build_store()
    today = utcnow()
    try:
        result = compute_stats(
            store.active_tasks(),
            store.archived_tasks(),
            period,  # type: ignore[arg-type]
            year or today.year,
            month=month,
            quarter=quarter,
            semester=semester,
            week=week,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    typer.echo(result.period_label)
    typer.echo(
        f"Total: {result.total}  Completed: {result.completed}  "
        f"Open: {result.open}  Rate: {result.completion_rate}%"
    )
    typer.echo(
        f"Liked: {result.liked_completed} done / {result.liked_open} open / "
        f"{result.liked_deleted} deleted"
    )
    typer.echo(
        f"Disliked: {result.disliked_completed} done / {result.disliked_open} open / "
        f"{result.disliked_deleted} deleted"
    )
    for bar in result.bars:
        typer.echo(f"  {bar.label:<24} {'#' * bar.completed}{'.' * bar.open}")

