"""Read-only derived views: search predicate, calendar days, grouping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from daybook.core.dates import add_months, parse_day_key, to_day_key
from daybook.core.recurrence import EXPANSION_CAP_MONTHS, occurrence_dates
from daybook.models import Recurrence, TaskBase, TaskRecord, TaskStatus

DEFAULT_CALENDAR_SPAN_DAYS = 90
DEFAULT_LOOKBACK_DAYS = 45

T = TypeVar("T", bound=TaskBase)


@dataclass
class CalendarDay:
    """One column of the calendar strip."""

    key: str
    weekday: str
    day_of_month: int

    @classmethod
    def from_date(cls, day: date) -> "CalendarDay":
        return cls(key=to_day_key(day), weekday=day.strftime("%a"), day_of_month=day.day)


def matches_query(query: Optional[str]) -> Callable[[TaskBase], bool]:
    """Case-insensitive substring match over text and notes. Blank query matches all."""
    q = (query or "").strip().lower()
    if not q:
        return lambda _task: True

    def _match(task: TaskBase) -> bool:
        return q in task.text.lower() or q in (task.notes or "").lower()

    return _match


def calendar_start(today: date, lookback_days: int = DEFAULT_LOOKBACK_DAYS) -> date:
    return today - timedelta(days=lookback_days)


def calendar_days(start: str, span: int = DEFAULT_CALENDAR_SPAN_DAYS) -> list[CalendarDay]:
    """Contiguous run of ``span`` days starting at ``start``."""
    first = parse_day_key(start)
    if first is None or span <= 0:
        return []
    return [CalendarDay.from_date(first + timedelta(days=i)) for i in range(span)]


def matching_days(tasks: Iterable[TaskRecord], query: Optional[str]) -> list[CalendarDay]:
    """Days on which search hits occur, sorted.

    Recurring tasks contribute every occurrence up to one year past their anchor.
    """
    predicate = matches_query(query)
    days: set[date] = set()
    for task in tasks:
        if task.date is None or not predicate(task):
            continue
        anchor = parse_day_key(task.date)
        if anchor is None:
            continue
        if task.is_recurring:
            rule = task.recurrence or Recurrence.NEVER
            horizon = add_months(anchor, EXPANSION_CAP_MONTHS)
            days.update(occurrence_dates(anchor, rule, anchor, horizon))
        else:
            days.add(anchor)
    return [CalendarDay.from_date(d) for d in sorted(days)]


def window_of(days: Sequence[CalendarDay]) -> Optional[tuple[str, str]]:
    if not days:
        return None
    return days[0].key, days[-1].key


def group_by_day(entries: Iterable[T]) -> dict[str, list[T]]:
    grouped: dict[str, list[T]] = {}
    for entry in entries:
        key = getattr(entry, "date", None)
        if key is None:
            continue
        grouped.setdefault(key, []).append(entry)
    return grouped


def filter_by_status(entries: Iterable[T], statuses: Iterable[TaskStatus]) -> list[T]:
    allowed = {TaskStatus(s) for s in statuses}
    return [e for e in entries if e.status in allowed]
