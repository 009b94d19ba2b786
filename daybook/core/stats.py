"""Completion statistics over a calendar period (weekly to yearly)."""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, Field

from daybook.core.dates import (
    day_range,
    iso_week_number,
    monday_of_week,
    parse_day_key,
    to_day_key,
)
from daybook.models import (
    ArchiveReason,
    ArchivedTaskRecord,
    TaskRating,
    TaskRecord,
    TaskStatus,
)

StatsPeriod = Literal["weekly", "monthly", "quarterly", "semester", "yearly"]
Granularity = Literal["day", "week", "month"]

QUARTER_LABELS = {1: "Jan - Mar", 2: "Apr - Jun", 3: "Jul - Sep", 4: "Oct - Dec"}


class StatsBar(BaseModel):
    label: str
    completed: int = 0
    open: int = 0


class StatsResult(BaseModel):
    """Counts for one period, plus one bar per day, week or month."""

    total: int
    completed: int
    open: int
    completion_rate: int = Field(description="Completed share of total, in percent")
    granularity: Granularity
    period_label: str
    bars: list[StatsBar] = Field(default_factory=list)
    liked_completed: int = 0
    disliked_completed: int = 0
    liked_open: int = 0
    disliked_open: int = 0
    liked_deleted: int = 0
    disliked_deleted: int = 0


def _short(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def period_bounds(
    period: StatsPeriod,
    year: int,
    *,
    month: Optional[int] = None,
    quarter: Optional[int] = None,
    semester: Optional[int] = None,
    week: Optional[int] = None,
) -> tuple[date, date, str, Granularity]:
    """Return (first day, last day, label, bar granularity) for a period."""
    if period == "yearly":
        return date(year, 1, 1), date(year, 12, 31), f"Year: {year}", "month"
    if period == "semester":
        if (semester or 1) == 1:
            label = f"First Semester (H1), {year}"
            return date(year, 1, 1), date(year, 6, 30), label, "month"
        if semester == 2:
            label = f"Second Semester (H2), {year}"
            return date(year, 7, 1), date(year, 12, 31), label, "month"
        raise ValueError(f"Semester must be 1 or 2, got {semester}")
    if period == "quarterly":
        q = quarter or 1
        if q not in QUARTER_LABELS:
            raise ValueError(f"Quarter must be 1-4, got {q}")
        first_month = (q - 1) * 3 + 1
        last_month = first_month + 2
        last_day = calendar.monthrange(year, last_month)[1]
        label = f"Q{q} ({QUARTER_LABELS[q]}, {year})"
        return (
            date(year, first_month, 1),
            date(year, last_month, last_day),
            label,
            "month",
        )
    if period == "monthly":
        m = month or 1
        if not 1 <= m <= 12:
            raise ValueError(f"Month must be 1-12, got {m}")
        last_day = calendar.monthrange(year, m)[1]
        label = f"{calendar.month_name[m]}, {year}"
        return date(year, m, 1), date(year, m, last_day), label, "week"
    if period == "weekly":
        w = week or 1
        try:
            monday = date.fromisocalendar(year, w, 1)
        except ValueError as e:
            raise ValueError(f"Week {w} does not exist in {year}") from e
        sunday = monday + timedelta(days=6)
        label = (
            f"Week: {_short(monday)} - {_short(sunday)} "
            f"(CW {iso_week_number(monday)}, {year})"
        )
        return monday, sunday, label, "day"
    raise ValueError(f"Unknown stats period: {period!r}")


def _count(ratings: list[Optional[TaskRating]], rating: TaskRating) -> int:
    return sum(1 for r in ratings if r == rating)


def _bucket_key(day: date, granularity: Granularity) -> str:
    if granularity == "day":
        return to_day_key(day)
    if granularity == "week":
        return to_day_key(monday_of_week(day))
    return f"{day.year:04d}-{day.month:02d}"


def _bars(
    first: date,
    last: date,
    granularity: Granularity,
    grouped: dict[str, list[int]],
) -> list[StatsBar]:
    bars: list[StatsBar] = []
    if granularity == "day":
        for day in day_range(first, last):
            done, pending = grouped.get(to_day_key(day), [0, 0])
            label = f"{day.strftime('%a')} {day.day}"
            bars.append(StatsBar(label=label, completed=done, open=pending))
    elif granularity == "week":
        mondays = sorted({monday_of_week(d) for d in day_range(first, last)})
        for monday in mondays:
            done, pending = grouped.get(to_day_key(monday), [0, 0])
            label = (
                f"CW {iso_week_number(monday)} "
                f"({_short(monday)} - {_short(monday + timedelta(days=6))})"
            )
            bars.append(StatsBar(label=label, completed=done, open=pending))
    else:
        for m in range(first.month, last.month + 1):
            done, pending = grouped.get(f"{first.year:04d}-{m:02d}", [0, 0])
            label = calendar.month_abbr[m]
            bars.append(StatsBar(label=label, completed=done, open=pending))
    return bars


def compute_stats(
    active: Iterable[TaskRecord],
    archived: Iterable[ArchivedTaskRecord],
    period: StatsPeriod,
    year: int,
    *,
    month: Optional[int] = None,
    quarter: Optional[int] = None,
    semester: Optional[int] = None,
    week: Optional[int] = None,
) -> StatsResult:
    """Summarize dated tasks (active and archived) falling inside the period.

    Recurring tasks count once, on their anchor date. Archived records count
    with the status they were archived in; the deleted bucket also feeds the
    deleted-rating counters.
    """
    first, last, label, granularity = period_bounds(
        period, year, month=month, quarter=quarter, semester=semester, week=week
    )
    archived = list(archived)
    rows: list[tuple[date, TaskStatus, Optional[TaskRating]]] = []
    for t in list(active) + archived:
        day = parse_day_key(t.date)
        if day is not None and first <= day <= last:
            rows.append((day, TaskStatus(t.status), t.rating))

    completed = [r for r in rows if r[1] is TaskStatus.COMPLETED]
    pending = [r for r in rows if r[1] is not TaskStatus.COMPLETED]
    deleted_ratings: list[Optional[TaskRating]] = []
    for a in archived:
        day = parse_day_key(a.date)
        if a.archive_reason == ArchiveReason.DELETED and day and first <= day <= last:
            deleted_ratings.append(a.rating)
    done_ratings = [r for _, _, r in completed]
    open_ratings = [r for _, _, r in pending]

    grouped: dict[str, list[int]] = {}
    for day, status, _rating in rows:
        entry = grouped.setdefault(_bucket_key(day, granularity), [0, 0])
        entry[0 if status is TaskStatus.COMPLETED else 1] += 1

    total = len(rows)
    # Half-up rounding, so 12.5% reads as 13%.
    rate = int(len(completed) * 100 / total + 0.5) if total else 0

    return StatsResult(
        total=total,
        completed=len(completed),
        open=len(pending),
        completion_rate=rate,
        granularity=granularity,
        period_label=label,
        bars=_bars(first, last, granularity, grouped),
        liked_completed=_count(done_ratings, TaskRating.LIKED),
        disliked_completed=_count(done_ratings, TaskRating.DISLIKED),
        liked_open=_count(open_ratings, TaskRating.LIKED),
        disliked_open=_count(open_ratings, TaskRating.DISLIKED),
        liked_deleted=_count(deleted_ratings, TaskRating.LIKED),
        disliked_deleted=_count(deleted_ratings, TaskRating.DISLIKED),
    )
