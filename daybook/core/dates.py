"""Calendar-day keys (yyyy-MM-dd, UTC) and date arithmetic helpers."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Optional

DAY_KEY_FORMAT = "%Y-%m-%d"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_day_key(moment: datetime | date) -> str:
    """Return the UTC calendar-day key for a timestamp.

    Naive datetimes are treated as UTC. Plain dates are formatted as-is.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment.strftime(DAY_KEY_FORMAT)
    return moment.strftime(DAY_KEY_FORMAT)


def parse_day_key(key: Optional[str]) -> Optional[date]:
    """Parse a yyyy-MM-dd key, returning None for anything else."""
    if not key or len(key) != 10:
        return None
    try:
        return datetime.strptime(key, DAY_KEY_FORMAT).date()
    except ValueError:
        return None


def today_key(now: Optional[datetime] = None) -> str:
    return to_day_key(now or utcnow())


def add_days(key: str, days: int) -> Optional[str]:
    day = parse_day_key(key)
    if day is None:
        return None
    return to_day_key(day + timedelta(days=days))


def add_months(day: date, months: int) -> date:
    """Shift by whole calendar months, clamping to the target month's length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def monday_of_week(day: date) -> date:
    return day - timedelta(days=day.weekday())


def iso_week_number(day: date) -> int:
    return day.isocalendar()[1]


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


def semester_of(day: date) -> int:
    return 1 if day.month <= 6 else 2


def day_range(start: date, end: date) -> list[date]:
    """Inclusive list of days from start to end (empty if end < start)."""
    if end < start:
        return []
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]
