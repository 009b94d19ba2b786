"""Seed data for a fresh session."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from daybook.core.dates import to_day_key, utcnow
from daybook.models import (
    DEFAULT_OWNER,
    Recurrence,
    TaskRating,
    TaskRecord,
    TaskStatus,
)

SAMPLE_TEXTS = (
    "Finalize Q4 budget",
    "Design auth flow",
    "Develop user API",
    "Write SDK docs",
    "Plan social media",
    "Fix memory leak",
)

# Share of generated tasks that get a date; the rest land in the inbox.
SCHEDULED_SHARE = 0.75


def _ts(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00"))


def fixed_tasks(now: datetime, owner: str = DEFAULT_OWNER) -> list[TaskRecord]:
    return [
        TaskRecord(
            id=101,
            text="Plan team lunch",
            notes="Decide location.",
            date="2025-10-03",
            created_at=now,
            created_by=owner,
        ),
        TaskRecord(
            id=102,
            text="Prep presentation",
            notes="Q3 metrics.",
            date="2025-10-02",
            status=TaskStatus.STARTED,
            created_at=_ts("2025-09-30T10:00:00Z"),
            created_by=owner,
            started_at=_ts("2025-10-01T14:00:00Z"),
        ),
        TaskRecord(
            id=103,
            text="Submit report",
            notes="Submitted yesterday.",
            date="2025-10-01",
            status=TaskStatus.COMPLETED,
            created_at=_ts("2025-09-29T09:00:00Z"),
            created_by=owner,
            started_at=_ts("2025-10-01T09:00:00Z"),
            completed_at=_ts("2025-10-01T11:30:00Z"),
            rating=TaskRating.LIKED,
        ),
        TaskRecord(
            id=104,
            text="Review mockups",
            notes="Mobile responsiveness.",
            date="2025-10-02",
            created_at=now,
            created_by=owner,
        ),
        TaskRecord(
            id=105,
            text="Daily Standup",
            notes="",
            date="2025-09-01",
            recurrence=Recurrence.DAILY,
            created_at=_ts("2025-08-01T09:00:00Z"),
            created_by=owner,
            overrides={},
        ),
    ]


def generate_tasks(
    now: Optional[datetime] = None,
    count: int = 60,
    seed: Optional[int] = None,
    owner: str = DEFAULT_OWNER,
) -> list[TaskRecord]:
    """Five fixed tasks plus ``count`` random ones around ``now``.

    Random tasks get ids from 1001, are scheduled within [now-60d, now+30d]
    most of the time, and otherwise sit in the inbox as not started.
    Every task is created by ``owner``.
    """
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    rng = random.Random(seed)
    window_start = now - timedelta(days=60)
    window_end = now + timedelta(days=30)

    def _between(a: datetime, b: datetime) -> datetime:
        return a + (b - a) * rng.random()

    items = fixed_tasks(now, owner)
    for i in range(1, count + 1):
        scheduled = rng.random() < SCHEDULED_SHARE
        day = to_day_key(_between(window_start, window_end)) if scheduled else None
        status = rng.choice(list(TaskStatus)) if scheduled else TaskStatus.NOT_STARTED
        created = _between(window_start, now)
        task = TaskRecord(
            id=1000 + i,
            text=rng.choice(SAMPLE_TEXTS),
            date=day,
            status=status,
            created_at=created,
            created_by=owner,
        )
        if status is TaskStatus.STARTED:
            task.started_at = created
        elif status is TaskStatus.COMPLETED:
            task.started_at = created
            task.completed_at = created
        items.append(task)
    return items
