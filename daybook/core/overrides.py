"""Per-instance overrides for recurring tasks.

Overrides live on the owning ``TaskRecord.overrides`` mapping, keyed by
calendar-day key. Reading an absent key yields a default override and never
inserts one; only writes create entries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from daybook.models import TaskOverride, TaskRating, TaskRecord, TaskStatus

StatusTarget = Union[TaskRecord, TaskOverride]


def override_for(task: TaskRecord, day_key: str) -> TaskOverride:
    """Return the override in effect for ``day_key`` (a fresh default if none)."""
    if task.overrides and day_key in task.overrides:
        return task.overrides[day_key]
    return TaskOverride()


def ensure_overrides(task: TaskRecord) -> dict[str, TaskOverride]:
    if task.overrides is None:
        task.overrides = {}
    return task.overrides


def clear_overrides(task: TaskRecord) -> None:
    task.overrides = None


def apply_status(target: StatusTarget, status: TaskStatus, now: datetime) -> None:
    """Set ``status`` and adjust timestamps on a record or an override."""
    status = TaskStatus(status)
    target.status = status
    if status is TaskStatus.STARTED:
        if target.started_at is None:
            target.started_at = now
        target.completed_at = None
    elif status is TaskStatus.COMPLETED:
        if target.started_at is None:
            target.started_at = now
        target.completed_at = now
    elif status is TaskStatus.NOT_STARTED:
        target.started_at = None
        target.completed_at = None
    else:
        raise ValueError(f"Unknown status: {status!r}")


def _entry(task: TaskRecord, day_key: str) -> TaskOverride:
    overrides = ensure_overrides(task)
    entry = overrides.get(day_key)
    if entry is None:
        entry = TaskOverride()
        overrides[day_key] = entry
    return entry


def set_instance_status(
    task: TaskRecord, day_key: str, status: TaskStatus, now: datetime
) -> TaskOverride:
    """Write a status transition into one day's override. Siblings are untouched."""
    entry = _entry(task, day_key)
    apply_status(entry, status, now)
    return entry


def set_instance_rating(
    task: TaskRecord, day_key: str, rating: Optional[TaskRating]
) -> TaskOverride:
    entry = _entry(task, day_key)
    entry.rating = rating
    return entry
