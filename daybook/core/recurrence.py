"""Recurrence expansion: turn one recurring record into dated instances."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from daybook.core.dates import add_months, parse_day_key, to_day_key
from daybook.core.overrides import override_for
from daybook.models import Recurrence, TaskInstance, TaskRecord, TaskStatus

logger = logging.getLogger(__name__)

# Expansion never runs further than this past the anchor.
EXPANSION_CAP_MONTHS = 12


def instance_id(parent_id: int, day_key: str) -> str:
    """Synthetic, deterministic id of the occurrence of ``parent_id`` on ``day_key``."""
    return f"{parent_id}-{day_key}"


def _occurrence(anchor: date, rule: Recurrence, step: int) -> Optional[date]:
    if rule is Recurrence.DAILY:
        return anchor + timedelta(days=step)
    if rule is Recurrence.WEEKLY:
        return anchor + timedelta(days=7 * step)
    if rule is Recurrence.MONTHLY:
        # Offset from the anchor, not the previous occurrence, so a 31st
        # anchor clamps to Feb 28 and comes back to Mar 31.
        return add_months(anchor, step)
    if rule is Recurrence.NEVER:
        return None
    raise ValueError(f"Unknown recurrence: {rule!r}")


def occurrence_dates(
    anchor: date, rule: Recurrence, start: date, end: date
) -> list[date]:
    """Dates stepped from ``anchor`` that fall inside ``[start, end]``.

    Stepping stops once the cursor passes ``min(end, anchor + 1 year)``.
    """
    if not rule.is_repeating or end < anchor:
        return []
    limit = min(end, add_months(anchor, EXPANSION_CAP_MONTHS))
    out: list[date] = []
    step = 0
    cursor = anchor
    while cursor <= limit:
        if cursor >= start and (not out or cursor > out[-1]):
            out.append(cursor)
        step += 1
        nxt = _occurrence(anchor, rule, step)
        if nxt is None:
            break
        cursor = nxt
    return out


def occurrence_keys(task: TaskRecord, start: str, end: str) -> list[str]:
    """Day keys at which ``task`` occurs within ``[start, end]``, ascending.

    Unparseable anchor or window yields an empty list.
    """
    if not task.is_recurring:
        return []
    anchor = parse_day_key(task.date)
    window_start = parse_day_key(start)
    window_end = parse_day_key(end)
    if anchor is None or window_start is None or window_end is None:
        if task.date is not None:
            logger.debug("Skipping expansion of task %s: bad date window", task.id)
        return []
    rule = task.recurrence or Recurrence.NEVER
    return [
        to_day_key(d) for d in occurrence_dates(anchor, rule, window_start, window_end)
    ]


def materialize(task: TaskRecord, day_key: str) -> TaskInstance:
    """Build the instance of ``task`` on ``day_key`` from its override (or defaults)."""
    ov = override_for(task, day_key)
    return TaskInstance(
        id=instance_id(task.id, day_key),
        parent_id=task.id,
        date=day_key,
        text=task.text,
        notes=task.notes,
        status=ov.status or TaskStatus.NOT_STARTED,
        recurrence=task.recurrence,
        created_at=task.created_at,
        created_by=task.created_by,
        assigned_to=task.assigned_to,
        started_at=ov.started_at,
        completed_at=ov.completed_at,
        rating=ov.rating,
    )


def expand_task(task: TaskRecord, start: str, end: str) -> list[TaskInstance]:
    return [materialize(task, key) for key in occurrence_keys(task, start, end)]
