"""TaskStore: the single source of truth for active and archived tasks.

Every mutation resolves an instance to its parent record first. Operations
that target a record no longer in the active list are silent no-ops.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from daybook.core.archive import ArchiveManager
from daybook.core.dates import parse_day_key, utcnow
from daybook.core.overrides import (
    apply_status,
    clear_overrides,
    ensure_overrides,
    override_for,
    set_instance_rating,
    set_instance_status,
)
from daybook.core.recurrence import expand_task
from daybook.core.undo import DEFAULT_UNDO_WINDOW_SECONDS, Scheduler, UndoManager
from daybook.core.views import matches_query
from daybook.models import (
    DEFAULT_OWNER,
    ArchiveReason,
    ArchivedTaskRecord,
    Recurrence,
    TaskBase,
    TaskInstance,
    TaskRating,
    TaskRecord,
    TaskStatus,
)

logger = logging.getLogger(__name__)

TaskRef = Union[TaskRecord, TaskInstance]
CalendarEntry = Union[TaskRecord, TaskInstance]
Listener = Callable[[], None]


def next_rating(current: Optional[TaskRating]) -> Optional[TaskRating]:
    """Rating cycle: none -> liked -> disliked -> none."""
    if current is None:
        return TaskRating.LIKED
    current = TaskRating(current)
    if current is TaskRating.LIKED:
        return TaskRating.DISLIKED
    return None


def _parent_id(task: TaskRef) -> int:
    if isinstance(task, TaskInstance):
        return task.parent_id
    return task.id


class TaskStore:
    """Owns the active and archived lists and every mutation on them."""

    def __init__(
        self,
        tasks: Optional[Iterable[TaskRecord]] = None,
        archived: Optional[Iterable[ArchivedTaskRecord]] = None,
        *,
        undo_window_seconds: float = DEFAULT_UNDO_WINDOW_SECONDS,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], datetime] = utcnow,
        owner: str = DEFAULT_OWNER,
    ) -> None:
        self._tasks: list[TaskRecord] = list(tasks or [])
        self._archived: list[ArchivedTaskRecord] = list(archived or [])
        self._clock = clock
        self._owner = owner
        self._listeners: list[Listener] = []
        self._last_id = 0
        self._undo = UndoManager(
            window_seconds=undo_window_seconds,
            scheduler=scheduler,
            on_expire=self._changed,
        )
        self.archive = ArchiveManager(self)

        self.bulk_select_inbox = False
        self.selected_inbox_ids: set[int] = set()
        self.bulk_select_archive = False
        self.selected_archive_ids: set[int] = set()

    # ---- change notification ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback fired after every mutation. Returns an unsubscriber."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ---- internals shared with ArchiveManager ----

    def _now(self) -> datetime:
        return self._clock()

    def _snapshot(self, message: str) -> None:
        self._undo.arm(message, self._tasks, self._archived)

    def _index_of(self, task_id: int) -> Optional[int]:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return None

    def _resolve(self, task: TaskRef) -> Optional[int]:
        parent_id = _parent_id(task)
        idx = self._index_of(parent_id)
        if idx is None:
            logger.debug("Task %s not in active list; ignoring", parent_id)
        return idx

    def _next_id(self) -> int:
        used = {t.id for t in self._tasks} | {a.id for a in self._archived}
        candidate = max(int(self._now().timestamp() * 1000), self._last_id + 1)
        while candidate in used:
            candidate += 1
        self._last_id = candidate
        return candidate

    # ---- queries ----

    def active_tasks(self) -> list[TaskRecord]:
        return list(self._tasks)

    def archived_tasks(self) -> list[ArchivedTaskRecord]:
        return list(self._archived)

    def get_task(self, task_id: int) -> Optional[TaskRecord]:
        idx = self._index_of(task_id)
        return self._tasks[idx] if idx is not None else None

    @staticmethod
    def search_filter(query: Optional[str]) -> Callable[[TaskBase], bool]:
        return matches_query(query)

    def filtered_tasks(self, query: Optional[str] = None) -> list[TaskRecord]:
        predicate = matches_query(query)
        return [t for t in self._tasks if predicate(t)]

    def unscheduled_tasks(self, query: Optional[str] = None) -> list[TaskRecord]:
        """Inbox: active tasks without a date, optionally search-filtered."""
        return [t for t in self.filtered_tasks(query) if t.date is None]

    def expand(
        self, start: str, end: str, query: Optional[str] = None
    ) -> list[CalendarEntry]:
        """Entries visible in ``[start, end]``.

        Dated one-off tasks appear as themselves; recurring tasks contribute
        one instance per occurrence, ascending. Task order follows the active list.
        """
        window_start, window_end = parse_day_key(start), parse_day_key(end)
        if window_start is None or window_end is None:
            return []
        out: list[CalendarEntry] = []
        for task in self.filtered_tasks(query):
            if task.date is None:
                continue
            if task.is_recurring:
                out.extend(expand_task(task, start, end))
                continue
            day = parse_day_key(task.date)
            if day is not None and window_start <= day <= window_end:
                out.append(task)
        return out

    @property
    def undo_message(self) -> Optional[str]:
        return self._undo.message

    @property
    def can_undo(self) -> bool:
        return self._undo.is_armed

    # ---- mutations ----

    def add_task(
        self,
        text: str,
        notes: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> Optional[TaskRecord]:
        if not text.strip():
            return None
        now = self._now()
        task = TaskRecord(
            id=self._next_id(),
            text=text.strip(),
            notes=notes,
            date=None,
            status=TaskStatus.NOT_STARTED,
            recurrence=None,
            created_at=now,
            created_by=self._owner,
            assigned_to=assigned_to,
        )
        self._tasks.append(task)
        logger.debug("Added task %s", task.id)
        self._changed()
        return task

    def update_task(
        self,
        task: TaskRef,
        text: str,
        notes: Optional[str],
        date: Optional[str],
        status: TaskStatus,
        recurrence: Optional[Recurrence],
        assigned_to: Optional[str] = None,
    ) -> None:
        idx = self._resolve(task)
        if idx is None:
            return
        status = TaskStatus(status)
        self._snapshot("Task updated")
        record = self._tasks[idx]
        record.text = text.strip()
        record.notes = notes.strip() if notes is not None else None
        record.assigned_to = assigned_to
        record.date = date or None

        if record.status is not status and self._set_status(record, status):
            # Auto-archived under its own "Task completed" snapshot
            self._changed()
            return
        target = Recurrence(recurrence or Recurrence.NEVER)
        if (record.recurrence or Recurrence.NEVER) is not target:
            self._set_recurrence(record, target)
        self._changed()

    def delete_to_trash(self, task: TaskRef) -> None:
        self.archive.trash(task)

    def duplicate(self, task: TaskRef) -> Optional[TaskRecord]:
        idx = self._resolve(task)
        if idx is not None:
            source = self._tasks[idx]
        elif isinstance(task, TaskRecord):
            source = task
        else:
            return None
        self._snapshot("Task duplicated")
        now = self._now()
        copy = source.model_copy(
            deep=True,
            update={
                "id": self._next_id(),
                "text": f"Copy of {source.text}",
                "date": None,
                "status": TaskStatus.NOT_STARTED,
                "created_at": now,
                "started_at": None,
                "completed_at": None,
                "recurrence": None,
                "overrides": None,
            },
        )
        if idx is not None:
            self._tasks.insert(idx + 1, copy)
        else:
            self._tasks.append(copy)
        logger.debug("Duplicated task %s as %s", source.id, copy.id)
        self._changed()
        return copy

    def _clear_schedule(self, record: TaskRecord) -> None:
        record.date = None
        record.recurrence = None
        clear_overrides(record)
        record.status = TaskStatus.NOT_STARTED

    def move_to_inbox(self, task: TaskRef) -> None:
        idx = self._resolve(task)
        if idx is None:
            return
        self._snapshot("Task moved to Inbox")
        self._clear_schedule(self._tasks[idx])
        self._changed()

    def reschedule(self, task: TaskRef, new_date: Optional[str]) -> None:
        idx = self._resolve(task)
        if idx is None:
            return
        self._snapshot("Task rescheduled")
        self._tasks[idx].date = new_date or None
        self._changed()

    def _set_recurrence(self, record: TaskRecord, recurrence: Recurrence) -> None:
        if recurrence.is_repeating:
            record.recurrence = recurrence
            ensure_overrides(record)
        else:
            record.recurrence = None
            clear_overrides(record)

    def update_recurrence(
        self, task: TaskRef, recurrence: Optional[Recurrence]
    ) -> None:
        """Change the rule; existing per-day overrides survive unless set to never."""
        idx = self._resolve(task)
        if idx is None:
            return
        target = Recurrence(recurrence or Recurrence.NEVER)
        self._set_recurrence(self._tasks[idx], target)
        self._changed()

    def cycle_rating(self, task: TaskRef, instance_date: Optional[str] = None) -> None:
        idx = self._resolve(task)
        if idx is None:
            return
        parent = self._tasks[idx]
        if parent.is_recurring and instance_date:
            current = override_for(parent, instance_date).rating
        else:
            current = parent.rating
        self.rate(task, next_rating(current), instance_date)

    def rate(
        self,
        task: TaskRef,
        rating: Optional[TaskRating],
        instance_date: Optional[str] = None,
    ) -> None:
        rating = TaskRating(rating) if rating is not None else None
        idx = self._resolve(task)
        if idx is None:
            return
        record = self._tasks[idx]
        if record.is_recurring and instance_date:
            set_instance_rating(record, instance_date, rating)
        else:
            record.rating = rating
        self._changed()

    def update_status(
        self,
        task: TaskRef,
        status: TaskStatus,
        instance_date: Optional[str] = None,
    ) -> None:
        """Move a task (or one occurrence of it) to ``status``.

        A dated, non-recurring task moved to completed leaves the active list
        and lands in the archive with reason ``completed``.
        """
        status = TaskStatus(status)
        if isinstance(task, TaskInstance) and instance_date:
            idx = self._resolve(task)
            if idx is None:
                return
            set_instance_status(self._tasks[idx], instance_date, status, self._now())
            self._changed()
            return

        idx = self._resolve(task)
        if idx is None:
            return
        self._set_status(self._tasks[idx], status)
        self._changed()

    def _set_status(self, record: TaskRecord, status: TaskStatus) -> bool:
        """Apply ``status`` to a record. Returns True when it was auto-archived."""
        now = self._now()
        if (
            status is TaskStatus.COMPLETED
            and not record.is_recurring
            and record.date is not None
        ):
            self._snapshot("Task completed")
            self.archive.complete(record, now)
            return True
        apply_status(record, status, now)
        return False

    def archive_task(self, task: TaskRef) -> None:
        self.archive.archive(task)

    def restore_task(self, archived: ArchivedTaskRecord) -> None:
        self.archive.restore(archived)

    def delete_permanently(self, archived_id: int) -> None:
        self.archive.delete_permanently(archived_id)

    def empty_archive_bucket(self, reason: ArchiveReason) -> None:
        self.archive.empty_bucket(ArchiveReason(reason))

    def restore_selected_archive(self, ids: Optional[Iterable[int]] = None) -> None:
        self.archive.restore_selected(ids)

    def delete_selected_archive(self, ids: Optional[Iterable[int]] = None) -> None:
        self.archive.delete_selected(ids)

    # ---- selection / bulk ----

    def toggle_inbox_selection(self, task_id: int) -> None:
        if task_id in self.selected_inbox_ids:
            self.selected_inbox_ids.discard(task_id)
        else:
            self.selected_inbox_ids.add(task_id)
        self.bulk_select_inbox = True
        self._changed()

    def toggle_archive_selection(self, archived_id: int) -> None:
        if archived_id in self.selected_archive_ids:
            self.selected_archive_ids.discard(archived_id)
        else:
            self.selected_archive_ids.add(archived_id)
        self.bulk_select_archive = True
        self._changed()

    def _clear_inbox_selection(self) -> None:
        self.bulk_select_inbox = False
        self.selected_inbox_ids = set()

    def _clear_archive_selection(self) -> None:
        self.bulk_select_archive = False
        self.selected_archive_ids = set()

    def _selection(self, ids: Optional[Iterable[int]], fallback: set[int]) -> set[int]:
        return set(ids) if ids is not None else set(fallback)

    def archive_selected_inbox(self, ids: Optional[Iterable[int]] = None) -> None:
        """Archive every selected task under its current status."""
        selected = self._selection(ids, self.selected_inbox_ids)
        if not selected:
            return
        self._snapshot(f"{len(selected)} tasks archived")
        self.archive.archive_many(selected, deleted=False)
        self._clear_inbox_selection()
        self._changed()

    def delete_selected_inbox(self, ids: Optional[Iterable[int]] = None) -> None:
        selected = self._selection(ids, self.selected_inbox_ids)
        if not selected:
            return
        self._snapshot(f"{len(selected)} tasks deleted")
        self.archive.archive_many(selected, deleted=True)
        self._clear_inbox_selection()
        self._changed()

    def move_tasks_to_inbox(self, ids: Optional[Iterable[int]] = None) -> None:
        selected = self._selection(ids, self.selected_inbox_ids)
        if not selected:
            return
        self._snapshot(f"{len(selected)} tasks moved to inbox")
        for record in self._tasks:
            if record.id in selected:
                self._clear_schedule(record)
        self._clear_inbox_selection()
        self._changed()

    def reorder_inbox_tasks(self, from_indices: Iterable[int], to_index: int) -> None:
        """Move inbox tasks; indices count positions among unscheduled tasks only.

        Moved tasks land before the unscheduled task that was at ``to_index``
        (or at the end of the list when ``to_index`` is past the last one).
        Scheduled tasks keep their positions relative to each other.
        """
        inbox = [t for t in self._tasks if t.date is None]
        picked = sorted({i for i in from_indices if 0 <= i < len(inbox)})
        if not picked:
            return
        moving = [inbox[i] for i in picked]
        moving_keys = {id(t) for t in moving}
        anchor = next(
            (
                inbox[i]
                for i in range(max(to_index, 0), len(inbox))
                if id(inbox[i]) not in moving_keys
            ),
            None,
        )
        remaining = [t for t in self._tasks if id(t) not in moving_keys]
        if anchor is None:
            remaining.extend(moving)
        else:
            pos = next(i for i, t in enumerate(remaining) if t is anchor)
            remaining[pos:pos] = moving
        self._tasks[:] = remaining
        self._changed()

    # ---- undo ----

    def perform_undo(self) -> None:
        """Restore both lists to the snapshot taken before the latest labeled mutation."""
        snapshot = self._undo.take()
        if snapshot is None:
            return
        self._tasks[:] = snapshot.active
        self._archived[:] = snapshot.archived
        logger.info("Undid: %s", snapshot.message)
        self._changed()
