"""Archive side of the task store: archive, trash, restore, permanent delete.

Archived records are bucketed purely by ``archive_reason``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional

from daybook.models import (
    ArchiveReason,
    ArchivedTaskRecord,
    TaskInstance,
    TaskRecord,
    TaskStatus,
)

if TYPE_CHECKING:
    from daybook.core.store import TaskStore

logger = logging.getLogger(__name__)


class ArchiveManager:
    """Moves records between the store's active and archived lists."""

    def __init__(self, store: "TaskStore") -> None:
        self._store = store

    # ---- reads ----

    def bucket(self, reason: ArchiveReason) -> list[ArchivedTaskRecord]:
        return [a for a in self._store._archived if a.archive_reason == reason]

    def bucket_counts(self) -> dict[ArchiveReason, int]:
        counts = {reason: 0 for reason in ArchiveReason}
        for a in self._store._archived:
            counts[ArchiveReason(a.archive_reason)] += 1
        return counts

    def get(self, archived_id: int) -> Optional[ArchivedTaskRecord]:
        for a in self._store._archived:
            if a.id == archived_id:
                return a
        return None

    # ---- single-record moves ----

    def _take(
        self, task: TaskRecord | TaskInstance, message: str
    ) -> Optional[TaskRecord]:
        """Snapshot, then pop the parent record out of the active list."""
        idx = self._store._resolve(task)
        if idx is None:
            return None
        self._store._snapshot(message)
        return self._store._tasks.pop(idx)

    def archive(self, task: TaskRecord | TaskInstance) -> None:
        """Archive under the task's current status."""
        record = self._take(task, "Task archived")
        if record is None:
            return
        self._store._archived.append(
            ArchivedTaskRecord.from_task(record, ArchiveReason.from_status(record.status))
        )
        logger.info("Archived task %s as %s", record.id, record.status)
        self._store._changed()

    def trash(self, task: TaskRecord | TaskInstance) -> None:
        record = self._take(task, "Task deleted")
        if record is None:
            return
        self._store._archived.append(
            ArchivedTaskRecord.from_task(record, ArchiveReason.DELETED)
        )
        logger.info("Moved task %s to trash", record.id)
        self._store._changed()

    def complete(self, record: TaskRecord, now: datetime) -> None:
        """Auto-archive a finished one-off task. The caller owns the undo snapshot."""
        self._store._tasks.remove(record)
        self._store._archived.append(
            ArchivedTaskRecord.from_task(
                record,
                ArchiveReason.COMPLETED,
                status=TaskStatus.COMPLETED,
                started_at=record.started_at or now,
                completed_at=now,
                archived_at=now,
            )
        )
        logger.info("Completed and archived task %s", record.id)

    def restore(self, archived: ArchivedTaskRecord) -> None:
        """Bring an archived record back as a plain, unassigned, non-recurring task."""
        if self.get(archived.id) is None:
            logger.debug("Archived task %s not found; ignoring restore", archived.id)
            return
        self._store._snapshot("Task restored")
        self._restore_one(archived)
        self._store._changed()

    def _restore_one(self, archived: ArchivedTaskRecord) -> TaskRecord:
        restored = TaskRecord.from_archived(archived)
        if self._store._index_of(restored.id) is not None:
            restored.id = self._store._next_id()
        self._store._tasks.append(restored)
        self._store._archived[:] = [
            a for a in self._store._archived if a.id != archived.id
        ]
        logger.info("Restored task %s", restored.id)
        return restored

    def delete_permanently(self, archived_id: int) -> None:
        if self.get(archived_id) is None:
            return
        self._store._snapshot("Deleted permanently")
        self._store._archived[:] = [
            a for a in self._store._archived if a.id != archived_id
        ]
        logger.info("Permanently deleted archived task %s", archived_id)
        self._store._changed()

    # ---- bulk ----

    def archive_many(self, ids: set[int], *, deleted: bool) -> None:
        """Move every active task in ``ids`` to the archive, keeping list order.

        No snapshot is taken here; bulk callers take one for the whole batch.
        """
        moving = [t for t in self._store._tasks if t.id in ids]
        self._store._tasks[:] = [t for t in self._store._tasks if t.id not in ids]
        for record in moving:
            reason = (
                ArchiveReason.DELETED
                if deleted
                else ArchiveReason.from_status(record.status)
            )
            self._store._archived.append(ArchivedTaskRecord.from_task(record, reason))
        logger.info("Archived %d tasks (deleted=%s)", len(moving), deleted)

    def empty_bucket(self, reason: ArchiveReason) -> None:
        """Permanently remove every archived record filed under ``reason``."""
        doomed = self.bucket(reason)
        if not doomed:
            return
        self._store._snapshot(f"{len(doomed)} tasks deleted permanently")
        self._store._archived[:] = [
            a for a in self._store._archived if a.archive_reason != reason
        ]
        logger.info("Emptied archive bucket %s (%d tasks)", reason, len(doomed))
        self._store._changed()

    def restore_selected(self, ids: Optional[Iterable[int]] = None) -> None:
        selected = self._store._selection(ids, self._store.selected_archive_ids)
        targets = [a for a in self._store._archived if a.id in selected]
        if not targets:
            return
        self._store._snapshot(f"{len(targets)} tasks restored")
        for archived in targets:
            self._restore_one(archived)
        self._store._clear_archive_selection()
        self._store._changed()

    def delete_selected(self, ids: Optional[Iterable[int]] = None) -> None:
        selected = self._store._selection(ids, self._store.selected_archive_ids)
        if not any(a.id in selected for a in self._store._archived):
            return
        self._store._snapshot(f"{len(selected)} tasks deleted permanently")
        self._store._archived[:] = [
            a for a in self._store._archived if a.id not in selected
        ]
        self._store._clear_archive_selection()
        self._store._changed()
