"""Task records, per-day overrides, materialized instances and archive entries."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_OWNER = "Adrian Kisliuk"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStatus(StrEnum):
    NOT_STARTED = "not_started"
    STARTED = "started"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        if self is TaskStatus.NOT_STARTED:
            return "To Do"
        if self is TaskStatus.STARTED:
            return "Started"
        return "Completed"


class Recurrence(StrEnum):
    """Recurrence rule. ``None`` on a record means the same as ``NEVER``."""

    NEVER = "never"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def is_repeating(self) -> bool:
        return self is not Recurrence.NEVER


class TaskRating(StrEnum):
    LIKED = "liked"
    DISLIKED = "disliked"


class ArchiveReason(StrEnum):
    """Archive bucket an archived record is filed under."""

    NOT_STARTED = "not_started"
    STARTED = "started"
    COMPLETED = "completed"
    DELETED = "deleted"

    @classmethod
    def from_status(cls, status: TaskStatus) -> ArchiveReason:
        if status is TaskStatus.NOT_STARTED:
            return cls.NOT_STARTED
        if status is TaskStatus.STARTED:
            return cls.STARTED
        return cls.COMPLETED


class TaskOverride(BaseModel):
    """Per-day divergence of one occurrence of a recurring task.

    A missing field means "use the default for that status".
    """

    status: Optional[TaskStatus] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rating: Optional[TaskRating] = None


class TaskBase(BaseModel):
    """Fields shared by stored records and materialized instances."""

    text: str
    notes: Optional[str] = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    recurrence: Optional[Recurrence] = None
    created_at: datetime = Field(default_factory=_now)
    created_by: str = DEFAULT_OWNER
    assigned_to: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rating: Optional[TaskRating] = None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None and self.recurrence.is_repeating


class TaskRecord(TaskBase):
    """A task definition (not an occurrence). ``date=None`` means inbox."""

    id: int
    date: Optional[str] = None  # yyyy-MM-dd, UTC
    overrides: Optional[dict[str, TaskOverride]] = None  # keyed by yyyy-MM-dd

    @classmethod
    def from_archived(cls, archived: ArchivedTaskRecord) -> TaskRecord:
        """Rebuild an active record from the archive (no recurrence, unassigned)."""
        return cls(
            id=archived.id,
            text=archived.text,
            notes=archived.notes,
            date=archived.date,
            status=archived.status,
            recurrence=None,
            created_at=archived.created_at,
            assigned_to=None,
            started_at=archived.started_at,
            completed_at=archived.completed_at,
            overrides=None,
            rating=archived.rating,
        )


class TaskInstance(TaskBase):
    """One dated occurrence of a recurring record. Produced by expansion, never stored."""

    id: str
    parent_id: int
    date: str


class ArchivedTaskRecord(BaseModel):
    """Frozen copy of a record at archive time. Recurrence and overrides are dropped."""

    id: int
    text: str
    notes: Optional[str] = None
    date: Optional[str] = None
    status: TaskStatus
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    archived_at: datetime = Field(default_factory=_now)
    archive_reason: ArchiveReason
    rating: Optional[TaskRating] = None

    @classmethod
    def from_task(
        cls,
        task: TaskRecord,
        reason: ArchiveReason,
        *,
        status: Optional[TaskStatus] = None,
        started_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        archived_at: Optional[datetime] = None,
    ) -> ArchivedTaskRecord:
        return cls(
            id=task.id,
            text=task.text,
            notes=task.notes,
            date=task.date,
            status=status or task.status,
            created_at=task.created_at,
            started_at=started_at or task.started_at,
            completed_at=completed_at or task.completed_at,
            archived_at=archived_at or _now(),
            archive_reason=reason,
            rating=task.rating,
        )
