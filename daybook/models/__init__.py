"""Domain models."""

from .task import (
    DEFAULT_OWNER,
    ArchiveReason,
    ArchivedTaskRecord,
    Recurrence,
    TaskBase,
    TaskInstance,
    TaskOverride,
    TaskRating,
    TaskRecord,
    TaskStatus,
)

__all__ = [
    "DEFAULT_OWNER",
    "ArchiveReason",
    "ArchivedTaskRecord",
    "Recurrence",
    "TaskBase",
    "TaskInstance",
    "TaskOverride",
    "TaskRating",
    "TaskRecord",
    "TaskStatus",
]
