"""Task domain engine."""

from .archive import ArchiveManager
from .dates import parse_day_key, to_day_key, today_key
from .recurrence import expand_task, instance_id, materialize, occurrence_keys
from .store import TaskStore, next_rating
from .undo import ThreadingScheduler, UndoManager, UndoSnapshot

__all__ = [
    "ArchiveManager",
    "TaskStore",
    "ThreadingScheduler",
    "UndoManager",
    "UndoSnapshot",
    "expand_task",
    "instance_id",
    "materialize",
    "next_rating",
    "occurrence_keys",
    "parse_day_key",
    "to_day_key",
    "today_key",
]
