"""Single-level, time-bounded undo over (active, archived) snapshots."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from daybook.models import ArchivedTaskRecord, TaskRecord

logger = logging.getLogger(__name__)

DEFAULT_UNDO_WINDOW_SECONDS = 5.0


class Handle(Protocol):
    """Cancellable scheduled action. ``cancel`` after firing is a no-op."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def schedule(self, delay: float, action: Callable[[], None]) -> Handle:
        ...


class ThreadingScheduler:
    """Runs delayed actions on daemon ``threading.Timer`` threads."""

    def schedule(self, delay: float, action: Callable[[], None]) -> Handle:
        timer = threading.Timer(delay, action)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class UndoSnapshot:
    message: str
    active: list[TaskRecord]
    archived: list[ArchivedTaskRecord]


def _copy_active(tasks: list[TaskRecord]) -> list[TaskRecord]:
    return [t.model_copy(deep=True) for t in tasks]


def _copy_archived(tasks: list[ArchivedTaskRecord]) -> list[ArchivedTaskRecord]:
    return [t.model_copy(deep=True) for t in tasks]


class UndoManager:
    """Holds at most one snapshot; a new ``arm`` replaces it and restarts expiry.

    States: idle (no snapshot) and armed. Armed goes back to idle when the
    expiry timer fires or when ``take`` consumes the snapshot.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_UNDO_WINDOW_SECONDS,
        scheduler: Optional[Scheduler] = None,
        on_expire: Optional[Callable[[], None]] = None,
    ) -> None:
        self._window = window_seconds
        self._scheduler = scheduler or ThreadingScheduler()
        self._on_expire = on_expire
        self._lock = threading.Lock()
        self._snapshot: Optional[UndoSnapshot] = None
        self._handle: Optional[Handle] = None
        # Bumped on every arm/take so a superseded timer can tell it is stale.
        self._generation = 0

    @property
    def is_armed(self) -> bool:
        return self._snapshot is not None

    @property
    def message(self) -> Optional[str]:
        snap = self._snapshot
        return snap.message if snap else None

    def arm(
        self,
        message: str,
        active: list[TaskRecord],
        archived: list[ArchivedTaskRecord],
    ) -> None:
        """Capture a deep copy of both lists before a labeled mutation."""
        snapshot = UndoSnapshot(
            message=message,
            active=_copy_active(active),
            archived=_copy_archived(archived),
        )
        with self._lock:
            self._cancel_pending()
            self._generation += 1
            generation = self._generation
            self._snapshot = snapshot
        handle = self._scheduler.schedule(self._window, lambda: self._expire(generation))
        with self._lock:
            if self._generation == generation:
                self._handle = handle
            else:
                handle.cancel()
        logger.debug("Undo armed: %s", message)

    def take(self) -> Optional[UndoSnapshot]:
        """Consume the snapshot (if any) and cancel its expiry."""
        with self._lock:
            snapshot = self._snapshot
            self._snapshot = None
            self._generation += 1
            self._cancel_pending()
        return snapshot

    def clear(self) -> None:
        self.take()

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._snapshot = None
            self._handle = None
            self._generation += 1
        logger.debug("Undo window expired")
        if self._on_expire is not None:
            self._on_expire()
