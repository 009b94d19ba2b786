"""Global fixtures: fixed clock, manual undo scheduler, seeded store."""

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from daybook.core.store import TaskStore
from daybook.models import Recurrence, TaskRecord, TaskStatus


class FakeClock:
    """Deterministic clock; advance() moves it forward."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ManualHandle:
    def __init__(self, action: Callable[[], None], delay: float) -> None:
        self.action = action
        self.delay = delay
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that only runs actions when the test says so."""

    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []

    def schedule(self, delay: float, action: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(action, delay)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self, handle: ManualHandle) -> None:
        """Run an action even if cancelled, like a timer racing its cancel."""
        handle.fired = True
        handle.action()

    def fire_pending(self) -> None:
        for handle in self.pending:
            self.fire(handle)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 9, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def make_store(
    clock: FakeClock, scheduler: ManualScheduler
) -> Callable[..., TaskStore]:
    def _make(tasks: list[TaskRecord] | None = None, **kwargs) -> TaskStore:
        return TaskStore(tasks or [], scheduler=scheduler, clock=clock, **kwargs)

    return _make


@pytest.fixture
def store(make_store: Callable[..., TaskStore]) -> TaskStore:
    """Empty store on the fake clock and manual scheduler."""
    return make_store()


@pytest.fixture
def daily_task(clock: FakeClock) -> TaskRecord:
    """Daily task anchored 2025-09-01 with an empty override map."""
    return TaskRecord(
        id=105,
        text="Daily Standup",
        date="2025-09-01",
        recurrence=Recurrence.DAILY,
        created_at=clock(),
        overrides={},
    )


@pytest.fixture
def seeded_store(
    make_store: Callable[..., TaskStore], clock: FakeClock, daily_task: TaskRecord
) -> TaskStore:
    """Store with two inbox tasks, two dated one-offs and a daily task."""
    now = clock()
    return make_store(
        [
            TaskRecord(id=1, text="Inbox A", created_at=now),
            TaskRecord(id=2, text="Dated one", date="2025-09-02", created_at=now),
            TaskRecord(id=3, text="Inbox B", notes="call vendor", created_at=now),
            TaskRecord(
                id=4,
                text="Dated started",
                date="2025-09-03",
                status=TaskStatus.STARTED,
                started_at=now,
                created_at=now,
            ),
            daily_task,
        ]
    )
