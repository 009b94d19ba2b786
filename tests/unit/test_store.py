"""Unit tests for TaskStore mutations and queries."""

from __future__ import annotations

from typing import Callable

import pytest

from daybook.core.store import TaskStore, next_rating
from daybook.models import (
    ArchiveReason,
    ArchivedTaskRecord,
    Recurrence,
    TaskInstance,
    TaskRating,
    TaskRecord,
    TaskStatus,
)


def _instance(store: TaskStore, day: str, parent_id: int = 105) -> TaskInstance:
    for entry in store.expand(day, day):
        if isinstance(entry, TaskInstance) and entry.parent_id == parent_id:
            return entry
    raise AssertionError(f"no instance of {parent_id} on {day}")


def _ids(tasks: list) -> list:
    return [t.id for t in tasks]


# ---- add / ids ----


def test_add_task_strips_text_and_lands_in_inbox(store: TaskStore) -> None:
    task = store.add_task("  Buy milk  ", notes="2 liters")
    assert task is not None
    assert task.text == "Buy milk"
    assert task.notes == "2 liters"
    assert task.date is None
    assert task.status is TaskStatus.NOT_STARTED
    assert task.created_by == "Adrian Kisliuk"
    assert store.unscheduled_tasks() == [task]


def test_add_task_with_blank_text_is_noop(store: TaskStore) -> None:
    assert store.add_task("   ") is None
    assert store.active_tasks() == []


def test_add_task_uses_configured_owner(make_store: Callable[..., TaskStore]) -> None:
    store = make_store(owner="Sam")
    task = store.add_task("Call plumber")
    assert task is not None and task.created_by == "Sam"


def test_ids_stay_unique_when_clock_does_not_move(store: TaskStore) -> None:
    ids = [store.add_task(f"Task {i}").id for i in range(5)]  # type: ignore[union-attr]
    assert len(set(ids)) == 5
    assert ids == sorted(ids)


def test_new_ids_avoid_archived_ids(make_store: Callable[..., TaskStore], clock) -> None:
    clock_id = int(clock().timestamp() * 1000)
    archived = ArchivedTaskRecord(
        id=clock_id,
        text="Old",
        status=TaskStatus.NOT_STARTED,
        created_at=clock(),
        archive_reason=ArchiveReason.DELETED,
    )
    store = make_store(archived=[archived])
    task = store.add_task("Fresh")
    assert task is not None
    assert task.id == clock_id + 1


# ---- update ----


def test_update_task_through_instance_edits_parent(seeded_store: TaskStore) -> None:
    inst = _instance(seeded_store, "2025-09-04")
    seeded_store.update_task(
        inst,
        text=" Standup v2 ",
        notes=" room 4 ",
        date="2025-09-01",
        status=TaskStatus.NOT_STARTED,
        recurrence=Recurrence.DAILY,
        assigned_to="Robin",
    )
    parent = seeded_store.get_task(105)
    assert parent is not None
    assert parent.text == "Standup v2"
    assert parent.notes == "room 4"
    assert parent.assigned_to == "Robin"
    assert seeded_store.undo_message == "Task updated"


def test_update_task_to_completed_archives_dated_one_off(
    seeded_store: TaskStore,
) -> None:
    task = seeded_store.get_task(2)
    seeded_store.update_task(
        task,
        text="Dated one, edited",
        notes="with notes",
        date="2025-09-04",
        status=TaskStatus.COMPLETED,
        recurrence=None,
    )
    assert seeded_store.get_task(2) is None
    archived = seeded_store.archive.get(2)
    assert archived.archive_reason is ArchiveReason.COMPLETED
    assert archived.text == "Dated one, edited"
    # The auto-archive replaces the edit's snapshot
    assert seeded_store.undo_message == "Task completed"
    seeded_store.perform_undo()
    restored = seeded_store.get_task(2)
    assert restored is not None
    assert restored.text == "Dated one, edited"
    assert restored.notes == "with notes"
    assert restored.date == "2025-09-04"
    assert restored.status is TaskStatus.NOT_STARTED
    assert seeded_store.archived_tasks() == []


def test_update_task_changes_rule_and_keeps_overrides(
    seeded_store: TaskStore,
) -> None:
    inst = _instance(seeded_store, "2025-09-08")
    seeded_store.update_status(inst, TaskStatus.COMPLETED, inst.date)
    seeded_store.update_task(
        inst,
        text="Daily Standup",
        notes=None,
        date="2025-09-01",
        status=TaskStatus.NOT_STARTED,
        recurrence="weekly",
    )
    parent = seeded_store.get_task(105)
    assert parent.recurrence is Recurrence.WEEKLY
    assert list(parent.overrides) == ["2025-09-08"]
    assert _instance(seeded_store, "2025-09-08").status is TaskStatus.COMPLETED
    # No weekly occurrence between anchor and the next Monday
    assert _ids(seeded_store.expand("2025-09-02", "2025-09-07")) == [2, 4]


def test_update_task_without_rule_stops_repeating(seeded_store: TaskStore) -> None:
    inst = _instance(seeded_store, "2025-09-03")
    seeded_store.update_status(inst, TaskStatus.STARTED, inst.date)
    parent = seeded_store.get_task(105)
    seeded_store.update_task(
        parent,
        text="Daily Standup",
        notes=None,
        date="2025-09-01",
        status=TaskStatus.NOT_STARTED,
        recurrence=None,
    )
    assert parent.recurrence is None
    assert parent.overrides is None
    assert [e.id for e in seeded_store.expand("2025-09-01", "2025-09-01")] == [105]

    seeded_store.update_task(
        parent, "Daily Standup", None, "2025-09-01", TaskStatus.NOT_STARTED, "never"
    )
    assert parent.recurrence is None


def test_update_task_empty_date_moves_to_inbox(seeded_store: TaskStore) -> None:
    task = seeded_store.get_task(2)
    seeded_store.update_task(task, "Dated one", None, "", TaskStatus.NOT_STARTED, None)
    assert seeded_store.get_task(2).date is None


# ---- duplicate ----


def test_duplicate_inserts_copy_right_after_source(seeded_store: TaskStore) -> None:
    copy = seeded_store.duplicate(seeded_store.get_task(3))
    assert copy is not None
    active = seeded_store.active_tasks()
    assert active[3] is copy
    assert copy.text == "Copy of Inbox B"
    assert copy.notes == "call vendor"
    assert copy.id not in {1, 2, 3, 4, 105}
    assert seeded_store.undo_message == "Task duplicated"


def test_duplicate_of_instance_is_plain_inbox_task(seeded_store: TaskStore) -> None:
    seeded_store.update_status(
        _instance(seeded_store, "2025-09-02"), TaskStatus.COMPLETED, "2025-09-02"
    )
    copy = seeded_store.duplicate(_instance(seeded_store, "2025-09-03"))
    assert copy is not None
    assert copy.text == "Copy of Daily Standup"
    assert copy.date is None
    assert copy.recurrence is None
    assert copy.overrides is None
    assert copy.status is TaskStatus.NOT_STARTED
    assert copy.started_at is None and copy.completed_at is None
    assert seeded_store.active_tasks()[-1] is copy
    # Source keeps its overrides
    assert "2025-09-02" in seeded_store.get_task(105).overrides


def test_duplicate_of_stale_record_appends(seeded_store: TaskStore, clock) -> None:
    ghost = TaskRecord(id=999, text="Ghost", created_at=clock())
    copy = seeded_store.duplicate(ghost)
    assert copy is not None
    assert seeded_store.active_tasks()[-1] is copy
    assert copy.text == "Copy of Ghost"


# ---- scheduling ----


def test_move_to_inbox_clears_schedule(seeded_store: TaskStore) -> None:
    inst = _instance(seeded_store, "2025-09-05")
    seeded_store.update_status(inst, TaskStatus.STARTED, inst.date)
    seeded_store.move_to_inbox(inst)
    parent = seeded_store.get_task(105)
    assert parent.date is None
    assert parent.recurrence is None
    assert parent.overrides is None
    assert parent.status is TaskStatus.NOT_STARTED
    assert seeded_store.undo_message == "Task moved to Inbox"


def test_reschedule_sets_and_clears_date(seeded_store: TaskStore) -> None:
    task = seeded_store.get_task(1)
    seeded_store.reschedule(task, "2025-09-20")
    assert task.date == "2025-09-20"
    assert seeded_store.undo_message == "Task rescheduled"
    seeded_store.reschedule(task, "")
    assert task.date is None


def test_changing_rule_keeps_overrides_until_never(seeded_store: TaskStore) -> None:
    inst = _instance(seeded_store, "2025-09-08")
    seeded_store.update_status(inst, TaskStatus.COMPLETED, inst.date)
    seeded_store.update_recurrence(inst, Recurrence.WEEKLY)
    parent = seeded_store.get_task(105)
    assert parent.recurrence is Recurrence.WEEKLY
    assert "2025-09-08" in parent.overrides
    weekly = _instance(seeded_store, "2025-09-08")
    assert weekly.status is TaskStatus.COMPLETED

    seeded_store.update_recurrence(parent, Recurrence.NEVER)
    assert parent.recurrence is None
    assert parent.overrides is None


def test_making_a_task_recurring_creates_empty_overrides(
    seeded_store: TaskStore,
) -> None:
    seeded_store.update_recurrence(seeded_store.get_task(2), Recurrence.MONTHLY)
    assert seeded_store.get_task(2).overrides == {}


# ---- ratings ----


def test_next_rating_cycles() -> None:
    assert next_rating(None) is TaskRating.LIKED
    assert next_rating(TaskRating.LIKED) is TaskRating.DISLIKED
    assert next_rating(TaskRating.DISLIKED) is None


def test_cycle_rating_on_instance_only_touches_that_day(
    seeded_store: TaskStore,
) -> None:
    inst = _instance(seeded_store, "2025-09-02")
    seeded_store.cycle_rating(inst, inst.date)
    assert _instance(seeded_store, "2025-09-02").rating is TaskRating.LIKED
    assert _instance(seeded_store, "2025-09-03").rating is None
    assert seeded_store.get_task(105).rating is None

    seeded_store.cycle_rating(inst, inst.date)
    assert _instance(seeded_store, "2025-09-02").rating is TaskRating.DISLIKED
    seeded_store.cycle_rating(inst, inst.date)
    assert _instance(seeded_store, "2025-09-02").rating is None


def test_cycle_rating_on_one_off(seeded_store: TaskStore) -> None:
    task = seeded_store.get_task(1)
    seeded_store.cycle_rating(task)
    assert task.rating is TaskRating.LIKED
    assert not seeded_store.can_undo


def test_raw_rating_values_are_coerced(seeded_store: TaskStore) -> None:
    task = seeded_store.get_task(1)
    seeded_store.rate(task, "liked")
    assert task.rating is TaskRating.LIKED
    seeded_store.cycle_rating(task)
    assert task.rating is TaskRating.DISLIKED

    inst = _instance(seeded_store, "2025-09-02")
    seeded_store.rate(inst, "disliked", inst.date)
    seeded_store.cycle_rating(inst, inst.date)
    assert _instance(seeded_store, "2025-09-02").rating is None
    assert next_rating("liked") is TaskRating.DISLIKED


# ---- status ----


def test_instance_status_is_isolated(seeded_store: TaskStore, clock) -> None:
    inst = _instance(seeded_store, "2025-09-02")
    seeded_store.update_status(inst, TaskStatus.COMPLETED, inst.date)
    done = _instance(seeded_store, "2025-09-02")
    assert done.status is TaskStatus.COMPLETED
    assert done.completed_at == clock()
    assert _instance(seeded_store, "2025-09-03").status is TaskStatus.NOT_STARTED
    parent = seeded_store.get_task(105)
    assert parent.status is TaskStatus.NOT_STARTED
    assert parent.completed_at is None
    assert list(parent.overrides) == ["2025-09-02"]


def test_completing_dated_one_off_auto_archives(seeded_store: TaskStore, clock) -> None:
    task = seeded_store.get_task(2)
    seeded_store.update_status(task, TaskStatus.COMPLETED)
    assert seeded_store.get_task(2) is None
    archived = seeded_store.archive.get(2)
    assert archived.archive_reason is ArchiveReason.COMPLETED
    assert archived.status is TaskStatus.COMPLETED
    assert archived.started_at == clock()
    assert archived.completed_at == clock()
    assert seeded_store.undo_message == "Task completed"

    # Second completion of the same (now archived) record is a no-op
    seeded_store.update_status(task, TaskStatus.COMPLETED)
    assert len(seeded_store.archived_tasks()) == 1


def test_completing_started_task_keeps_start_time(
    seeded_store: TaskStore, clock
) -> None:
    started = seeded_store.get_task(4).started_at
    clock.advance(3600)
    seeded_store.update_status(seeded_store.get_task(4), TaskStatus.COMPLETED)
    archived = seeded_store.archive.get(4)
    assert archived.started_at == started
    assert archived.completed_at == clock()


def test_completing_inbox_task_keeps_it_active(seeded_store: TaskStore, clock) -> None:
    task = seeded_store.get_task(1)
    seeded_store.update_status(task, TaskStatus.COMPLETED)
    assert seeded_store.get_task(1) is task
    assert task.status is TaskStatus.COMPLETED
    assert task.started_at == clock()
    assert seeded_store.archived_tasks() == []


def test_status_back_to_not_started_clears_timestamps(seeded_store: TaskStore) -> None:
    task = seeded_store.get_task(4)
    seeded_store.update_status(task, "not_started")
    assert task.status is TaskStatus.NOT_STARTED
    assert task.started_at is None


def test_operations_on_missing_task_are_noops(seeded_store: TaskStore, clock) -> None:
    ghost = TaskRecord(id=12345, text="Ghost", date="2025-09-01", created_at=clock())
    before = seeded_store.active_tasks()
    seeded_store.update_status(ghost, TaskStatus.COMPLETED)
    seeded_store.reschedule(ghost, "2025-09-09")
    seeded_store.move_to_inbox(ghost)
    seeded_store.archive_task(ghost)
    seeded_store.delete_to_trash(ghost)
    assert seeded_store.active_tasks() == before
    assert seeded_store.archived_tasks() == []
    assert not seeded_store.can_undo


# ---- queries ----


def test_unscheduled_tasks_filters_by_query(seeded_store: TaskStore) -> None:
    assert _ids(seeded_store.unscheduled_tasks()) == [1, 3]
    assert _ids(seeded_store.unscheduled_tasks("VENDOR")) == [3]
    assert _ids(seeded_store.unscheduled_tasks("inbox")) == [1, 3]
    assert _ids(seeded_store.unscheduled_tasks("   ")) == [1, 3]


def test_expand_mixes_one_offs_and_instances(seeded_store: TaskStore) -> None:
    entries = seeded_store.expand("2025-09-01", "2025-09-03")
    assert _ids(entries) == [
        2,
        4,
        "105-2025-09-01",
        "105-2025-09-02",
        "105-2025-09-03",
    ]


def test_expand_with_query_and_bad_window(seeded_store: TaskStore) -> None:
    entries = seeded_store.expand("2025-09-01", "2025-09-02", query="standup")
    assert all(isinstance(e, TaskInstance) for e in entries)
    assert len(entries) == 2
    assert seeded_store.expand("2025-09-01", "next week") == []


# ---- reorder ----


@pytest.fixture
def mixed_store(make_store: Callable[..., TaskStore], clock) -> TaskStore:
    now = clock()
    return make_store(
        [
            TaskRecord(id=1, text="A", created_at=now),
            TaskRecord(id=2, text="B", date="2025-09-01", created_at=now),
            TaskRecord(id=3, text="C", created_at=now),
            TaskRecord(id=4, text="D", created_at=now),
        ]
    )


def test_reorder_moves_to_front(mixed_store: TaskStore) -> None:
    mixed_store.reorder_inbox_tasks([2], 0)
    assert _ids(mixed_store.active_tasks()) == [4, 1, 2, 3]


def test_reorder_past_end_appends(mixed_store: TaskStore) -> None:
    mixed_store.reorder_inbox_tasks([0], 3)
    assert _ids(mixed_store.active_tasks()) == [2, 3, 4, 1]


def test_reorder_into_middle(mixed_store: TaskStore) -> None:
    mixed_store.reorder_inbox_tasks([0], 2)
    assert _ids(mixed_store.active_tasks()) == [2, 3, 1, 4]


def test_reorder_ignores_invalid_indices(mixed_store: TaskStore) -> None:
    mixed_store.reorder_inbox_tasks([7, -1], 0)
    assert _ids(mixed_store.active_tasks()) == [1, 2, 3, 4]
    assert not mixed_store.can_undo


# ---- bulk ----


def test_archive_selected_uses_each_status(seeded_store: TaskStore) -> None:
    seeded_store.toggle_inbox_selection(4)
    seeded_store.toggle_inbox_selection(1)
    assert seeded_store.bulk_select_inbox
    seeded_store.archive_selected_inbox()
    assert _ids(seeded_store.active_tasks()) == [2, 3, 105]
    archived = seeded_store.archived_tasks()
    assert _ids(archived) == [1, 4]
    assert [a.archive_reason for a in archived] == [
        ArchiveReason.NOT_STARTED,
        ArchiveReason.STARTED,
    ]
    assert seeded_store.selected_inbox_ids == set()
    assert not seeded_store.bulk_select_inbox
    assert seeded_store.undo_message == "2 tasks archived"


def test_delete_selected_files_under_deleted(seeded_store: TaskStore) -> None:
    seeded_store.delete_selected_inbox([3, 2])
    assert _ids(seeded_store.archived_tasks()) == [2, 3]
    assert {a.archive_reason for a in seeded_store.archived_tasks()} == {
        ArchiveReason.DELETED
    }
    seeded_store.perform_undo()
    assert _ids(seeded_store.active_tasks()) == [1, 2, 3, 4, 105]
    assert seeded_store.archived_tasks() == []


def test_bulk_with_empty_selection_is_noop(seeded_store: TaskStore) -> None:
    seeded_store.archive_selected_inbox()
    seeded_store.delete_selected_inbox([])
    seeded_store.move_tasks_to_inbox()
    assert len(seeded_store.active_tasks()) == 5
    assert not seeded_store.can_undo


def test_move_tasks_to_inbox(seeded_store: TaskStore) -> None:
    seeded_store.move_tasks_to_inbox([2, 105])
    assert _ids(seeded_store.unscheduled_tasks()) == [1, 2, 3, 105]
    assert seeded_store.get_task(105).recurrence is None
    assert seeded_store.undo_message == "2 tasks moved to inbox"


def test_toggle_selection_twice_deselects(seeded_store: TaskStore) -> None:
    seeded_store.toggle_inbox_selection(1)
    seeded_store.toggle_inbox_selection(1)
    assert seeded_store.selected_inbox_ids == set()


# ---- notifications ----


def test_subscribers_hear_mutations_until_unsubscribed(store: TaskStore) -> None:
    calls: list[int] = []
    unsubscribe = store.subscribe(lambda: calls.append(1))
    store.add_task("One")
    store.add_task("Two")
    assert len(calls) == 2
    unsubscribe()
    store.add_task("Three")
    assert len(calls) == 2
