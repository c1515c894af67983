import threading
from datetime import datetime, timedelta

import pytest

from cleanops.errors import (
    AlreadyAssigned,
    AssignmentPaused,
    ConcurrentUpdate,
    NothingCompleted,
    ScheduleNotFound,
    TaskNotFound,
)
from cleanops.models import (
    Assignment,
    AssignmentStatus,
    DerivedStatus,
    Frequency,
    Priority,
    ScheduleTask,
    TargetKind,
)
from scheduling.catalog import ScheduleCatalog
from scheduling.scheduler import AssignmentEngine, classify_priority, estimate_duration, read_status
from storage.memory_store import InMemoryStore


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock(datetime(2024, 1, 1, 9, 0))


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(store, clock):
    return AssignmentEngine(store, clock=clock)


@pytest.fixture
def schedule(store):
    return ScheduleCatalog(store).create_schedule(
        "Bedroom",
        detected_frequency="weekly",
        tasks=[
            {"description": "Dust surfaces", "estimated_duration": "10 minutes"},
            {"description": "Vacuum carpet"},
        ],
    )


def _assignment(next_due: datetime, **kw) -> Assignment:
    return Assignment(target_id="room-1", schedule_id="s1", frequency=Frequency.WEEKLY, next_due=next_due, **kw)


def test_assign_is_due_immediately(engine, schedule, clock):
    a = engine.assign(schedule.id, "room-1")
    assert a.next_due == clock.now
    assert a.status == AssignmentStatus.PENDING
    assert a.frequency == Frequency.WEEKLY
    assert a.target_kind == TargetKind.ROOM


def test_assign_explicit_frequency_and_equipment(engine, schedule):
    a = engine.assign(schedule.id, "boiler-2", "quarterly", target_kind=TargetKind.EQUIPMENT)
    assert a.frequency == Frequency.QUARTERLY
    assert a.target_kind == TargetKind.EQUIPMENT


def test_assign_twice_to_same_target(engine, schedule):
    engine.assign(schedule.id, "room-1")
    with pytest.raises(AlreadyAssigned):
        engine.assign(schedule.id, "room-1")
    engine.assign(schedule.id, "room-2")


def test_assign_unknown_schedule(engine):
    with pytest.raises(ScheduleNotFound):
        engine.assign("missing", "room-1", Frequency.DAILY)


def test_completion_rolls_from_previous_due_date(engine, schedule, clock):
    a = engine.assign(schedule.id, "room-1", Frequency.WEEKLY)

    clock.now = datetime(2024, 1, 10, 15, 30)
    done = engine.complete(a.id, [schedule.tasks[0].id], notes="late")

    assert done.next_due == datetime(2024, 1, 8, 9, 0)
    assert done.last_completed == datetime(2024, 1, 10, 15, 30)
    assert done.status == AssignmentStatus.COMPLETED
    logs = engine.store.list_completions(assignment_id=a.id)
    assert len(logs) == 1
    assert logs[0].notes == "late"


def test_monthly_rollover_is_calendar_aware(engine, schedule, clock):
    clock.now = datetime(2024, 1, 31, 8, 0)
    a = engine.assign(schedule.id, "room-1", Frequency.MONTHLY)
    done = engine.complete(a.id, [schedule.tasks[1].id])
    assert done.next_due == datetime(2024, 2, 29, 8, 0)


def test_empty_completion_is_rejected(engine, schedule, store):
    a = engine.assign(schedule.id, "room-1")
    before = store.get_assignment(a.id)

    with pytest.raises(NothingCompleted):
        engine.complete(a.id, [])

    after = store.get_assignment(a.id)
    assert after.next_due == before.next_due
    assert after.status == before.status
    assert store.list_completions(assignment_id=a.id) == []


def test_unknown_task_leaves_assignment_unchanged(engine, schedule, store):
    a = engine.assign(schedule.id, "room-1")
    with pytest.raises(TaskNotFound):
        engine.complete(a.id, [schedule.tasks[0].id, "not-a-task"])
    assert store.get_assignment(a.id).status == AssignmentStatus.PENDING
    assert store.list_completions() == []


def test_paused_assignment_cannot_be_completed(engine, schedule):
    a = engine.assign(schedule.id, "room-1")
    engine.pause(a.id)
    with pytest.raises(AssignmentPaused):
        engine.complete(a.id, [schedule.tasks[0].id])

    resumed = engine.resume(a.id)
    assert resumed.status == AssignmentStatus.PENDING
    assert engine.complete(a.id, [schedule.tasks[0].id]).status == AssignmentStatus.COMPLETED


def test_concurrent_completions_both_roll_forward(engine, schedule, store):
    a = engine.assign(schedule.id, "room-1", Frequency.WEEKLY)
    barrier = threading.Barrier(2)
    errors = []

    def worker():
        barrier.wait()
        try:
            engine.complete(a.id, [schedule.tasks[0].id])
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert store.get_assignment(a.id).next_due == datetime(2024, 1, 15, 9, 0)
    assert len(store.list_completions(assignment_id=a.id)) == 2


def test_stale_write_is_rejected(engine, schedule, store):
    a = engine.assign(schedule.id, "room-1")
    stale = store.get_assignment(a.id)
    engine.complete(a.id, [schedule.tasks[0].id])

    with pytest.raises(ConcurrentUpdate):
        store.save_assignment(stale.model_copy(update={"status": AssignmentStatus.OVERDUE}), expected_version=stale.version)


def test_derived_status_boundaries():
    now = datetime(2024, 3, 10, 12, 0)
    assert read_status(_assignment(now - timedelta(hours=25)), now) == DerivedStatus.OVERDUE
    assert read_status(_assignment(datetime(2024, 3, 10, 0, 0)), now) == DerivedStatus.PENDING
    assert read_status(_assignment(now + timedelta(days=2)), now) == DerivedStatus.PENDING
    assert read_status(_assignment(now + timedelta(days=3)), now) == DerivedStatus.NOT_DUE_YET


def test_derived_status_completed_and_paused():
    now = datetime(2024, 3, 10, 12, 0)
    completed_today = _assignment(
        now + timedelta(days=7), status=AssignmentStatus.COMPLETED, last_completed=now - timedelta(hours=2)
    )
    completed_yesterday = _assignment(
        now + timedelta(days=6), status=AssignmentStatus.COMPLETED, last_completed=now - timedelta(days=1)
    )
    paused = _assignment(now - timedelta(days=10), status=AssignmentStatus.PAUSED)

    assert read_status(completed_today, now) == DerivedStatus.COMPLETED
    assert read_status(completed_yesterday, now) == DerivedStatus.NOT_DUE_YET
    assert read_status(paused, now) == DerivedStatus.PAUSED


def test_classify_priority():
    now = datetime(2024, 3, 10, 12, 0)
    overdue = _assignment(now - timedelta(hours=25))
    due_today = _assignment(now + timedelta(hours=3))
    upcoming = _assignment(now + timedelta(days=3))
    done = _assignment(now + timedelta(days=7), status=AssignmentStatus.COMPLETED)
    paused = _assignment(now - timedelta(days=30), status=AssignmentStatus.PAUSED)

    assert classify_priority([done, due_today, overdue], now) == Priority.OVERDUE
    assert classify_priority([upcoming, due_today], now) == Priority.DUE_TODAY
    assert classify_priority([done, upcoming], now) == Priority.UPCOMING
    assert classify_priority([done, paused], now) == Priority.COMPLETED
    assert classify_priority([], now) == Priority.UPCOMING
    assert classify_priority([paused], now) == Priority.UPCOMING


def test_due_yesterday_evening_is_not_due_today():
    now = datetime(2024, 3, 10, 10, 0)
    yesterday_evening = _assignment(datetime(2024, 3, 9, 20, 0))
    tonight = _assignment(datetime(2024, 3, 10, 23, 30))

    assert classify_priority([yesterday_evening], now) == Priority.UPCOMING
    assert classify_priority([yesterday_evening, tonight], now) == Priority.DUE_TODAY


def test_estimate_duration():
    tasks = [
        ScheduleTask(schedule_id="s1", description="Dust", estimated_duration="10 minutes"),
        ScheduleTask(schedule_id="s1", description="Mop"),
        ScheduleTask(schedule_id="s1", description="Windows", estimated_duration="1 hour"),
    ]
    assert estimate_duration(tasks) == 75


def test_refresh_statuses(engine, schedule, store, clock):
    overdue = engine.assign(schedule.id, "room-1", Frequency.WEEKLY)
    daily = engine.assign(schedule.id, "room-2", Frequency.DAILY)
    engine.complete(daily.id, [schedule.tasks[0].id])

    changed = engine.refresh_statuses(datetime(2024, 1, 2, 10, 0))

    assert changed == 2
    assert store.get_assignment(overdue.id).status == AssignmentStatus.OVERDUE
    assert store.get_assignment(daily.id).status == AssignmentStatus.PENDING
    assert engine.refresh_statuses(datetime(2024, 1, 2, 10, 0)) == 0


def test_reassign_and_unassign(engine, schedule, store):
    other = ScheduleCatalog(store).create_schedule("Deep clean", tasks=[{"description": "Shampoo carpet"}])
    a = engine.assign(schedule.id, "room-1")

    moved = engine.reassign(a.id, other.id, Frequency.QUARTERLY)
    assert moved.schedule_id == other.id
    assert moved.frequency == Frequency.QUARTERLY
    assert moved.next_due == a.next_due

    engine.unassign(a.id)
    assert store.list_assignments(target_id="room-1") == []


def test_assignments_for_target(engine, schedule, clock):
    engine.assign(schedule.id, "room-1")
    views = engine.get_assignments_for_target("room-1")

    assert len(views) == 1
    view = views[0]
    assert view.schedule_title == "Bedroom"
    assert view.schedule_type == "Weekly Clean"
    assert view.tasks_count == 2
    assert view.estimated_minutes == 15
    assert view.estimated_duration == "15min"
    assert view.derived_status == DerivedStatus.PENDING
    assert view.target_priority == Priority.DUE_TODAY


def test_dashboard(engine, schedule, clock):
    engine.assign(schedule.id, "room-1", Frequency.DAILY)
    done = engine.assign(schedule.id, "room-2", Frequency.WEEKLY)

    clock.now = datetime(2024, 1, 3, 10, 0)
    engine.complete(done.id, [schedule.tasks[0].id, schedule.tasks[1].id])

    board = engine.dashboard()

    assert [t.target_id for t in board.targets] == ["room-1", "room-2"]
    assert board.targets[0].priority == Priority.OVERDUE
    assert board.targets[1].priority == Priority.COMPLETED
    assert board.targets[1].next_due == datetime(2024, 1, 8, 9, 0)
    assert board.stats.completed_today == 1
    assert board.stats.overdue_targets == 1
    assert board.stats.completed_targets == 1
    assert board.stats.total_tasks == 4
    assert board.stats.total_active_targets == 2


def test_dashboard_pending_targets_include_due_today(engine, schedule, clock):
    engine.assign(schedule.id, "room-1")
    engine.assign(schedule.id, "room-2")
    later = engine.assign(schedule.id, "room-3")
    engine.complete(later.id, [schedule.tasks[0].id])

    clock.now = datetime(2024, 1, 2, 9, 0)
    engine.assign(schedule.id, "room-4")

    board = engine.dashboard()

    priorities = {t.target_id: t.priority for t in board.targets}
    assert priorities["room-4"] == Priority.DUE_TODAY
    assert priorities["room-3"] == Priority.COMPLETED
    assert board.stats.due_today_targets == 1
    assert board.stats.pending_targets == 3
