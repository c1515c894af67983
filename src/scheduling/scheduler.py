"""
Recurring schedule engine.

An assignment attaches a schedule to a room or piece of equipment with a
frequency. Completing it rolls ``next_due`` forward from the previous due
date, never from the completion moment, so late work does not shift the
rhythm.
"""

import logging
from collections import OrderedDict
from datetime import datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Union

from cleanops.durations import estimate_minutes, format_duration, schedule_type
from cleanops.errors import (
    AlreadyAssigned,
    AssignmentNotFound,
    AssignmentPaused,
    FrequencyRequired,
    NothingCompleted,
    ScheduleNotFound,
    TaskNotFound,
)
from cleanops.frequency import advance, map_frequency_phrase
from cleanops.models import (
    Assignment,
    AssignmentStatus,
    AssignmentView,
    CompletionLog,
    Dashboard,
    DashboardStats,
    DerivedStatus,
    Frequency,
    Priority,
    ScheduleTask,
    TargetKind,
    TargetSummary,
)
from storage.store import Store

logger = logging.getLogger(__name__)

DUE_SOON_DAYS = 2
OVERDUE_AFTER = timedelta(hours=24)

_PRIORITY_ORDER = {
    Priority.OVERDUE: 0,
    Priority.DUE_TODAY: 1,
    Priority.UPCOMING: 2,
    Priority.COMPLETED: 3,
}


def _start_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min)


def coerce_frequency(value: Union[Frequency, str]) -> Frequency:
    if isinstance(value, Frequency):
        return value
    freq = map_frequency_phrase(value)
    if freq is None:
        raise ValueError(f"Unknown frequency: {value}")
    return freq


def read_status(assignment: Assignment, now: datetime) -> DerivedStatus:
    """Display status, computed at read time and never stored."""
    if assignment.status == AssignmentStatus.PAUSED:
        return DerivedStatus.PAUSED
    if (
        assignment.status == AssignmentStatus.COMPLETED
        and assignment.last_completed is not None
        and assignment.last_completed.date() == now.date()
    ):
        return DerivedStatus.COMPLETED

    days_until_due = (assignment.next_due.date() - now.date()).days
    if days_until_due < 0:
        return DerivedStatus.OVERDUE
    if days_until_due <= DUE_SOON_DAYS:
        return DerivedStatus.PENDING
    return DerivedStatus.NOT_DUE_YET


def classify_priority(assignments: Iterable[Assignment], now: datetime) -> Priority:
    """Roll a target's assignments up into one dashboard bucket. Paused ones are ignored."""
    active = [a for a in assignments if a.status != AssignmentStatus.PAUSED]
    open_ = [a for a in active if a.status != AssignmentStatus.COMPLETED]

    if any(
        a.status == AssignmentStatus.OVERDUE or a.next_due < now - OVERDUE_AFTER
        for a in open_
    ):
        return Priority.OVERDUE

    today = _start_of_day(now)
    tomorrow = today + timedelta(days=1)
    if any(
        a.status == AssignmentStatus.PENDING and today <= a.next_due < tomorrow
        for a in open_
    ):
        return Priority.DUE_TODAY

    if active and not open_:
        return Priority.COMPLETED
    return Priority.UPCOMING


def estimate_duration(tasks: Iterable[ScheduleTask]) -> int:
    """Total minutes for a task list; tasks without a duration count 5 minutes."""
    return estimate_minutes(t.estimated_duration for t in tasks)


class AssignmentEngine:
    def __init__(self, store: Store, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock or datetime.now

    def now(self) -> datetime:
        return self._clock()

    def _get(self, assignment_id: str) -> Assignment:
        assignment = self.store.get_assignment(assignment_id)
        if assignment is None:
            raise AssignmentNotFound(assignment_id)
        return assignment

    def _check_not_assigned(self, schedule_id: str, target_id: str) -> None:
        if self.store.list_assignments(schedule_id=schedule_id, target_id=target_id):
            logger.warning(f"Schedule {schedule_id} is already assigned to {target_id}")
            raise AlreadyAssigned()

    def assign(
        self,
        schedule_id: str,
        target_id: str,
        frequency: Optional[Union[Frequency, str]] = None,
        target_kind: TargetKind = TargetKind.ROOM,
    ) -> Assignment:
        """Attach a schedule to a target. The first occurrence is due immediately."""
        with self.store.atomic():
            schedule = self.store.get_schedule(schedule_id)
            if schedule is None:
                raise ScheduleNotFound(schedule_id)

            freq = coerce_frequency(frequency) if frequency else schedule.suggested_frequency
            if freq is None:
                raise FrequencyRequired()
            self._check_not_assigned(schedule_id, target_id)

            now = self.now()
            assignment = self.store.save_assignment(
                Assignment(
                    target_id=target_id,
                    target_kind=target_kind,
                    schedule_id=schedule_id,
                    frequency=freq,
                    next_due=now,
                    status=AssignmentStatus.PENDING,
                    created_at=now,
                )
            )

        logger.info(
            f"Assigned schedule {schedule_id} to {target_kind.value.lower()} {target_id} "
            f"({freq.value}, due {assignment.next_due.isoformat()})"
        )
        return assignment

    def complete(
        self,
        assignment_id: str,
        completed_task_ids: List[str],
        notes: Optional[str] = None,
    ) -> Assignment:
        if not completed_task_ids:
            raise NothingCompleted()

        with self.store.atomic():
            current = self._get(assignment_id)
            if current.status == AssignmentStatus.PAUSED:
                raise AssignmentPaused()

            known = {t.id for t in self.store.list_tasks(current.schedule_id)}
            for task_id in completed_task_ids:
                if task_id not in known:
                    raise TaskNotFound(task_id)

            now = self.now()
            updated = current.model_copy(
                update={
                    "next_due": advance(current.next_due, current.frequency),
                    "last_completed": now,
                    "status": AssignmentStatus.COMPLETED,
                }
            )
            saved = self.store.save_assignment(updated, expected_version=current.version)
            self.store.save_completion(
                CompletionLog(
                    assignment_id=assignment_id,
                    completed_task_ids=list(completed_task_ids),
                    notes=notes,
                    completed_at=now,
                )
            )

        logger.info(
            f"Completed assignment {assignment_id}: {len(completed_task_ids)} tasks, "
            f"next due {current.next_due.isoformat()} -> {saved.next_due.isoformat()}"
        )
        return saved

    def _set_status(self, assignment_id: str, status: AssignmentStatus) -> Assignment:
        with self.store.atomic():
            current = self._get(assignment_id)
            if current.status == status:
                return current
            return self.store.save_assignment(
                current.model_copy(update={"status": status}),
                expected_version=current.version,
            )

    def pause(self, assignment_id: str) -> Assignment:
        assignment = self._set_status(assignment_id, AssignmentStatus.PAUSED)
        logger.info(f"Paused assignment {assignment_id}")
        return assignment

    def resume(self, assignment_id: str) -> Assignment:
        """Back to PENDING; the next refresh marks it OVERDUE if it is long past due."""
        with self.store.atomic():
            current = self._get(assignment_id)
            if current.status != AssignmentStatus.PAUSED:
                return current
            assignment = self._set_status(assignment_id, AssignmentStatus.PENDING)
        logger.info(f"Resumed assignment {assignment_id}")
        return assignment

    def unassign(self, assignment_id: str) -> None:
        with self.store.atomic():
            self._get(assignment_id)
            self.store.delete_assignment(assignment_id)
        logger.info(f"Removed assignment {assignment_id}")

    def reassign(
        self,
        assignment_id: str,
        schedule_id: str,
        frequency: Optional[Union[Frequency, str]] = None,
    ) -> Assignment:
        """Point an assignment at another schedule, keeping its due date."""
        with self.store.atomic():
            current = self._get(assignment_id)
            if current.schedule_id == schedule_id and not frequency:
                return current
            if self.store.get_schedule(schedule_id) is None:
                raise ScheduleNotFound(schedule_id)
            if current.schedule_id != schedule_id:
                self._check_not_assigned(schedule_id, current.target_id)

            changes = {"schedule_id": schedule_id}
            if frequency:
                changes["frequency"] = coerce_frequency(frequency)
            saved = self.store.save_assignment(
                current.model_copy(update=changes), expected_version=current.version
            )
        logger.info(f"Reassigned {assignment_id} from schedule {current.schedule_id} to {schedule_id}")
        return saved

    def refresh_statuses(self, now: Optional[datetime] = None) -> int:
        """
        Bring stored statuses in line with the clock.

        COMPLETED assignments whose next occurrence has arrived go back to
        PENDING; PENDING ones more than 24 hours past due become OVERDUE.
        Returns how many assignments changed.
        """
        now = now or self.now()
        changed = 0
        with self.store.atomic():
            for a in self.store.list_assignments():
                status = a.status
                if status == AssignmentStatus.COMPLETED and a.next_due <= now:
                    status = AssignmentStatus.PENDING
                if status == AssignmentStatus.PENDING and a.next_due < now - OVERDUE_AFTER:
                    status = AssignmentStatus.OVERDUE
                if status != a.status:
                    self.store.save_assignment(
                        a.model_copy(update={"status": status}), expected_version=a.version
                    )
                    changed += 1
        logger.info(f"Status refresh: {changed} assignments updated")
        return changed

    def read_status(self, assignment: Assignment, now: Optional[datetime] = None) -> DerivedStatus:
        return read_status(assignment, now or self.now())

    def classify_priority(
        self, assignments: Iterable[Assignment], now: Optional[datetime] = None
    ) -> Priority:
        return classify_priority(assignments, now or self.now())

    def estimate_duration(self, tasks: Iterable[ScheduleTask]) -> int:
        return estimate_duration(tasks)

    def _schedule_info(self, schedule_id: str, cache: Dict[str, tuple]) -> tuple:
        if schedule_id not in cache:
            schedule = self.store.get_schedule(schedule_id)
            tasks = self.store.list_tasks(schedule_id)
            cache[schedule_id] = (schedule, tasks, estimate_duration(tasks))
        return cache[schedule_id]

    def get_assignments_for_target(
        self, target_id: str, now: Optional[datetime] = None
    ) -> List[AssignmentView]:
        now = now or self.now()
        assignments = self.store.list_assignments(target_id=target_id)
        priority = classify_priority(assignments, now)

        cache: Dict[str, tuple] = {}
        views = []
        for a in assignments:
            schedule, tasks, minutes = self._schedule_info(a.schedule_id, cache)
            title = schedule.title if schedule else "Unknown schedule"
            views.append(
                AssignmentView(
                    assignment=a,
                    derived_status=read_status(a, now),
                    target_priority=priority,
                    schedule_title=title,
                    schedule_type=schedule_type(title, a.frequency),
                    tasks_count=len(tasks),
                    estimated_minutes=minutes,
                    estimated_duration=format_duration(minutes),
                )
            )
        return views

    def dashboard(self, now: Optional[datetime] = None) -> Dashboard:
        now = now or self.now()

        by_target: "OrderedDict[str, List[Assignment]]" = OrderedDict()
        for a in self.store.list_assignments():
            by_target.setdefault(a.target_id, []).append(a)

        cache: Dict[str, tuple] = {}
        targets = []
        for target_id, items in by_target.items():
            active = [a for a in items if a.status != AssignmentStatus.PAUSED]
            total_tasks = 0
            minutes = 0
            for a in active:
                _, tasks, mins = self._schedule_info(a.schedule_id, cache)
                total_tasks += len(tasks)
                minutes += mins
            targets.append(
                TargetSummary(
                    target_id=target_id,
                    target_kind=items[0].target_kind,
                    priority=classify_priority(items, now),
                    next_due=min((a.next_due for a in active), default=None),
                    total_assignments=len(items),
                    total_tasks=total_tasks,
                    estimated_duration=format_duration(minutes),
                    overdue_count=sum(a.status == AssignmentStatus.OVERDUE for a in items),
                    pending_count=sum(a.status == AssignmentStatus.PENDING for a in items),
                    completed_count=sum(a.status == AssignmentStatus.COMPLETED for a in items),
                )
            )

        targets.sort(key=lambda t: (_PRIORITY_ORDER[t.priority], t.next_due or datetime.max))

        stats = DashboardStats(
            total_tasks=sum(t.total_tasks for t in targets),
            completed_today=len(self.store.list_completions(since=_start_of_day(now))),
            overdue_targets=sum(t.priority == Priority.OVERDUE for t in targets),
            due_today_targets=sum(t.priority == Priority.DUE_TODAY for t in targets),
            completed_targets=sum(t.priority == Priority.COMPLETED for t in targets),
            pending_targets=sum(t.priority in (Priority.UPCOMING, Priority.DUE_TODAY) for t in targets),
            total_active_targets=sum(t.next_due is not None for t in targets),
        )
        return Dashboard(targets=targets, stats=stats)
