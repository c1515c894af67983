from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from cleanops.errors import ConcurrentUpdate
from cleanops.models import Assignment, CleaningTask, CompletionLog, Schedule, ScheduleTask
from storage.store import Store

logger = logging.getLogger(__name__)

_TABLES = ("schedules", "tasks", "cleaning_tasks", "assignments", "completions")


class InMemoryStore(Store):
    """
    Dict-backed store.

    All access goes through one re-entrant lock, so an ``atomic()`` block is
    also a critical section: two concurrent completions of the same
    assignment run one after the other, the second one seeing the first
    one's rolled-forward due date.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self.schedules: Dict[str, Schedule] = {}
        self.tasks: Dict[str, ScheduleTask] = {}
        self.cleaning_tasks: Dict[str, CleaningTask] = {}
        self.assignments: Dict[str, Assignment] = {}
        self.completions: Dict[str, CompletionLog] = {}

    @contextmanager
    def atomic(self) -> Iterator["InMemoryStore"]:
        with self._lock:
            outermost = self._depth == 0
            snapshot = {name: dict(getattr(self, name)) for name in _TABLES} if outermost else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    for name, table in snapshot.items():
                        setattr(self, name, table)
                    logger.debug("Store transaction rolled back")
                raise
            else:
                if outermost:
                    self._on_commit()
            finally:
                self._depth -= 1

    def _on_commit(self) -> None:
        """Hook for subclasses that persist after a successful transaction."""

    # schedules
    def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        with self._lock:
            s = self.schedules.get(schedule_id)
            return s.model_copy(deep=True) if s else None

    def list_schedules(self) -> List[Schedule]:
        with self._lock:
            items = sorted(self.schedules.values(), key=lambda s: s.title.lower())
            return [s.model_copy(deep=True) for s in items]

    def save_schedule(self, schedule: Schedule) -> Schedule:
        with self._lock:
            # tasks live in their own table
            self.schedules[schedule.id] = schedule.model_copy(update={"tasks": []}, deep=True)
            return schedule

    def delete_schedule(self, schedule_id: str) -> None:
        with self._lock:
            self.schedules.pop(schedule_id, None)

    # schedule tasks
    def get_task(self, task_id: str) -> Optional[ScheduleTask]:
        with self._lock:
            t = self.tasks.get(task_id)
            return t.model_copy() if t else None

    def list_tasks(self, schedule_id: str) -> List[ScheduleTask]:
        with self._lock:
            items = [t for t in self.tasks.values() if t.schedule_id == schedule_id]
            return [t.model_copy() for t in sorted(items, key=lambda t: t.position)]

    def save_task(self, task: ScheduleTask) -> ScheduleTask:
        with self._lock:
            self.tasks[task.id] = task.model_copy()
            return task

    def delete_task(self, task_id: str) -> None:
        with self._lock:
            self.tasks.pop(task_id, None)

    # flat cleaning tasks
    def list_cleaning_tasks(self) -> List[CleaningTask]:
        with self._lock:
            items = sorted(self.cleaning_tasks.values(), key=lambda t: t.created_at, reverse=True)
            return [t.model_copy() for t in items]

    def save_cleaning_task(self, task: CleaningTask) -> CleaningTask:
        with self._lock:
            self.cleaning_tasks[task.id] = task.model_copy()
            return task

    # assignments
    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        with self._lock:
            a = self.assignments.get(assignment_id)
            return a.model_copy() if a else None

    def list_assignments(
        self,
        schedule_id: Optional[str] = None,
        target_id: Optional[str] = None,
    ) -> List[Assignment]:
        with self._lock:
            out = []
            for a in self.assignments.values():
                if schedule_id is not None and a.schedule_id != schedule_id:
                    continue
                if target_id is not None and a.target_id != target_id:
                    continue
                out.append(a.model_copy())
            return sorted(out, key=lambda a: a.created_at)

    def save_assignment(
        self,
        assignment: Assignment,
        expected_version: Optional[int] = None,
    ) -> Assignment:
        with self._lock:
            current = self.assignments.get(assignment.id)
            if expected_version is not None:
                stored_version = current.version if current else None
                if stored_version != expected_version:
                    raise ConcurrentUpdate("assignment")
            saved = assignment.model_copy(update={"version": assignment.version + 1})
            self.assignments[saved.id] = saved
            return saved.model_copy()

    def delete_assignment(self, assignment_id: str) -> None:
        with self._lock:
            self.assignments.pop(assignment_id, None)
            for log_id in [k for k, v in self.completions.items() if v.assignment_id == assignment_id]:
                del self.completions[log_id]

    # completion logs
    def save_completion(self, log: CompletionLog) -> CompletionLog:
        with self._lock:
            self.completions[log.id] = log.model_copy()
            return log

    def list_completions(
        self,
        assignment_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[CompletionLog]:
        with self._lock:
            out = []
            for c in self.completions.values():
                if assignment_id is not None and c.assignment_id != assignment_id:
                    continue
                if since is not None and c.completed_at < since:
                    continue
                out.append(c.model_copy())
            return sorted(out, key=lambda c: c.completed_at)
