"""
Abstract key-addressed store for schedules, tasks and assignments.

The core never talks to a database directly; it goes through this interface.
Writers that must be all-or-nothing wrap their calls in ``store.atomic()``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import List, Optional

from cleanops.models import Assignment, CleaningTask, CompletionLog, Schedule, ScheduleTask


class Store(ABC):
    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Serialise writers and roll back every change if the block raises."""
        raise NotImplementedError

    # schedules
    @abstractmethod
    def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        raise NotImplementedError

    @abstractmethod
    def list_schedules(self) -> List[Schedule]:
        raise NotImplementedError

    @abstractmethod
    def save_schedule(self, schedule: Schedule) -> Schedule:
        raise NotImplementedError

    @abstractmethod
    def delete_schedule(self, schedule_id: str) -> None:
        raise NotImplementedError

    # schedule tasks
    @abstractmethod
    def get_task(self, task_id: str) -> Optional[ScheduleTask]:
        raise NotImplementedError

    @abstractmethod
    def list_tasks(self, schedule_id: str) -> List[ScheduleTask]:
        raise NotImplementedError

    @abstractmethod
    def save_task(self, task: ScheduleTask) -> ScheduleTask:
        raise NotImplementedError

    @abstractmethod
    def delete_task(self, task_id: str) -> None:
        raise NotImplementedError

    # flat cleaning tasks
    @abstractmethod
    def list_cleaning_tasks(self) -> List[CleaningTask]:
        raise NotImplementedError

    @abstractmethod
    def save_cleaning_task(self, task: CleaningTask) -> CleaningTask:
        raise NotImplementedError

    # assignments
    @abstractmethod
    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        raise NotImplementedError

    @abstractmethod
    def list_assignments(
        self,
        schedule_id: Optional[str] = None,
        target_id: Optional[str] = None,
    ) -> List[Assignment]:
        raise NotImplementedError

    @abstractmethod
    def save_assignment(
        self,
        assignment: Assignment,
        expected_version: Optional[int] = None,
    ) -> Assignment:
        """Persist and bump ``version``.

        When ``expected_version`` is given and differs from the stored
        version, raises ``ConcurrentUpdate`` and writes nothing.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_assignment(self, assignment_id: str) -> None:
        raise NotImplementedError

    # completion logs
    @abstractmethod
    def save_completion(self, log: CompletionLog) -> CompletionLog:
        raise NotImplementedError

    @abstractmethod
    def list_completions(
        self,
        assignment_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[CompletionLog]:
        raise NotImplementedError
