import logging
from typing import Iterable, List, Optional, Union

from cleanops.errors import HasDependentAssignments, ScheduleNotFound, TaskNotFound
from cleanops.frequency import infer_frequency, map_frequency_phrase
from cleanops.models import CandidateTask, CleaningTask, Frequency, Schedule, ScheduleTask
from storage.store import Store

logger = logging.getLogger(__name__)

TaskInput = Union[CandidateTask, dict]


def _as_candidate(task: TaskInput) -> CandidateTask:
    if isinstance(task, CandidateTask):
        return task
    return CandidateTask.model_validate(task)


class ScheduleCatalog:
    """Schedule templates, their tasks, and flat extracted cleaning tasks."""

    def __init__(self, store: Store):
        self.store = store

    def create_schedule(
        self,
        title: str,
        detected_frequency: Optional[str] = None,
        tasks: Iterable[TaskInput] = (),
        suggested_frequency: Optional[Frequency] = None,
    ) -> Schedule:
        """
        Persist a schedule and its tasks in one transaction.

        Without an explicit ``suggested_frequency`` it is derived from the
        detected phrase, else from the most common task frequency.
        """
        candidates = [_as_candidate(t) for t in tasks]

        manual = suggested_frequency is not None
        if suggested_frequency is None:
            suggested_frequency = map_frequency_phrase(detected_frequency) or infer_frequency(
                c.frequency for c in candidates
            )

        schedule = Schedule(
            title=title.strip(),
            detected_frequency=detected_frequency,
            suggested_frequency=suggested_frequency,
            suggested_frequency_manual=manual,
        )
        with self.store.atomic():
            self.store.save_schedule(schedule)
            for position, c in enumerate(candidates):
                schedule.tasks.append(
                    self.store.save_task(
                        ScheduleTask(
                            schedule_id=schedule.id,
                            description=c.description,
                            frequency=c.frequency,
                            additional_notes=c.notes,
                            estimated_duration=c.estimated_duration,
                            position=position,
                        )
                    )
                )

        logger.info(
            f"Created schedule {schedule.id} '{schedule.title}' with {len(schedule.tasks)} tasks "
            f"(suggested frequency: {suggested_frequency.value if suggested_frequency else None})"
        )
        return schedule

    def create_cleaning_tasks(self, tasks: Iterable[TaskInput]) -> List[CleaningTask]:
        stored = []
        with self.store.atomic():
            for t in (_as_candidate(t) for t in tasks):
                fields = {"description": t.description, "area": t.area, "notes": t.notes}
                if t.frequency:
                    fields["frequency"] = t.frequency
                if t.estimated_duration:
                    fields["estimated_duration"] = t.estimated_duration
                stored.append(self.store.save_cleaning_task(CleaningTask(**fields)))
        logger.info(f"Stored {len(stored)} cleaning tasks")
        return stored

    def list_cleaning_tasks(self) -> List[CleaningTask]:
        return self.store.list_cleaning_tasks()

    def get_schedule(self, schedule_id: str) -> Schedule:
        schedule = self.store.get_schedule(schedule_id)
        if schedule is None:
            raise ScheduleNotFound(schedule_id)
        schedule.tasks = self.store.list_tasks(schedule_id)
        return schedule

    def list_schedules(self) -> List[Schedule]:
        schedules = self.store.list_schedules()
        for s in schedules:
            s.tasks = self.store.list_tasks(s.id)
        return schedules

    def update(
        self,
        schedule_id: str,
        title: Optional[str] = None,
        suggested_frequency: Optional[Frequency] = None,
    ) -> Schedule:
        """Edit title and/or suggested frequency. The detected phrase is never touched."""
        with self.store.atomic():
            schedule = self.get_schedule(schedule_id)
            changes = {}
            if title is not None and title.strip():
                changes["title"] = title.strip()
            if suggested_frequency is not None:
                changes["suggested_frequency"] = Frequency(suggested_frequency)
                changes["suggested_frequency_manual"] = True
            schedule = schedule.model_copy(update=changes)
            self.store.save_schedule(schedule)
        return schedule

    def delete(self, schedule_id: str) -> None:
        with self.store.atomic():
            if self.store.get_schedule(schedule_id) is None:
                raise ScheduleNotFound(schedule_id)
            dependents = self.store.list_assignments(schedule_id=schedule_id)
            if dependents:
                logger.warning(
                    f"Refusing to delete schedule {schedule_id}: {len(dependents)} assignments depend on it"
                )
                raise HasDependentAssignments(schedule_id, len(dependents))
            tasks = self.store.list_tasks(schedule_id)
            for task in tasks:
                self.store.delete_task(task.id)
            self.store.delete_schedule(schedule_id)
        logger.info(f"Deleted schedule {schedule_id} and {len(tasks)} tasks")

    # tasks, always scoped to their schedule

    def _get_task(self, schedule_id: str, task_id: str) -> ScheduleTask:
        task = self.store.get_task(task_id)
        if task is None or task.schedule_id != schedule_id:
            raise TaskNotFound(task_id)
        return task

    def add_task(
        self,
        schedule_id: str,
        description: str,
        frequency: Optional[str] = None,
        additional_notes: Optional[str] = None,
        estimated_duration: Optional[str] = None,
    ) -> ScheduleTask:
        with self.store.atomic():
            tasks = self.get_schedule(schedule_id).tasks
            position = max((t.position for t in tasks), default=-1) + 1
            task = ScheduleTask(
                schedule_id=schedule_id,
                description=description.strip(),
                frequency=frequency,
                additional_notes=additional_notes,
                estimated_duration=estimated_duration,
                position=position,
            )
            return self.store.save_task(task)

    def update_task(self, schedule_id: str, task_id: str, **changes) -> ScheduleTask:
        """Apply ``description``/``frequency``/``additional_notes``/``estimated_duration``."""
        allowed = {"description", "frequency", "additional_notes", "estimated_duration"}
        unknown = set(changes) - allowed
        if unknown:
            raise TypeError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        if changes.get("description") is None:
            changes.pop("description", None)

        with self.store.atomic():
            task = self._get_task(schedule_id, task_id)
            updated = ScheduleTask.model_validate({**task.model_dump(), **changes})
            return self.store.save_task(updated)

    def delete_task(self, schedule_id: str, task_id: str) -> None:
        with self.store.atomic():
            self._get_task(schedule_id, task_id)
            self.store.delete_task(task_id)
