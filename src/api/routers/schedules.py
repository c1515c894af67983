import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.backend import BackendAPI
from api.dependencies import get_backend
from cleanops.models import Frequency

router = APIRouter()
logger = logging.getLogger(__name__)


class TaskIn(BaseModel):
    description: str = Field(..., min_length=1)
    frequency: Optional[str] = None
    additional_notes: Optional[str] = None
    estimated_duration: Optional[str] = None


class TaskUpdateIn(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1)
    frequency: Optional[str] = None
    additional_notes: Optional[str] = None
    estimated_duration: Optional[str] = None


class ScheduleIn(BaseModel):
    title: str = Field(..., min_length=1)
    detected_frequency: Optional[str] = None
    suggested_frequency: Optional[Frequency] = None
    tasks: List[TaskIn] = Field(default_factory=list)


class ScheduleUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    suggested_frequency: Optional[Frequency] = None


@router.get("/schedules")
async def list_schedules(backend: BackendAPI = Depends(get_backend)) -> dict:
    schedules = backend.catalog.list_schedules()
    return {
        "schedules": [s.model_dump(mode="json") for s in schedules],
        "total": len(schedules),
    }


@router.post("/schedules", status_code=201)
async def create_schedule(payload: ScheduleIn, backend: BackendAPI = Depends(get_backend)) -> dict:
    tasks = [
        {
            "description": t.description,
            "frequency": t.frequency,
            "notes": t.additional_notes,
            "estimated_duration": t.estimated_duration,
        }
        for t in payload.tasks
    ]
    schedule = backend.catalog.create_schedule(
        payload.title,
        detected_frequency=payload.detected_frequency,
        tasks=tasks,
        suggested_frequency=payload.suggested_frequency,
    )
    return schedule.model_dump(mode="json")


@router.get("/schedules/{schedule_id}")
async def get_schedule(schedule_id: str, backend: BackendAPI = Depends(get_backend)) -> dict:
    return backend.catalog.get_schedule(schedule_id).model_dump(mode="json")


@router.patch("/schedules/{schedule_id}")
async def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdateIn,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    schedule = backend.catalog.update(
        schedule_id,
        title=payload.title,
        suggested_frequency=payload.suggested_frequency,
    )
    return schedule.model_dump(mode="json")


@router.delete("/schedules/{schedule_id}")
async def delete_schedule(schedule_id: str, backend: BackendAPI = Depends(get_backend)) -> dict:
    backend.catalog.delete(schedule_id)
    return {"status": "deleted", "id": schedule_id}


@router.post("/schedules/{schedule_id}/tasks", status_code=201)
async def add_task(
    schedule_id: str,
    payload: TaskIn,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    task = backend.catalog.add_task(schedule_id, **payload.model_dump())
    return task.model_dump(mode="json")


@router.patch("/schedules/{schedule_id}/tasks/{task_id}")
async def update_task(
    schedule_id: str,
    task_id: str,
    payload: TaskUpdateIn,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    task = backend.catalog.update_task(schedule_id, task_id, **payload.model_dump(exclude_unset=True))
    return task.model_dump(mode="json")


@router.delete("/schedules/{schedule_id}/tasks/{task_id}")
async def delete_task(
    schedule_id: str,
    task_id: str,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    backend.catalog.delete_task(schedule_id, task_id)
    return {"status": "deleted", "id": task_id}


@router.get("/cleaning-tasks")
async def list_cleaning_tasks(limit: int = 100, backend: BackendAPI = Depends(get_backend)) -> dict:
    """Flat tasks stored by ``POST /documents?mode=tasks``, newest first."""
    tasks = backend.catalog.list_cleaning_tasks()
    return {
        "tasks": [t.model_dump(mode="json") for t in tasks[:limit]],
        "total": len(tasks),
    }
