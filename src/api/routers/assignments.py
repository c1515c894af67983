import logging
import time
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.backend import BackendAPI
from api.dependencies import get_backend
from api.metrics import ASSIGNMENTS_COMPLETED_TOTAL, REQUEST_LATENCY_SECONDS, REQUESTS_TOTAL
from cleanops.models import Frequency, TargetKind

router = APIRouter()
logger = logging.getLogger(__name__)


class AssignIn(BaseModel):
    schedule_id: str
    target_id: str
    target_kind: TargetKind = TargetKind.ROOM
    frequency: Optional[Frequency] = None


class CompleteIn(BaseModel):
    completed_task_ids: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


class ReassignIn(BaseModel):
    schedule_id: str
    frequency: Optional[Frequency] = None


@router.post("/assignments", status_code=201)
async def assign_schedule(payload: AssignIn, backend: BackendAPI = Depends(get_backend)) -> dict:
    assignment = backend.assign_schedule(
        payload.schedule_id,
        payload.target_id,
        payload.frequency,
        target_kind=payload.target_kind,
    )
    return assignment.model_dump(mode="json")


@router.post("/assignments/refresh")
async def refresh_statuses(backend: BackendAPI = Depends(get_backend)) -> dict:
    """Run the status refresh normally driven by a scheduler (cron)."""
    return {"updated": backend.engine.refresh_statuses()}


@router.post("/assignments/{assignment_id}/complete")
async def complete_assignment(
    assignment_id: str,
    payload: CompleteIn,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    start = time.time()
    assignment = backend.complete_assignment(
        assignment_id, payload.completed_task_ids, payload.notes
    )

    # Prometheus counters (best-effort)
    try:
        REQUESTS_TOTAL.labels(endpoint="/assignments/complete", status="completed").inc()
        REQUEST_LATENCY_SECONDS.labels(endpoint="/assignments/complete").observe(time.time() - start)
        ASSIGNMENTS_COMPLETED_TOTAL.inc()
    except Exception as e:
        logger.warning(f"Failed to record completion metrics: {e}")

    return assignment.model_dump(mode="json")


@router.post("/assignments/{assignment_id}/pause")
async def pause_assignment(assignment_id: str, backend: BackendAPI = Depends(get_backend)) -> dict:
    return backend.engine.pause(assignment_id).model_dump(mode="json")


@router.post("/assignments/{assignment_id}/resume")
async def resume_assignment(assignment_id: str, backend: BackendAPI = Depends(get_backend)) -> dict:
    return backend.engine.resume(assignment_id).model_dump(mode="json")


@router.patch("/assignments/{assignment_id}")
async def reassign(
    assignment_id: str,
    payload: ReassignIn,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    assignment = backend.engine.reassign(assignment_id, payload.schedule_id, payload.frequency)
    return assignment.model_dump(mode="json")


@router.delete("/assignments/{assignment_id}")
async def unassign(assignment_id: str, backend: BackendAPI = Depends(get_backend)) -> dict:
    backend.engine.unassign(assignment_id)
    return {"status": "deleted", "id": assignment_id}


@router.get("/targets/{target_id}/assignments")
async def get_target_assignments(target_id: str, backend: BackendAPI = Depends(get_backend)) -> dict:
    views = backend.get_assignments_for_target(target_id)
    return {
        "target_id": target_id,
        "priority": views[0].target_priority.value if views else None,
        "assignments": [v.model_dump(mode="json") for v in views],
        "total": len(views),
    }


@router.get("/dashboard")
async def dashboard(backend: BackendAPI = Depends(get_backend)) -> dict:
    return backend.engine.dashboard().model_dump(mode="json")
