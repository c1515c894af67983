from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def new_id() -> str:
    return str(uuid.uuid4())


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class AssignmentStatus(str, Enum):
    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"


class DerivedStatus(str, Enum):
    """Read-time status. NOT_DUE_YET is never stored."""

    PENDING = "PENDING"
    OVERDUE = "OVERDUE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    NOT_DUE_YET = "NOT_DUE_YET"


class Priority(str, Enum):
    OVERDUE = "OVERDUE"
    DUE_TODAY = "DUE_TODAY"
    UPCOMING = "UPCOMING"
    COMPLETED = "COMPLETED"


class TargetKind(str, Enum):
    ROOM = "ROOM"
    EQUIPMENT = "EQUIPMENT"


ExtractionMode = Literal["schedule", "tasks"]


# --- pipeline (transient) --------------------------------------------------

class RawDocument(BaseModel):
    content: bytes
    mime_type: str
    filename: str = ""


class ExtractedText(BaseModel):
    text: str
    method: str


class RankedLine(BaseModel):
    text: str
    score: float
    position: int


class RankedContent(BaseModel):
    lines: List[RankedLine] = Field(default_factory=list)
    total_units: int = 0

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)


class CandidateTask(BaseModel):
    description: str = Field(..., min_length=1)
    frequency: Optional[str] = None
    estimated_duration: Optional[str] = None
    area: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("description must not be blank")
        return v2


# --- catalog ---------------------------------------------------------------

class ScheduleTask(BaseModel):
    id: str = Field(default_factory=new_id)
    schedule_id: str
    description: str = Field(..., min_length=1)
    frequency: Optional[str] = None
    additional_notes: Optional[str] = None
    estimated_duration: Optional[str] = None
    position: int = 0


class Schedule(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = Field(..., min_length=1)

    # literal phrase found in the source document; never rewritten
    detected_frequency: Optional[str] = None
    suggested_frequency: Optional[Frequency] = None
    suggested_frequency_manual: bool = False

    created_at: datetime = Field(default_factory=datetime.now)
    tasks: List[ScheduleTask] = Field(default_factory=list)


class CleaningTask(BaseModel):
    id: str = Field(default_factory=new_id)
    description: str = Field(..., min_length=1)
    frequency: str = "daily"
    estimated_duration: str = "30 minutes"
    area: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


# --- assignments -----------------------------------------------------------

class Assignment(BaseModel):
    id: str = Field(default_factory=new_id)
    target_id: str
    target_kind: TargetKind = TargetKind.ROOM
    schedule_id: str
    frequency: Frequency
    next_due: datetime
    last_completed: Optional[datetime] = None
    status: AssignmentStatus = AssignmentStatus.PENDING
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.now)


class CompletionLog(BaseModel):
    id: str = Field(default_factory=new_id)
    assignment_id: str
    completed_task_ids: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    completed_at: datetime = Field(default_factory=datetime.now)


class AssignmentView(BaseModel):
    assignment: Assignment
    derived_status: DerivedStatus
    target_priority: Priority
    schedule_title: str
    schedule_type: str
    tasks_count: int
    estimated_minutes: int
    estimated_duration: str


class TargetSummary(BaseModel):
    target_id: str
    target_kind: TargetKind
    priority: Priority
    next_due: Optional[datetime] = None
    total_assignments: int = 0
    total_tasks: int = 0
    estimated_duration: str = "0min"
    overdue_count: int = 0
    pending_count: int = 0
    completed_count: int = 0


class DashboardStats(BaseModel):
    total_tasks: int = 0
    completed_today: int = 0
    overdue_targets: int = 0
    due_today_targets: int = 0
    completed_targets: int = 0
    pending_targets: int = 0
    total_active_targets: int = 0


class Dashboard(BaseModel):
    targets: List[TargetSummary] = Field(default_factory=list)
    stats: DashboardStats = Field(default_factory=DashboardStats)


class IngestResult(BaseModel):
    mode: ExtractionMode
    extraction_method: str
    schedule: Optional[Schedule] = None
    tasks: List[CleaningTask] = Field(default_factory=list)
    ranked_lines: int = 0
    chunks: int = 1
    fallback_used: bool = False
