from __future__ import annotations
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

class ExtractedTask(BaseModel):
    """One element of the JSON task-list response."""

    model_config = ConfigDict(extra="ignore")

    task_description: str = Field(
        default="",
        validation_alias=AliasChoices("taskDescription", "description", "task"),
    )
    frequency: Optional[str] = None
    estimated_duration: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("estimatedDuration", "estimated_duration", "duration"),
    )
    area: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("task_description", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else str(v)

    @field_validator("frequency", "estimated_duration", "area", "notes", mode="before")
    @classmethod
    def stringify(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None
