"""
Error taxonomy for CleanOps AI.

Every error carries a message that is safe to show to an end user, a stable
machine-readable code, and the HTTP status the API layer should answer with.
"""

from __future__ import annotations

from typing import Iterable, Optional


class CleanOpsError(Exception):
    code: str = "cleanops_error"
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# --- extraction pipeline ---------------------------------------------------

class UnsupportedFormat(CleanOpsError):
    code = "unsupported_format"
    status_code = 415

    def __init__(self, mime_type: str, accepted: Iterable[str]):
        self.mime_type = mime_type
        self.accepted = list(accepted)
        super().__init__(
            f"Unsupported file type '{mime_type or 'unknown'}'. "
            f"Please upload one of: {', '.join(self.accepted)}."
        )


class ExtractionFailure(CleanOpsError):
    code = "extraction_failure"
    status_code = 502

    def __init__(self, message: str = "Failed to read the document. Please try again."):
        super().__init__(message)


class NoContent(CleanOpsError):
    code = "no_content"
    status_code = 422

    def __init__(self, message: str = "No task list was found in the document."):
        super().__init__(message)


class ExtractionEmpty(CleanOpsError):
    code = "extraction_empty"
    status_code = 422

    def __init__(self, message: str = "No cleaning tasks could be extracted from the document."):
        super().__init__(message)


# --- catalog / assignments -------------------------------------------------

class FrequencyRequired(CleanOpsError):
    code = "frequency_required"
    status_code = 400

    def __init__(self):
        super().__init__(
            "Frequency is required. No frequency provided and the schedule has no suggested frequency."
        )


class NothingCompleted(CleanOpsError):
    code = "nothing_completed"
    status_code = 400

    def __init__(self):
        super().__init__("At least one task must be completed.")


class HasDependentAssignments(CleanOpsError):
    code = "has_dependent_assignments"
    status_code = 409

    def __init__(self, schedule_id: str, count: int):
        self.schedule_id = schedule_id
        self.count = count
        super().__init__(
            f"This schedule is still assigned to {count} room(s) or equipment. "
            "Remove or reassign those assignments first."
        )


class AlreadyAssigned(CleanOpsError):
    code = "already_assigned"
    status_code = 409

    def __init__(self):
        super().__init__("This schedule is already assigned to this target.")


class AssignmentPaused(CleanOpsError):
    code = "assignment_paused"
    status_code = 409

    def __init__(self):
        super().__init__("This assignment is paused. Resume it before recording a completion.")


class ConcurrentUpdate(CleanOpsError):
    code = "concurrent_update"
    status_code = 409

    def __init__(self, entity: str = "record"):
        super().__init__(f"The {entity} was changed by someone else. Please reload and try again.")


class NotFound(CleanOpsError):
    code = "not_found"
    status_code = 404
    entity = "Record"

    def __init__(self, entity_id: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found")


class ScheduleNotFound(NotFound):
    code = "schedule_not_found"
    entity = "Schedule"


class TaskNotFound(NotFound):
    code = "task_not_found"
    entity = "Task"


class AssignmentNotFound(NotFound):
    code = "assignment_not_found"
    entity = "Assignment"


class FileTooLarge(CleanOpsError):
    code = "file_too_large"
    status_code = 413

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"File is too large. Maximum size is {limit // (1024 * 1024)} MB.")
