from datetime import datetime
from typing import Callable, List, Optional

from cleanops.models import (
    Assignment,
    AssignmentView,
    ExtractionMode,
    Frequency,
    IngestResult,
    RawDocument,
    TargetKind,
)
from extraction.pipeline import DocumentPipeline
from llm.llm_client import LLMClient
from scheduling.catalog import ScheduleCatalog
from scheduling.scheduler import AssignmentEngine
from storage.memory_store import InMemoryStore
from storage.store import Store


class BackendAPI:
    """Central orchestration component of CleanOps AI."""

    def __init__(
        self,
        store: Optional[Store] = None,
        llm_client: Optional[LLMClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store or InMemoryStore()
        self.catalog = ScheduleCatalog(self.store)
        self.engine = AssignmentEngine(self.store, clock=clock)
        self.pipeline = DocumentPipeline(self.catalog, llm_client=llm_client)

    def ingest_document(
        self,
        buffer: bytes,
        mime_type: str,
        filename: str = "",
        mode: ExtractionMode = "schedule",
    ) -> IngestResult:
        """Turn an uploaded file into a stored schedule (or flat task list)."""
        document = RawDocument(content=buffer, mime_type=mime_type, filename=filename)
        return self.pipeline.ingest(document, mode=mode)

    def assign_schedule(
        self,
        schedule_id: str,
        target_id: str,
        frequency: Optional[Frequency] = None,
        target_kind: TargetKind = TargetKind.ROOM,
    ) -> Assignment:
        return self.engine.assign(schedule_id, target_id, frequency, target_kind=target_kind)

    def complete_assignment(
        self,
        assignment_id: str,
        completed_task_ids: List[str],
        notes: Optional[str] = None,
    ) -> Assignment:
        return self.engine.complete(assignment_id, completed_task_ids, notes)

    def get_assignments_for_target(self, target_id: str) -> List[AssignmentView]:
        return self.engine.get_assignments_for_target(target_id)
