import logging
from typing import Optional

from cleanops.errors import ExtractionFailure
from cleanops.models import ExtractionMode, IngestResult, RawDocument
from extraction.relevance_ranker import RelevanceRanker
from extraction.task_extractor import StructuredTaskExtractor, chunk_text
from extraction.text_extractor import TextExtractor
from llm.llm_client import LLMClient
from scheduling.catalog import ScheduleCatalog

logger = logging.getLogger(__name__)


class DocumentPipeline:
    """
    upload -> text extraction -> relevance ranking -> structured extraction -> catalog.

    Nothing is written to the catalog unless every earlier step succeeded.
    """

    def __init__(
        self,
        catalog: ScheduleCatalog,
        llm_client: Optional[LLMClient] = None,
        text_extractor: Optional[TextExtractor] = None,
        ranker: Optional[RelevanceRanker] = None,
        task_extractor: Optional[StructuredTaskExtractor] = None,
    ):
        llm = llm_client or LLMClient()
        self.catalog = catalog
        self.text_extractor = text_extractor or TextExtractor(llm)
        self.ranker = ranker or RelevanceRanker()
        self.task_extractor = task_extractor or StructuredTaskExtractor(llm)

    def ingest(self, document: RawDocument, mode: ExtractionMode = "schedule") -> IngestResult:
        logger.info(
            f"Ingesting '{document.filename}' ({document.mime_type}, "
            f"{len(document.content)} bytes, mode={mode})"
        )

        # 1. Raw text
        extracted = self.text_extractor.extract(document.content, document.mime_type)
        logger.info(f"Extracted {len(extracted.text)} chars via {extracted.method}")
        if not extracted.text.strip():
            logger.warning(f"No text extracted from '{document.filename}'")
            raise ExtractionFailure("No content could be extracted from the file")

        # 2. Keep only the lines that look like cleaning work
        ranked = self.ranker.rank(extracted.text)
        ranked_text = ranked.text
        logger.info(f"Ranked content: kept {len(ranked.lines)} of {ranked.total_units} units")

        # 3 + 4. Structured extraction, then persist
        if mode == "tasks":
            parsed = self.task_extractor.extract_tasks(ranked_text)
            tasks = self.catalog.create_cleaning_tasks(parsed.tasks)
            logger.info(f"Stored {len(tasks)} tasks (fallback={parsed.fallback})")
            return IngestResult(
                mode=mode,
                extraction_method=extracted.method,
                tasks=tasks,
                ranked_lines=len(ranked.lines),
                chunks=len(chunk_text(ranked_text)),
                fallback_used=parsed.fallback,
            )

        if mode != "schedule":
            raise ValueError(f"Unknown extraction mode: {mode}")

        draft = self.task_extractor.extract_schedule(ranked_text)
        schedule = self.catalog.create_schedule(
            title=draft.title,
            detected_frequency=draft.detected_frequency,
            tasks=draft.tasks,
        )
        logger.info(f"Stored schedule {schedule.id} from '{document.filename}'")
        return IngestResult(
            mode=mode,
            extraction_method=extracted.method,
            schedule=schedule,
            ranked_lines=len(ranked.lines),
        )
