"""
Structured task extraction from ranked document text.

The JSON task list is the canonical contract: the model is asked for a JSON
array and the answer is parsed strictly, falling back to one task per line
when the answer is not JSON. The labeled ``Title:/Tasks:`` block used for
titled schedules is read by a separate adapter that yields the same
``CandidateTask`` shape.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Union

from pydantic import ValidationError

from cleanops.errors import ExtractionEmpty, NoContent
from cleanops.models import CandidateTask
from llm.llm_client import LLMClient
from llm.schemas import ExtractedTask

logger = logging.getLogger(__name__)

DEFAULT_FREQUENCY = "daily"
DEFAULT_DURATION = "30 minutes"
DEFAULT_TITLE = "Cleaning Schedule"

MAX_TOKENS_PER_CHUNK = 6000
CHARS_PER_TOKEN = 4
MAX_CHUNK_CHARS = MAX_TOKENS_PER_CHUNK * CHARS_PER_TOKEN

JSON_SYSTEM_PROMPT = """You extract cleaning and maintenance tasks from documents.
Return ONLY a JSON array, with no commentary and no Markdown. Each element is an object:
{"taskDescription": "what to do", "frequency": "daily|weekly|bi-weekly|monthly|quarterly|yearly",
 "estimatedDuration": "e.g. 10 minutes", "area": "room or area, or null"}
Rules:
- One element per distinct task; keep the document's wording for the description.
- Use null for a frequency, duration or area the document does not state.
- If the document contains no cleaning tasks, return [].
"""

SCHEDULE_SYSTEM_PROMPT = """You read cleaning and maintenance schedules.
Answer in exactly this plain-text layout and nothing else:
Title: <schedule title>
Type: <kind of schedule, e.g. Routine, Deep Clean>
Frequency: <how often the whole schedule runs, or Not specified>
Area: <room or area, or general>
Tasks:
- <task description> (Frequency: <how often, if stated>)
  Additional notes: <optional notes for the task above>
List every task on its own line starting with "- ". Omit the "(Frequency: ...)" part
when the document does not give one, and omit "Additional notes:" lines when there are none.
"""

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_LINE_BULLET_RE = re.compile(r"^(?:[-*•·▪◦●–]+|\d+[.)])\s*")

_HEADER_RE = re.compile(r"^(title|type|frequency|area)\s*:\s*(.*)$", re.I)
_TASKS_RE = re.compile(r"^tasks\s*:", re.I)
_NOTES_RE = re.compile(r"^\s{2,}additional notes\s*:\s*(.*)$", re.I)
_TASK_FREQUENCY_RE = re.compile(r"\s*\(\s*frequency\s*:\s*([^)]*)\)\s*$", re.I)

_PLACEHOLDERS = {"", "undefined", "null", "none", "n/a"}


@dataclass(frozen=True)
class StructuredList:
    """The model answered with parseable JSON."""

    tasks: List[CandidateTask]
    fallback: bool = field(default=False, init=False)


@dataclass(frozen=True)
class RecoveredFreeText:
    """The model answered with prose; each non-empty line became a task."""

    tasks: List[CandidateTask]
    fallback: bool = field(default=True, init=False)


ParsedExtraction = Union[StructuredList, RecoveredFreeText]


@dataclass
class ScheduleDraft:
    title: str
    detected_frequency: Optional[str]
    tasks: List[CandidateTask]


def clean_json_response(response: str) -> str:
    """Strip Markdown fences and cut to the outermost JSON array or object."""
    text = _FENCE_RE.sub("", response.strip()).strip()
    starts = [i for i in (text.find("["), text.find("{")) if i != -1]
    if not starts:
        return text
    start = min(starts)
    closing = "]" if text[start] == "[" else "}"
    end = text.rfind(closing)
    if end <= start:
        return text[start:]
    return text[start:end + 1]


def _has_json_line(response: str) -> bool:
    """True when some line of the answer opens a JSON array or object."""
    for line in response.splitlines():
        line = _FENCE_RE.sub("", line.strip()).strip()
        if line.startswith(("[", "{")):
            return True
    return False


def _strict_parse(response: str) -> Optional[List[ExtractedTask]]:
    try:
        data = json.loads(clean_json_response(response))
    except ValueError:
        return None

    if isinstance(data, dict):
        data = data.get("tasks")
    if not isinstance(data, list):
        return None

    items = []
    for element in data:
        if isinstance(element, str):
            element = {"taskDescription": element}
        if not isinstance(element, dict):
            continue
        try:
            items.append(ExtractedTask.model_validate(element))
        except ValidationError as e:
            logger.debug(f"Skipping malformed task element: {e}")
    return items


def _promote(item: ExtractedTask) -> Optional[CandidateTask]:
    description = item.task_description.strip()
    if not description:
        return None
    return CandidateTask(
        description=description,
        frequency=item.frequency or DEFAULT_FREQUENCY,
        estimated_duration=item.estimated_duration or DEFAULT_DURATION,
        area=item.area,
        notes=item.notes,
    )


def _recover_lines(response: str) -> List[CandidateTask]:
    tasks = []
    for line in response.splitlines():
        description = _LINE_BULLET_RE.sub("", line.strip()).strip()
        if description:
            tasks.append(
                CandidateTask(
                    description=description,
                    frequency=DEFAULT_FREQUENCY,
                    estimated_duration=DEFAULT_DURATION,
                )
            )
    return tasks


def parse_task_list(response: str) -> ParsedExtraction:
    """Parse a JSON task-list answer. Never raises on malformed input."""
    items = _strict_parse(response or "")
    if items is None:
        logger.warning("Model response was not valid JSON; recovering tasks line by line")
        return RecoveredFreeText(tasks=_recover_lines(response or ""))

    tasks = [t for t in (_promote(item) for item in items) if t is not None]
    if not tasks and not _has_json_line(response or ""):
        # an empty fragment inside prose is not an answer
        logger.warning("Model response held no JSON tasks; recovering tasks line by line")
        return RecoveredFreeText(tasks=_recover_lines(response or ""))
    return StructuredList(tasks=tasks)


def chunk_text(text: str, max_chars: int = MAX_CHUNK_CHARS) -> List[str]:
    """Split on line boundaries into pieces of at most ``max_chars``."""
    chunks: List[str] = []
    current: List[str] = []
    size = 0
    for line in text.split("\n"):
        while len(line) > max_chars:
            if current:
                chunks.append("\n".join(current))
                current, size = [], 0
            chunks.append(line[:max_chars])
            line = line[max_chars:]
        added = len(line) + (1 if current else 0)
        if current and size + added > max_chars:
            chunks.append("\n".join(current))
            current, size = [], 0
            added = len(line)
        current.append(line)
        size += added
    if current and "".join(current).strip():
        chunks.append("\n".join(current))
    return [c for c in chunks if c.strip()]


def _usable(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().strip("*").strip()
    if value.lower() in _PLACEHOLDERS:
        return None
    return value


def parse_labeled_block(text: str) -> ScheduleDraft:
    """Read a ``Title:/Type:/Frequency:/Area:/Tasks:`` block into a draft schedule."""
    headers: dict = {}
    tasks: List[CandidateTask] = []
    in_tasks = False
    last: Optional[int] = None

    for raw in text.splitlines():
        if raw.strip().startswith("```"):
            continue

        if in_tasks:
            notes = _NOTES_RE.match(raw)
            if notes:
                if last is not None and notes.group(1).strip():
                    task = tasks[last]
                    joined = f"{task.notes} {notes.group(1).strip()}" if task.notes else notes.group(1).strip()
                    tasks[last] = task.model_copy(update={"notes": joined})
                continue

            line = raw.strip()
            if not line.startswith("-"):
                continue
            description = line[1:].strip()
            frequency = None
            m = _TASK_FREQUENCY_RE.search(description)
            if m:
                frequency = _usable(m.group(1))
                description = description[: m.start()].strip()
            if not description:
                last = None
                continue
            tasks.append(CandidateTask(description=description, frequency=frequency))
            last = len(tasks) - 1
            continue

        line = re.sub(r"[*#]", "", raw).strip()
        if _TASKS_RE.match(line):
            in_tasks = True
            continue
        header = _HEADER_RE.match(line)
        if header:
            headers.setdefault(header.group(1).lower(), header.group(2))

    if not in_tasks:
        raise NoContent("No task list was found in the extracted schedule.")
    if not tasks:
        raise ExtractionEmpty("The schedule contained no tasks.")

    parts = [_usable(headers.get("title")), _usable(headers.get("type"))]
    area = _usable(headers.get("area"))
    if area and area.lower() != "general":
        parts.append(area)
    title = " - ".join(p for p in parts if p) or DEFAULT_TITLE

    detected = _usable(headers.get("frequency"))
    if detected and detected.lower() == "not specified":
        detected = None

    return ScheduleDraft(title=title, detected_frequency=detected, tasks=tasks)


class StructuredTaskExtractor:
    def __init__(self, llm_client: LLMClient | None = None):
        self.llm = llm_client or LLMClient()

    def extract_tasks(self, ranked_text: str) -> ParsedExtraction:
        """JSON task-list extraction. Long inputs are sent in chunks."""
        if not ranked_text or not ranked_text.strip():
            raise NoContent("The document contained no text to extract tasks from.")

        chunks = chunk_text(ranked_text)
        tasks: List[CandidateTask] = []
        fallback = False
        for i, chunk in enumerate(chunks, start=1):
            response = self.llm.complete(
                JSON_SYSTEM_PROMPT,
                f"Extract the cleaning tasks from this document text:\n\n{chunk}",
            )
            parsed = parse_task_list(response)
            fallback = fallback or parsed.fallback
            tasks.extend(parsed.tasks)
            logger.info(f"Chunk {i}/{len(chunks)}: {len(parsed.tasks)} tasks (fallback={parsed.fallback})")

        if not tasks:
            raise ExtractionEmpty()
        return RecoveredFreeText(tasks=tasks) if fallback else StructuredList(tasks=tasks)

    def extract_schedule(self, ranked_text: str) -> ScheduleDraft:
        """Free-form extraction of a titled schedule through the labeled block."""
        if not ranked_text or not ranked_text.strip():
            raise NoContent("The document contained no text to extract a schedule from.")

        response = self.llm.complete(
            SCHEDULE_SYSTEM_PROMPT,
            f"Extract the cleaning schedule from this document text:\n\n{ranked_text}",
        )
        draft = parse_labeled_block(response)
        logger.info(
            f"Parsed schedule '{draft.title}' with {len(draft.tasks)} tasks "
            f"(detected frequency: {draft.detected_frequency})"
        )
        return draft
