from __future__ import annotations

import json
import logging
from pathlib import Path

from cleanops.models import Assignment, CleaningTask, CompletionLog, Schedule, ScheduleTask
from storage.memory_store import InMemoryStore

logger = logging.getLogger(__name__)

_MODELS = {
    "schedules": Schedule,
    "tasks": ScheduleTask,
    "cleaning_tasks": CleaningTask,
    "assignments": Assignment,
    "completions": CompletionLog,
}


class JsonFileStore(InMemoryStore):
    """In-memory store mirrored to a single JSON file after every transaction."""

    def __init__(self, path: str = "data/cleanops.json"):
        super().__init__()
        self.path = Path(path)
        self.load()

    def load(self) -> None:
        """
        Load all tables from disk. Starts empty if the file is missing or invalid.
        """
        try:
            if not self.path.exists():
                return
            data = json.loads(self.path.read_text(encoding="utf-8"))
            tables = {}
            for name, model in _MODELS.items():
                rows = data.get(name, [])
                tables[name] = {row["id"]: model.model_validate(row) for row in rows}
        except Exception as e:
            logger.warning(f"Could not load store from {self.path}, starting empty: {e}")
            return

        with self._lock:
            for name, table in tables.items():
                setattr(self, name, table)
        logger.info(
            f"Loaded store from {self.path}: {len(self.schedules)} schedules, "
            f"{len(self.assignments)} assignments"
        )

    def save(self) -> None:
        """
        Write all tables to disk.
        """
        with self._lock:
            data = {
                name: [row.model_dump(mode="json") for row in getattr(self, name).values()]
                for name in _MODELS
            }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def _on_commit(self) -> None:
        self.save()
