"""On-disk copy of the compensation log, for rollback after a crash."""

import logging
import os
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from edit_guard.models import ExecutionHistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_JOURNAL_NAME = ".edit-guard-journal.json"


class JournalRecord(BaseModel):
    model_config = ConfigDict(frozen=False)

    goal: str
    cwd: str
    history: list[ExecutionHistoryEntry] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=datetime.now)


class HistoryJournal:
    """Persists the history of the running task as JSON.

    The file exists only while a task is in flight. Finding one at startup
    means the previous process died before finishing or rolling back.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)

    @classmethod
    def in_directory(cls, cwd: str) -> "HistoryJournal":
        return cls(str(Path(cwd) / DEFAULT_JOURNAL_NAME))

    def save(self, goal: str, cwd: str, history: list[ExecutionHistoryEntry]) -> None:
        record = JournalRecord(goal=goal, cwd=cwd, history=history)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def load(self) -> JournalRecord | None:
        """Return the stored record, or None if there is no journal."""
        try:
            payload = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return JournalRecord.model_validate_json(payload)

    def exists(self) -> bool:
        return self.path.exists()

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.debug("Cleared journal %s", self.path)
