"""
Transcription history stored in SQLite.

Each completed run is one ``history`` row plus one ``prompt_step`` row per
enhancement step, written in a single transaction.
"""

import math
import secrets
import sqlite3
import time
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ...utils.logger import get_logger
from ..errors import HistoryError
from .config import HISTORY_DB_NAME, HISTORY_PAGE_SIZE
from .settings import get_data_dir

logger = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS history (
    id TEXT PRIMARY KEY,
    timestamp INTEGER NOT NULL,
    originalText TEXT NOT NULL,
    finalText TEXT
);
CREATE INDEX IF NOT EXISTS idx_history_timestamp ON history (timestamp);
CREATE TABLE IF NOT EXISTS prompt_step (
    historyId TEXT NOT NULL REFERENCES history (id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    stepId TEXT NOT NULL,
    stepName TEXT NOT NULL,
    renderedPrompt TEXT NOT NULL,
    outputText TEXT NOT NULL,
    PRIMARY KEY (historyId, position)
);
"""


class HistoryStep(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    step_id: str
    step_name: str
    rendered_prompt: str
    output_text: str


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: int  # epoch milliseconds
    original_text: str
    final_text: Optional[str] = None
    steps: List[HistoryStep] = Field(default_factory=list)

    @classmethod
    def create(
        cls,
        original_text: str,
        final_text: Optional[str],
        steps: Iterable = (),
    ) -> "HistoryEntry":
        timestamp = int(time.time() * 1000)
        return cls(
            id=f"{timestamp}-{secrets.token_hex(4)}",
            timestamp=timestamp,
            original_text=original_text,
            final_text=final_text,
            steps=[HistoryStep.model_validate(step) for step in steps],
        )


@dataclass(frozen=True)
class HistoryPage:
    entries: List[HistoryEntry]
    total_entries: int
    total_pages: int
    current_page: int


class HistoryRecorder:

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else get_data_dir() / HISTORY_DB_NAME
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            if not self._initialized:
                conn.executescript(_SCHEMA)
                self._initialized = True
        except sqlite3.Error as e:
            if conn is not None:
                conn.close()
            raise HistoryError(f"Could not open history database {self.db_path}: {e}") from e
        return conn

    def record(self, entry: HistoryEntry) -> None:
        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    "INSERT INTO history (id, timestamp, originalText, finalText) "
                    "VALUES (?, ?, ?, ?)",
                    (entry.id, entry.timestamp, entry.original_text, entry.final_text),
                )
                conn.executemany(
                    "INSERT INTO prompt_step "
                    "(historyId, position, stepId, stepName, renderedPrompt, outputText) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    [
                        (
                            entry.id,
                            position,
                            step.step_id,
                            step.step_name,
                            step.rendered_prompt,
                            step.output_text,
                        )
                        for position, step in enumerate(entry.steps)
                    ],
                )
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to record history entry {entry.id}: {e}") from e

        logger.info(f"Recorded history entry {entry.id} with {len(entry.steps)} step(s)")

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(
                    "SELECT * FROM history WHERE id = ?", (entry_id,)
                ).fetchone()
                if row is None:
                    return None
                return self._load_entry(conn, row)
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to read history entry {entry_id}: {e}") from e

    def list(self, page: int = 1, page_size: int = HISTORY_PAGE_SIZE) -> HistoryPage:
        """Return one page of entries, newest first. ``page`` is clamped to the valid range."""
        if page_size < 1:
            raise ValueError("page_size must be positive")

        try:
            with closing(self._connect()) as conn:
                total = conn.execute("SELECT COUNT(*) FROM history").fetchone()[0]
                total_pages = max(1, math.ceil(total / page_size))
                current = min(max(1, page), total_pages)

                rows = conn.execute(
                    "SELECT * FROM history ORDER BY timestamp DESC, id DESC "
                    "LIMIT ? OFFSET ?",
                    (page_size, (current - 1) * page_size),
                ).fetchall()
                entries = [self._load_entry(conn, row) for row in rows]
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to list history: {e}") from e

        return HistoryPage(
            entries=entries,
            total_entries=total,
            total_pages=total_pages,
            current_page=current,
        )

    def delete(self, entry_id: str) -> bool:
        try:
            with closing(self._connect()) as conn, conn:
                cursor = conn.execute("DELETE FROM history WHERE id = ?", (entry_id,))
                deleted = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to delete history entry {entry_id}: {e}") from e

        if deleted:
            logger.info(f"Deleted history entry {entry_id}")
        return deleted

    def clear(self) -> int:
        try:
            with closing(self._connect()) as conn, conn:
                cursor = conn.execute("DELETE FROM history")
                count = cursor.rowcount
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to clear history: {e}") from e

        logger.info(f"Cleared {count} history entries")
        return count

    def count_steps(self) -> int:
        try:
            with closing(self._connect()) as conn:
                return conn.execute("SELECT COUNT(*) FROM prompt_step").fetchone()[0]
        except sqlite3.Error as e:
            raise HistoryError(f"Failed to count prompt steps: {e}") from e

    @staticmethod
    def _load_entry(conn: sqlite3.Connection, row: sqlite3.Row) -> HistoryEntry:
        step_rows = conn.execute(
            "SELECT stepId, stepName, renderedPrompt, outputText FROM prompt_step "
            "WHERE historyId = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        return HistoryEntry(
            id=row["id"],
            timestamp=row["timestamp"],
            original_text=row["originalText"],
            final_text=row["finalText"],
            steps=[
                HistoryStep(
                    step_id=s["stepId"],
                    step_name=s["stepName"],
                    rendered_prompt=s["renderedPrompt"],
                    output_text=s["outputText"],
                )
                for s in step_rows
            ],
        )
