"""Run history persistence.

This module provides the RunHistory class for persisting and querying
completed cleanup runs in a JSONL file, bounded to the most recent
entries.
"""

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from moleguard.core.paths import get_history_path
from moleguard.models.history import RunHistoryEntry

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 50


class RunHistory:
    """Manages the run history in a JSONL file.

    Storage location: ~/.config/moleguard/history.jsonl

    Each line is a complete JSON object representing a RunHistoryEntry.
    Entries are appended; once the file holds more than ``max_entries``
    lines it is rewritten atomically with only the newest ones.

    Args:
        path: Optional override for the history file.
        max_entries: Number of entries retained.
    """

    def __init__(self, path: Path | None = None, max_entries: int = MAX_HISTORY_ENTRIES) -> None:
        self._path = path if path is not None else get_history_path()
        self._max_entries = max_entries

    @property
    def path(self) -> Path:
        """Path to the history file."""
        return self._path

    def record(self, entry: RunHistoryEntry) -> None:
        """Append a run to the history, trimming the oldest entries.

        Args:
            entry: The history entry to record.

        Raises:
            OSError: If the file cannot be written.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        with self._path.open(mode="a", encoding="utf-8") as f:
            f.write(entry.to_json_line() + "\n")
            f.flush()

        lines = self._read_lines()
        if len(lines) > self._max_entries:
            self._rewrite(lines[-self._max_entries :])

    def entries(self, limit: int | None = None) -> list[RunHistoryEntry]:
        """Read history entries, newest first.

        Args:
            limit: Maximum number of entries to return. If None, returns all.

        Returns:
            List of RunHistoryEntry, newest first. Empty if no file exists.
        """
        entries: list[RunHistoryEntry] = []

        for line_num, line in enumerate(self._read_lines(), start=1):
            try:
                entries.append(RunHistoryEntry.from_json_line(line))
            except (json.JSONDecodeError, KeyError, ValueError) as e:
                logger.warning("Skipping corrupt history line %d: %s", line_num, str(e))

        entries.reverse()
        if limit is not None:
            return entries[:limit]
        return entries

    def _read_lines(self) -> list[str]:
        if not self._path.exists():
            return []
        with self._path.open(encoding="utf-8") as f:
            return [line.strip() for line in f if line.strip()]

    def _rewrite(self, lines: list[str]) -> None:
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                f.write("\n".join(lines) + "\n")
            os.replace(str(tmp_path), str(self._path))
        except OSError:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise
