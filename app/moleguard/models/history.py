"""Run history entry model.

This module defines the record appended to the run-history log after
each completed, non-dry cleanup run.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class RunHistoryEntry:
    """Record of a single completed cleanup run.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        timestamp: When the run finished (ISO 8601 format with timezone).
        freed_bytes: Total bytes freed by the run.
        items_cleaned: Number of candidates deleted.
        categories: Display names of categories that had items cleaned.
        duration_seconds: Wall-clock duration of the execution phase.
        errors: Number of recorded per-candidate errors.
    """

    id: str
    timestamp: str
    freed_bytes: int
    items_cleaned: int
    categories: tuple[str, ...]
    duration_seconds: float
    errors: int = 0

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "History entry ID cannot be empty"
            raise ValueError(msg)
        if not self.timestamp:
            msg = "Timestamp cannot be empty"
            raise ValueError(msg)
        if self.freed_bytes < 0 or self.items_cleaned < 0:
            msg = "Freed bytes and item count cannot be negative"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "freed_bytes": self.freed_bytes,
            "items_cleaned": self.items_cleaned,
            "categories": list(self.categories),
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunHistoryEntry":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If values are invalid.
        """
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            freed_bytes=int(data["freed_bytes"]),
            items_cleaned=int(data["items_cleaned"]),
            categories=tuple(data.get("categories", ())),
            duration_seconds=float(data.get("duration_seconds", 0.0)),
            errors=int(data.get("errors", 0)),
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> "RunHistoryEntry":
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls.from_dict(json.loads(line.strip()))


def create_history_entry(
    freed_bytes: int,
    items_cleaned: int,
    categories: list[str],
    duration_seconds: float,
    errors: int = 0,
) -> RunHistoryEntry:
    """Factory function to create a new RunHistoryEntry.

    Automatically generates a unique ID and current timestamp.
    """
    return RunHistoryEntry(
        id=uuid.uuid4().hex[:12],
        timestamp=datetime.now(UTC).isoformat(),
        freed_bytes=freed_bytes,
        items_cleaned=items_cleaned,
        categories=tuple(categories),
        duration_seconds=duration_seconds,
        errors=errors,
    )
