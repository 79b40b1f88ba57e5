"""User-protected path prefixes.

The whitelist is stored as JSON Lines in the user's config directory.
The file is append-only: adding an entry appends an ``add`` record and
removing one appends a ``remove`` record referencing the entry ID.
Loading replays the records in order.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from moleguard.core.errors import WhitelistError
from moleguard.core.paths import get_whitelist_path
from moleguard.safety.guard import normalize_path
from moleguard.utils.fs import is_within

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WhitelistEntry:
    """A user-protected path prefix.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        path: Normalized absolute path prefix.
        label: Human-readable label.
        created_at: Creation time (ISO 8601 format with timezone).
    """

    id: str
    path: str
    label: str
    created_at: str

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "Whitelist entry ID cannot be empty"
            raise ValueError(msg)
        if not self.path:
            msg = "Whitelist path cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "path": self.path,
            "label": self.label,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WhitelistEntry":
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If values are invalid.
        """
        return cls(
            id=data["id"],
            path=data["path"],
            label=data.get("label", ""),
            created_at=data["created_at"],
        )

    def covers(self, path: str) -> bool:
        """Check whether a normalized path falls under this prefix."""
        return is_within(path, self.path)


class WhitelistStore:
    """Persisted set of user-protected path prefixes.

    Storage location: ~/.config/moleguard/whitelist.jsonl

    Read-heavy: entries are loaded once with :meth:`load` and kept in
    memory. Runs are single-process batches, so no writer locking is done.

    Args:
        path: Optional override for the whitelist file.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path if path is not None else get_whitelist_path()
        self._entries: dict[str, WhitelistEntry] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        """Path to the whitelist file."""
        return self._path

    @property
    def loaded(self) -> bool:
        """Whether :meth:`load` has completed."""
        return self._loaded

    def load(self) -> "WhitelistStore":
        """Replay the whitelist file into memory.

        A missing file is an empty whitelist. Corrupt lines are skipped
        with a warning.

        Returns:
            This store, for chaining.

        Raises:
            WhitelistError: If the file exists but cannot be read.
        """
        entries: dict[str, WhitelistEntry] = {}

        if self._path.exists():
            try:
                with self._path.open(encoding="utf-8") as f:
                    for line_num, line in enumerate(f, start=1):
                        line = line.strip()
                        if not line:
                            continue
                        try:
                            self._apply(entries, json.loads(line))
                        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
                            logger.warning("Skipping corrupt whitelist line %d: %s", line_num, e)
            except OSError as e:
                msg = f"Cannot read whitelist {self._path}: {e}"
                raise WhitelistError(msg) from e

        self._entries = entries
        self._loaded = True
        return self

    def add(self, path: str | Path, label: str = "") -> WhitelistEntry:
        """Protect a path prefix.

        Adding a prefix that is already present returns the existing entry.

        Args:
            path: Path prefix to protect (``~`` is expanded).
            label: Human-readable label.

        Returns:
            The new or existing WhitelistEntry.

        Raises:
            ValueError: If the path is empty.
            WhitelistError: If the record cannot be written.
        """
        raw = str(path).strip()
        if not raw:
            msg = "Whitelist path cannot be empty"
            raise ValueError(msg)
        normalized = normalize_path(Path(raw).expanduser())

        for entry in self._entries.values():
            if entry.path == normalized:
                return entry

        entry = WhitelistEntry(
            id=uuid.uuid4().hex[:12],
            path=normalized,
            label=label or Path(normalized).name,
            created_at=datetime.now(UTC).isoformat(),
        )
        self._append({"op": "add", **entry.to_dict()})
        self._entries[entry.id] = entry
        logger.info("Whitelisted %s", normalized)
        return entry

    def remove(self, entry_id: str) -> bool:
        """Remove a whitelist entry by ID.

        Args:
            entry_id: ID of the entry to remove.

        Returns:
            True if the entry existed and was removed.

        Raises:
            WhitelistError: If the record cannot be written.
        """
        if entry_id not in self._entries:
            return False
        self._append({"op": "remove", "id": entry_id})
        del self._entries[entry_id]
        return True

    def list(self) -> list[WhitelistEntry]:
        """Return all entries, oldest first."""
        return sorted(self._entries.values(), key=lambda e: e.created_at)

    def match(self, path: str) -> WhitelistEntry | None:
        """Return the most specific entry covering a path.

        Args:
            path: Absolute path to check (normalized before matching).

        Returns:
            The longest matching entry, or None.
        """
        normalized = normalize_path(path)
        matches = [e for e in self._entries.values() if e.covers(normalized)]
        if not matches:
            return None
        return max(matches, key=lambda e: len(e.path))

    def contains(self, path: str) -> bool:
        """Check whether any entry's prefix covers a path."""
        return self.match(path) is not None

    def overlaps(self, path: str) -> WhitelistEntry | None:
        """Return an entry that deleting ``path`` would destroy.

        That is the most specific entry covering the path or, failing
        that, the shallowest entry lying inside it.

        Args:
            path: Absolute path to check (normalized before matching).

        Returns:
            The overlapping entry, or None.
        """
        entry = self.match(path)
        if entry is not None:
            return entry
        normalized = normalize_path(path)
        inside = [e for e in self._entries.values() if is_within(e.path, normalized)]
        if not inside:
            return None
        return min(inside, key=lambda e: len(e.path))

    def __len__(self) -> int:
        return len(self._entries)

    def _append(self, record: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open(mode="a", encoding="utf-8") as f:
                f.write(json.dumps(record, separators=(",", ":")) + "\n")
                f.flush()
        except OSError as e:
            msg = f"Cannot write whitelist {self._path}: {e}"
            raise WhitelistError(msg) from e

    @staticmethod
    def _apply(entries: dict[str, WhitelistEntry], record: dict[str, Any]) -> None:
        op = record.get("op", "add")
        if op == "add":
            entry = WhitelistEntry.from_dict(record)
            entries[entry.id] = entry
        elif op == "remove":
            entries.pop(record["id"], None)
        else:
            msg = f"Unknown whitelist op: {op}"
            raise ValueError(msg)
