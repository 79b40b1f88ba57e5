"""Cleanup candidate models.

This module defines the closed set of cleanup categories and the
immutable candidate records produced by category scanners.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Category(str, Enum):
    """Cleanup category, each bound to exactly one scanner.

    Attributes:
        USER_CACHE: Application caches under ~/Library/Caches.
        BROWSER_CACHE: Safari, Chrome, Firefox, Edge and Arc caches.
        DEVELOPER_CACHE: Xcode, package manager and build tool caches.
        SYSTEM_LOG: User log files and diagnostic reports.
        TEMP_FILE: Stale entries in temporary directories.
        TRASH: Items in the user's Trash.
        ORPHANED_APP: Support data of applications no longer installed.
        FAILED_BACKUP: Incomplete Time Machine backups.
    """

    USER_CACHE = "user_cache"
    BROWSER_CACHE = "browser_cache"
    DEVELOPER_CACHE = "developer_cache"
    SYSTEM_LOG = "system_log"
    TEMP_FILE = "temp_file"
    TRASH = "trash"
    ORPHANED_APP = "orphaned_app"
    FAILED_BACKUP = "failed_backup"

    @property
    def display_name(self) -> str:
        """Human-readable category name."""
        return _CATEGORY_INFO[self][0]

    @property
    def description(self) -> str:
        """One-line category description."""
        return _CATEGORY_INFO[self][1]

    @property
    def selected_by_default(self) -> bool:
        """Whether unprotected items of this category are preselected."""
        return _CATEGORY_INFO[self][2]


_CATEGORY_INFO: dict[Category, tuple[str, str, bool]] = {
    Category.USER_CACHE: (
        "User App Cache",
        "Application caches stored in your Library folder",
        True,
    ),
    Category.BROWSER_CACHE: (
        "Browser Cache",
        "Safari, Chrome, Firefox, and other browser caches",
        True,
    ),
    Category.DEVELOPER_CACHE: (
        "Developer Tools",
        "Xcode, npm, pip, and other development caches",
        True,
    ),
    Category.SYSTEM_LOG: ("System Logs", "Log files and diagnostic reports", True),
    Category.TEMP_FILE: ("Temporary Files", "System and application temporary files", True),
    Category.TRASH: ("Trash", "Items in your Trash that can be permanently deleted", False),
    Category.ORPHANED_APP: (
        "Orphaned App Data",
        "Support files left behind by applications that are no longer installed",
        True,
    ),
    Category.FAILED_BACKUP: (
        "Failed Backups",
        "Incomplete Time Machine backups",
        False,
    ),
}


class CategoryStatus(str, Enum):
    """Outcome of scanning one category.

    Attributes:
        OK: Scan completed; zero candidates means nothing to clean.
        DEFERRED: Category postponed for this run (e.g., backup active).
        DENIED: Category withheld entirely by policy.
        TIMED_OUT: A bounded query timed out; result is unknown, not empty.
        UNAVAILABLE: Prerequisites missing; result is unknown, not empty.
    """

    OK = "ok"
    DEFERRED = "deferred"
    DENIED = "denied"
    TIMED_OUT = "timed_out"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class CleanupCandidate:
    """A filesystem path identified as cleanup-eligible, not yet deleted.

    Attributes:
        path: Normalized absolute path.
        category: Category that emitted the candidate.
        size_bytes: Measured size at scan time.
        last_accessed: Modification time, if known.
        protected: True if a whitelist entry covers or lies inside the path.
        protection_reason: Whitelist label explaining the protection.
        name: Display label (e.g., "Xcode Derived Data").
        requires_elevation: Whether deletion needs root privileges.
    """

    path: str
    category: Category
    size_bytes: int
    last_accessed: datetime | None = None
    protected: bool = False
    protection_reason: str | None = None
    name: str | None = None
    requires_elevation: bool = False

    def __post_init__(self) -> None:
        """Validate candidate data after initialization."""
        if not self.path:
            msg = "Candidate path cannot be empty"
            raise ValueError(msg)
        if self.size_bytes < 0:
            msg = f"Candidate size cannot be negative, got {self.size_bytes}"
            raise ValueError(msg)

    @property
    def selected_by_default(self) -> bool:
        """Protected items are never preselected."""
        return not self.protected and self.category.selected_by_default


@dataclass(frozen=True, slots=True)
class SkippedItem:
    """An item a scan could not evaluate (surfaced, never dropped).

    Attributes:
        path: Path that was skipped.
        reason: Why the item was skipped.
    """

    path: str
    reason: str


@dataclass(frozen=True, slots=True)
class CategoryScan:
    """Result of scanning one category for one run.

    Attributes:
        category: Scanned category.
        status: Scan status.
        candidates: Emitted candidates, protected ones included.
        skipped: Items whose evaluation timed out or failed.
        detail: Explanation for non-OK statuses.
    """

    category: Category
    status: CategoryStatus
    candidates: tuple[CleanupCandidate, ...] = ()
    skipped: tuple[SkippedItem, ...] = ()
    detail: str | None = None

    @property
    def total_bytes(self) -> int:
        """Total size of unprotected candidates (the default total)."""
        return sum(c.size_bytes for c in self.candidates if not c.protected)

    @property
    def protected_bytes(self) -> int:
        """Total size of protected candidates, listed but excluded."""
        return sum(c.size_bytes for c in self.candidates if c.protected)

    @property
    def selected(self) -> tuple[CleanupCandidate, ...]:
        """Candidates selected by default."""
        return tuple(c for c in self.candidates if c.selected_by_default)


@dataclass(frozen=True, slots=True)
class ScanSummary:
    """All category scans of one run.

    Attributes:
        scans: Per-category results in scan order.
    """

    scans: tuple[CategoryScan, ...] = field(default_factory=tuple)

    @property
    def candidates(self) -> tuple[CleanupCandidate, ...]:
        """Every emitted candidate across categories."""
        return tuple(c for scan in self.scans for c in scan.candidates)

    @property
    def total_bytes(self) -> int:
        """Default total: unprotected candidates only."""
        return sum(scan.total_bytes for scan in self.scans)

    def get(self, category: Category) -> CategoryScan | None:
        """Return the scan result for a category, if it ran."""
        for scan in self.scans:
            if scan.category == category:
                return scan
        return None
