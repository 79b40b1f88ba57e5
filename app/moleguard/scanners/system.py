"""Scanners for logs, temporary files and the Trash."""

import logging
import os
import tempfile
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

from moleguard.core.config import Thresholds
from moleguard.models.candidate import Category, CleanupCandidate
from moleguard.scanners.base import CategoryScanner, ScanTarget
from moleguard.utils.fs import last_touched

logger = logging.getLogger(__name__)

LOG_PATHS: tuple[tuple[str, str], ...] = (
    ("System Logs", "Library/Logs"),
    ("Diagnostic Reports", "Library/Logs/DiagnosticReports"),
    ("Crash Reports", "Library/Logs/CrashReporter"),
)

SYSTEM_TEMP_DIR = Path("/private/var/tmp")
TRASH_DIR = ".Trash"


class SystemLogScanner(CategoryScanner):
    """User log directories and diagnostic reports.

    Log directories are containers: their entries are the candidates, each
    labelled with the directory's display name.
    """

    @property
    def category(self) -> Category:
        return Category.SYSTEM_LOG

    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        dedicated = {root / rel for _, rel in LOG_PATHS}
        for name, rel in LOG_PATHS:
            directory = root / rel
            if directory.is_symlink():
                continue
            for entry in self.children(directory):
                # Listed with their own label below
                if entry in dedicated:
                    continue
                yield ScanTarget(path=entry, name=f"{name}: {entry.name}")


class TempFileScanner(CategoryScanner):
    """Stale entries in the user and system temporary directories.

    Only entries untouched for ``temp_min_age_days`` are considered, so
    files of running programs are left alone. Entries owned by another
    user need elevated removal.

    Args:
        temp_dirs: Override of the temporary directories to scan.
        **kwargs: Passed to CategoryScanner.
    """

    def __init__(self, *, temp_dirs: tuple[Path, ...] | None = None, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        if temp_dirs is None:
            # $TMPDIR sits behind the /var -> /private/var link on macOS
            temp_dirs = (Path(os.path.realpath(tempfile.gettempdir())), SYSTEM_TEMP_DIR)
        self._temp_dirs = temp_dirs
        self._explicit_root = False

    @property
    def category(self) -> Category:
        return Category.TEMP_FILE

    def scan(
        self,
        root: Path | None = None,
        thresholds: Thresholds | None = None,
    ) -> Iterator[CleanupCandidate]:
        """Scan the temp directories, or only ``root`` when one is given."""
        self._explicit_root = root is not None
        return super().scan(root, thresholds)

    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        dirs = (root,) if self._explicit_root else self._temp_dirs
        cutoff = datetime.now(UTC) - timedelta(days=thresholds.temp_min_age_days)
        uid = os.getuid()

        for directory in dirs:
            for entry in self.children(directory):
                touched = last_touched(entry)
                if touched is None or touched > cutoff:
                    continue
                try:
                    owner = entry.lstat().st_uid
                except OSError:
                    continue
                yield ScanTarget(
                    path=entry,
                    name=f"Temp: {entry.name}",
                    requires_elevation=owner != uid,
                )


class TrashScanner(CategoryScanner):
    """Items in the user's Trash.

    Each item is a candidate; the Trash directory itself is never removed.
    """

    @property
    def category(self) -> Category:
        return Category.TRASH

    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        for entry in self.children(root / TRASH_DIR):
            yield ScanTarget(path=entry, name=f"Trash: {entry.name}")
