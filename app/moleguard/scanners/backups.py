"""Scanner for incomplete Time Machine backups.

Interrupted backups leave ``*.inProgress`` / ``*.interrupted`` directories
inside ``Backups.backupdb`` on the backup volume. They are only safe to
remove while no backup is running; PolicyGate defers this category
otherwise.
"""

from collections.abc import Iterator
from pathlib import Path

from moleguard.core.config import Thresholds
from moleguard.models.candidate import Category
from moleguard.scanners.base import CategoryScanner, ScanTarget

VOLUMES_DIR = Path("/Volumes")
BACKUP_DB = "Backups.backupdb"
FAILED_SUFFIXES: tuple[str, ...] = (".inProgress", ".interrupted")


class FailedBackupScanner(CategoryScanner):
    """Incomplete backups on mounted Time Machine volumes.

    The scan root is the volumes directory (``/Volumes`` by default).
    """

    @property
    def category(self) -> Category:
        return Category.FAILED_BACKUP

    def default_root(self) -> Path:
        return VOLUMES_DIR

    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        for volume in self.children(root):
            backup_db = volume / BACKUP_DB
            if volume.is_symlink() or not backup_db.is_dir():
                continue
            for machine in self.children(backup_db):
                for entry in self.children(machine):
                    if entry.name.endswith(FAILED_SUFFIXES):
                        yield ScanTarget(
                            path=entry,
                            name=f"{machine.name}: {entry.name}",
                            requires_elevation=True,
                        )
