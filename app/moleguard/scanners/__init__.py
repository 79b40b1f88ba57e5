"""Category scanners.

Each Category is bound to exactly one scanner class.
"""

from moleguard.models.candidate import Category
from moleguard.scanners.backups import FailedBackupScanner
from moleguard.scanners.base import CategoryScanner, CategoryUnavailable, ScanTarget
from moleguard.scanners.caches import BrowserCacheScanner, DeveloperCacheScanner, UserCacheScanner
from moleguard.scanners.orphans import OrphanedAppScanner
from moleguard.scanners.system import SystemLogScanner, TempFileScanner, TrashScanner

SCANNERS: dict[Category, type[CategoryScanner]] = {
    Category.USER_CACHE: UserCacheScanner,
    Category.BROWSER_CACHE: BrowserCacheScanner,
    Category.DEVELOPER_CACHE: DeveloperCacheScanner,
    Category.SYSTEM_LOG: SystemLogScanner,
    Category.TEMP_FILE: TempFileScanner,
    Category.TRASH: TrashScanner,
    Category.ORPHANED_APP: OrphanedAppScanner,
    Category.FAILED_BACKUP: FailedBackupScanner,
}

__all__ = [
    "SCANNERS",
    "BrowserCacheScanner",
    "CategoryScanner",
    "CategoryUnavailable",
    "DeveloperCacheScanner",
    "FailedBackupScanner",
    "OrphanedAppScanner",
    "ScanTarget",
    "SystemLogScanner",
    "TempFileScanner",
    "TrashScanner",
    "UserCacheScanner",
]
