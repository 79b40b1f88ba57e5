"""Cache scanners: user application, browser and developer-tool caches.

Browser and developer caches live at well-known locations relative to the
home directory. User application caches are the top-level entries of
``~/Library/Caches``, minus the directories the other two scanners claim.
"""

from collections.abc import Iterator
from pathlib import Path

from moleguard.core.config import Thresholds
from moleguard.models.candidate import Category
from moleguard.scanners.base import CategoryScanner, ScanTarget

USER_CACHE_DIR = "Library/Caches"

# (display name, path relative to home)
BROWSER_CACHE_PATHS: tuple[tuple[str, str], ...] = (
    ("Safari", "Library/Caches/com.apple.Safari"),
    ("Chrome", "Library/Caches/Google/Chrome"),
    ("Chrome", "Library/Application Support/Google/Chrome/Default/Cache"),
    ("Firefox", "Library/Caches/Firefox"),
    ("Edge", "Library/Caches/Microsoft Edge"),
    ("Arc", "Library/Caches/company.thebrowser.Browser"),
)

DEVELOPER_CACHE_PATHS: tuple[tuple[str, str], ...] = (
    ("Xcode Derived Data", "Library/Developer/Xcode/DerivedData"),
    ("Xcode Archives", "Library/Developer/Xcode/Archives"),
    ("Xcode Device Support", "Library/Developer/Xcode/iOS DeviceSupport"),
    ("CocoaPods", "Library/Caches/CocoaPods"),
    ("npm Cache", ".npm/_cacache"),
    ("Yarn Cache", "Library/Caches/Yarn"),
    ("pip Cache", "Library/Caches/pip"),
    ("Homebrew Cache", "Library/Caches/Homebrew"),
    ("Gradle Cache", ".gradle/caches"),
    ("Maven Cache", ".m2/repository"),
    ("Cargo Cache", ".cargo/registry"),
)


def _claimed_cache_names() -> frozenset[str]:
    """Top-level ~/Library/Caches entries owned by the fixed-path scanners."""
    names: set[str] = set()
    prefix = USER_CACHE_DIR + "/"
    for _, rel in (*BROWSER_CACHE_PATHS, *DEVELOPER_CACHE_PATHS):
        if rel.startswith(prefix):
            names.add(rel[len(prefix) :].split("/", 1)[0])
    return frozenset(names)


class UserCacheScanner(CategoryScanner):
    """Top-level application caches in ~/Library/Caches."""

    _CLAIMED = _claimed_cache_names()

    @property
    def category(self) -> Category:
        return Category.USER_CACHE

    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        for entry in self.children(root / USER_CACHE_DIR):
            if entry.name in self._CLAIMED:
                continue
            yield ScanTarget(path=entry)


class _FixedPathScanner(CategoryScanner):
    """Scanner over a fixed table of (name, home-relative path) pairs."""

    paths: tuple[tuple[str, str], ...] = ()

    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        for name, rel in self.paths:
            path = root / rel
            if path.exists() and not path.is_symlink():
                yield ScanTarget(path=path, name=name)


class BrowserCacheScanner(_FixedPathScanner):
    """Browser caches (Safari, Chrome, Firefox, Edge, Arc)."""

    paths = BROWSER_CACHE_PATHS

    @property
    def category(self) -> Category:
        return Category.BROWSER_CACHE


class DeveloperCacheScanner(_FixedPathScanner):
    """Developer tool caches (Xcode, package managers, build tools)."""

    paths = DEVELOPER_CACHE_PATHS

    @property
    def category(self) -> Category:
        return Category.DEVELOPER_CACHE
