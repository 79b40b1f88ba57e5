"""Scanner for support data left behind by uninstalled applications.

A directory in ``~/Library/Application Support`` is orphaned only if BOTH
hold:

1. no installed application bundle matches it (by bundle identifier,
   bundle name, or a component of a reverse-DNS identifier), and
2. it has not been modified for ``orphan_min_age_days``.

Vendor directories are never considered: one vendor folder is often
shared by several products, and removing it because one product is gone
breaks the others. If the application locations cannot be read, or cannot
be enumerated in time, nothing is reported as orphaned.
"""

import logging
import plistlib
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

from moleguard.core.config import Thresholds
from moleguard.core.errors import ScanTimeout
from moleguard.models.candidate import Category
from moleguard.scanners.base import CategoryScanner, CategoryUnavailable, ScanTarget
from moleguard.utils.fs import last_touched, list_children

logger = logging.getLogger(__name__)

SUPPORT_DIR = "Library/Application Support"

# Standard installed-application locations. Patterns starting with ~ are
# expanded to the scanned home directory.
APPLICATION_DIRS: tuple[str, ...] = (
    "/Applications",
    "/Applications/Utilities",
    "/System/Applications",
    "/System/Applications/Utilities",
    "~/Applications",
)

# Vendor identifiers excluded from orphan detection unconditionally,
# plus OS-owned support folders that carry no vendor prefix.
VENDOR_WHITELIST: tuple[str, ...] = (
    # Reverse-DNS vendor prefixes
    "com.apple",
    "com.microsoft",
    "com.google",
    "com.adobe",
    "org.mozilla",
    "com.jetbrains",
    "com.oracle",
    "com.docker",
    "com.vmware",
    "com.parallels",
    "com.valvesoftware",
    # Vendor folder names
    "Apple",
    "Microsoft",
    "Google",
    "Adobe",
    "JetBrains",
    "Mozilla",
    "Oracle",
    "Docker",
    "VMware",
    "Parallels",
    "Steam",
    # OS-owned folders
    "AddressBook",
    "CallHistoryDB",
    "CallHistoryTransactions",
    "CloudDocs",
    "CrashReporter",
    "DiskImages",
    "Dock",
    "FileProvider",
    "iCloud",
    "Knowledge",
    "MobileSync",
    "SyncServices",
    "icdd",
    "networkserviceproxy",
)


def is_vendor_whitelisted(name: str) -> bool:
    """Check a support-directory name against the vendor whitelist.

    Matches the identifier itself and anything nested beneath it
    (``com.apple`` covers ``com.apple.Music``; ``Adobe`` covers
    ``Adobe Photoshop``).

    Args:
        name: Directory name.

    Returns:
        True if the name belongs to a whitelisted vendor.
    """
    lowered = name.lower()
    for vendor in VENDOR_WHITELIST:
        v = vendor.lower()
        if lowered == v or lowered.startswith(v + ".") or lowered.startswith(v + " "):
            return True
    return False


def _compact(value: str) -> str:
    return value.lower().replace(" ", "").replace("-", "").replace("_", "")


@dataclass(slots=True)
class InstalledApps:
    """Index of installed application bundles.

    Attributes:
        bundle_ids: Lowercased CFBundleIdentifier values.
        names: Compacted bundle names (lowercase, no spaces or dashes).
    """

    bundle_ids: set[str] = field(default_factory=set)
    names: set[str] = field(default_factory=set)

    def matches(self, name: str) -> bool:
        """Check whether a support-directory name belongs to an installed app.

        Matches, in order: exact bundle identifier, compacted bundle name,
        and a component of a reverse-DNS identifier (``firefox`` matches
        ``org.mozilla.firefox``).
        """
        lowered = name.lower()
        if lowered in self.bundle_ids:
            return True

        compact = _compact(name)
        if compact in self.names:
            return True

        for bundle_id in self.bundle_ids:
            components = [_compact(c) for c in bundle_id.split(".")[1:]]
            if compact in components:
                return True

        return False


class OrphanedAppScanner(CategoryScanner):
    """Support data of applications that are no longer installed.

    Args:
        app_dirs: Override of the installed-application locations.
        now: Clock override used for the age check.
        **kwargs: Passed to CategoryScanner.
    """

    def __init__(
        self,
        *,
        app_dirs: tuple[Path, ...] | None = None,
        now: datetime | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        if app_dirs is None:
            home = str(self._home)
            app_dirs = tuple(
                Path(home + d[1:]) if d.startswith("~") else Path(d) for d in APPLICATION_DIRS
            )
        self._app_dirs = app_dirs
        self._now = now

    @property
    def category(self) -> Category:
        return Category.ORPHANED_APP

    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        support_dir = root / SUPPORT_DIR
        entries = self.children(support_dir)
        if not entries:
            return

        installed = self.installed_apps()
        now = self._now if self._now is not None else datetime.now(UTC)
        cutoff = now - timedelta(days=thresholds.orphan_min_age_days)

        for entry in entries:
            if is_vendor_whitelisted(entry.name):
                continue
            if not entry.is_dir() or entry.is_symlink():
                continue
            if installed.matches(entry.name):
                continue

            touched = last_touched(entry)
            if touched is None or touched > cutoff:
                continue

            yield ScanTarget(path=entry, name=f"{entry.name} (orphaned)")

    def installed_apps(self) -> InstalledApps:
        """Index installed application bundles under the enumeration deadline.

        Returns:
            InstalledApps index.

        Raises:
            CategoryUnavailable: If no application location exists, or an
                existing one cannot be read.
            ScanTimeout: If enumeration exceeds its deadline.
        """
        existing = [d for d in self._app_dirs if d.is_dir()]
        if not existing:
            msg = "no application directories found"
            raise CategoryUnavailable(msg)

        budget = self._timeouts.enumeration_seconds
        deadline = time.monotonic() + budget
        index = InstalledApps()

        for directory in existing:
            try:
                bundles = list_children(directory, timeout=budget)
            except FileNotFoundError:
                continue
            except PermissionError as e:
                # An unreadable location could hide any installed app
                msg = f"cannot read application directory {directory}: {e.strerror}"
                raise CategoryUnavailable(msg) from e
            for bundle in bundles:
                if time.monotonic() > deadline:
                    raise ScanTimeout(str(directory), budget)
                if bundle.suffix != ".app":
                    continue
                index.names.add(_compact(bundle.stem))
                bundle_id = _read_bundle_id(bundle)
                if bundle_id:
                    index.bundle_ids.add(bundle_id.lower())

        logger.debug(
            "Indexed %d bundle ids, %d app names", len(index.bundle_ids), len(index.names)
        )
        return index


def _read_bundle_id(bundle: Path) -> str | None:
    """Read CFBundleIdentifier from a bundle's Info.plist."""
    info = bundle / "Contents" / "Info.plist"
    try:
        with info.open("rb") as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError):
        return None
    value = data.get("CFBundleIdentifier") if isinstance(data, dict) else None
    return value if isinstance(value, str) else None
