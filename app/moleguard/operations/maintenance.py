"""Configuration maintenance: broken preferences and login items.

A preference file is broken when the plist validator rejects it. A login
item is broken when the program its launch agent starts no longer exists.
Apple's own files are never touched. A validator that cannot run gives no
verdict, so the file is left alone. A directory that cannot be read in time
is reported as skipped rather than healthy.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from moleguard.core.config import Timeouts
from moleguard.core.errors import ScanTimeout
from moleguard.models.candidate import SkippedItem
from moleguard.models.result import OperationResult, Outcome
from moleguard.operations.remover import SafeRemover
from moleguard.system.facts import PlistValidity, SystemFacts
from moleguard.utils.fs import list_children

logger = logging.getLogger(__name__)

PREFERENCES_DIR = "Library/Preferences"
BYHOST_DIR = "Library/Preferences/ByHost"
LAUNCH_AGENTS_DIR = "Library/LaunchAgents"

_SYSTEM_PREFIXES: tuple[str, ...] = ("com.apple.", ".GlobalPreferences")


class BrokenKind(str, Enum):
    """Kind of broken configuration file."""

    PREFERENCE = "preference"
    LOGIN_ITEM = "login_item"


@dataclass(frozen=True, slots=True)
class BrokenItem:
    """A configuration file found broken.

    Attributes:
        path: Absolute path of the file.
        kind: Preference or login item.
        reason: Why the file counts as broken.
    """

    path: str
    kind: BrokenKind
    reason: str


@dataclass(frozen=True, slots=True)
class MaintenanceIssue:
    """One class of maintenance issue, as reported to front-ends.

    Attributes:
        identifier: Stable machine identifier.
        display_name: Short human-readable title.
        description: One-line summary including the count.
        auto_fix_safe: Whether the fix may run without confirmation.
    """

    identifier: str
    display_name: str
    description: str
    auto_fix_safe: bool = False

    def to_record(self) -> str:
        """Serialize as a pipe-delimited issue record."""
        flag = "true" if self.auto_fix_safe else "false"
        return f"{self.identifier}|{self.display_name}|{self.description}|{flag}"

    @classmethod
    def from_record(cls, line: str) -> "MaintenanceIssue":
        """Parse a pipe-delimited issue record.

        Raises:
            ValueError: If the record does not have four fields.
        """
        parts = line.strip().split("|")
        if len(parts) != 4:
            msg = f"Issue record must have 4 fields, got {len(parts)}: {line!r}"
            raise ValueError(msg)
        identifier, display_name, description, flag = parts
        return cls(identifier, display_name, description, flag.lower() == "true")


def _is_system_file(name: str, *, allow_loginwindow: bool = False) -> bool:
    if name.startswith(_SYSTEM_PREFIXES):
        return True
    return not allow_loginwindow and name == "loginwindow.plist"


class ConfigMaintenance:
    """Detects and repairs broken preference files and login items.

    Args:
        facts: OS facts provider used for plist validation and unloading.
        home: Home directory override.
        remover: SafeRemover used for repairs (dry-run aware).
        timeouts: Bounds on directory enumeration.
    """

    def __init__(
        self,
        facts: SystemFacts,
        *,
        home: Path | None = None,
        remover: SafeRemover | None = None,
        timeouts: Timeouts | None = None,
    ) -> None:
        self._facts = facts
        self._home = home if home is not None else Path.home()
        self._remover = remover if remover is not None else SafeRemover()
        self._timeouts = timeouts if timeouts is not None else Timeouts()
        self._skipped: list[SkippedItem] = []

    def find_broken_preferences(self) -> list[BrokenItem]:
        """Find preference files the plist validator rejects.

        Checks the top level of ``~/Library/Preferences`` and ``ByHost``.
        """
        broken: list[BrokenItem] = []
        for rel, allow_loginwindow in ((PREFERENCES_DIR, False), (BYHOST_DIR, True)):
            for plist in self._plists(self._home / rel):
                if _is_system_file(plist.name, allow_loginwindow=allow_loginwindow):
                    continue
                if self._facts.validate_plist(str(plist)) == PlistValidity.INVALID:
                    broken.append(BrokenItem(str(plist), BrokenKind.PREFERENCE, "invalid plist"))
        return broken

    def find_broken_login_items(self) -> list[BrokenItem]:
        """Find launch agents whose program no longer exists."""
        broken: list[BrokenItem] = []
        for plist in self._plists(self._home / LAUNCH_AGENTS_DIR):
            if plist.name.startswith("com.apple."):
                continue
            program = self._facts.plist_program(str(plist))
            if not program or os.path.exists(program):
                continue
            broken.append(
                BrokenItem(str(plist), BrokenKind.LOGIN_ITEM, f"missing program: {program}")
            )
        return broken

    @property
    def skipped(self) -> list[SkippedItem]:
        """Directories the last ``find_broken`` could not read."""
        return list(self._skipped)

    def find_broken(self) -> list[BrokenItem]:
        """Find all broken preferences and login items.

        Unreadable or slow directories are recorded in :attr:`skipped`.
        """
        self._skipped = []
        return [*self.find_broken_preferences(), *self.find_broken_login_items()]

    def check(self) -> list[MaintenanceIssue]:
        """Report issue classes found, without changing anything.

        A directory that could not be checked is reported as its own issue,
        so an incomplete check never reads as a healthy one.

        Returns:
            One MaintenanceIssue per issue class found (empty if healthy).
        """
        total = len(self.find_broken())
        issues: list[MaintenanceIssue] = []
        if total:
            issues.append(
                MaintenanceIssue(
                    identifier="fix_broken_configs",
                    display_name="Fix Broken Configurations",
                    description=f"Fix {total} broken preference/login item files",
                    auto_fix_safe=False,
                )
            )
        if self._skipped:
            issues.append(
                MaintenanceIssue(
                    identifier="config_check_skipped",
                    display_name="Configuration Check Incomplete",
                    description=f"Skipped {len(self._skipped)} unreadable or slow directories",
                    auto_fix_safe=False,
                )
            )
        return issues

    def repair(self, items: list[BrokenItem] | None = None) -> list[OperationResult]:
        """Delete broken files through SafeRemover.

        Login items are unloaded from the service manager before deletion.

        Args:
            items: Items to repair; defaults to everything ``find_broken`` returns.

        Returns:
            One OperationResult per item.
        """
        targets = items if items is not None else self.find_broken()
        results: list[OperationResult] = []

        for item in targets:
            if item.kind == BrokenKind.LOGIN_ITEM and not self._remover.dry_run:
                if not self._facts.unload_job(item.path):
                    logger.debug("Unload failed or job not loaded: %s", item.path)
            result = self._remover.remove(item.path)
            if result.outcome == Outcome.FAILED:
                logger.warning("Could not repair %s: %s", item.path, result.detail)
            results.append(result)

        return results

    def _plists(self, directory: Path) -> list[Path]:
        try:
            children = list_children(directory, timeout=self._timeouts.enumeration_seconds)
        except (FileNotFoundError, NotADirectoryError):
            return []
        except PermissionError:
            logger.warning("Permission denied reading %s", directory)
            self._skipped.append(SkippedItem(str(directory), "permission denied"))
            return []
        except ScanTimeout as e:
            logger.warning("Skipping %s: %s", directory, e)
            self._skipped.append(SkippedItem(str(directory), f"timed out after {e.seconds:.1f}s"))
            return []
        return [p for p in children if p.suffix == ".plist" and p.is_file() and not p.is_symlink()]
