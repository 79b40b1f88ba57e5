"""Abstract base class for category scanners.

This module defines the CategoryScanner interface that every cleanup
category implements. Subclasses only enumerate targets; the base class
applies the shared rules to each one:

1. PolicyGate first: a denied path is never measured or emitted.
2. Measurement under a deadline: a timeout is recorded as skipped.
3. The category's size floor: smaller items are omitted silently.
4. The whitelist: items covered by an entry, or containing one, are
   emitted as protected.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from moleguard.core.config import Thresholds, Timeouts
from moleguard.core.errors import ScanRootMissingError, ScanTimeout
from moleguard.models.candidate import (
    Category,
    CategoryScan,
    CategoryStatus,
    CleanupCandidate,
    SkippedItem,
)
from moleguard.safety.guard import normalize_path
from moleguard.safety.policy import DecisionKind, PolicyGate
from moleguard.safety.whitelist import WhitelistStore
from moleguard.utils.fs import is_within, last_touched, list_children, measure_tree

logger = logging.getLogger(__name__)


class CategoryUnavailable(Exception):
    """Raised by a scanner whose prerequisites are missing on this system."""


@dataclass(frozen=True, slots=True)
class ScanTarget:
    """A path a scanner wants evaluated.

    Attributes:
        path: Absolute path of the potential candidate.
        name: Display label; defaults to the basename.
        requires_elevation: Whether deleting it needs root privileges.
    """

    path: Path
    name: str | None = None
    requires_elevation: bool = False


class CategoryScanner(ABC):
    """Abstract base class for all category scanners.

    Scans are finite and restartable: no cursor survives between calls,
    so ``scan()`` may be invoked any number of times.

    Args:
        home: Home directory override (defaults to the current user's).
        whitelist: Loaded whitelist store; None protects nothing.
        policy: Policy snapshot for this run; None allows everything.
        thresholds: Size floors and age limits.
        timeouts: Bounds on enumeration and measurement.

    Example:
        >>> scanner = UserCacheScanner(whitelist=store, policy=gate)
        >>> for candidate in scanner.scan():
        ...     print(candidate.path, candidate.size_bytes)
    """

    def __init__(
        self,
        *,
        home: Path | None = None,
        whitelist: WhitelistStore | None = None,
        policy: PolicyGate | None = None,
        thresholds: Thresholds | None = None,
        timeouts: Timeouts | None = None,
    ) -> None:
        self._home = home if home is not None else Path.home()
        self._whitelist = whitelist
        self._policy = policy if policy is not None else PolicyGate.permissive()
        self._thresholds = thresholds if thresholds is not None else Thresholds()
        self._timeouts = timeouts if timeouts is not None else Timeouts()
        self._skipped: list[SkippedItem] = []

    @property
    @abstractmethod
    def category(self) -> Category:
        """Return the category this scanner handles."""

    @abstractmethod
    def targets(self, root: Path, thresholds: Thresholds) -> Iterator[ScanTarget]:
        """Enumerate the paths this category wants evaluated.

        Args:
            root: Base directory (home, or an explicit scan root).
            thresholds: Thresholds in effect for this scan.

        Yields:
            ScanTarget for each potential candidate.

        Raises:
            ScanTimeout: If a bounded enumeration times out.
            CategoryUnavailable: If prerequisites are missing.
        """

    def default_root(self) -> Path:
        """Base directory used when ``scan()`` gets no explicit root."""
        return self._home

    def scan(
        self,
        root: Path | None = None,
        thresholds: Thresholds | None = None,
    ) -> Iterator[CleanupCandidate]:
        """Scan and yield cleanup candidates for this category.

        Args:
            root: Explicit scan root; must exist if given.
            thresholds: Override of the configured thresholds.

        Yields:
            CleanupCandidate for each item at or above the size floor.

        Raises:
            ScanRootMissingError: If an explicit root is not a directory.
            ScanTimeout: If target enumeration times out.
            CategoryUnavailable: If prerequisites are missing.
        """
        self._skipped = []

        decision = self._policy.decide_category(self.category)
        if not decision.allowed:
            logger.info("%s not scanned: %s", self.category.value, decision.reason)
            return

        if root is not None and not Path(root).is_dir():
            msg = f"Scan root does not exist: {root}"
            raise ScanRootMissingError(msg)

        base = Path(root) if root is not None else self.default_root()
        limits = thresholds if thresholds is not None else self._thresholds
        emitted: list[str] = []

        for target in self.targets(base, limits):
            candidate = self._evaluate(target, limits, emitted)
            if candidate is not None:
                emitted.append(candidate.path)
                yield candidate

    def collect(
        self,
        root: Path | None = None,
        thresholds: Thresholds | None = None,
    ) -> CategoryScan:
        """Run a full scan and wrap it with its status.

        Deferred, denied, timed-out and unavailable categories return an
        empty candidate list with an explicit status, distinguishable from
        "nothing to clean".

        Raises:
            ScanRootMissingError: If an explicit root is not a directory.
        """
        decision = self._policy.decide_category(self.category)
        if decision.kind == DecisionKind.DEFER:
            return CategoryScan(self.category, CategoryStatus.DEFERRED, detail=decision.reason)
        if decision.kind == DecisionKind.DENY:
            return CategoryScan(self.category, CategoryStatus.DENIED, detail=decision.reason)

        try:
            candidates = tuple(self.scan(root, thresholds))
        except ScanTimeout as e:
            logger.warning("%s scan timed out: %s", self.category.value, e)
            return CategoryScan(
                self.category,
                CategoryStatus.TIMED_OUT,
                skipped=(*self._skipped, SkippedItem(e.path, str(e))),
                detail=f"skipped: {e}",
            )
        except CategoryUnavailable as e:
            return CategoryScan(
                self.category,
                CategoryStatus.UNAVAILABLE,
                skipped=tuple(self._skipped),
                detail=f"skipped: {e}",
            )

        return CategoryScan(
            self.category,
            CategoryStatus.OK,
            candidates=candidates,
            skipped=tuple(self._skipped),
        )

    def children(self, directory: Path) -> list[Path]:
        """List a directory's children under the enumeration deadline.

        A missing directory has no children. An unreadable one is recorded
        as skipped.

        Raises:
            ScanTimeout: If enumeration exceeds its deadline.
        """
        try:
            return list_children(directory, timeout=self._timeouts.enumeration_seconds)
        except FileNotFoundError:
            return []
        except NotADirectoryError:
            return []
        except PermissionError:
            logger.warning("Permission denied scanning directory: %s", directory)
            self._skipped.append(SkippedItem(str(directory), "permission denied"))
            return []

    def _evaluate(
        self,
        target: ScanTarget,
        thresholds: Thresholds,
        emitted: list[str],
    ) -> CleanupCandidate | None:
        path = normalize_path(target.path)

        if any(is_within(path, parent) for parent in emitted):
            return None

        decision = self._policy.decide(path)
        if decision.kind == DecisionKind.DENY:
            logger.debug("Withheld %s: %s", path, decision.reason)
            return None

        touched = last_touched(path)
        try:
            measure = measure_tree(path, timeout=self._timeouts.scan_item_seconds)
        except FileNotFoundError:
            return None
        except ScanTimeout as e:
            logger.warning("Skipping %s: %s", path, e)
            self._skipped.append(SkippedItem(path, f"timed out: {e}"))
            return None
        except OSError as e:
            logger.warning("Cannot measure %s: %s", path, e)
            self._skipped.append(SkippedItem(path, f"unreadable: {e}"))
            return None

        if measure.size_bytes < thresholds.floor_for(self.category):
            return None

        # Deleting a parent of a whitelisted path destroys it too
        entry = self._whitelist.overlaps(path) if self._whitelist is not None else None

        return CleanupCandidate(
            path=path,
            category=self.category,
            size_bytes=measure.size_bytes,
            last_accessed=touched,
            protected=entry is not None,
            protection_reason=f"whitelisted: {entry.label}" if entry is not None else None,
            name=target.name or Path(path).name,
            requires_elevation=target.requires_elevation,
        )
