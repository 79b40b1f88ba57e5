"""Cleanup run driver.

A :class:`CleanupRun` walks one run through its lifecycle::

    Idle -> Scanning -> Ready -> Confirming -> Executing -> Completed
                 \\                                 \\
                  `-> Failed                        `-> Failed

Per-candidate problems never fail a run; they are recorded in the
outcome. Only run-level faults (a missing scan root, an unreadable
whitelist) move the run to Failed. Completed and Failed are terminal.
"""

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from moleguard.core.config import EngineConfig
from moleguard.core.errors import RunLevelFault, RunStateError
from moleguard.core.report import DryRunReport
from moleguard.core.state import RunHistory
from moleguard.models.candidate import Category, CategoryScan, CleanupCandidate, ScanSummary
from moleguard.models.history import RunHistoryEntry, create_history_entry
from moleguard.models.result import OperationResult, Outcome
from moleguard.operations.remover import SafeRemover
from moleguard.safety.guard import PathGuard
from moleguard.safety.policy import PolicyGate
from moleguard.safety.whitelist import WhitelistStore
from moleguard.scanners import SCANNERS, CategoryScanner
from moleguard.system.facts import SystemFacts

logger = logging.getLogger(__name__)

ScannerFactory = Callable[..., CategoryScanner]


class RunState(str, Enum):
    """Lifecycle state of a cleanup run."""

    IDLE = "idle"
    SCANNING = "scanning"
    READY = "ready"
    CONFIRMING = "confirming"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.SCANNING}),
    RunState.SCANNING: frozenset({RunState.READY, RunState.FAILED}),
    RunState.READY: frozenset({RunState.CONFIRMING}),
    RunState.CONFIRMING: frozenset({RunState.EXECUTING, RunState.READY}),
    RunState.EXECUTING: frozenset({RunState.COMPLETED, RunState.FAILED}),
    RunState.COMPLETED: frozenset(),
    RunState.FAILED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Aggregated result of an executed run.

    Attributes:
        results: One OperationResult per selected candidate.
        duration_seconds: Wall-clock duration of the execution phase.
        dry_run: Whether nothing was actually deleted.
    """

    results: tuple[OperationResult, ...]
    duration_seconds: float
    dry_run: bool = False

    @property
    def freed_bytes(self) -> int:
        """Bytes freed (or that would be freed, on a dry run)."""
        return sum(r.bytes_freed for r in self.results if r.success)

    @property
    def items_cleaned(self) -> int:
        """Number of candidates deleted or simulated."""
        return sum(1 for r in self.results if r.success)

    @property
    def errors(self) -> tuple[OperationResult, ...]:
        """Results the caller must report (failed or rejected)."""
        return tuple(r for r in self.results if r.is_error)

    @property
    def categories(self) -> list[Category]:
        """Categories with at least one cleaned item, in first-seen order."""
        seen: list[Category] = []
        for r in self.results:
            if r.success and r.category is not None and r.category not in seen:
                seen.append(r.category)
        return seen

    def report(self) -> DryRunReport:
        """Itemized report of what was (or would be) removed."""
        return DryRunReport.from_results(self.results)


class CleanupRun:
    """State machine driving one scan-confirm-execute cycle.

    Args:
        facts: OS facts provider, queried once for the policy snapshot.
        config: Engine configuration (defaults if None).
        whitelist: Whitelist store; loaded at scan time if not yet loaded.
        home: Home directory override.
        dry_run: If True, execution only simulates deletions.
        history: Run history; completed real runs are recorded here.
        remover: SafeRemover override (built from the other args if None).
        scanners: Scanner classes by category (defaults to all categories).

    Example:
        >>> run = CleanupRun(MacSystemFacts(), whitelist=WhitelistStore())
        >>> summary = run.scan()
        >>> run.confirm()
        >>> outcome = run.execute()
    """

    def __init__(
        self,
        facts: SystemFacts,
        *,
        config: EngineConfig | None = None,
        whitelist: WhitelistStore | None = None,
        home: Path | None = None,
        dry_run: bool = False,
        history: RunHistory | None = None,
        remover: SafeRemover | None = None,
        scanners: dict[Category, ScannerFactory] | None = None,
    ) -> None:
        self._facts = facts
        self._config = config if config is not None else EngineConfig()
        self._whitelist = whitelist if whitelist is not None else WhitelistStore()
        self._home = home if home is not None else Path.home()
        self._dry_run = dry_run
        self._history = history
        self._scanner_types = scanners if scanners is not None else dict(SCANNERS)

        if remover is None:
            home_str = str(self._home)
            remover = SafeRemover(
                dry_run=dry_run,
                guard_factory=lambda elevated: PathGuard(
                    scan_root=self._scan_root, elevated=elevated, home=home_str
                ),
                timeouts=self._config.timeouts,
            )
        self._remover = remover

        self._state = RunState.IDLE
        self._policy: PolicyGate | None = None
        self._summary: ScanSummary | None = None
        self._outcome: RunOutcome | None = None
        self._error: RunLevelFault | None = None
        self._done = 0
        self._selected = 0
        self._scan_root: Path | None = None

    @property
    def state(self) -> RunState:
        """Current lifecycle state."""
        return self._state

    @property
    def policy(self) -> PolicyGate | None:
        """Policy snapshot taken when scanning started."""
        return self._policy

    @property
    def summary(self) -> ScanSummary | None:
        """Scan results, available from Ready on."""
        return self._summary

    @property
    def outcome(self) -> RunOutcome | None:
        """Execution outcome, available once Completed."""
        return self._outcome

    @property
    def error(self) -> RunLevelFault | None:
        """Run-level fault that moved the run to Failed."""
        return self._error

    @property
    def total_bytes(self) -> int:
        """Default total of the scan (unprotected candidates)."""
        return self._summary.total_bytes if self._summary is not None else 0

    @property
    def progress(self) -> tuple[int, int]:
        """Executed and selected candidate counts."""
        return self._done, self._selected

    def scan(
        self,
        categories: Iterable[Category] | None = None,
        root: Path | None = None,
    ) -> ScanSummary:
        """Scan the requested categories.

        Takes a fresh policy snapshot, loads the whitelist, then collects
        each category in order.

        Args:
            categories: Categories to scan (all if None).
            root: Explicit scan root passed to every scanner. Execution is
                then confined to it.

        Returns:
            ScanSummary of the run.

        Raises:
            RunStateError: If the run is not Idle.
            RunLevelFault: If the whitelist cannot be read or the root is
                missing. The run is Failed afterwards.
        """
        self._transition(RunState.SCANNING)
        wanted = list(categories) if categories is not None else list(self._scanner_types)
        self._scan_root = root

        try:
            self._policy = PolicyGate.evaluate(self._facts, home=self._home)
            if not self._whitelist.loaded:
                self._whitelist.load()

            scans: list[CategoryScan] = []
            for category in wanted:
                scanner = self._build_scanner(category)
                logger.debug("Scanning %s", category.value)
                scans.append(scanner.collect(root))
        except RunLevelFault as e:
            self._fail(e)
            raise

        self._summary = ScanSummary(tuple(scans))
        self._transition(RunState.READY)
        logger.info("Scan ready: %d bytes reclaimable", self._summary.total_bytes)
        return self._summary

    def confirm(self) -> None:
        """Move from Ready to Confirming.

        Raises:
            RunStateError: If the run is not Ready.
        """
        self._transition(RunState.CONFIRMING)

    def cancel(self) -> None:
        """Back out of confirmation to Ready.

        Raises:
            RunStateError: If the run is not Confirming.
        """
        self._transition(RunState.READY)

    def execute(self, selection: Iterable[CleanupCandidate] | None = None) -> RunOutcome:
        """Delete the selected candidates.

        Args:
            selection: Candidates to delete. Defaults to every candidate
                selected by default (unprotected, default-on categories).

        Returns:
            RunOutcome with one result per selected candidate.

        Raises:
            RunStateError: If the run is not Confirming.
            RunLevelFault: If the remover hits a run-level fault. The run is
                Failed afterwards.
        """
        self._transition(RunState.EXECUTING)
        assert self._summary is not None

        chosen = (
            list(selection)
            if selection is not None
            else [c for c in self._summary.candidates if c.selected_by_default]
        )
        self._selected = len(chosen)
        self._done = 0

        started = time.monotonic()
        results: list[OperationResult] = []
        try:
            for candidate in chosen:
                results.extend(self._remover.execute([candidate]))
                self._done += 1
        except RunLevelFault as e:
            self._fail(e)
            raise

        self._outcome = RunOutcome(
            results=tuple(results),
            duration_seconds=time.monotonic() - started,
            dry_run=self._dry_run,
        )
        self._transition(RunState.COMPLETED)

        failed = sum(1 for r in results if r.outcome == Outcome.FAILED)
        logger.info(
            "Run completed: %d items, %d bytes, %d failed",
            self._outcome.items_cleaned,
            self._outcome.freed_bytes,
            failed,
        )
        self._record_history(self._outcome)
        return self._outcome

    def _build_scanner(self, category: Category) -> CategoryScanner:
        factory = self._scanner_types[category]
        return factory(
            home=self._home,
            whitelist=self._whitelist,
            policy=self._policy,
            thresholds=self._config.thresholds,
            timeouts=self._config.timeouts,
        )

    def _record_history(self, outcome: RunOutcome) -> RunHistoryEntry | None:
        if self._history is None or outcome.dry_run or outcome.items_cleaned == 0:
            return None
        entry = create_history_entry(
            freed_bytes=outcome.freed_bytes,
            items_cleaned=outcome.items_cleaned,
            categories=[c.display_name for c in outcome.categories],
            duration_seconds=round(outcome.duration_seconds, 3),
            errors=len(outcome.errors),
        )
        try:
            self._history.record(entry)
        except OSError as e:
            logger.warning("Failed to record run history: %s", e)
            return None
        return entry

    def _fail(self, error: RunLevelFault) -> None:
        logger.error("Run failed: %s", error)
        self._error = error
        self._transition(RunState.FAILED)

    def _transition(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self._state]:
            msg = f"Illegal run transition: {self._state.value} -> {target.value}"
            raise RunStateError(msg)
        logger.debug("Run state %s -> %s", self._state.value, target.value)
        self._state = target
