"""Optimizer actions that perturb live system state.

Actions that leave the machine degraded part-way through (an interface
taken down, the swap daemon unloaded) register their recovery step in a
:class:`RecoveryGuard` before the perturbation starts. The guard runs the
recovery when the block exits early for any reason, including SIGINT or
SIGTERM, and is cleared only after the full cycle completes.
"""

import logging
import signal
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import FrameType, TracebackType
from typing import Any

from moleguard.core.config import Timeouts
from moleguard.core.errors import OperationInterrupted
from moleguard.models.result import Outcome
from moleguard.operations.remover import SafeRemover
from moleguard.system.facts import DaemonState, SystemFacts

logger = logging.getLogger(__name__)

SWAP_DIR = Path("/private/var/vm")
SWAP_FILE_PREFIX = "swapfile"

_HANDLED_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class OptimizerAction(str, Enum):
    """Identifier of an optimizer action."""

    CYCLE_NETWORK = "cycle_network"
    FLUSH_DNS = "flush_dns"
    REBUILD_SEARCH_INDEX = "rebuild_search_index"
    CLEAR_SWAP = "clear_swap"


@dataclass(frozen=True, slots=True)
class OptimizerResult:
    """Result of one optimizer action.

    Attributes:
        action: Action that ran.
        outcome: DELETED for a completed mutation, SIMULATED on dry run,
            SKIPPED when a precondition was not met, FAILED otherwise.
        detail: Explanation for anything but plain success.
        bytes_freed: Bytes released (swap clearing only).
    """

    action: OptimizerAction
    outcome: Outcome
    detail: str | None = None
    bytes_freed: int = 0

    @property
    def success(self) -> bool:
        """True for DELETED and SIMULATED outcomes."""
        return self.outcome in (Outcome.DELETED, Outcome.SIMULATED)


class RecoveryGuard:
    """Context manager that runs a recovery step unless completed.

    While the block runs, SIGINT and SIGTERM raise
    :class:`OperationInterrupted` so the block unwinds through ``__exit__``
    and recovery runs before the interruption propagates. Previous handlers
    are restored on exit. Signal handlers can only be installed from the
    main thread; elsewhere the guard still covers exceptions.

    Args:
        description: Label used in log messages.
        recover: Callable that restores the pre-action state.

    Example:
        >>> with RecoveryGuard("re-enable en0", bring_up) as guard:
        ...     take_down()
        ...     bring_up()
        ...     guard.complete()
    """

    def __init__(self, description: str, recover: Callable[[], Any]) -> None:
        self._description = description
        self._recover = recover
        self._completed = False
        self._recovered = False
        self._previous: dict[signal.Signals, Any] = {}

    @property
    def recovered(self) -> bool:
        """Whether the recovery step ran."""
        return self._recovered

    def complete(self) -> None:
        """Mark the guarded cycle as finished; recovery will not run."""
        self._completed = True

    def __enter__(self) -> "RecoveryGuard":
        if threading.current_thread() is threading.main_thread():
            for signum in _HANDLED_SIGNALS:
                self._previous[signum] = signal.getsignal(signum)
                signal.signal(signum, self._handle_signal)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if not self._completed:
                self._run_recovery(exc)
        finally:
            for signum, handler in self._previous.items():
                signal.signal(signum, handler)
            self._previous.clear()

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.warning("Signal %d received during %s", signum, self._description)
        raise OperationInterrupted(signum)

    def _run_recovery(self, exc: BaseException | None) -> None:
        reason = type(exc).__name__ if exc is not None else "incomplete cycle"
        logger.warning("Running recovery (%s): %s", reason, self._description)
        # Recovery must not be cut short by a second signal.
        for signum in self._previous:
            signal.signal(signum, signal.SIG_IGN)
        try:
            self._recover()
        except Exception:
            logger.exception("Recovery failed: %s", self._description)
            raise
        finally:
            self._recovered = True


class OptimizerActions:
    """Bounded, recoverable optimizer actions.

    Args:
        facts: OS facts provider executing the state changes.
        dry_run: If True, report what would run without changing anything.
        timeouts: Swap-unload polling bounds.
        sleep: Sleep function used between polls.
        swap_dir: Directory holding swap files.
        remover: SafeRemover for swap files (built from ``dry_run`` if None).
    """

    def __init__(
        self,
        facts: SystemFacts,
        *,
        dry_run: bool = False,
        timeouts: Timeouts | None = None,
        sleep: Callable[[float], None] = time.sleep,
        swap_dir: Path = SWAP_DIR,
        remover: SafeRemover | None = None,
    ) -> None:
        self._facts = facts
        self._dry_run = dry_run
        self._timeouts = timeouts if timeouts is not None else Timeouts()
        self._sleep = sleep
        self._swap_dir = swap_dir
        self._remover = remover if remover is not None else SafeRemover(dry_run=dry_run)

    def cycle_network(self, interface: str) -> OptimizerResult:
        """Take an interface down and bring it back up.

        The re-enable step is registered before the interface goes down,
        so an interruption at any point leaves the interface up.

        Args:
            interface: Interface name (e.g., ``en0``).

        Returns:
            OptimizerResult for the cycle.

        Raises:
            OperationInterrupted: If a signal arrived mid-cycle (after
                the interface was re-enabled).
        """
        action = OptimizerAction.CYCLE_NETWORK
        if self._dry_run:
            return OptimizerResult(action, Outcome.SIMULATED, f"would cycle {interface}")

        def reenable() -> None:
            if not self._facts.set_interface_enabled(interface, True):
                logger.error("Failed to re-enable interface %s", interface)

        with RecoveryGuard(f"re-enable {interface}", reenable) as guard:
            if not self._facts.set_interface_enabled(interface, False):
                guard.complete()
                return OptimizerResult(action, Outcome.FAILED, f"could not disable {interface}")
            logger.info("Interface %s down", interface)

            if not self._facts.set_interface_enabled(interface, True):
                # Leave the guard armed: recovery retries the re-enable.
                return OptimizerResult(action, Outcome.FAILED, f"could not re-enable {interface}")
            logger.info("Interface %s up", interface)
            guard.complete()

        return OptimizerResult(action, Outcome.DELETED)

    def flush_dns(self) -> OptimizerResult:
        """Flush the name-resolution cache."""
        action = OptimizerAction.FLUSH_DNS
        if self._dry_run:
            return OptimizerResult(action, Outcome.SIMULATED, "would flush DNS cache")
        if self._facts.flush_dns_cache():
            logger.info("DNS cache flushed")
            return OptimizerResult(action, Outcome.DELETED)
        return OptimizerResult(action, Outcome.FAILED, "DNS flush failed")

    def rebuild_search_index(self, volume: str = "/") -> OptimizerResult:
        """Trigger search-index maintenance for a volume."""
        action = OptimizerAction.REBUILD_SEARCH_INDEX
        if self._dry_run:
            return OptimizerResult(action, Outcome.SIMULATED, f"would rebuild index on {volume}")
        if self._facts.rebuild_search_index(volume):
            logger.info("Search index rebuild started on %s", volume)
            return OptimizerResult(action, Outcome.DELETED)
        return OptimizerResult(action, Outcome.FAILED, f"index rebuild failed on {volume}")

    def clear_swap(self) -> OptimizerResult:
        """Unload the swap daemon, remove swap files, reload the daemon.

        Swap files are only removed once the daemon is confirmed stopped.
        If it never stops within the polling bounds, the action is skipped.
        The daemon is reloaded in every case.

        Returns:
            OptimizerResult with the bytes released.
        """
        action = OptimizerAction.CLEAR_SWAP
        if self._dry_run:
            return OptimizerResult(action, Outcome.SIMULATED, "would clear swap files")

        def reload() -> None:
            if not self._facts.set_swap_daemon_loaded(True):
                logger.error("Failed to reload swap daemon")

        with RecoveryGuard("reload swap daemon", reload) as guard:
            self._facts.set_swap_daemon_loaded(False)

            if self._wait_for_swap_stop():
                result = self._remove_swap_files()
            else:
                logger.warning("Swap daemon still running; swap files left in place")
                result = OptimizerResult(action, Outcome.SKIPPED, "swap daemon did not unload")

            reload()
            guard.complete()

        return result

    def _remove_swap_files(self) -> OptimizerResult:
        freed = 0
        failures: list[str] = []
        for swap_file in self._swap_files():
            removed = self._remover.remove_elevated(swap_file)
            if removed.success:
                freed += removed.bytes_freed
            else:
                failures.append(f"{swap_file}: {removed.detail or removed.outcome.value}")

        action = OptimizerAction.CLEAR_SWAP
        if failures:
            return OptimizerResult(action, Outcome.FAILED, "; ".join(failures), freed)
        logger.info("Cleared swap files (%d bytes)", freed)
        return OptimizerResult(action, Outcome.DELETED, bytes_freed=freed)

    def _wait_for_swap_stop(self) -> bool:
        """Poll until the swap daemon reports stopped, within bounds."""
        attempts = self._timeouts.swap_unload_attempts
        for attempt in range(attempts):
            state = self._facts.swap_daemon_state()
            if state == DaemonState.STOPPED:
                return True
            logger.debug("Swap daemon %s (attempt %d/%d)", state.value, attempt + 1, attempts)
            if attempt + 1 < attempts:
                self._sleep(self._timeouts.swap_unload_interval_seconds)
        return False

    def _swap_files(self) -> list[Path]:
        try:
            return sorted(
                p for p in self._swap_dir.iterdir() if p.name.startswith(SWAP_FILE_PREFIX)
            )
        except FileNotFoundError:
            return []
