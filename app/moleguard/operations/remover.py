"""Guarded deletion of cleanup candidates.

Every deletion goes through PathGuard first. Unprivileged deletion uses
``shutil.rmtree`` / ``Path.unlink``; elevated deletion shells out to
``sudo -n rm -rf`` with mount-point crossing disabled. A dry run measures
exactly what a real deletion would free and touches nothing.
"""

import logging
import os
import shutil
import stat
import subprocess
import sys
from collections.abc import Callable, Iterable
from pathlib import Path

from moleguard.core.config import Timeouts
from moleguard.core.errors import ScanTimeout
from moleguard.models.candidate import CleanupCandidate
from moleguard.models.result import OperationResult, Outcome
from moleguard.safety.guard import PathGuard
from moleguard.utils.fs import TreeMeasure, measure_tree
from moleguard.utils.shell import CommandResult, privileged, run_command

logger = logging.getLogger(__name__)

GuardFactory = Callable[[bool], PathGuard]
Runner = Callable[..., CommandResult]

# Timeout for a single elevated rm, in seconds
DEFAULT_ELEVATED_TIMEOUT: float = 300.0


def _rm_args(path: str) -> list[str]:
    """Build an ``rm`` invocation that never crosses a mount point."""
    # BSD rm spells it -x; GNU rm only has the long option.
    boundary = "-x" if sys.platform == "darwin" else "--one-file-system"
    return ["rm", "-rf", boundary, "--", path]


class SafeRemover:
    """Deletes candidate paths after PathGuard validation.

    One failure never aborts a batch: every path yields exactly one
    OperationResult.

    Args:
        dry_run: If True, report what would be freed without deleting.
        guard_factory: Builds a PathGuard for the given elevation flag.
        runner: Command runner used for elevated deletion.
        timeouts: Bounds on measurement.
        elevated_timeout: Timeout for one elevated ``rm`` in seconds.

    Example:
        >>> remover = SafeRemover(dry_run=True)
        >>> remover.remove("/Users/me/Library/Caches/com.example")
        OperationResult(path=..., outcome=<Outcome.SIMULATED: 'simulated'>, ...)
    """

    def __init__(
        self,
        *,
        dry_run: bool = False,
        guard_factory: GuardFactory | None = None,
        runner: Runner = run_command,
        timeouts: Timeouts | None = None,
        elevated_timeout: float = DEFAULT_ELEVATED_TIMEOUT,
    ) -> None:
        self._dry_run = dry_run
        self._guard_factory = guard_factory or (lambda elevated: PathGuard(elevated=elevated))
        self._runner = runner
        self._timeouts = timeouts if timeouts is not None else Timeouts()
        self._elevated_timeout = elevated_timeout

    @property
    def dry_run(self) -> bool:
        """Whether this remover only simulates deletions."""
        return self._dry_run

    def execute(self, candidates: Iterable[CleanupCandidate]) -> list[OperationResult]:
        """Delete a batch of candidates.

        Protected candidates are skipped. Candidates that need elevation go
        through :meth:`remove_elevated`.

        Args:
            candidates: Candidates to delete.

        Returns:
            One OperationResult per candidate, in input order.
        """
        results: list[OperationResult] = []

        for candidate in candidates:
            if candidate.protected:
                result = OperationResult(
                    path=candidate.path,
                    outcome=Outcome.SKIPPED,
                    detail=candidate.protection_reason or "protected",
                )
            elif candidate.requires_elevation:
                result = self.remove_elevated(candidate.path)
            else:
                result = self.remove(candidate.path)

            results.append(
                OperationResult(
                    path=result.path,
                    outcome=result.outcome,
                    bytes_freed=result.bytes_freed,
                    detail=result.detail,
                    rejection=result.rejection,
                    category=candidate.category,
                )
            )

        return results

    def remove(self, path: str | os.PathLike[str]) -> OperationResult:
        """Delete a path with the current user's privileges.

        Args:
            path: File, directory or link to delete.

        Returns:
            OperationResult describing the outcome.
        """
        raw = os.fspath(path)
        verdict = self._guard_factory(False).validate(raw)
        if not verdict.accepted or verdict.path is None:
            return OperationResult(path=raw, outcome=Outcome.REJECTED, rejection=verdict.reason)
        target = verdict.path

        measure = self._measure(target)
        if isinstance(measure, OperationResult):
            return measure

        blocked = self._check_mounts(target, measure)
        if blocked is not None:
            return blocked

        if self._dry_run:
            logger.info("Dry-run: would delete %s (%d bytes)", target, measure.size_bytes)
            return OperationResult(
                path=target, outcome=Outcome.SIMULATED, bytes_freed=measure.size_bytes
            )

        try:
            mode = os.lstat(target).st_mode
            if stat.S_ISDIR(mode):
                shutil.rmtree(target)
            else:
                # Files, links and dead links alike
                Path(target).unlink()
        except FileNotFoundError:
            return OperationResult(path=target, outcome=Outcome.DELETED, detail="vanished")
        except PermissionError as e:
            logger.warning("Permission denied deleting %s: %s", target, e)
            return OperationResult(path=target, outcome=Outcome.FAILED, detail=str(e))
        except OSError as e:
            logger.warning("Failed to delete %s: %s", target, e)
            return OperationResult(path=target, outcome=Outcome.FAILED, detail=str(e))

        logger.info("Deleted %s (%d bytes)", target, measure.size_bytes)
        return OperationResult(path=target, outcome=Outcome.DELETED, bytes_freed=measure.size_bytes)

    def remove_elevated(self, path: str | os.PathLike[str]) -> OperationResult:
        """Delete a path with root privileges via ``sudo -n rm -rf``.

        Elevated validation also rejects a link in the final component.

        Args:
            path: File or directory to delete.

        Returns:
            OperationResult describing the outcome.
        """
        raw = os.fspath(path)
        verdict = self._guard_factory(True).validate(raw)
        if not verdict.accepted or verdict.path is None:
            return OperationResult(path=raw, outcome=Outcome.REJECTED, rejection=verdict.reason)
        target = verdict.path

        measure = self._measure(target, unreadable_ok=True)
        if isinstance(measure, OperationResult):
            return measure

        blocked = self._check_mounts(target, measure)
        if blocked is not None:
            return blocked

        if self._dry_run:
            logger.info("Dry-run: would delete %s as root (%d bytes)", target, measure.size_bytes)
            return OperationResult(
                path=target, outcome=Outcome.SIMULATED, bytes_freed=measure.size_bytes
            )

        try:
            result = self._runner(privileged(_rm_args(target)), timeout=self._elevated_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Elevated delete timed out: %s", target)
            return OperationResult(path=target, outcome=Outcome.FAILED, detail="timed out")
        except (FileNotFoundError, OSError) as e:
            logger.warning("Cannot run elevated delete for %s: %s", target, e)
            return OperationResult(path=target, outcome=Outcome.FAILED, detail=str(e))

        if not result.success:
            error = result.stderr.strip() or "sudo rm failed"
            logger.warning("Elevated delete failed for %s: %s", target, error)
            return OperationResult(path=target, outcome=Outcome.FAILED, detail=error)

        logger.info("Deleted %s as root (%d bytes)", target, measure.size_bytes)
        return OperationResult(path=target, outcome=Outcome.DELETED, bytes_freed=measure.size_bytes)

    def _measure(
        self, target: str, *, unreadable_ok: bool = False
    ) -> TreeMeasure | OperationResult:
        """Measure a validated path; a vanished path is already deleted."""
        try:
            return measure_tree(target, timeout=self._timeouts.scan_item_seconds)
        except FileNotFoundError:
            logger.debug("Already gone: %s", target)
            return OperationResult(path=target, outcome=Outcome.DELETED, detail="already absent")
        except PermissionError as e:
            if unreadable_ok:
                return TreeMeasure(size_bytes=0)
            return OperationResult(path=target, outcome=Outcome.FAILED, detail=str(e))
        except ScanTimeout as e:
            logger.warning("Cannot measure %s: %s", target, e)
            return OperationResult(path=target, outcome=Outcome.FAILED, detail=str(e))
        except OSError as e:
            return OperationResult(path=target, outcome=Outcome.FAILED, detail=str(e))

    @staticmethod
    def _check_mounts(target: str, measure: TreeMeasure) -> OperationResult | None:
        if not measure.mount_points:
            return None
        mount = measure.mount_points[0]
        logger.warning("Refusing to delete %s: contains mount point %s", target, mount)
        return OperationResult(
            path=target, outcome=Outcome.SKIPPED, detail=f"contains mount point: {mount}"
        )
