"""Operation result models.

Every deletion or optimizer action yields exactly one result record; the
run driver aggregates them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from moleguard.models.candidate import Category
    from moleguard.safety.guard import RejectionReason


class Outcome(str, Enum):
    """Outcome of a single operation.

    Attributes:
        DELETED: Path removed (or already absent, with zero bytes freed).
        SKIPPED: Not attempted; not an error (protected, mount boundary, ...).
        REJECTED: PathGuard refused the path; zero filesystem effect.
        FAILED: Attempted and failed (e.g., permission denied); recorded.
        SIMULATED: Dry-run; what would have been removed.
    """

    DELETED = "deleted"
    SKIPPED = "skipped"
    REJECTED = "rejected"
    FAILED = "failed"
    SIMULATED = "simulated"


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Result of a single guarded deletion.

    Attributes:
        path: Path that was operated on.
        outcome: What happened.
        bytes_freed: Bytes freed (or that would be freed, for SIMULATED).
        detail: Error message or explanation, None on plain success.
        rejection: PathGuard reason when outcome is REJECTED.
        category: Category of the candidate, if the call came from a scan.
    """

    path: str
    outcome: Outcome
    bytes_freed: int = 0
    detail: str | None = None
    rejection: RejectionReason | None = None
    category: Category | None = None

    @property
    def success(self) -> bool:
        """True for DELETED and SIMULATED outcomes."""
        return self.outcome in (Outcome.DELETED, Outcome.SIMULATED)

    @property
    def is_error(self) -> bool:
        """True for outcomes the caller must report."""
        return self.outcome in (Outcome.FAILED, Outcome.REJECTED)
