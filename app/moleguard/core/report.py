"""Dry-run reporting.

DryRunReporter drives the full deletion pipeline with a dry-run
SafeRemover. Every candidate passes through PathGuard and is measured the
same way a real deletion would measure it, so the report lists exactly
what a real run with the same selection would remove.
"""

import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from moleguard.models.candidate import Category, CleanupCandidate
from moleguard.models.result import OperationResult, Outcome
from moleguard.operations.remover import SafeRemover


@dataclass(frozen=True, slots=True)
class ReportRow:
    """One line of a dry-run report.

    Attributes:
        path: Path that would be removed.
        size_bytes: Bytes that would be freed.
        category: Category that emitted the path.
    """

    path: str
    size_bytes: int
    category: Category | None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON export."""
        return {
            "path": self.path,
            "size_bytes": self.size_bytes,
            "category": self.category.value if self.category is not None else None,
        }


@dataclass(frozen=True, slots=True)
class DryRunReport:
    """Itemized result of a dry run.

    Attributes:
        rows: Paths that would be removed, in selection order.
        excluded: Results for paths that would not be removed
            (protected, rejected, skipped or failed).
    """

    rows: tuple[ReportRow, ...] = ()
    excluded: tuple[OperationResult, ...] = field(default_factory=tuple)

    @property
    def total_bytes(self) -> int:
        """Grand total of bytes that would be freed."""
        return sum(row.size_bytes for row in self.rows)

    @classmethod
    def from_results(cls, results: Iterable[OperationResult]) -> "DryRunReport":
        """Build a report from dry-run operation results."""
        rows: list[ReportRow] = []
        excluded: list[OperationResult] = []
        for result in results:
            if result.outcome == Outcome.SIMULATED:
                rows.append(ReportRow(result.path, result.bytes_freed, result.category))
            else:
                excluded.append(result)
        return cls(rows=tuple(rows), excluded=tuple(excluded))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON export."""
        return {
            "items": [row.to_dict() for row in self.rows],
            "total_bytes": self.total_bytes,
            "excluded": [
                {
                    "path": r.path,
                    "outcome": r.outcome.value,
                    "reason": r.rejection.value if r.rejection is not None else r.detail,
                }
                for r in self.excluded
            ],
        }

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize the report as JSON."""
        return json.dumps(self.to_dict(), indent=indent)


class DryRunReporter:
    """Runs the deletion pipeline without mutating anything.

    Args:
        remover: Dry-run SafeRemover; one with default guards if None.

    Raises:
        ValueError: If the supplied remover is not in dry-run mode.
    """

    def __init__(self, remover: SafeRemover | None = None) -> None:
        if remover is not None and not remover.dry_run:
            msg = "DryRunReporter requires a dry-run SafeRemover"
            raise ValueError(msg)
        self._remover = remover if remover is not None else SafeRemover(dry_run=True)

    def report(self, candidates: Sequence[CleanupCandidate]) -> DryRunReport:
        """Simulate deleting the given candidates.

        Args:
            candidates: Selected candidates, protected ones included.

        Returns:
            DryRunReport with one row per path that would be removed.
        """
        return DryRunReport.from_results(self._remover.execute(candidates))
