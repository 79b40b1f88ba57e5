"""Data models for moleguard.

This module exports the core data structures used throughout the engine.
"""

from moleguard.models.candidate import (
    Category,
    CategoryScan,
    CategoryStatus,
    CleanupCandidate,
    ScanSummary,
    SkippedItem,
)
from moleguard.models.history import RunHistoryEntry, create_history_entry
from moleguard.models.result import OperationResult, Outcome

__all__ = [
    "Category",
    "CategoryScan",
    "CategoryStatus",
    "CleanupCandidate",
    "OperationResult",
    "Outcome",
    "RunHistoryEntry",
    "ScanSummary",
    "SkippedItem",
    "create_history_entry",
]
