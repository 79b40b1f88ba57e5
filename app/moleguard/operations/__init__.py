"""Mutating operations: guarded deletion, optimizer actions, maintenance."""

from moleguard.operations.maintenance import BrokenItem, ConfigMaintenance, MaintenanceIssue
from moleguard.operations.optimizer import (
    OptimizerAction,
    OptimizerActions,
    OptimizerResult,
    RecoveryGuard,
)
from moleguard.operations.remover import SafeRemover

__all__ = [
    "BrokenItem",
    "ConfigMaintenance",
    "MaintenanceIssue",
    "OptimizerAction",
    "OptimizerActions",
    "OptimizerResult",
    "RecoveryGuard",
    "SafeRemover",
]
