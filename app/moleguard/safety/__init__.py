"""Safety layer: path validation, user whitelist and run policy."""

from moleguard.safety.guard import (
    CRITICAL_CONTAINERS,
    SYSTEM_CRITICAL_ROOTS,
    GuardResult,
    PathGuard,
    RejectionReason,
    normalize_path,
)
from moleguard.safety.policy import DecisionKind, PolicyDecision, PolicyGate
from moleguard.safety.whitelist import WhitelistEntry, WhitelistStore

__all__ = [
    "CRITICAL_CONTAINERS",
    "SYSTEM_CRITICAL_ROOTS",
    "DecisionKind",
    "GuardResult",
    "PathGuard",
    "PolicyDecision",
    "PolicyGate",
    "RejectionReason",
    "WhitelistEntry",
    "WhitelistStore",
    "normalize_path",
]
