"""OS facts provider.

This module exports the interface the engine uses to query and change
live operating-system state.
"""

from moleguard.system.facts import (
    DaemonState,
    MacSystemFacts,
    PlistValidity,
    ProtectionStatus,
    SystemFacts,
)

__all__ = [
    "DaemonState",
    "MacSystemFacts",
    "PlistValidity",
    "ProtectionStatus",
    "SystemFacts",
]
