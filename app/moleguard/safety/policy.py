"""Run-scoped, environment-aware cleanup policy.

A :class:`PolicyGate` is a snapshot of OS state taken once at the start of
a run. Scanners consult it while building their candidate lists:

- With integrity protection enabled (or its state unknown), paths under
  OS-protected subtrees are denied and never surface as candidates.
- With a backup running (or its state unknown), the failed-backup category
  is deferred for the run.

Snapshots are never reused across runs; protection and backup state can
change between invocations.
"""

import fnmatch
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from moleguard.models.candidate import Category
from moleguard.safety.guard import normalize_path
from moleguard.system.facts import DaemonState, ProtectionStatus, SystemFacts

logger = logging.getLogger(__name__)

# Subtrees the OS keeps immutable while integrity protection is enabled
# (glob-style). Patterns starting with ~ are expanded to the user's home
# directory before matching.
PROTECTED_SUBTREES: tuple[str, ...] = (
    "/System",
    "/bin",
    "/sbin",
    "/usr/bin",
    "/usr/lib",
    "/usr/libexec",
    "/usr/sbin",
    "/usr/share",
    "/Library/Apple",
    "/Applications/Safari.app",
    "/private/var/db/SystemPolicyConfiguration",
    "~/Library/Caches/com.apple.HomeKit",
    "~/Library/Caches/com.apple.ap.adprivacyd",
    "~/Library/Caches/com.apple.findmy.*",
    "~/Library/Caches/CloudKit",
    "~/Library/Caches/com.apple.containermanagerd",
    "~/Library/Containers/com.apple.*",
    "~/Library/Group Containers/group.com.apple.*",
    "~/Library/Application Support/com.apple.TCC",
    "~/Library/Application Support/com.apple.sharedfilelist",
)

# Categories that must not run while a backup is in progress.
_BACKUP_SENSITIVE: frozenset[Category] = frozenset({Category.FAILED_BACKUP})


class DecisionKind(str, Enum):
    """Kind of policy decision.

    Attributes:
        ALLOW: Proceed.
        DEFER: Skip for this run; try again later.
        DENY: Withhold entirely; never surface the item.
    """

    ALLOW = "allow"
    DEFER = "defer"
    DENY = "deny"


@dataclass(frozen=True, slots=True)
class PolicyDecision:
    """A single allow/defer/deny decision.

    Attributes:
        kind: Decision kind.
        reason: Explanation for DEFER and DENY decisions.
    """

    kind: DecisionKind
    reason: str | None = None

    @property
    def allowed(self) -> bool:
        """True for ALLOW decisions."""
        return self.kind == DecisionKind.ALLOW


ALLOW = PolicyDecision(DecisionKind.ALLOW)


class PolicyGate:
    """Allow/defer/deny decisions for one run.

    Use :meth:`evaluate` to build a gate from live OS facts; the
    constructor takes already-known states so tests can build gates
    directly.

    Args:
        protection: Integrity-protection state at run start.
        backup: Backup daemon state at run start.
        protected_subtrees: Glob patterns of OS-protected subtrees.
        home: Home directory used to expand ``~`` patterns.
    """

    def __init__(
        self,
        protection: ProtectionStatus,
        backup: DaemonState,
        *,
        protected_subtrees: tuple[str, ...] = PROTECTED_SUBTREES,
        home: Path | None = None,
    ) -> None:
        self._protection = protection
        self._backup = backup
        home_str = str(home if home is not None else Path.home())
        self._patterns = tuple(
            home_str + p[1:] if p.startswith("~") else p for p in protected_subtrees
        )

    @classmethod
    def evaluate(
        cls,
        facts: SystemFacts,
        *,
        protected_subtrees: tuple[str, ...] = PROTECTED_SUBTREES,
        home: Path | None = None,
    ) -> "PolicyGate":
        """Query OS facts once and build the gate for a run.

        Args:
            facts: OS facts provider.
            protected_subtrees: Glob patterns of OS-protected subtrees.
            home: Home directory used to expand ``~`` patterns.

        Returns:
            A fresh PolicyGate.
        """
        protection = facts.protection_status()
        backup = facts.backup_daemon_state()
        logger.debug("Policy snapshot: protection=%s backup=%s", protection.value, backup.value)
        return cls(protection, backup, protected_subtrees=protected_subtrees, home=home)

    @classmethod
    def permissive(cls) -> "PolicyGate":
        """A gate for environments with no protection and no backups."""
        return cls(ProtectionStatus.DISABLED, DaemonState.STOPPED, protected_subtrees=())

    @property
    def protection(self) -> ProtectionStatus:
        """Integrity-protection state captured at run start."""
        return self._protection

    @property
    def backup(self) -> DaemonState:
        """Backup daemon state captured at run start."""
        return self._backup

    @property
    def protection_enforced(self) -> bool:
        """Protection counts as enabled unless confirmed disabled."""
        return self._protection != ProtectionStatus.DISABLED

    def decide(self, path: str) -> PolicyDecision:
        """Decide whether a path may surface as a candidate.

        Args:
            path: Absolute path.

        Returns:
            DENY for paths under OS-protected subtrees while protection is
            enforced; ALLOW otherwise.
        """
        if not self.protection_enforced:
            return ALLOW

        normalized = normalize_path(path)
        for pattern in self._patterns:
            if fnmatch.fnmatch(normalized, pattern) or fnmatch.fnmatch(normalized, pattern + "/*"):
                return PolicyDecision(
                    DecisionKind.DENY,
                    f"protected by system integrity protection ({self._protection.value})",
                )
        return ALLOW

    def decide_category(self, category: Category) -> PolicyDecision:
        """Decide whether a category may run at all this run.

        Args:
            category: Category about to be scanned.

        Returns:
            DEFER for backup-sensitive categories while a backup is running
            or its state is unknown; ALLOW otherwise.
        """
        if category in _BACKUP_SENSITIVE:
            if self._backup == DaemonState.RUNNING:
                return PolicyDecision(DecisionKind.DEFER, "deferred: backup active")
            if self._backup == DaemonState.UNKNOWN:
                return PolicyDecision(DecisionKind.DEFER, "deferred: backup status unknown")
        return ALLOW
