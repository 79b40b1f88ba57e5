"""OS facts provider.

Everything the engine needs to know about, or ask of, the live operating
system goes through :class:`SystemFacts`. Policy and scanner logic depend
only on this interface, so tests substitute a fake and never shell out.

Every query is bounded. A query that times out or cannot run reports
``UNKNOWN``; it never reports a confirmed negative.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from enum import Enum

from moleguard.utils.shell import CommandResult, privileged, run_command

logger = logging.getLogger(__name__)

# Per-probe subprocess timeout in seconds
DEFAULT_PROBE_TIMEOUT: float = 10.0

SWAP_DAEMON_PLIST = "/System/Library/LaunchDaemons/com.apple.dynamic_pager.plist"


class ProtectionStatus(str, Enum):
    """Live state of OS integrity protection.

    Attributes:
        ENABLED: Protection is on.
        DISABLED: Protection is confirmed off.
        UNKNOWN: The query failed or timed out.
    """

    ENABLED = "enabled"
    DISABLED = "disabled"
    UNKNOWN = "unknown"


class DaemonState(str, Enum):
    """Liveness of a background daemon.

    Attributes:
        RUNNING: The daemon is active.
        STOPPED: The daemon is confirmed not running.
        UNKNOWN: The query failed or timed out.
    """

    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


class PlistValidity(str, Enum):
    """Result of validating a property-list file.

    Attributes:
        VALID: The file is well-formed.
        INVALID: The validator rejected the file.
        UNKNOWN: The validator could not be run.
    """

    VALID = "valid"
    INVALID = "invalid"
    UNKNOWN = "unknown"


class SystemFacts(ABC):
    """Narrow interface over OS introspection and state changes."""

    @abstractmethod
    def protection_status(self) -> ProtectionStatus:
        """Query the live integrity-protection state."""

    @abstractmethod
    def backup_daemon_state(self) -> DaemonState:
        """Query whether a backup is currently running."""

    @abstractmethod
    def swap_daemon_state(self) -> DaemonState:
        """Query whether the swap-management daemon is loaded."""

    @abstractmethod
    def validate_plist(self, path: str) -> PlistValidity:
        """Validate a property-list file."""

    @abstractmethod
    def plist_program(self, path: str) -> str | None:
        """Return the program a job descriptor launches, if any."""

    @abstractmethod
    def unload_job(self, path: str) -> bool:
        """Unload a background job descriptor. Returns True on success."""

    @abstractmethod
    def set_swap_daemon_loaded(self, loaded: bool) -> bool:
        """Load or unload the swap-management daemon."""

    @abstractmethod
    def set_interface_enabled(self, interface: str, enabled: bool) -> bool:
        """Bring a network interface up or down."""

    @abstractmethod
    def flush_dns_cache(self) -> bool:
        """Flush the name-resolution cache."""

    @abstractmethod
    def rebuild_search_index(self, volume: str) -> bool:
        """Trigger search-index maintenance for a volume."""


class MacSystemFacts(SystemFacts):
    """SystemFacts backed by macOS command-line utilities.

    Args:
        timeout: Per-command timeout in seconds.
    """

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT) -> None:
        self._timeout = timeout

    def protection_status(self) -> ProtectionStatus:
        """Parse ``csrutil status``."""
        result = self._run(["csrutil", "status"])
        if result is None or not result.success:
            return ProtectionStatus.UNKNOWN

        output = result.stdout.lower()
        if "status: disabled" in output:
            return ProtectionStatus.DISABLED
        # "Custom Configuration" keeps parts of protection on
        if "enabled" in output or "custom configuration" in output:
            return ProtectionStatus.ENABLED
        return ProtectionStatus.UNKNOWN

    def backup_daemon_state(self) -> DaemonState:
        """Parse ``tmutil status`` for ``Running = 1``."""
        result = self._run(["tmutil", "status"])
        if result is None or not result.success:
            return DaemonState.UNKNOWN

        compact = result.stdout.replace(" ", "")
        if "Running=1" in compact:
            return DaemonState.RUNNING
        if "Running=0" in compact:
            return DaemonState.STOPPED
        return DaemonState.UNKNOWN

    def swap_daemon_state(self) -> DaemonState:
        """Check for a ``dynamic_pager`` process with ``pgrep``."""
        result = self._run(["pgrep", "-x", "dynamic_pager"])
        if result is None:
            return DaemonState.UNKNOWN
        # pgrep: 0 = match, 1 = no match, anything else = error
        if result.returncode == 0:
            return DaemonState.RUNNING
        if result.returncode == 1:
            return DaemonState.STOPPED
        return DaemonState.UNKNOWN

    def validate_plist(self, path: str) -> PlistValidity:
        """Validate with ``plutil -lint``."""
        result = self._run(["plutil", "-lint", path])
        if result is None:
            return PlistValidity.UNKNOWN
        return PlistValidity.VALID if result.success else PlistValidity.INVALID

    def plist_program(self, path: str) -> str | None:
        """Extract ``Program`` or ``ProgramArguments.0`` with ``plutil``."""
        for key in ("Program", "ProgramArguments.0"):
            result = self._run(["plutil", "-extract", key, "raw", path])
            if result is not None and result.success and result.stdout.strip():
                return result.stdout.strip()
        return None

    def unload_job(self, path: str) -> bool:
        """Unload with ``launchctl unload``."""
        result = self._run(["launchctl", "unload", path])
        return result is not None and result.success

    def set_swap_daemon_loaded(self, loaded: bool) -> bool:
        """Load or unload the dynamic pager launch daemon."""
        verb = "load" if loaded else "unload"
        result = self._run(privileged(["launchctl", verb, "-wF", SWAP_DAEMON_PLIST]))
        return result is not None and result.success

    def set_interface_enabled(self, interface: str, enabled: bool) -> bool:
        """Bring an interface up or down with ``ifconfig``."""
        state = "up" if enabled else "down"
        result = self._run(privileged(["ifconfig", interface, state]))
        return result is not None and result.success

    def flush_dns_cache(self) -> bool:
        """Flush the directory-service cache and signal mDNSResponder."""
        flushed = self._run(privileged(["dscacheutil", "-flushcache"]))
        signalled = self._run(privileged(["killall", "-HUP", "mDNSResponder"]))
        return all(r is not None and r.success for r in (flushed, signalled))

    def rebuild_search_index(self, volume: str) -> bool:
        """Erase and rebuild the Spotlight index with ``mdutil -E``."""
        result = self._run(privileged(["mdutil", "-E", volume]))
        return result is not None and result.success

    def _run(self, args: list[str]) -> CommandResult | None:
        """Run a bounded command; None means the outcome is unknown."""
        try:
            return run_command(args, timeout=self._timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Timed out after %.1fs: %s", self._timeout, " ".join(args))
            return None
        except (FileNotFoundError, OSError) as e:
            logger.warning("Cannot run %s: %s", args[0], e)
            return None
