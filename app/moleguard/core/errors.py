"""Exception hierarchy for moleguard.

Only run-level faults abort a run. Per-candidate problems are recorded as
outcomes and never raised past the component that met them.
"""


class MoleguardError(Exception):
    """Base exception for all moleguard errors."""


class RunLevelFault(MoleguardError):
    """Fault that aborts the entire run (moves it to Failed)."""


class ScanRootMissingError(RunLevelFault):
    """Raised when the scan root does not exist or cannot be read."""


class WhitelistError(RunLevelFault):
    """Raised when the whitelist store cannot be read or written."""


class ConfigError(MoleguardError):
    """Base exception for engine configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


class RunStateError(MoleguardError):
    """Raised on an illegal run state transition."""


class ScanTimeout(MoleguardError):
    """Raised when a bounded filesystem query exceeds its deadline."""

    def __init__(self, path: str, seconds: float) -> None:
        super().__init__(f"Timed out after {seconds:.1f}s: {path}")
        self.path = path
        self.seconds = seconds


class OperationInterrupted(BaseException):
    """Raised from a signal handler while a recoverable action is in flight.

    Derives from BaseException so generic ``except Exception`` blocks do not
    swallow it before recovery handlers run.
    """

    def __init__(self, signum: int) -> None:
        super().__init__(f"Interrupted by signal {signum}")
        self.signum = signum
