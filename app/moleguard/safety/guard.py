"""Path validation performed before every filesystem mutation.

PathGuard normalizes a candidate path lexically and rejects anything that
touches a system-critical location, escapes its scan root, smuggles in
``..`` segments, or passes through a symbolic link. A path whose
components cannot be inspected is rejected as unverifiable.
Validation is read-only: the only filesystem access is ``lstat``.
"""

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from moleguard.utils.fs import is_within

logger = logging.getLogger(__name__)

# Roots whose entire subtree is off limits.
SYSTEM_CRITICAL_ROOTS: tuple[str, ...] = (
    "/System",
    "/bin",
    "/sbin",
    "/usr/bin",
    "/usr/sbin",
    "/usr/lib",
    "/usr/libexec",
    "/usr/share",
    "/etc",
    "/private/etc",
    "/dev",
    "/cores",
    "/boot",
    "/proc",
    "/sys",
    "/Library/Apple",
    "/private/var/db",
)

# Container directories that may hold cleanable entries but must never be
# removed themselves. Patterns starting with ~ are expanded to the user's
# home directory.
CRITICAL_CONTAINERS: tuple[str, ...] = (
    "/",
    "/Users",
    "/Applications",
    "/Library",
    "/private",
    "/var",
    "/private/var",
    "/tmp",
    "/private/tmp",
    "/private/var/tmp",
    "/usr",
    "/usr/local",
    "/opt",
    "/Volumes",
    "~",
    "~/Applications",
    "~/Desktop",
    "~/Documents",
    "~/Downloads",
    "~/Movies",
    "~/Music",
    "~/Pictures",
    "~/Library",
    "~/Library/Application Support",
    "~/Library/Caches",
    "~/Library/Containers",
    "~/Library/Logs",
    "~/Library/Preferences",
    "~/Library/LaunchAgents",
    "~/.Trash",
)


class RejectionReason(str, Enum):
    """Machine-checkable reason for rejecting a path.

    Attributes:
        EMPTY_PATH: Path is empty or unset.
        ROOT_OR_SYSTEM_PATH: Path is, or lies under, a system-critical location.
        TRAVERSAL_DETECTED: Raw path contains ``..`` segments.
        SYMLINK_DETECTED: Final or ancestor component is a symbolic link.
        OUTSIDE_SCAN_ROOT: Path is not inside the permitted scan root.
        PATH_UNVERIFIABLE: A component could not be inspected for links.
    """

    EMPTY_PATH = "empty-path"
    ROOT_OR_SYSTEM_PATH = "root-or-system-path"
    TRAVERSAL_DETECTED = "traversal-detected"
    SYMLINK_DETECTED = "symlink-detected"
    OUTSIDE_SCAN_ROOT = "outside-scan-root"
    PATH_UNVERIFIABLE = "path-unverifiable"


@dataclass(frozen=True, slots=True)
class GuardResult:
    """Outcome of validating one path.

    Exactly one of ``path`` and ``reason`` is set.

    Attributes:
        path: Normalized absolute path when accepted.
        reason: Rejection reason when rejected.
    """

    path: str | None = None
    reason: RejectionReason | None = None

    @property
    def accepted(self) -> bool:
        """True if the path passed validation."""
        return self.reason is None


def normalize_path(path: str | os.PathLike[str], base: str | None = None) -> str:
    """Resolve ``.`` and ``..`` segments lexically, without following links.

    Relative paths are anchored at ``base`` (or the current directory).

    Args:
        path: Path to normalize.
        base: Anchor for relative paths.

    Returns:
        Normalized absolute path string.
    """
    raw = os.fspath(path)
    if not os.path.isabs(raw):
        raw = os.path.join(base or os.getcwd(), raw)
    normalized = os.path.normpath(raw)
    # POSIX keeps a leading double slash; collapse it.
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def _expand(pattern: str, home: str) -> str:
    if pattern == "~":
        return home
    if pattern.startswith("~/"):
        return home + pattern[1:]
    return pattern


def is_system_critical(path: str, home: str | None = None) -> bool:
    """Check a normalized path against the system-critical deny-list.

    Args:
        path: Normalized absolute path.
        home: Home directory override (defaults to the current user's).

    Returns:
        True if the path is a critical container or lies under a critical root.
    """
    home_dir = home if home is not None else str(Path.home())

    for root in SYSTEM_CRITICAL_ROOTS:
        if is_within(path, root):
            return True

    return any(path == _expand(container, home_dir) for container in CRITICAL_CONTAINERS)


def find_symlink_component(path: str, *, include_final: bool = True) -> str | None:
    """Return the first component of ``path`` that is a symbolic link.

    Walks from the filesystem root down to the final component using
    ``lstat``. Components that do not exist end the walk: nothing below a
    missing directory can be a link.

    Args:
        path: Normalized absolute path.
        include_final: If False, only ancestors are checked.

    Returns:
        The offending component path, or None if no component is a link.

    Raises:
        OSError: If a component cannot be inspected (permission denied,
            or an ancestor is not a directory).
    """
    parts = Path(path).parts[1:]
    if not include_final:
        parts = parts[:-1]

    current = "/"
    for part in parts:
        current = os.path.join(current, part)
        try:
            mode = os.lstat(current).st_mode
        except FileNotFoundError:
            return None
        if stat.S_ISLNK(mode):
            return current
    return None


class PathGuard:
    """Validates a single candidate path before any mutation.

    Args:
        scan_root: If set, accepted paths must lie inside this directory.
        elevated: If True, also reject paths whose final component is a link.
        home: Home directory override used for the container deny-list.
    """

    def __init__(
        self,
        *,
        scan_root: str | Path | None = None,
        elevated: bool = False,
        home: str | Path | None = None,
    ) -> None:
        self._scan_root = normalize_path(scan_root) if scan_root is not None else None
        self._elevated = elevated
        self._home = str(home) if home is not None else None

    @property
    def elevated(self) -> bool:
        """Whether this guard applies elevated-caller rules."""
        return self._elevated

    def validate(self, path: str | os.PathLike[str] | None) -> GuardResult:
        """Validate a path.

        Args:
            path: Candidate path (absolute or relative).

        Returns:
            GuardResult with the normalized path or a rejection reason.
        """
        raw = os.fspath(path) if path is not None else ""
        if not raw or not raw.strip():
            return self._reject(raw, RejectionReason.EMPTY_PATH)

        normalized = normalize_path(raw, base=self._scan_root)

        if is_system_critical(normalized, self._home):
            return self._reject(raw, RejectionReason.ROOT_OR_SYSTEM_PATH)

        if ".." in Path(raw).parts:
            return self._reject(raw, RejectionReason.TRAVERSAL_DETECTED)

        if self._scan_root is not None and not is_within(normalized, self._scan_root):
            return self._reject(raw, RejectionReason.OUTSIDE_SCAN_ROOT)

        # Elevated callers may not touch links at all. Unprivileged callers
        # may unlink a final-component link, but never reach through one.
        try:
            link = find_symlink_component(normalized, include_final=self._elevated)
        except OSError as e:
            logger.warning("Cannot verify path %s: %s", normalized, e)
            return self._reject(raw, RejectionReason.PATH_UNVERIFIABLE)
        if link is not None:
            logger.warning("Symlink in path %s at component %s", normalized, link)
            return self._reject(raw, RejectionReason.SYMLINK_DETECTED)

        return GuardResult(path=normalized)

    @staticmethod
    def _reject(raw: str, reason: RejectionReason) -> GuardResult:
        logger.debug("Rejected %r: %s", raw, reason.value)
        return GuardResult(reason=reason)
