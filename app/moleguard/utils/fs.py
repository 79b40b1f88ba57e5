"""Bounded, link-aware filesystem measurement helpers.

Everything here uses ``lstat`` semantics: symbolic links are measured as
links and never traversed, and a walk never descends onto another device.
"""

import logging
import os
import stat
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from moleguard.core.errors import ScanTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TreeMeasure:
    """Size of a file or directory tree.

    Attributes:
        size_bytes: Sum of regular file and link sizes (directories excluded).
        mount_points: Directories inside the tree that live on another device.
    """

    size_bytes: int
    mount_points: tuple[str, ...] = ()


def measure_tree(path: str | Path, *, timeout: float | None = None) -> TreeMeasure:
    """Measure a path without following symlinks or crossing devices.

    Unreadable subdirectories are skipped. Entries that vanish mid-walk
    are ignored.

    Args:
        path: File or directory to measure.
        timeout: Wall-clock budget in seconds. None disables the deadline.

    Returns:
        TreeMeasure for the path.

    Raises:
        FileNotFoundError: If the path itself does not exist.
        ScanTimeout: If the walk exceeds the deadline.
    """
    root = os.fspath(path)
    root_stat = os.lstat(root)
    if not stat.S_ISDIR(root_stat.st_mode):
        return TreeMeasure(size_bytes=root_stat.st_size)

    deadline = time.monotonic() + timeout if timeout is not None else None
    root_dev = root_stat.st_dev
    total = 0
    mounts: list[str] = []
    stack = [root]

    while stack:
        if deadline is not None and time.monotonic() > deadline:
            raise ScanTimeout(root, timeout or 0.0)

        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        entry_stat = entry.stat(follow_symlinks=False)
                    except OSError:
                        continue
                    if stat.S_ISDIR(entry_stat.st_mode):
                        if entry_stat.st_dev != root_dev:
                            mounts.append(entry.path)
                            continue
                        stack.append(entry.path)
                    else:
                        total += entry_stat.st_size
        except FileNotFoundError:
            continue
        except PermissionError:
            logger.debug("Permission denied measuring: %s", current)
            continue

    return TreeMeasure(size_bytes=total, mount_points=tuple(sorted(mounts)))


def list_children(directory: str | Path, *, timeout: float | None = None) -> list[Path]:
    """List the direct children of a directory, sorted, under a deadline.

    Args:
        directory: Directory to enumerate.
        timeout: Wall-clock budget in seconds. None disables the deadline.

    Returns:
        Sorted list of child paths.

    Raises:
        FileNotFoundError: If the directory does not exist.
        PermissionError: If the directory cannot be read.
        ScanTimeout: If enumeration exceeds the deadline.
    """
    deadline = time.monotonic() + timeout if timeout is not None else None
    children: list[Path] = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if deadline is not None and time.monotonic() > deadline:
                raise ScanTimeout(os.fspath(directory), timeout or 0.0)
            children.append(Path(entry.path))
    return sorted(children)


def last_touched(path: str | Path) -> datetime | None:
    """Return the modification time of a path, or None on error.

    Access time is ignored: measuring a tree reads its directories and
    would reset the age of every candidate a scan looks at.
    """
    try:
        st = os.lstat(path)
    except OSError:
        return None
    return datetime.fromtimestamp(st.st_mtime, tz=UTC)


def is_within(path: str, prefix: str) -> bool:
    """Check whether ``path`` equals ``prefix`` or lies beneath it.

    Comparison is on whole path components: ``/a/b`` contains ``/a/b/c``
    but not ``/a/bc``. Both arguments must already be normalized.
    """
    if prefix == "/":
        return path.startswith("/")
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")
