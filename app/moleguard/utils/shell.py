"""Shell execution utilities.

Provides bounded subprocess execution with proper error handling.
"""

import os
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
) -> CommandResult:
    """Execute a shell command and return the result.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=check,
        timeout=timeout,
        cwd=cwd,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def is_elevated() -> bool:
    """Check whether the current process runs with root privileges."""
    return os.geteuid() == 0


def privileged(args: list[str]) -> list[str]:
    """Prefix a command with non-interactive sudo unless already root.

    ``sudo -n`` fails instead of prompting, so a bounded command can never
    hang on a password prompt.

    Args:
        args: Command and arguments.

    Returns:
        The command, prefixed with ``sudo -n`` when not running as root.
    """
    if is_elevated():
        return list(args)
    return ["sudo", "-n", *args]
