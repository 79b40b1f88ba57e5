"""Utility modules for moleguard.

This module exports commonly used utility functions.
"""

from moleguard.utils.formatting import (
    console,
    err_console,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from moleguard.utils.fs import TreeMeasure, is_within, last_touched, list_children, measure_tree
from moleguard.utils.shell import CommandResult, is_elevated, run_command

__all__ = [
    "CommandResult",
    "TreeMeasure",
    "console",
    "err_console",
    "format_size",
    "is_elevated",
    "is_within",
    "last_touched",
    "list_children",
    "measure_tree",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
