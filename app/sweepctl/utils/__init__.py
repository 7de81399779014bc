"""Utility modules for sweepctl.

This module exports commonly used utility functions.
"""

from sweepctl.utils.formatting import (
    console,
    create_candidate_table,
    err_console,
    format_relative_days,
    format_size_kb,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from sweepctl.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_candidate_table",
    "err_console",
    "format_relative_days",
    "format_size_kb",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
