"""Utility modules for pkgstate.

This module exports commonly used utility functions.
"""

from pkgstate.utils.formatting import (
    console,
    err_console,
    print_error,
    print_info,
    print_success,
)
from pkgstate.utils.shell import (
    CommandResult,
    CommandRunner,
    SubprocessRunner,
    command_exists,
    run_command,
)

__all__ = [
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    "command_exists",
    "console",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "run_command",
]
