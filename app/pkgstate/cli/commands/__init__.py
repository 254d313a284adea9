"""CLI commands for pkgstate.

This package contains all subcommand implementations.
"""

from pkgstate.cli.commands import check, config, enforce

__all__ = ["check", "config", "enforce"]
