"""CLI package for pkgstate.

This package contains the Typer application and all subcommands.
"""

from pkgstate.cli.main import app

__all__ = ["app"]
