"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from pkgstate import __version__
from pkgstate.cli.commands import check, config, enforce
from pkgstate.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="pkgstate",
    help="Reconcile package resources with the packages installed on this machine.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pkgstate version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records to the stderr console.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Agent config file (default: ~/.config/pkgstate/config.toml).",
        ),
    ] = None,
) -> None:
    """pkgstate - package resource reconciliation.

    Validate package resources, detect drift against the installed
    packages and converge the system with apt, yum, zypper, googet,
    dpkg, rpm or msiexec.
    """
    configure_logging(verbose)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path


# Register commands
app.command(name="check")(check.check_policy)
app.command(name="enforce")(enforce.enforce_policy)
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
