"""Config command implementation.

Shows or initializes the agent configuration file.
"""

from typing import Annotated

import typer
from rich.table import Table

from pkgstate.cli.types import get_config_path
from pkgstate.core.config import (
    AgentConfig,
    ConfigError,
    load_config_or_default,
    save_config,
)
from pkgstate.core.paths import get_config_path as get_default_config_path
from pkgstate.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show or initialize the agent configuration.",
    no_args_is_help=True,
)


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the effective agent configuration."""
    path = get_config_path(ctx) or get_default_config_path()
    try:
        config = load_config_or_default(path)
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e

    table = Table(
        title="Agent Configuration",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Setting", no_wrap=True)
    table.add_column("Value", style="info")
    for key, value in config.model_dump().items():
        table.add_row(key, str(value))

    console.print(table)
    source = str(path) if path.exists() else "defaults (no config file)"
    print_info(f"Source: {source}")


@app.command()
def init(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with default settings."""
    path = get_config_path(ctx) or get_default_config_path()
    if path.exists() and not force:
        print_error(f"Config already exists: {path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        saved = save_config(AgentConfig(), path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {saved}")
