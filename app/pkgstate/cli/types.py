"""Shared types and utilities for CLI commands.

This module provides helpers used by several CLI command modules to load
configuration and policies and to render resource results.
"""

from enum import Enum
from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from pkgstate.core.config import ConfigError, load_config_or_default
from pkgstate.core.policy import Policy, load_policy
from pkgstate.core.resource import PackageResource, ReconcileContext
from pkgstate.models.package import package_label
from pkgstate.utils.formatting import print_error


class ResourceStatus(str, Enum):
    """Outcome of processing a resource in a CLI command."""

    IN_STATE = "in-state"
    DRIFT = "drift"
    ENFORCED = "enforced"
    PLANNED = "planned"
    FAILED = "failed"
    INVALID = "invalid"

    @property
    def is_failure(self) -> bool:
        """Check if this status should make the command exit non-zero."""
        return self in (ResourceStatus.DRIFT, ResourceStatus.FAILED, ResourceStatus.INVALID)


_STATUS_MARKUP: dict[ResourceStatus, str] = {
    ResourceStatus.IN_STATE: "[success]in state[/success]",
    ResourceStatus.DRIFT: "[warning]drift[/warning]",
    ResourceStatus.ENFORCED: "[added]enforced[/added]",
    ResourceStatus.PLANNED: "[info]planned[/info]",
    ResourceStatus.FAILED: "[error]failed[/error]",
    ResourceStatus.INVALID: "[error]invalid[/error]",
}


def get_config_path(ctx: typer.Context) -> Path | None:
    """Return the --config path stored by the main callback."""
    if ctx.obj is None:
        return None
    return ctx.obj.get("config_path")


def build_context(ctx: typer.Context) -> ReconcileContext:
    """Create a reconciliation context from the agent configuration.

    Raises:
        typer.Exit: If the configuration cannot be loaded.
    """
    try:
        config = load_config_or_default(get_config_path(ctx))
    except ConfigError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=1) from e
    return ReconcileContext.from_config(config)


def load_policy_or_exit(path: Path) -> Policy:
    """Load a policy file, exiting with an error message on failure.

    Raises:
        typer.Exit: If the policy cannot be loaded.
    """
    try:
        return load_policy(path)
    except ConfigError as e:
        print_error(f"Failed to load policy: {e}")
        raise typer.Exit(code=1) from e


def add_resource_row(
    table: Table,
    resource: PackageResource,
    status: ResourceStatus,
    detail: str | None = None,
) -> None:
    """Append a resource to a resource table.

    Args:
        table: Table created by :func:`create_resource_table`.
        resource: The resource to display.
        status: Outcome of processing the resource.
        detail: Optional message shown below the status.
    """
    package = resource.managed_package
    if package is not None:
        backend = package.backend.value
        name = package_label(package)
        desired = package.desired_state.value
    else:
        blocks = resource.spec.backend_blocks()
        backend = ",".join(b.value for b, _ in blocks) or "-"
        name = "-"
        desired = resource.spec.desired_state.value if resource.spec.desired_state else "-"

    status_text = _STATUS_MARKUP[status]
    if detail:
        status_text = f"{status_text}\n[muted]{escape(detail)}[/muted]"

    table.add_row(escape(resource.label), backend, escape(name), desired, status_text)
