"""Enforce command implementation.

Brings the system into the state described by a policy: every resource
that drifts is converged with its package manager and then re-checked.
"""

import subprocess
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from pkgstate.cli.commands.check import check_resource
from pkgstate.cli.types import (
    ResourceStatus,
    add_resource_row,
    build_context,
    load_policy_or_exit,
)
from pkgstate.core.enforcer import build_enforce_command
from pkgstate.core.errors import PackageResourceError
from pkgstate.core.resource import PackageResource
from pkgstate.models.package import NAMED_PACKAGE_TYPES
from pkgstate.utils.formatting import (
    console,
    create_resource_table,
    print_info,
    print_success,
)


def _describe_command(resource: PackageResource) -> str:
    """Describe the command enforcement would run for a resource."""
    package = resource.managed_package
    if package is None:
        return "-"
    if not isinstance(package, NAMED_PACKAGE_TYPES) and package.source.remote is not None:
        return f"download {package.source.remote.uri}, then install with {package.backend.value}"
    try:
        return str(build_enforce_command(package))
    except PackageResourceError as e:
        return f"unsupported: {e}"


def _create_plan_table(resources: list[PackageResource], dry_run: bool) -> Table:
    """Create a Rich table displaying planned enforcement commands.

    Args:
        resources: Drifted resources to enforce.
        dry_run: Whether this is a dry-run.

    Returns:
        Rich Table configured for plan display.
    """
    title = "Planned Enforcement (Dry Run)" if dry_run else "Planned Enforcement"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Resource", no_wrap=True)
    table.add_column("Command")

    for resource in resources:
        table.add_row(escape(resource.label), f"[muted]{escape(_describe_command(resource))}[/muted]")

    return table


def enforce_resource(resource: PackageResource) -> tuple[ResourceStatus, str | None]:
    """Enforce a drifted resource and confirm the result.

    Name-based packages are re-checked after enforcement. Source-based
    packages cannot be checked, so a successful command is the result.

    Args:
        resource: A validated resource that is not in its desired state.

    Returns:
        Tuple of (status, detail message).
    """
    try:
        resource.enforce_state()
    except (PackageResourceError, OSError, subprocess.TimeoutExpired) as e:
        return ResourceStatus.FAILED, str(e)

    if not isinstance(resource.managed_package, NAMED_PACKAGE_TYPES):
        return ResourceStatus.ENFORCED, None

    try:
        in_state = resource.check_state()
    except (PackageResourceError, OSError, subprocess.TimeoutExpired) as e:
        return ResourceStatus.FAILED, f"enforced, but re-check failed: {e}"

    if in_state:
        return ResourceStatus.ENFORCED, None
    return ResourceStatus.DRIFT, "still out of desired state after enforcement"


def _confirm_enforcement(count: int) -> bool:
    """Prompt user to confirm enforcement.

    Args:
        count: Number of resources to be enforced.

    Returns:
        True if user confirms, False otherwise.
    """
    return typer.confirm(
        f"\nEnforce {count} resource(s)?",
        default=False,
    )


def enforce_policy(
    ctx: typer.Context,
    policy_path: Annotated[
        Path,
        typer.Argument(
            metavar="POLICY",
            help="Policy file (TOML) with [[resources]] entries.",
        ),
    ],
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt and proceed.",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes.",
        ),
    ] = False,
) -> None:
    """Enforce package resources on the system.

    Installs or removes packages so that every resource of the policy is
    in its desired state. Resources already in state are left alone.

    Examples:
        pkgstate enforce policy.toml --dry-run   # Preview commands
        pkgstate enforce policy.toml --yes       # Enforce without confirmation
    """
    context = build_context(ctx)
    policy = load_policy_or_exit(policy_path)
    resources = policy.build_resources(context)

    outcomes: dict[str, tuple[ResourceStatus, str | None]] = {}
    drifted: list[PackageResource] = []

    for resource in resources:
        status, detail = check_resource(resource)
        if status == ResourceStatus.DRIFT:
            drifted.append(resource)
        else:
            outcomes[resource.label] = (status, detail)

    if not drifted and not any(s.is_failure for s, _ in outcomes.values()):
        print_success("System is already in the desired state. Nothing to do.")
        return

    if drifted:
        console.print(_create_plan_table(drifted, dry_run))

    if dry_run:
        for resource in drifted:
            outcomes[resource.label] = (ResourceStatus.PLANNED, None)
        _print_results(resources, outcomes)
        print_info("\nDry-run mode: No changes were made.")
        if any(s.is_failure for s, _ in outcomes.values()):
            raise typer.Exit(code=1)
        return

    if drifted and not yes and not _confirm_enforcement(len(drifted)):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    if drifted:
        console.print("\n[bold]Enforcing resources...[/bold]\n")
    for resource in drifted:
        outcomes[resource.label] = enforce_resource(resource)

    _print_results(resources, outcomes)

    failed = [s for s, _ in outcomes.values() if s.is_failure]
    if failed:
        console.print(f"\n[error]{len(failed)} resource(s) not in desired state[/error]")
        raise typer.Exit(code=1)
    print_success(f"All {len(outcomes)} resource(s) are in the desired state.")


def _print_results(
    resources: list[PackageResource],
    outcomes: dict[str, tuple[ResourceStatus, str | None]],
) -> None:
    """Print the outcome of every resource in policy order."""
    table = create_resource_table("Results")
    for resource in resources:
        status, detail = outcomes[resource.label]
        add_resource_row(table, resource, status, detail)
    console.print(table)
