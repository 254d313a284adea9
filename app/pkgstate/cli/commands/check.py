"""Check command implementation.

Validates every resource of a policy and reports whether the system is in
the desired state, without changing anything.
"""

import subprocess
from pathlib import Path
from typing import Annotated

import typer

from pkgstate.cli.types import (
    ResourceStatus,
    add_resource_row,
    build_context,
    load_policy_or_exit,
)
from pkgstate.core.errors import PackageResourceError, ResourceValidationError
from pkgstate.core.resource import PackageResource
from pkgstate.utils.formatting import (
    console,
    create_resource_table,
    print_success,
)


def check_resource(resource: PackageResource) -> tuple[ResourceStatus, str | None]:
    """Validate and check a single resource.

    Args:
        resource: The resource to check.

    Returns:
        Tuple of (status, detail message).
    """
    try:
        resource.validate()
    except ResourceValidationError as e:
        return ResourceStatus.INVALID, str(e)

    try:
        in_state = resource.check_state()
    except (PackageResourceError, OSError, subprocess.TimeoutExpired) as e:
        return ResourceStatus.FAILED, str(e)

    if in_state:
        return ResourceStatus.IN_STATE, None
    return ResourceStatus.DRIFT, None


def check_policy(
    ctx: typer.Context,
    policy_path: Annotated[
        Path,
        typer.Argument(
            metavar="POLICY",
            help="Policy file (TOML) with [[resources]] entries.",
        ),
    ],
) -> None:
    """Check package resources against the system.

    Reports drift for every resource whose package is not in its desired
    state. Source-based packages (deb, msi, rpm) are always reported as
    drift since their presence cannot be determined by name.

    Exits with code 1 when any resource drifts or fails.

    Examples:
        pkgstate check policy.toml
    """
    context = build_context(ctx)
    policy = load_policy_or_exit(policy_path)
    resources = policy.build_resources(context)

    if not resources:
        print_success("Policy contains no resources. Nothing to check.")
        return

    table = create_resource_table("Package Resources")
    statuses: list[ResourceStatus] = []

    for resource in resources:
        status, detail = check_resource(resource)
        statuses.append(status)
        add_resource_row(table, resource, status, detail)

    console.print(table)

    drift_count = sum(1 for s in statuses if s == ResourceStatus.DRIFT)
    failed_count = sum(1 for s in statuses if s in (ResourceStatus.FAILED, ResourceStatus.INVALID))

    if drift_count == 0 and failed_count == 0:
        print_success(f"All {len(statuses)} resource(s) are in the desired state.")
        return

    console.print(
        f"\n[warning]{drift_count} drifted[/warning], [error]{failed_count} failed[/error]"
    )
    raise typer.Exit(code=1)
