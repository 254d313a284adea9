"""Enforcement of managed packages.

Builds the install or remove command for a managed package from the
backend descriptor table and runs it. Failures are raised as-is; retrying
is left to the caller.
"""

import logging
import tempfile
import threading
from pathlib import Path

from pkgstate.core.artifacts import resolve_artifact
from pkgstate.core.backends import Command, get_backend_spec
from pkgstate.core.errors import EnforcementError
from pkgstate.models.package import (
    NAMED_PACKAGE_TYPES,
    DebPackage,
    DesiredState,
    ManagedPackage,
    MSIPackage,
    RPMPackage,
)
from pkgstate.utils.shell import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


def build_enforce_command(package: ManagedPackage, artifact: Path | None = None) -> Command:
    """Build the command that brings a package into its desired state.

    Args:
        package: The managed package.
        artifact: Local path of the artifact for source-based packages.
            Defaults to the package's local source path.

    Returns:
        The command to run.

    Raises:
        EnforcementError: If the backend cannot reach the desired state.
    """
    spec = get_backend_spec(package.backend)

    if isinstance(package, NAMED_PACKAGE_TYPES):
        if package.desired_state == DesiredState.INSTALLED:
            return spec.install.build(package.name)
        if spec.remove is None:
            msg = f"removing packages is not supported by {package.backend.value}"
            raise EnforcementError(package.backend, [], message=msg)
        return spec.remove.build(package.name)

    if artifact is None:
        if package.source.local_path is None:
            msg = "remote artifact must be downloaded before building the command"
            raise EnforcementError(package.backend, [], message=msg)
        artifact = Path(package.source.local_path)

    template = spec.install
    if isinstance(package, DebPackage | RPMPackage) and package.pull_deps:
        template = spec.install_with_deps or spec.install

    extra: tuple[str, ...] = ()
    if isinstance(package, MSIPackage):
        extra = package.properties

    return template.build(str(artifact), extra)


def _run_enforce_command(
    package: ManagedPackage,
    command: Command,
    runner: CommandRunner,
    cancel: threading.Event | None,
) -> CommandResult:
    """Run an enforcement command and raise on a non-zero exit."""
    logger.info("Enforcing %s package: %s", package.backend.value, command)
    result = runner.run(command.args, env=command.env, cancel=cancel)
    if not result.success:
        raise EnforcementError(package.backend, command.args, result)
    return result


def enforce_package_state(
    package: ManagedPackage,
    runner: CommandRunner,
    *,
    cancel: threading.Event | None = None,
    download_timeout: float = 120.0,
) -> CommandResult:
    """Install or remove a managed package.

    Does not check the resulting state; call the state checker again for
    confirmation.

    Args:
        package: The managed package.
        runner: Command runner used to run the package manager.
        cancel: Event that aborts the command.
        download_timeout: Network timeout for remote artifacts.

    Returns:
        Result of the successful command.

    Raises:
        EnforcementError: If the command exits non-zero.
        ArtifactError: If a remote artifact cannot be fetched.
        CommandCancelledError: If the command was cancelled.
        OSError: If the package manager could not be started.
    """
    if isinstance(package, NAMED_PACKAGE_TYPES) or package.source.remote is None:
        command = build_enforce_command(package)
        return _run_enforce_command(package, command, runner, cancel)

    with tempfile.TemporaryDirectory(prefix="pkgstate-") as tmp:
        artifact = resolve_artifact(package.backend, package.source, Path(tmp), download_timeout)
        command = build_enforce_command(package, artifact)
        return _run_enforce_command(package, command, runner, cancel)
