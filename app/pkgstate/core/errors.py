"""Exception types raised by the reconciliation core.

Every failure in the core is reported by raising one of these exceptions;
the CLI layer is responsible for turning them into user-facing output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pkgstate.models.package import Backend
    from pkgstate.utils.shell import CommandResult


class PackageResourceError(Exception):
    """Base exception for package resource errors."""


class ResourceValidationError(PackageResourceError):
    """Raised when a resource descriptor is malformed or contradictory."""


class CacheRefreshError(PackageResourceError):
    """Raised when the installed-package list of a backend cannot be read.

    Attributes:
        backend: Backend whose cache failed to refresh.
        result: Result of the list-installed command, if it ran at all.
    """

    def __init__(
        self,
        backend: Backend,
        message: str,
        result: CommandResult | None = None,
    ) -> None:
        super().__init__(f"{backend.value}: {message}")
        self.backend = backend
        self.result = result


class EnforcementError(PackageResourceError):
    """Raised when an install or remove command exits unsuccessfully.

    The message carries the exit status and stderr of the command verbatim.

    Attributes:
        backend: Backend the command was issued for.
        args: The argv that was executed.
        result: Result of the failed command.
    """

    def __init__(
        self,
        backend: Backend,
        args: Sequence[str],
        result: CommandResult | None = None,
        message: str | None = None,
    ) -> None:
        if message is None:
            stderr = result.stderr.strip() if result is not None else ""
            code = result.returncode if result is not None else "unknown"
            message = f"{' '.join(args)} exited with status {code}"
            if stderr:
                message = f"{message}: {stderr}"
        super().__init__(f"{backend.value}: {message}")
        self.backend = backend
        self.args_list = list(args)
        self.result = result


class ArtifactError(EnforcementError):
    """Raised when a remote package artifact cannot be fetched or verified."""


class CommandCancelledError(PackageResourceError):
    """Raised when a running command is aborted through its cancel event.

    Cancellation is never reported as a command failure.
    """

    def __init__(self, args: Sequence[str]) -> None:
        super().__init__(f"Command cancelled: {' '.join(args)}")
        self.args_list = list(args)
