"""Package resource lifecycle.

A :class:`PackageResource` wraps one package resource descriptor and
moves through validate, check and enforce against a shared
:class:`ReconcileContext`. The context owns everything that is shared
between resources (installed-package caches and the command runner), so
independent contexts never interfere with each other.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from pkgstate.core.cache import CacheRegistry
from pkgstate.core.checker import check_package_state
from pkgstate.core.enforcer import enforce_package_state
from pkgstate.core.errors import PackageResourceError, ResourceValidationError
from pkgstate.core.validator import validate_package_resource
from pkgstate.models.package import NAMED_PACKAGE_TYPES, package_label
from pkgstate.utils.shell import CommandRunner, SubprocessRunner

if TYPE_CHECKING:
    from pkgstate.core.config import AgentConfig
    from pkgstate.models.package import ManagedPackage
    from pkgstate.models.resource import PackageResourceSpec
    from pkgstate.utils.shell import CommandResult

logger = logging.getLogger(__name__)


@dataclass
class ReconcileContext:
    """State shared by all resources reconciled by one agent.

    Attributes:
        runner: Command runner used for every external command.
        caches: Installed-package caches, one per backend.
        download_timeout: Network timeout for remote artifacts.
    """

    runner: CommandRunner = field(default_factory=SubprocessRunner)
    caches: CacheRegistry = field(default_factory=CacheRegistry)
    download_timeout: float = 120.0

    @classmethod
    def from_config(
        cls,
        config: AgentConfig,
        runner: CommandRunner | None = None,
    ) -> ReconcileContext:
        """Create a context from the agent configuration.

        Args:
            config: Agent configuration.
            runner: Command runner; defaults to a subprocess runner using the
                configured command timeout.

        Returns:
            A new context with empty caches.
        """
        return cls(
            runner=runner or SubprocessRunner(timeout=config.command_timeout_seconds),
            caches=CacheRegistry(ttl=config.cache_ttl_seconds),
            download_timeout=config.download_timeout_seconds,
        )


class ResourcePhase(Enum):
    """Lifecycle phase of a package resource.

    Attributes:
        UNVALIDATED: No managed package; the only side-effect-free phase.
        VALIDATED: A managed package exists but its state is unknown.
        CHECKED: The in-desired-state flag reflects the last check.
        ENFORCED: A convergence command ran; the state is unknown until
            checked again.
    """

    UNVALIDATED = "unvalidated"
    VALIDATED = "validated"
    CHECKED = "checked"
    ENFORCED = "enforced"


class PackageResource:
    """A package resource and the managed package derived from it.

    Example:
        >>> resource = PackageResource(spec, ReconcileContext())
        >>> resource.validate()
        >>> if not resource.check_state():
        ...     resource.enforce_state()
    """

    def __init__(
        self,
        spec: PackageResourceSpec,
        context: ReconcileContext,
        resource_id: str | None = None,
    ) -> None:
        """Initialize an unvalidated resource.

        Args:
            spec: The package resource descriptor.
            context: Shared reconciliation state.
            resource_id: Optional identifier used in log messages.
        """
        self.spec = spec
        self.context = context
        self.resource_id = resource_id
        self._managed_package: ManagedPackage | None = None
        self._in_desired_state: bool | None = None
        self._validation_error: ResourceValidationError | None = None
        self._phase = ResourcePhase.UNVALIDATED

    @property
    def managed_package(self) -> ManagedPackage | None:
        """Return the managed package, or None if not validated."""
        return self._managed_package

    @property
    def in_desired_state(self) -> bool | None:
        """Return the result of the last check, or None if unknown."""
        return self._in_desired_state

    @property
    def validation_error(self) -> ResourceValidationError | None:
        """Return the error of the last failed validation."""
        return self._validation_error

    @property
    def phase(self) -> ResourcePhase:
        """Return the lifecycle phase."""
        return self._phase

    @property
    def label(self) -> str:
        """Return the resource id, or a description of the package."""
        if self.resource_id:
            return self.resource_id
        if self._managed_package is not None:
            return f"{self._managed_package.backend.value}:{package_label(self._managed_package)}"
        return "<unvalidated>"

    def validate(self, spec: PackageResourceSpec | None = None) -> ManagedPackage:
        """Validate the descriptor and replace the managed package.

        Args:
            spec: A new descriptor that supersedes the current one.

        Returns:
            The new managed package.

        Raises:
            ResourceValidationError: If the descriptor is invalid. The
                resource is left unvalidated with the error recorded.
        """
        if spec is not None:
            self.spec = spec

        self._managed_package = None
        self._in_desired_state = None
        self._phase = ResourcePhase.UNVALIDATED

        try:
            package = validate_package_resource(self.spec)
        except ResourceValidationError as e:
            self._validation_error = e
            logger.debug("Validation of %s failed: %s", self.label, e)
            raise

        self._validation_error = None
        self._managed_package = package
        self._phase = ResourcePhase.VALIDATED
        return package

    def _require_package(self) -> ManagedPackage:
        if self._managed_package is None:
            msg = f"Resource {self.label} has not been validated"
            raise PackageResourceError(msg)
        return self._managed_package

    def check_state(self, cancel: threading.Event | None = None) -> bool:
        """Check whether the managed package is in its desired state.

        On error the previous in-desired-state flag is left untouched.

        Args:
            cancel: Event that aborts a cache refresh.

        Returns:
            True if the package is in its desired state.

        Raises:
            PackageResourceError: If the resource has not been validated.
            CacheRefreshError: If the installed-package cache cannot be refreshed.
            CommandCancelledError: If the refresh was cancelled.
        """
        package = self._require_package()
        in_state = check_package_state(
            package,
            self.context.caches,
            self.context.runner,
            cancel,
        )
        self._in_desired_state = in_state
        self._phase = ResourcePhase.CHECKED
        return in_state

    def enforce_state(self, cancel: threading.Event | None = None) -> CommandResult:
        """Run the command that brings the package into its desired state.

        The installed-package cache of a name-based backend is invalidated
        after every command, successful or not, so the next check re-reads it.

        Args:
            cancel: Event that aborts the command.

        Returns:
            Result of the successful command.

        Raises:
            PackageResourceError: If the resource has not been validated.
            EnforcementError: If the command fails.
            CommandCancelledError: If the command was cancelled.
            OSError: If the package manager could not be started.
        """
        package = self._require_package()
        try:
            result = enforce_package_state(
                package,
                self.context.runner,
                cancel=cancel,
                download_timeout=self.context.download_timeout,
            )
        finally:
            # A failed run may still have changed what is installed
            if isinstance(package, NAMED_PACKAGE_TYPES):
                self.context.caches.get(package.backend).invalidate()

        self._in_desired_state = None
        self._phase = ResourcePhase.ENFORCED
        logger.info("Enforced %s", self.label)
        return result
