"""Drift detection for managed packages."""

import logging
import threading

from pkgstate.core.cache import CacheRegistry
from pkgstate.models.package import (
    NAMED_PACKAGE_TYPES,
    DesiredState,
    ManagedPackage,
)
from pkgstate.utils.shell import CommandRunner

logger = logging.getLogger(__name__)


def check_package_state(
    package: ManagedPackage,
    caches: CacheRegistry,
    runner: CommandRunner,
    cancel: threading.Event | None = None,
) -> bool:
    """Determine whether a managed package is in its desired state.

    Name-based packages are looked up in their backend's installed-package
    cache, refreshing it first when stale. Source-based packages have no
    name to look up and are always reported out of state; their installers
    are expected to succeed without changes when the artifact is already
    installed.

    Args:
        package: The managed package to check.
        caches: Installed-package caches.
        runner: Command runner used when a cache must be refreshed.
        cancel: Event that aborts a cache refresh.

    Returns:
        True if the package is in its desired state.

    Raises:
        CacheRefreshError: If the backend's cache could not be refreshed.
        CommandCancelledError: If the refresh was cancelled.
    """
    if not isinstance(package, NAMED_PACKAGE_TYPES):
        logger.debug("%s packages cannot be checked, enforcement required", package.backend.value)
        return False

    cache = caches.get(package.backend)
    cache.ensure_fresh(runner, cancel)

    present = cache.contains(package.name)
    if package.desired_state == DesiredState.INSTALLED:
        in_state = present
    else:
        in_state = not present

    logger.debug(
        "%s package %s: present=%s desired=%s",
        package.backend.value,
        package.name,
        present,
        package.desired_state.value,
    )
    return in_state
