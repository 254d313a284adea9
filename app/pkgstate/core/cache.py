"""Installed-package caches.

Listing the installed packages of a backend is expensive, so each
name-based backend keeps the last listing in memory and only re-runs the
list-installed command once the listing is older than a TTL. A refresh
always replaces the whole set.
"""

import logging
import subprocess
import threading
import time
from collections.abc import Callable, Iterable

from pkgstate.core.backends import BackendSpec, get_backend_spec
from pkgstate.core.errors import CacheRefreshError
from pkgstate.models.package import Backend
from pkgstate.utils.shell import CommandRunner

logger = logging.getLogger(__name__)

# Seconds an installed-package listing stays valid
DEFAULT_CACHE_TTL: float = 180.0


class InstalledPackageCache:
    """Set of installed package names for one backend.

    Two locks are used: the refresh lock serialises list-installed
    invocations so concurrent callers that find the cache stale share a
    single refresh, and the state lock guards the name set and timestamp
    so readers never wait for a running command.

    Attributes:
        backend: Backend whose packages are cached.
        ttl: Seconds a listing stays fresh.
    """

    def __init__(
        self,
        spec: BackendSpec,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty, stale cache.

        Args:
            spec: Descriptor of a backend with a list-installed command.
            ttl: Seconds a listing stays fresh.
            clock: Monotonic time source.

        Raises:
            ValueError: If the backend cannot list installed packages.
        """
        if spec.list_installed is None or spec.parse_installed is None:
            msg = f"Backend {spec.backend.value} cannot list installed packages"
            raise ValueError(msg)
        self._spec = spec
        self._command = spec.list_installed
        self._parse = spec.parse_installed
        self.ttl = ttl
        self._clock = clock
        self._packages: frozenset[str] = frozenset()
        self._refreshed_at: float | None = None
        self._state_lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    @property
    def backend(self) -> Backend:
        """Return the backend whose packages are cached."""
        return self._spec.backend

    @property
    def packages(self) -> frozenset[str]:
        """Return a snapshot of the cached package names."""
        with self._state_lock:
            return self._packages

    @property
    def refreshed_at(self) -> float | None:
        """Return the clock value of the last successful refresh."""
        with self._state_lock:
            return self._refreshed_at

    def is_fresh(self) -> bool:
        """Check if the cached listing is younger than the TTL."""
        with self._state_lock:
            if self._refreshed_at is None:
                return False
            return self._clock() - self._refreshed_at < self.ttl

    def ensure_fresh(
        self,
        runner: CommandRunner,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Refresh the listing if it is stale.

        On failure the previous contents are kept.

        Args:
            runner: Command runner used to list installed packages.
            cancel: Event that aborts the list-installed command.

        Returns:
            True if a refresh took place, False if the cache was fresh.

        Raises:
            CacheRefreshError: If the list-installed command fails.
            CommandCancelledError: If the command was cancelled.
        """
        if self.is_fresh():
            return False

        with self._refresh_lock:
            # Another caller may have refreshed while we waited
            if self.is_fresh():
                logger.debug("%s cache refreshed by a concurrent caller", self.backend.value)
                return False

            names = self._read_installed(runner, cancel)
            with self._state_lock:
                self._packages = frozenset(names)
                self._refreshed_at = self._clock()

        logger.info(
            "Refreshed %s installed-package cache (%d packages)",
            self.backend.value,
            len(names),
        )
        return True

    def _read_installed(
        self,
        runner: CommandRunner,
        cancel: threading.Event | None,
    ) -> set[str]:
        """Run the list-installed command and parse its output.

        Returns:
            Set of installed package names.

        Raises:
            CacheRefreshError: If the command cannot run or exits non-zero.
        """
        command = self._command
        try:
            result = runner.run(command.args, env=command.env, cancel=cancel)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning("Keeping stale %s cache: %s", self.backend.value, e)
            raise CacheRefreshError(self.backend, f"{command} failed: {e}") from e

        if not result.success:
            stderr = result.stderr.strip() or "unknown error"
            logger.warning("Keeping stale %s cache: %s", self.backend.value, stderr)
            msg = f"{command} exited with status {result.returncode}: {stderr}"
            raise CacheRefreshError(self.backend, msg, result)

        return self._parse(result.stdout)

    def contains(self, name: str) -> bool:
        """Check if a package name is in the cached listing.

        Never triggers a refresh; call :meth:`ensure_fresh` first.
        """
        with self._state_lock:
            return name in self._packages

    def seed(self, names: Iterable[str], refreshed_at: float | None = None) -> None:
        """Replace the cached listing without running a command.

        Args:
            names: Installed package names.
            refreshed_at: Clock value to record; defaults to now.
        """
        with self._state_lock:
            self._packages = frozenset(names)
            self._refreshed_at = self._clock() if refreshed_at is None else refreshed_at

    def invalidate(self) -> None:
        """Mark the listing stale so the next check re-reads it."""
        with self._state_lock:
            self._refreshed_at = None


class CacheRegistry:
    """Lazily created installed-package caches, one per name-based backend.

    Example:
        >>> caches = CacheRegistry(ttl=60)
        >>> cache = caches.get(Backend.APT)
        >>> cache.ensure_fresh(SubprocessRunner())
        True
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._caches: dict[Backend, InstalledPackageCache] = {}
        self._lock = threading.Lock()

    def get(self, backend: Backend) -> InstalledPackageCache:
        """Return the cache of a backend, creating it on first use.

        Raises:
            ValueError: If the backend has no installed-package listing.
        """
        with self._lock:
            cache = self._caches.get(backend)
            if cache is None:
                cache = InstalledPackageCache(get_backend_spec(backend), self.ttl, self._clock)
                self._caches[backend] = cache
            return cache

    def invalidate_all(self) -> None:
        """Mark every cache stale."""
        with self._lock:
            caches = list(self._caches.values())
        for cache in caches:
            cache.invalidate()
