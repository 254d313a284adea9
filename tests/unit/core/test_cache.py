"""Unit tests for the installed-package caches."""

import subprocess
import sys
import threading

import pytest
from pkgstate.core.backends import (
    BackendSpec,
    Command,
    CommandTemplate,
    get_backend_spec,
    parse_rpmquery,
)
from pkgstate.core.cache import CacheRegistry, InstalledPackageCache
from pkgstate.core.errors import CacheRefreshError
from pkgstate.models.package import Backend
from pkgstate.utils.shell import CommandResult, CommandRunner, SubprocessRunner

GOOGET_LIST = ("googet.exe", "installed")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InstalledPackageCache:
    return InstalledPackageCache(get_backend_spec(Backend.GOOGET), ttl=180, clock=clock)


class TestInstalledPackageCache:
    """Tests for InstalledPackageCache."""

    def test_starts_stale_and_empty(self, cache: InstalledPackageCache) -> None:
        """A new cache has never been refreshed."""
        assert not cache.is_fresh()
        assert cache.packages == frozenset()
        assert cache.refreshed_at is None

    def test_refresh_runs_list_command(
        self, cache, fake_runner, googet_installed_output
    ) -> None:
        """A stale cache runs the list-installed command and parses it."""
        fake_runner.respond(GOOGET_LIST, stdout=googet_installed_output)

        assert cache.ensure_fresh(fake_runner) is True

        assert [call[0] for call in fake_runner.calls] == [GOOGET_LIST]
        assert cache.packages == {"foo", "bar"}
        assert cache.contains("foo")
        assert not cache.contains("baz")

    def test_fresh_cache_is_not_refreshed(
        self, cache, clock, fake_runner, googet_installed_output
    ) -> None:
        """Within the TTL no command is run."""
        fake_runner.respond(GOOGET_LIST, stdout=googet_installed_output)
        cache.ensure_fresh(fake_runner)

        clock.now += 179
        assert cache.ensure_fresh(fake_runner) is False
        assert len(fake_runner.calls) == 1

    def test_stale_after_ttl(self, cache, clock, fake_runner) -> None:
        """Once the TTL has elapsed the listing is read again."""
        cache.ensure_fresh(fake_runner)
        clock.now += 180
        assert cache.ensure_fresh(fake_runner) is True
        assert len(fake_runner.calls) == 2

    def test_refresh_replaces_whole_set(self, cache, clock, fake_runner) -> None:
        """Packages missing from a new listing disappear from the cache."""
        cache.seed({"foo", "bar"}, refreshed_at=0.0)
        fake_runner.respond(GOOGET_LIST, stdout="Installed Packages:\nbaz.x86_64 1.0")

        cache.ensure_fresh(fake_runner)

        assert cache.packages == {"baz"}

    def test_failed_refresh_keeps_contents(self, cache, fake_runner) -> None:
        """A non-zero exit raises and leaves the previous listing."""
        cache.seed({"foo"}, refreshed_at=0.0)
        fake_runner.respond(GOOGET_LIST, stderr="boom", returncode=1)

        with pytest.raises(CacheRefreshError, match="boom") as exc_info:
            cache.ensure_fresh(fake_runner)

        assert exc_info.value.backend is Backend.GOOGET
        assert exc_info.value.result is not None
        assert exc_info.value.result.returncode == 1
        assert cache.packages == {"foo"}
        assert not cache.is_fresh()

    def test_runner_oserror_is_wrapped(self, cache, fake_runner) -> None:
        """A missing binary is reported as a refresh error."""
        fake_runner.error = FileNotFoundError("googet.exe")

        with pytest.raises(CacheRefreshError) as exc_info:
            cache.ensure_fresh(fake_runner)

        assert isinstance(exc_info.value.__cause__, FileNotFoundError)
        assert exc_info.value.result is None

    def test_runner_timeout_is_wrapped(self, cache, fake_runner) -> None:
        """A hung list command is reported as a refresh error."""
        fake_runner.error = subprocess.TimeoutExpired(list(GOOGET_LIST), 1)

        with pytest.raises(CacheRefreshError):
            cache.ensure_fresh(fake_runner)

    def test_seed_marks_fresh(self, cache, fake_runner) -> None:
        """Seeding makes the cache fresh without running a command."""
        cache.seed(["foo"])

        assert cache.is_fresh()
        assert cache.ensure_fresh(fake_runner) is False
        assert fake_runner.calls == []

    def test_invalidate_forces_refresh(self, cache, fake_runner) -> None:
        """An invalidated cache is refreshed on next use."""
        cache.seed(["foo"])
        cache.invalidate()

        assert not cache.is_fresh()
        assert cache.contains("foo")
        assert cache.ensure_fresh(fake_runner) is True

    def test_refresh_with_undecodable_output(self) -> None:
        """A listing with invalid UTF-8 still refreshes the cache."""
        script = (
            "import sys; "
            "sys.stdout.buffer.write(b'bash x86_64 \\xff\\nglibc x86_64 2.38\\n')"
        )
        spec = BackendSpec(
            backend=Backend.YUM,
            install=CommandTemplate(sys.executable),
            list_installed=Command((sys.executable, "-c", script)),
            parse_installed=parse_rpmquery,
        )
        cache = InstalledPackageCache(spec)

        assert cache.ensure_fresh(SubprocessRunner(timeout=30.0)) is True
        assert cache.packages == {"bash", "glibc"}

    def test_rejects_source_backend(self) -> None:
        """Backends without a list command cannot be cached."""
        with pytest.raises(ValueError, match="deb"):
            InstalledPackageCache(get_backend_spec(Backend.DEB))

    def test_concurrent_refreshes_are_coalesced(self, cache) -> None:
        """Callers that find the cache stale together share one refresh."""
        started = threading.Event()
        release = threading.Event()
        calls: list[tuple[str, ...]] = []

        class SlowRunner(CommandRunner):
            def run(self, args, *, env=None, cancel=None) -> CommandResult:
                calls.append(tuple(args))
                started.set()
                release.wait(5)
                return CommandResult("Installed Packages:\nfoo.x86_64 1", "", 0)

        runner = SlowRunner()
        results: list[bool] = []
        first = threading.Thread(target=lambda: results.append(cache.ensure_fresh(runner)))
        first.start()
        assert started.wait(5)

        second = threading.Thread(target=lambda: results.append(cache.ensure_fresh(runner)))
        second.start()
        release.set()
        first.join(5)
        second.join(5)

        assert len(calls) == 1
        assert sorted(results) == [False, True]
        assert cache.contains("foo")


class TestCacheRegistry:
    """Tests for CacheRegistry."""

    def test_get_returns_same_cache(self) -> None:
        """Caches are created once per backend."""
        caches = CacheRegistry()
        assert caches.get(Backend.APT) is caches.get(Backend.APT)
        assert caches.get(Backend.APT) is not caches.get(Backend.YUM)

    def test_ttl_is_applied(self) -> None:
        """Created caches use the registry's TTL."""
        assert CacheRegistry(ttl=42).get(Backend.ZYPPER).ttl == 42

    def test_get_rejects_source_backend(self) -> None:
        """Source-based backends have no cache."""
        with pytest.raises(ValueError):
            CacheRegistry().get(Backend.MSI)

    def test_invalidate_all(self) -> None:
        """Every created cache becomes stale."""
        caches = CacheRegistry()
        caches.get(Backend.APT).seed(["curl"])
        caches.get(Backend.GOOGET).seed(["foo"])

        caches.invalidate_all()

        assert not caches.get(Backend.APT).is_fresh()
        assert not caches.get(Backend.GOOGET).is_fresh()

    def test_registries_are_independent(self) -> None:
        """Two registries never share cache contents."""
        first, second = CacheRegistry(), CacheRegistry()
        first.get(Backend.APT).seed(["curl"])
        assert not second.get(Backend.APT).contains("curl")
