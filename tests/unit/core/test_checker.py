"""Unit tests for drift detection."""

import threading

import pytest
from pkgstate.core.checker import check_package_state
from pkgstate.core.errors import CacheRefreshError, CommandCancelledError
from pkgstate.models.package import (
    AptPackage,
    Backend,
    DebPackage,
    DesiredState,
    GooGetPackage,
    MSIPackage,
    RPMPackage,
)
from pkgstate.models.resource import SourceFile
from pkgstate.utils.shell import CommandResult

GOOGET_LIST = ("googet.exe", "installed")


class TestCheckPackageState:
    """Tests for check_package_state."""

    @pytest.mark.parametrize(
        ("name", "state", "expected"),
        [
            ("foo", DesiredState.INSTALLED, True),
            ("bar", DesiredState.INSTALLED, True),
            ("baz", DesiredState.INSTALLED, False),
            ("foo", DesiredState.REMOVED, False),
            ("bar", DesiredState.REMOVED, False),
            ("baz", DesiredState.REMOVED, True),
        ],
    )
    def test_googet_matrix(
        self, name, state, expected, caches, fake_runner, googet_installed_output
    ) -> None:
        """Presence is compared against the desired state."""
        fake_runner.respond(GOOGET_LIST, stdout=googet_installed_output)
        package = GooGetPackage(desired_state=state, name=name)

        assert check_package_state(package, caches, fake_runner) is expected

    def test_cache_shared_between_checks(self, caches, fake_runner) -> None:
        """Checks against a fresh cache do not list packages again."""
        caches.get(Backend.APT).seed(["curl"])

        assert check_package_state(
            AptPackage(desired_state=DesiredState.INSTALLED, name="curl"), caches, fake_runner
        )
        assert not check_package_state(
            AptPackage(desired_state=DesiredState.INSTALLED, name="wget"), caches, fake_runner
        )
        assert fake_runner.calls == []

    def test_apt_lists_with_dpkg_query(self, caches, fake_runner, dpkg_query_output) -> None:
        """Apt packages are looked up through dpkg-query."""
        fake_runner.default = CommandResult(dpkg_query_output, "", 0)
        package = AptPackage(desired_state=DesiredState.REMOVED, name="oldpkg")

        assert check_package_state(package, caches, fake_runner) is True
        assert fake_runner.calls[0][0][0] == "/usr/bin/dpkg-query"

    @pytest.mark.parametrize(
        "package",
        [
            DebPackage(source=SourceFile(local_path="/tmp/foo.deb")),
            MSIPackage(source=SourceFile(local_path="C:\\foo.msi")),
            RPMPackage(source=SourceFile(local_path="/tmp/foo.rpm")),
        ],
    )
    def test_source_packages_always_drift(self, package, caches, fake_runner) -> None:
        """Source-based packages are never reported in state."""
        assert check_package_state(package, caches, fake_runner) is False
        assert fake_runner.calls == []

    def test_refresh_error_propagates(self, caches, fake_runner) -> None:
        """A failed listing is raised, not reported as drift."""
        fake_runner.respond(GOOGET_LIST, stderr="no googet", returncode=1)
        package = GooGetPackage(desired_state=DesiredState.INSTALLED, name="foo")

        with pytest.raises(CacheRefreshError):
            check_package_state(package, caches, fake_runner)

    def test_cancel_propagates(self, caches, fake_runner) -> None:
        """Cancellation of the refresh is raised unchanged."""
        fake_runner.error = CommandCancelledError(list(GOOGET_LIST))
        package = GooGetPackage(desired_state=DesiredState.INSTALLED, name="foo")

        with pytest.raises(CommandCancelledError):
            check_package_state(package, caches, fake_runner, threading.Event())
