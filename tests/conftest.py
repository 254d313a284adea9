"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import threading
from collections.abc import Mapping, Sequence
from pathlib import Path

import pytest
from pkgstate.core.cache import CacheRegistry
from pkgstate.core.resource import ReconcileContext
from pkgstate.utils.shell import CommandResult, CommandRunner


class FakeRunner(CommandRunner):
    """Command runner that records calls and returns canned results."""

    def __init__(self) -> None:
        self.calls: list[tuple[tuple[str, ...], dict[str, str]]] = []
        self.responses: dict[tuple[str, ...], CommandResult] = {}
        self.default = CommandResult(stdout="", stderr="", returncode=0)
        self.error: BaseException | None = None

    def respond(
        self,
        args: Sequence[str],
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> None:
        """Register the result returned for an exact argv."""
        self.responses[tuple(args)] = CommandResult(
            stdout=stdout, stderr=stderr, returncode=returncode
        )

    def run(
        self,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cancel: threading.Event | None = None,
    ) -> CommandResult:
        argv = tuple(args)
        self.calls.append((argv, dict(env or {})))
        if self.error is not None:
            raise self.error
        return self.responses.get(argv, self.default)


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Command runner that never spawns processes."""
    return FakeRunner()


@pytest.fixture
def caches() -> CacheRegistry:
    """Fresh set of installed-package caches."""
    return CacheRegistry()


@pytest.fixture
def context(fake_runner: FakeRunner, caches: CacheRegistry) -> ReconcileContext:
    """Reconciliation context backed by the fake runner."""
    return ReconcileContext(runner=fake_runner, caches=caches)


@pytest.fixture
def local_artifact(tmp_path: Path) -> Path:
    """An empty file standing in for a package artifact."""
    path = tmp_path / "foo"
    path.write_bytes(b"")
    return path


@pytest.fixture
def googet_installed_output() -> str:
    """Sample googet installed output."""
    return "Installed Packages:\nfoo.x86_64 1.2.3@4\nbar.noarch 1.2.3@4"


@pytest.fixture
def dpkg_query_output() -> str:
    """Sample dpkg-query output for testing."""
    return """curl 8.5.0-2 installed
firefox 128.0 installed
oldpkg 1.0 config-files
neovim 0.9.5-6 installed"""


@pytest.fixture
def rpmquery_output() -> str:
    """Sample rpmquery output for testing."""
    return """bash x86_64 5.2.15-3.fc39
glibc x86_64 2.38-14.fc39
gpg-pubkey (none) 18b8e74c-62f2920f"""
