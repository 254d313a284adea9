"""Unit tests for the check command."""

from pathlib import Path
from unittest.mock import patch

import pytest
from pkgstate.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()

GOOGET_LIST = ("googet.exe", "installed")


def _policy(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "policy.toml"
    path.write_text(body)
    return path


def _googet_resource(resource_id: str, name: str, state: str = "installed") -> str:
    return (
        f'[[resources]]\nid = "{resource_id}"\n'
        f'[resources.package]\ndesired_state = "{state}"\n'
        f'googet = {{ name = "{name}" }}\n'
    )


@pytest.fixture
def patched_context(context):
    """Route the CLI through the fake runner."""
    with patch("pkgstate.cli.commands.check.build_context", return_value=context):
        yield context


class TestCheckCommand:
    """Tests for pkgstate check."""

    def test_all_in_state(
        self, tmp_path, patched_context, fake_runner, googet_installed_output
    ) -> None:
        """Exit code is zero when nothing drifts."""
        fake_runner.respond(GOOGET_LIST, stdout=googet_installed_output)
        policy = _policy(
            tmp_path, _googet_resource("foo", "foo") + _googet_resource("baz", "baz", "removed")
        )

        result = runner.invoke(app, ["check", str(policy)])

        assert result.exit_code == 0, result.output
        assert "All 2 resource(s) are in the desired state." in result.output
        assert len(fake_runner.calls) == 1

    def test_drift(self, tmp_path, patched_context, fake_runner, googet_installed_output) -> None:
        """Drift is reported with exit code 1."""
        fake_runner.respond(GOOGET_LIST, stdout=googet_installed_output)
        policy = _policy(tmp_path, _googet_resource("baz", "baz"))

        result = runner.invoke(app, ["check", str(policy)])

        assert result.exit_code == 1
        assert "1 drifted" in result.output
        assert "0 failed" in result.output

    def test_invalid_resource(self, tmp_path, patched_context) -> None:
        """Invalid resources are reported as failures."""
        policy = _policy(
            tmp_path,
            '[[resources]]\nid = "bad"\n[resources.package]\ndesired_state = "installed"\n',
        )

        result = runner.invoke(app, ["check", str(policy)])

        assert result.exit_code == 1
        assert "invalid" in result.output
        assert "1 failed" in result.output

    def test_refresh_failure(self, tmp_path, patched_context, fake_runner) -> None:
        """A failing package listing is reported as a failure."""
        fake_runner.error = FileNotFoundError("googet.exe")
        policy = _policy(tmp_path, _googet_resource("foo", "foo"))

        result = runner.invoke(app, ["check", str(policy)])

        assert result.exit_code == 1
        assert "1 failed" in result.output

    def test_source_package_drifts(self, tmp_path, patched_context, local_artifact) -> None:
        """Source-based packages are always reported as drift."""
        policy = _policy(
            tmp_path,
            '[[resources]]\nid = "agent"\n[resources.package]\ndesired_state = "installed"\n'
            f'[resources.package.deb.source]\nlocal_path = "{local_artifact}"\n',
        )

        result = runner.invoke(app, ["check", str(policy)])

        assert result.exit_code == 1
        assert "1 drifted" in result.output

    def test_empty_policy(self, tmp_path, patched_context) -> None:
        """An empty policy has nothing to check."""
        result = runner.invoke(app, ["check", str(_policy(tmp_path, ""))])

        assert result.exit_code == 0
        assert "Nothing to check" in result.output

    def test_missing_policy(self, tmp_path, patched_context) -> None:
        """A missing policy file exits with an error."""
        result = runner.invoke(app, ["check", str(tmp_path / "missing.toml")])

        assert result.exit_code == 1
        assert "Failed to load policy" in result.output


class TestGlobalOptions:
    """Tests for options of the main callback."""

    def test_version(self) -> None:
        """--version prints the version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "pkgstate version" in result.output

    def test_invalid_config(self, tmp_path) -> None:
        """A broken agent config aborts the command."""
        config = tmp_path / "config.toml"
        config.write_text("cache_ttl_seconds = 0\n")
        policy = _policy(tmp_path, "")

        result = runner.invoke(app, ["--config", str(config), "check", str(policy)])

        assert result.exit_code == 1
        assert "Failed to load config" in result.output
