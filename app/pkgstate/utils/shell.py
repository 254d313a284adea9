"""Shell execution utilities.

Provides the command runner used by the reconciliation core to query and
drive package managers. The runner is the only place where external
processes are spawned, so tests substitute it with a fake.
"""

import logging
import os
import shutil
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from pkgstate.core.errors import CommandCancelledError

logger = logging.getLogger(__name__)

# How often a running command checks its cancel event (seconds)
_POLL_INTERVAL: float = 0.2


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


def run_command(
    args: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    cancel: threading.Event | None = None,
) -> CommandResult:
    """Execute a command and return the result.

    The process is always reaped before this function returns, including
    when it is cancelled or times out.
    Output is decoded as UTF-8; undecodable bytes become U+FFFD.

    Args:
        args: Command and arguments to execute.
        env: Environment overrides, merged over the current environment.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.
        cancel: Event that aborts the command when set.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        CommandCancelledError: If the cancel event is set before the command exits.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    argv = list(args)
    if cancel is not None and cancel.is_set():
        raise CommandCancelledError(argv)

    full_env = {**os.environ, **env} if env else None
    deadline = None if timeout is None else time.monotonic() + timeout

    process = subprocess.Popen(  # nosec: B603
        argv,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
        cwd=cwd,
        env=full_env,
    )
    try:
        while True:
            try:
                stdout, stderr = process.communicate(timeout=_POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.is_set():
                    logger.debug("Cancelling command: %s", " ".join(argv))
                    raise CommandCancelledError(argv) from None
                if deadline is not None and time.monotonic() >= deadline:
                    raise subprocess.TimeoutExpired(argv, timeout) from None
    finally:
        if process.returncode is None:
            process.kill()
            process.communicate()

    return CommandResult(
        stdout=stdout,
        stderr=stderr,
        returncode=process.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None


class CommandRunner(ABC):
    """Abstract interface for running external commands.

    Example:
        >>> runner = SubprocessRunner()
        >>> result = runner.run(["googet.exe", "installed"])
        >>> result.success
        True
    """

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cancel: threading.Event | None = None,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            args: Command and arguments to execute.
            env: Environment overrides for the command.
            cancel: Event that aborts the command when set.

        Returns:
            CommandResult of the finished command. A non-zero exit code is
            returned, not raised.

        Raises:
            CommandCancelledError: If the command was cancelled.
            OSError: If the command could not be started.
        """


class SubprocessRunner(CommandRunner):
    """Command runner backed by :func:`run_command`.

    Attributes:
        timeout: Maximum time in seconds a single command may run.
    """

    def __init__(self, timeout: float | None = 600.0) -> None:
        self.timeout = timeout

    def run(
        self,
        args: Sequence[str],
        *,
        env: Mapping[str, str] | None = None,
        cancel: threading.Event | None = None,
    ) -> CommandResult:
        """Run a command in a subprocess."""
        return run_command(args, env=env, timeout=self.timeout, cancel=cancel)
