"""External command execution for build tools and device utilities."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol


class CommandExecutionError(Exception):
    """Raised when an external command cannot be started or exits with a non-zero code."""

    def __init__(self, command: str, returncode: int | None, output: str = "") -> None:
        if returncode is None:
            message = f"Command could not be started: {command}"
        else:
            message = f"Command failed with exit code {returncode}: {command}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.output = output


class StdioMode(str, Enum):
    """How the child process' standard streams are wired."""

    INHERIT = "inherit"
    IGNORE = "ignore"
    CAPTURE = "capture"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one finished command."""

    command: str
    returncode: int
    stdout: str = ""


class CommandRunner(Protocol):  # pylint: disable=too-few-public-methods
    """Callable signature shared by `run_command` and test doubles."""

    def __call__(
        self,
        command: str,
        *,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        stdio: StdioMode = StdioMode.INHERIT,
    ) -> CommandResult: ...


def run_command(
    command: str,
    *,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    stdio: StdioMode = StdioMode.INHERIT,
) -> CommandResult:
    """Run a shell command to completion and raise on a non-zero exit."""
    try:
        completed = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            env=_merge_environment(env),
            check=False,
            text=True,
            **_stream_arguments(stdio),
        )
    except OSError as exc:
        raise CommandExecutionError(command, None) from exc

    stdout = (completed.stdout or "").strip() if stdio is StdioMode.CAPTURE else ""
    if completed.returncode != 0:
        raise CommandExecutionError(command, completed.returncode, stdout)
    return CommandResult(command=command, returncode=completed.returncode, stdout=stdout)


def start_command(
    command: str,
    *,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    stdio: StdioMode = StdioMode.INHERIT,
) -> BackgroundCommand:
    """Start a shell command without waiting for it.

    Launch errors are not raised here; they surface from `BackgroundCommand.wait`.
    """
    try:
        process = subprocess.Popen(  # pylint: disable=consider-using-with
            command,
            shell=True,
            cwd=cwd,
            env=_merge_environment(env),
            text=True,
            **_stream_arguments(stdio),
        )
    except OSError as exc:
        return BackgroundCommand(command, None, launch_error=exc)
    return BackgroundCommand(command, process)


class BackgroundCommand:
    """Handle to a command started with `start_command`."""

    def __init__(
        self,
        command: str,
        process: subprocess.Popen[str] | None,
        *,
        launch_error: OSError | None = None,
    ) -> None:
        self.command = command
        self._process = process
        self._launch_error = launch_error
        self._terminated = False

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def terminate(self) -> None:
        """Ask the process to stop; calling this more than once is harmless."""
        if self._terminated or self._process is None:
            return
        self._terminated = True
        if self._process.poll() is None:
            self._process.terminate()

    def wait(self, timeout: float | None = None) -> CommandResult:
        """Block until the process exits and raise when it failed."""
        if self._process is None:
            raise CommandExecutionError(self.command, None) from self._launch_error
        stdout, _ = self._process.communicate(timeout=timeout)
        returncode = self._process.returncode
        output = (stdout or "").strip()
        if returncode != 0 and not self._terminated:
            raise CommandExecutionError(self.command, returncode, output)
        return CommandResult(command=self.command, returncode=returncode, stdout=output)


def _merge_environment(overrides: Mapping[str, str] | None) -> dict[str, str] | None:
    if not overrides:
        return None
    merged = dict(os.environ)
    merged.update(overrides)
    return merged


def _stream_arguments(stdio: StdioMode) -> dict[str, Any]:
    if stdio is StdioMode.CAPTURE:
        return {"stdout": subprocess.PIPE, "stderr": None}
    if stdio is StdioMode.IGNORE:
        return {"stdout": subprocess.DEVNULL, "stderr": subprocess.DEVNULL}
    return {}
