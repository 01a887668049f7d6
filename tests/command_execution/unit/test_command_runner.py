"""Command runner tests against the local shell."""

from __future__ import annotations

from pathlib import Path

import pytest
from owl_runner.command_execution import (
    CommandExecutionError,
    StdioMode,
    run_command,
    start_command,
)


def test_run_command_captures_stripped_stdout() -> None:
    result = run_command("echo '  hello owl  '", stdio=StdioMode.CAPTURE)

    assert result.returncode == 0
    assert result.stdout == "hello owl"
    assert result.command == "echo '  hello owl  '"


def test_run_command_does_not_capture_when_output_is_ignored() -> None:
    result = run_command("echo hidden", stdio=StdioMode.IGNORE)

    assert result.stdout == ""


def test_run_command_merges_environment_over_parent(monkeypatch) -> None:
    monkeypatch.setenv("OWL_PARENT_VALUE", "parent")

    result = run_command(
        'echo "$OWL_PARENT_VALUE-$ENTRY_FILE"',
        env={"ENTRY_FILE": "index.app.js"},
        stdio=StdioMode.CAPTURE,
    )

    assert result.stdout == "parent-index.app.js"


def test_run_command_uses_working_directory(tmp_path: Path) -> None:
    result = run_command("pwd", cwd=tmp_path, stdio=StdioMode.CAPTURE)

    assert Path(result.stdout).resolve() == tmp_path.resolve()


def test_run_command_raises_on_non_zero_exit() -> None:
    with pytest.raises(CommandExecutionError) as exc_info:
        run_command("echo partial; exit 3", stdio=StdioMode.CAPTURE)

    assert exc_info.value.returncode == 3
    assert exc_info.value.output == "partial"
    assert "exit code 3" in str(exc_info.value)


def test_run_command_raises_when_working_directory_is_missing(tmp_path: Path) -> None:
    with pytest.raises(CommandExecutionError, match="could not be started") as exc_info:
        run_command("true", cwd=tmp_path / "missing")

    assert exc_info.value.returncode is None


def test_start_command_returns_result_from_wait() -> None:
    handle = start_command("echo background", stdio=StdioMode.CAPTURE)

    result = handle.wait(timeout=10)

    assert result.stdout == "background"
    assert handle.running is False


def test_start_command_surfaces_launch_errors_from_wait(tmp_path: Path) -> None:
    handle = start_command("true", cwd=tmp_path / "missing")

    assert handle.running is False
    with pytest.raises(CommandExecutionError, match="could not be started"):
        handle.wait()


def test_terminated_command_is_not_reported_as_failure() -> None:
    handle = start_command("sleep 30", stdio=StdioMode.IGNORE)

    handle.terminate()
    handle.terminate()
    result = handle.wait(timeout=10)

    assert result.returncode != 0
    assert handle.running is False
