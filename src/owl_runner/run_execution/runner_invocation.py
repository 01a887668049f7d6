"""Command line and environment of the test runner subprocess."""

from __future__ import annotations

import shlex
import sys
from pathlib import Path

from owl_runner.bridge_server.bridge_client import (
    BRIDGE_HOST_ENV,
    BRIDGE_PORT_ENV,
    BRIDGE_TIMEOUT_ENV,
    DEFAULT_CLIENT_HOST,
)
from owl_runner.configuration.runtime_settings import RunConfiguration
from owl_runner.results_writing import TEST_RESULTS_FILENAME
from owl_runner.screenshot_capture import pytest_plugin
from owl_runner.screenshot_capture.screenshot_store import OWL_DIR, REPORT_DIR

TEST_MODULE_PATTERN = "*_owl.py"
RUNNER_TIMEOUT_MARGIN_SECONDS = 5.0
_WILDCARD_HOSTS = {"", "0.0.0.0", "::"}


def results_artifact_path(project_root: Path) -> Path:
    return project_root / OWL_DIR / REPORT_DIR / TEST_RESULTS_FILENAME


def build_test_command(
    run_configuration: RunConfiguration,
    *,
    project_root: Path,
    python_executable: str | None = None,
) -> str:
    """Shell command running the owl test modules under pytest."""
    arguments = [
        python_executable or sys.executable,
        "-m",
        "pytest",
        str(project_root),
        "-p",
        pytest_plugin.__name__,
        "-o",
        f"python_files={TEST_MODULE_PATTERN}",
    ]
    if run_configuration.report_enabled:
        arguments.append(
            f"{pytest_plugin.JSON_REPORT_OPTION}={results_artifact_path(project_root)}"
        )
    return shlex.join(arguments)


def build_test_environment(
    run_configuration: RunConfiguration, *, bridge_port: int
) -> dict[str, str]:
    """Variables the owl pytest plugin reads inside the test runner."""
    bridge = run_configuration.configuration.bridge
    # The runner waits for the app to connect and then for the app to answer.
    runner_timeout = (
        bridge.connect_timeout_seconds + bridge.timeout_seconds + RUNNER_TIMEOUT_MARGIN_SECONDS
    )
    env = {
        pytest_plugin.PLATFORM_ENV: run_configuration.platform.value,
        pytest_plugin.DEBUG_ENV: _flag(run_configuration.debug),
        pytest_plugin.UPDATE_BASELINE_ENV: _flag(run_configuration.update_baseline),
        BRIDGE_HOST_ENV: DEFAULT_CLIENT_HOST if bridge.host in _WILDCARD_HOSTS else bridge.host,
        BRIDGE_PORT_ENV: str(bridge_port),
        BRIDGE_TIMEOUT_ENV: f"{runner_timeout:g}",
    }
    if run_configuration.simulator_name:
        env[pytest_plugin.SIMULATOR_ENV] = run_configuration.simulator_name
    return env


def _flag(value: bool) -> str:
    return "true" if value else "false"
