"""Tests for run execution domain entities."""

from __future__ import annotations

from pathlib import Path

from owl_runner.run_execution.run_contracts import (
    BuildRequest,
    RunOutcome,
    RunRequest,
    RunState,
)


def test_run_request_defaults_to_compare_mode_without_build() -> None:
    request = RunRequest(config_path="owl.config.yaml", platform="ios")

    assert request.update is False
    assert request.build is False


def test_build_request_carries_platform_and_config() -> None:
    request = BuildRequest(config_path="owl.config.yaml", platform="android")

    assert request.platform == "android"
    assert request.config_path == "owl.config.yaml"


def test_run_outcome_contains_state_history_and_report_path() -> None:
    outcome = RunOutcome(
        platform="ios",
        state=RunState.DONE,
        states=(RunState.IDLE, RunState.PREPARING, RunState.DONE),
        report_path=Path("/tmp/report.xlsx"),
    )

    assert outcome.state is RunState.DONE
    assert outcome.states[0] is RunState.IDLE
    assert outcome.report_path is not None
    assert outcome.report_path.name == "report.xlsx"


def test_run_states_use_hyphenated_values() -> None:
    assert RunState.DEVICE_READY.value == "device-ready"
