"""Run execution domain exports."""

from .run_contracts import BuildRequest, RunOutcome, RunRequest, RunState
from .run_coordinator import (
    RunCoordinator,
    RunExecutionError,
    TestExecutionFailure,
    execute_build,
    execute_run,
)
from .runner_invocation import build_test_command, build_test_environment, results_artifact_path

__all__ = [
    "BuildRequest",
    "RunOutcome",
    "RunRequest",
    "RunState",
    "RunCoordinator",
    "RunExecutionError",
    "TestExecutionFailure",
    "execute_build",
    "execute_run",
    "build_test_command",
    "build_test_environment",
    "results_artifact_path",
]
