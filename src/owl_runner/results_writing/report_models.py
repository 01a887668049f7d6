"""Results writing entities."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class ReportGenerationFailure(Exception):
    """Raised when the run report cannot be produced."""


class TestOutcome(str, Enum):
    """Outcome of one test case as recorded by the test runner."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ReportedTestCase:
    """One test case entry of the result artifact."""

    nodeid: str
    outcome: TestOutcome
    duration: float
    message: str | None = None


@dataclass(frozen=True)
class TestRunReport:
    """Structured result artifact written by the test runner plugin."""

    __test__ = False

    created: str
    duration: float
    success: bool
    total: int
    passed: int
    failed: int
    skipped: int
    tests: tuple[ReportedTestCase, ...]


def load_test_run_report(path: Path) -> TestRunReport:
    """Parse the JSON result artifact into report entities."""
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ReportGenerationFailure(f"Could not read test results at {path}: {exc}") from exc
    if not isinstance(document, Mapping):
        raise ReportGenerationFailure(f"Test results at {path} must be a JSON object.")

    summary = document.get("summary") or {}
    try:
        tests = tuple(_parse_test_case(entry) for entry in document.get("tests") or [])
        return TestRunReport(
            created=str(document.get("created", "")),
            duration=float(document.get("duration", 0.0)),
            success=bool(document.get("success", False)),
            total=int(summary.get("total", len(tests))),
            passed=int(summary.get("passed", 0)),
            failed=int(summary.get("failed", 0)),
            skipped=int(summary.get("skipped", 0)),
            tests=tests,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ReportGenerationFailure(f"Test results at {path} are malformed: {exc}") from exc


def _parse_test_case(entry: Mapping[str, Any]) -> ReportedTestCase:
    message = entry.get("message")
    return ReportedTestCase(
        nodeid=str(entry["nodeid"]),
        outcome=TestOutcome(entry["outcome"]),
        duration=float(entry.get("duration", 0.0)),
        message=str(message) if message else None,
    )
