"""pytest plugin loaded into the test runner process started by `owl run`.

It exposes the screenshot fixtures to `*_owl.py` modules and, when
``--owl-json-report`` is given, writes the structured result artifact read by
the report writer.
"""

from __future__ import annotations

import json
import os
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from owl_runner.bridge_server.bridge_client import BridgeClient

from .screenshot_store import (
    ScreenshotDirectories,
    assert_matches_baseline,
    take_screenshot,
)

JSON_REPORT_OPTION = "--owl-json-report"
PLATFORM_ENV = "OWL_PLATFORM"
SIMULATOR_ENV = "OWL_IOS_SIMULATOR"
DEBUG_ENV = "OWL_DEBUG"
UPDATE_BASELINE_ENV = "OWL_UPDATE_BASELINE"

_RECORDER_KEY = pytest.StashKey["JsonReportRecorder"]()


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("owl")
    group.addoption(
        JSON_REPORT_OPTION,
        dest="owl_json_report",
        default=None,
        metavar="PATH",
        help="Write a JSON summary of the owl test run to PATH.",
    )


def pytest_configure(config: pytest.Config) -> None:
    report_path = config.getoption("owl_json_report")
    if report_path:
        recorder = JsonReportRecorder(Path(report_path))
        config.stash[_RECORDER_KEY] = recorder
        config.pluginmanager.register(recorder, "owl-json-report")


def pytest_unconfigure(config: pytest.Config) -> None:
    recorder = config.stash.get(_RECORDER_KEY, None)
    if recorder is not None:
        config.pluginmanager.unregister(recorder)
        del config.stash[_RECORDER_KEY]


class JsonReportRecorder:
    """Collects per-test outcomes and writes them when the session finishes."""

    def __init__(self, output_path: Path) -> None:
        self.output_path = output_path
        self._started = time.monotonic()
        self._tests: dict[str, dict[str, Any]] = {}

    def pytest_runtest_logreport(self, report: pytest.TestReport) -> None:
        entry = self._tests.setdefault(
            report.nodeid,
            {"nodeid": report.nodeid, "outcome": "passed", "duration": 0.0, "message": None},
        )
        entry["duration"] = round(entry["duration"] + report.duration, 6)
        if report.failed:
            entry["outcome"] = "failed"
        elif report.skipped and entry["outcome"] != "failed":
            entry["outcome"] = "skipped"
        if (report.failed or report.skipped) and entry["message"] is None:
            entry["message"] = _short_message(report)

    def pytest_sessionfinish(self, session: pytest.Session, exitstatus: int) -> None:
        tests = list(self._tests.values())
        summary = {
            "total": len(tests),
            "passed": sum(1 for test in tests if test["outcome"] == "passed"),
            "failed": sum(1 for test in tests if test["outcome"] == "failed"),
            "skipped": sum(1 for test in tests if test["outcome"] == "skipped"),
        }
        document = {
            "created": datetime.now(UTC).isoformat(),
            "duration": round(time.monotonic() - self._started, 6),
            "exitstatus": int(exitstatus),
            "success": int(exitstatus) == 0,
            "summary": summary,
            "tests": tests,
        }
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_path.write_text(json.dumps(document, indent=2), encoding="utf-8")


def _short_message(report: pytest.TestReport) -> str:
    if isinstance(report.longrepr, tuple):
        return str(report.longrepr[2])
    crash = getattr(report.longrepr, "reprcrash", None)
    if crash is not None:
        return str(crash.message)
    return report.longreprtext.strip()


@pytest.fixture(scope="session")
def owl_platform() -> str:
    platform = os.environ.get(PLATFORM_ENV)
    if not platform:
        pytest.fail(f"{PLATFORM_ENV} is not set; run these tests through `owl run`.")
    return platform


@pytest.fixture(scope="session")
def owl_ios_simulator() -> str | None:
    return os.environ.get(SIMULATOR_ENV) or None


@pytest.fixture(scope="session")
def owl_update_baseline() -> bool:
    return os.environ.get(UPDATE_BASELINE_ENV) == "true"


@pytest.fixture(scope="session")
def screenshot_directories(owl_platform: str) -> ScreenshotDirectories:
    return ScreenshotDirectories(project_root=Path.cwd(), platform=owl_platform)


@pytest.fixture(scope="session")
def bridge_client() -> Iterator[BridgeClient]:
    client = BridgeClient.from_environment()
    with client:
        yield client


@pytest.fixture
def owl_screenshot(
    bridge_client: BridgeClient,
    screenshot_directories: ScreenshotDirectories,
    owl_update_baseline: bool,
) -> Callable[[str], Path]:
    """Capture a named screenshot and assert it matches its baseline."""

    def _capture(name: str) -> Path:
        path = take_screenshot(
            name,
            source=bridge_client,
            directories=screenshot_directories,
            update_baseline=owl_update_baseline,
        )
        assert_matches_baseline(path, directories=screenshot_directories)
        return path

    return _capture
