"""pytest plugin tests driven through pytester."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterator

import pytest
from owl_runner.bridge_server import (
    APP_ROLE,
    CAPTURE_SCREENSHOT,
    BridgeClient,
    BridgeServer,
    encode_screenshot_payload,
)

PLUGIN = "owl_runner.screenshot_capture.pytest_plugin"


class _App:
    """Instrumentation client stand-in serving a swappable image."""

    def __init__(self, port: int) -> None:
        self.image = b"first-image"
        self._client = BridgeClient(port=port, role=APP_ROLE, timeout=5.0).connect()
        self._thread = threading.Thread(
            target=self._client.serve,
            args=({CAPTURE_SCREENSHOT: lambda _payload: encode_screenshot_payload(self.image)},),
            daemon=True,
        )
        self._thread.start()

    def close(self) -> None:
        self._thread.join(timeout=2)
        self._client.close()


@pytest.fixture
def running_app(monkeypatch) -> Iterator[_App]:
    server = BridgeServer("127.0.0.1", 0, request_timeout=2.0, connect_timeout=2.0)
    server.start()
    app = _App(server.address[1])
    monkeypatch.setenv("OWL_BRIDGE_PORT", str(server.address[1]))
    monkeypatch.setenv("OWL_PLATFORM", "ios")
    monkeypatch.setenv("OWL_UPDATE_BASELINE", "false")
    yield app
    server.stop()
    app.close()


def test_json_report_records_outcomes(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(
        test_sample="""
        import pytest

        def test_passes():
            assert True

        def test_fails():
            assert 1 == 2, "numbers differ"

        @pytest.mark.skip(reason="not on this device")
        def test_skipped():
            pass
        """
    )
    report_path = pytester.path / ".owl" / "report" / "test-report.json"

    result = pytester.runpytest("-p", PLUGIN, f"--owl-json-report={report_path}")

    result.assert_outcomes(passed=1, failed=1, skipped=1)
    document = json.loads(report_path.read_text(encoding="utf-8"))
    assert document["success"] is False
    assert document["exitstatus"] == 1
    assert document["summary"] == {"total": 3, "passed": 1, "failed": 1, "skipped": 1}
    outcomes = {test["nodeid"].split("::")[-1]: test for test in document["tests"]}
    assert outcomes["test_passes"]["outcome"] == "passed"
    assert outcomes["test_fails"]["outcome"] == "failed"
    assert "numbers differ" in outcomes["test_fails"]["message"]
    assert outcomes["test_skipped"]["outcome"] == "skipped"
    assert "not on this device" in outcomes["test_skipped"]["message"]


def test_no_report_is_written_without_option(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(test_sample="def test_passes():\n    assert True\n")

    result = pytester.runpytest("-p", PLUGIN)

    result.assert_outcomes(passed=1)
    assert not (pytester.path / ".owl").exists()


def test_only_owl_modules_are_collected(pytester: pytest.Pytester) -> None:
    pytester.makepyfile(
        home_owl="def test_home():\n    assert True\n",
        test_regular="def test_regular():\n    assert True\n",
    )

    result = pytester.runpytest("-p", PLUGIN, "-o", "python_files=*_owl.py")

    result.assert_outcomes(passed=1)
    result.stdout.fnmatch_lines(["*home_owl.py*"])


def test_platform_fixture_requires_owl_run(pytester: pytest.Pytester, monkeypatch) -> None:
    monkeypatch.delenv("OWL_PLATFORM", raising=False)
    pytester.makepyfile(test_sample="def test_platform(owl_platform):\n    pass\n")

    result = pytester.runpytest("-p", PLUGIN)

    result.assert_outcomes(errors=1)
    result.stdout.fnmatch_lines(["*OWL_PLATFORM is not set*"])


def test_screenshot_fixture_creates_then_matches_baseline(
    pytester: pytest.Pytester, running_app: _App
) -> None:
    pytester.makepyfile(
        home_owl="""
        def test_home(owl_screenshot):
            owl_screenshot("home")
        """
    )

    first = pytester.runpytest("-p", PLUGIN, "-o", "python_files=*_owl.py")
    second = pytester.runpytest("-p", PLUGIN, "-o", "python_files=*_owl.py")

    first.assert_outcomes(passed=1)
    second.assert_outcomes(passed=1)
    owl_dir = pytester.path / ".owl"
    assert (owl_dir / "baseline" / "ios" / "home.png").read_bytes() == b"first-image"
    assert (owl_dir / "latest" / "ios" / "home.png").read_bytes() == b"first-image"


def test_screenshot_fixture_fails_on_changed_image(
    pytester: pytest.Pytester, running_app: _App
) -> None:
    pytester.makepyfile(
        home_owl="""
        def test_home(owl_screenshot):
            owl_screenshot("home")
        """
    )
    pytester.runpytest("-p", PLUGIN, "-o", "python_files=*_owl.py").assert_outcomes(passed=1)
    running_app.image = b"second-image"

    result = pytester.runpytest("-p", PLUGIN, "-o", "python_files=*_owl.py")

    result.assert_outcomes(failed=1)
    result.stdout.fnmatch_lines(["*does not match its baseline*"])
    assert (pytester.path / ".owl" / "diff" / "ios" / "home.png").read_bytes() == b"second-image"


def test_update_baseline_replaces_stored_image(
    pytester: pytest.Pytester, running_app: _App, monkeypatch
) -> None:
    pytester.makepyfile(
        home_owl="""
        def test_home(owl_screenshot):
            owl_screenshot("home")
        """
    )
    pytester.runpytest("-p", PLUGIN, "-o", "python_files=*_owl.py").assert_outcomes(passed=1)
    running_app.image = b"second-image"
    monkeypatch.setenv("OWL_UPDATE_BASELINE", "true")

    result = pytester.runpytest("-p", PLUGIN, "-o", "python_files=*_owl.py")

    result.assert_outcomes(passed=1)
    baseline = pytester.path / ".owl" / "baseline" / "ios" / "home.png"
    assert baseline.read_bytes() == b"second-image"
