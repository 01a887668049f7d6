"""Screenshot store tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from owl_runner.screenshot_capture import (
    BaselineMismatch,
    ScreenshotDirectories,
    assert_matches_baseline,
    screenshot_filename,
    take_screenshot,
)


class _FakeSource:
    def __init__(self, image: bytes) -> None:
        self.image = image
        self.names: list[str] = []

    def capture_screenshot(self, name: str) -> bytes:
        self.names.append(name)
        return self.image


def _directories(tmp_path: Path) -> ScreenshotDirectories:
    return ScreenshotDirectories(project_root=tmp_path, platform="ios")


def test_directories_follow_owl_layout(tmp_path: Path) -> None:
    directories = _directories(tmp_path)

    assert directories.baseline == tmp_path / ".owl" / "baseline" / "ios"
    assert directories.latest == tmp_path / ".owl" / "latest" / "ios"
    assert directories.diff == tmp_path / ".owl" / "diff" / "ios"
    assert directories.report == tmp_path / ".owl" / "report"


@pytest.mark.parametrize(
    ("name", "expected"),
    [("home", "home.png"), ("home screen/1", "home-screen-1.png"), ("done.png", "done.png")],
)
def test_screenshot_filename_is_filesystem_safe(name: str, expected: str) -> None:
    assert screenshot_filename(name) == expected


def test_screenshot_filename_rejects_empty_names() -> None:
    with pytest.raises(ValueError):
        screenshot_filename(" / ")


def test_first_capture_becomes_the_baseline(tmp_path: Path) -> None:
    directories = _directories(tmp_path)
    source = _FakeSource(b"image-1")

    path = take_screenshot("home", source=source, directories=directories)

    assert path == directories.baseline / "home.png"
    assert path.read_bytes() == b"image-1"
    assert source.names == ["home"]
    assert_matches_baseline(path, directories=directories)


def test_later_capture_goes_to_latest_and_matches_identical_baseline(tmp_path: Path) -> None:
    directories = _directories(tmp_path)
    take_screenshot("home", source=_FakeSource(b"same"), directories=directories)

    path = take_screenshot("home", source=_FakeSource(b"same"), directories=directories)

    assert path == directories.latest / "home.png"
    assert_matches_baseline(path, directories=directories)
    assert not (directories.diff / "home.png").exists()


def test_mismatch_writes_diff_and_raises(tmp_path: Path) -> None:
    directories = _directories(tmp_path)
    take_screenshot("home", source=_FakeSource(b"before"), directories=directories)
    path = take_screenshot("home", source=_FakeSource(b"after"), directories=directories)

    with pytest.raises(BaselineMismatch, match="does not match"):
        assert_matches_baseline(path, directories=directories)

    assert (directories.diff / "home.png").read_bytes() == b"after"


def test_update_baseline_overwrites_existing_baseline(tmp_path: Path) -> None:
    directories = _directories(tmp_path)
    take_screenshot("home", source=_FakeSource(b"before"), directories=directories)

    path = take_screenshot(
        "home", source=_FakeSource(b"after"), directories=directories, update_baseline=True
    )

    assert path == directories.baseline / "home.png"
    assert path.read_bytes() == b"after"
    assert not directories.latest.exists()


def test_custom_comparator_decides_the_match(tmp_path: Path) -> None:
    directories = _directories(tmp_path)
    take_screenshot("home", source=_FakeSource(b"before"), directories=directories)
    path = take_screenshot("home", source=_FakeSource(b"after"), directories=directories)

    assert_matches_baseline(path, directories=directories, comparator=lambda _a, _b: True)


def test_missing_baseline_is_a_mismatch(tmp_path: Path) -> None:
    directories = _directories(tmp_path)
    latest = directories.latest / "orphan.png"
    latest.parent.mkdir(parents=True)
    latest.write_bytes(b"x")

    with pytest.raises(BaselineMismatch, match="No baseline"):
        assert_matches_baseline(latest, directories=directories)
