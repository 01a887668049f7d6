"""Screenshot files under `.owl/` and the baseline comparison."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

OWL_DIR = ".owl"
BASELINE_DIR = "baseline"
LATEST_DIR = "latest"
DIFF_DIR = "diff"
REPORT_DIR = "report"
SCREENSHOT_SUFFIX = ".png"

ImageComparator = Callable[[bytes, bytes], bool]

_UNSAFE_NAME_CHARACTERS = re.compile(r"[^A-Za-z0-9._-]+")


class ScreenshotSource(Protocol):  # pylint: disable=too-few-public-methods
    """Anything able to return the current screen as image bytes."""

    def capture_screenshot(self, name: str) -> bytes: ...


class BaselineMismatch(AssertionError):
    """Raised when the latest screenshot differs from its baseline."""


@dataclass(frozen=True)
class ScreenshotDirectories:
    """Per-platform screenshot directories of one project."""

    project_root: Path
    platform: str

    @property
    def baseline(self) -> Path:
        return self.project_root / OWL_DIR / BASELINE_DIR / self.platform

    @property
    def latest(self) -> Path:
        return self.project_root / OWL_DIR / LATEST_DIR / self.platform

    @property
    def diff(self) -> Path:
        return self.project_root / OWL_DIR / DIFF_DIR / self.platform

    @property
    def report(self) -> Path:
        return self.project_root / OWL_DIR / REPORT_DIR


def screenshot_filename(name: str) -> str:
    cleaned = _UNSAFE_NAME_CHARACTERS.sub("-", name.strip()).strip("-")
    if not cleaned:
        raise ValueError("Screenshot name must contain at least one letter or digit.")
    return cleaned if cleaned.endswith(SCREENSHOT_SUFFIX) else f"{cleaned}{SCREENSHOT_SUFFIX}"


def bytes_equal(baseline: bytes, latest: bytes) -> bool:
    return baseline == latest


def take_screenshot(
    name: str,
    *,
    source: ScreenshotSource,
    directories: ScreenshotDirectories,
    update_baseline: bool = False,
) -> Path:
    """Capture one screenshot and store it.

    The image goes to the baseline directory when baselines are being updated
    or no baseline exists yet, and to the latest directory otherwise.
    """
    filename = screenshot_filename(name)
    image = source.capture_screenshot(name)
    baseline_path = directories.baseline / filename
    if update_baseline or not baseline_path.exists():
        target = baseline_path
    else:
        target = directories.latest / filename
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(image)
    return target


def assert_matches_baseline(
    screenshot_path: Path,
    *,
    directories: ScreenshotDirectories,
    comparator: ImageComparator = bytes_equal,
) -> None:
    """Compare a stored screenshot with its baseline.

    Freshly written baselines always match. On a mismatch the latest image is
    copied to the diff directory and `BaselineMismatch` is raised.
    """
    baseline_path = directories.baseline / screenshot_path.name
    if screenshot_path.resolve() == baseline_path.resolve():
        return
    if not baseline_path.exists():
        raise BaselineMismatch(f"No baseline screenshot at {baseline_path}.")

    latest = screenshot_path.read_bytes()
    if comparator(baseline_path.read_bytes(), latest):
        return
    diff_path = directories.diff / screenshot_path.name
    diff_path.parent.mkdir(parents=True, exist_ok=True)
    diff_path.write_bytes(latest)
    raise BaselineMismatch(
        f"Screenshot {screenshot_path.name} does not match its baseline; see {diff_path}."
    )
