"""Test-runner side screenshot helpers."""

from .screenshot_store import (
    BaselineMismatch,
    ImageComparator,
    ScreenshotDirectories,
    assert_matches_baseline,
    bytes_equal,
    screenshot_filename,
    take_screenshot,
)

__all__ = [
    "BaselineMismatch",
    "ImageComparator",
    "ScreenshotDirectories",
    "assert_matches_baseline",
    "bytes_equal",
    "screenshot_filename",
    "take_screenshot",
]
