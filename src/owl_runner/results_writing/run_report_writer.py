"""Report workbook writer service."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils import get_column_letter

from owl_runner.console_output import RunLogger
from owl_runner.screenshot_capture import ScreenshotDirectories

from .report_models import (
    ReportGenerationFailure,
    TestOutcome,
    TestRunReport,
    load_test_run_report,
)

TEST_RESULTS_FILENAME = "test-report.json"
REPORT_FILENAME = "report.xlsx"

_TESTS_HEADER = ("Test", "Outcome", "Duration (s)", "Message")
_SCREENSHOTS_HEADER = ("Screenshot", "Status", "Baseline", "Latest", "Diff")


def generate_report(platform: str, *, project_root: Path, logger: RunLogger) -> Path:
    """Render test results and screenshot status for one platform into a workbook."""
    directories = ScreenshotDirectories(project_root=project_root, platform=platform)
    test_report = load_test_run_report(directories.report / TEST_RESULTS_FILENAME)

    output = directories.report / REPORT_FILENAME
    try:
        workbook = _build_workbook(platform, test_report, directories)
        output.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(output)
    except (OSError, ValueError) as exc:
        raise ReportGenerationFailure(f"Could not write the report to {output}: {exc}") from exc
    logger.print(f"Report was built at {output}")
    return output


def _build_workbook(
    platform: str, test_report: TestRunReport, directories: ScreenshotDirectories
) -> Workbook:
    workbook = Workbook()
    summary_sheet = workbook.active
    summary_sheet.title = "Summary"
    _write_key_values(summary_sheet, _summary_entries(platform, test_report))
    _write_table(
        workbook.create_sheet("Tests"),
        _TESTS_HEADER,
        (
            (case.nodeid, case.outcome.value, case.duration, case.message or "")
            for case in test_report.tests
        ),
    )
    _write_table(
        workbook.create_sheet("Screenshots"),
        _SCREENSHOTS_HEADER,
        _screenshot_rows(directories),
    )
    return workbook


def _summary_entries(platform: str, test_report: TestRunReport) -> tuple[tuple[str, Any], ...]:
    failing = [case.nodeid for case in test_report.tests if case.outcome is TestOutcome.FAILED]
    return (
        ("generated_at", datetime.now(UTC).isoformat()),
        ("platform", platform),
        ("test_run_created", test_report.created),
        ("duration_seconds", test_report.duration),
        ("success", test_report.success),
        ("total", test_report.total),
        ("passed", test_report.passed),
        ("failed", test_report.failed),
        ("skipped", test_report.skipped),
        ("failing_tests", "\n".join(failing)),
    )


def _screenshot_rows(directories: ScreenshotDirectories) -> list[tuple[str, ...]]:
    names = sorted(
        {
            path.name
            for directory in (directories.baseline, directories.latest, directories.diff)
            if directory.is_dir()
            for path in directory.iterdir()
            if path.is_file()
        }
    )
    rows = []
    for name in names:
        baseline = directories.baseline / name
        latest = directories.latest / name
        diff = directories.diff / name
        if diff.exists():
            status = "changed"
        elif latest.exists():
            status = "unchanged"
        else:
            status = "baseline only"
        rows.append(
            (
                name,
                status,
                str(baseline) if baseline.exists() else "",
                str(latest) if latest.exists() else "",
                str(diff) if diff.exists() else "",
            )
        )
    return rows


def _write_key_values(sheet, entries: Sequence[tuple[str, Any]]) -> None:
    for row, (key, value) in enumerate(entries, start=1):
        sheet.cell(row=row, column=1, value=key)
        sheet.cell(row=row, column=2, value=_cell_value(value))
    sheet.column_dimensions["A"].width = 20
    sheet.column_dimensions["B"].width = 60


def _write_table(sheet, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    for column, title in enumerate(header, start=1):
        sheet.cell(row=1, column=column, value=title)
        sheet.cell(row=1, column=column).style = "Headline 1"
        sheet.column_dimensions[get_column_letter(column)].width = max(14, len(title) + 6)
    for row, values in enumerate(rows, start=2):
        for column, value in enumerate(values, start=1):
            sheet.cell(row=row, column=column, value=_cell_value(value))


def _cell_value(value: Any) -> Any:
    # Worksheets reject control characters such as ANSI colour escapes.
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value
