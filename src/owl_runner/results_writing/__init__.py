"""Results writing domain exports."""

from .report_models import (
    ReportedTestCase,
    ReportGenerationFailure,
    TestOutcome,
    TestRunReport,
    load_test_run_report,
)
from .run_report_writer import REPORT_FILENAME, TEST_RESULTS_FILENAME, generate_report

__all__ = [
    "REPORT_FILENAME",
    "TEST_RESULTS_FILENAME",
    "ReportedTestCase",
    "ReportGenerationFailure",
    "TestOutcome",
    "TestRunReport",
    "generate_report",
    "load_test_run_report",
]
