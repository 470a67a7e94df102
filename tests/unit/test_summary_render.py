from __future__ import annotations

from datetime import UTC, datetime

from tutoring_admin.models.command_result import CommandResult
from tutoring_admin.services.summary import render_summary_line

T = datetime(2024, 1, 1, tzinfo=UTC)


def _result(elapsed: float, details=None, changes: int = 3) -> CommandResult:
    return CommandResult("syncDataFromForms", changes, T, T, elapsed, details or {})


def test_basic_line_is_the_body_after_the_label():
    assert render_summary_line(_result(2.0)) == "command=syncDataFromForms changes=3 elapsed_sec=2"


def test_elapsed_formatting():
    assert "elapsed_sec=0 " in render_summary_line(_result(0.0)) + " "
    assert "elapsed_sec=0.005" in render_summary_line(_result(0.005))
    assert "elapsed_sec=1.25" in render_summary_line(_result(1.25))
    assert "e-" not in render_summary_line(_result(0.0000123))


def test_int_details_are_appended_in_order():
    line = render_summary_line(
        _result(0.0, {"changes": 3, "requestForm": 2, "processed_days": [1, 2], "flag": True, "attendanceForm": 1})
    )
    assert line.endswith("elapsed_sec=0 requestForm=2 attendanceForm=1")
