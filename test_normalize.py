"""
test_normalize.py - Normalization Module Tests

Comprehensive validation for:
- to_title_case
- strip_thousands
- normalize_date / normalize_time
- normalize_date_time

Usage: python -m pytest test_normalize.py
"""

from __future__ import annotations

import os
import sys

import pytest

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import ParseDiagnostic
from normalize import (
    normalize_date,
    normalize_date_time,
    normalize_time,
    strip_thousands,
    to_title_case,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("JOHN DOE", "John Doe"),
        ("  mary wanjiku  ", "Mary Wanjiku"),
        ("o'NEIL", "O'neil"),
        ("", ""),
        (None, ""),
    ],
)
def test_to_title_case(raw, expected) -> None:
    assert to_title_case(raw) == expected


def test_strip_thousands() -> None:
    assert strip_thousands("1,234,567.89") == "1234567.89"
    assert strip_thousands("45.00") == "45.00"
    assert strip_thousands("") == ""


def test_four_digit_first_group_is_year_month_day() -> None:
    assert normalize_date("2024", "3", "7") == "03-07-2024"
    assert normalize_date("2023", "12", "31") == "12-31-2023"


def test_short_first_group_is_day_month_two_digit_year() -> None:
    assert normalize_date("05", "01", "24") == "01-05-2024"
    assert normalize_date("9", "11", "99") == "11-09-2099"


@pytest.mark.parametrize(
    ("hour", "minute", "period", "expected"),
    [
        ("12", "00", "AM", "00:00"),
        ("12", "30", "PM", "12:30"),
        ("3", "15", "PM", "15:15"),
        ("3", "15", "pm", "15:15"),
        ("11", "59", "am", "11:59"),
        ("7", "05", None, "07:05"),
        ("19", "05", "", "19:05"),
    ],
)
def test_normalize_time(hour, minute, period, expected) -> None:
    assert normalize_time(hour, minute, period) == expected


def test_normalize_time_passes_minutes_through() -> None:
    assert normalize_time("2", "7", "PM") == "14:7"


def test_normalize_date_time_full() -> None:
    assert normalize_date_time(("05", "01", "24", "2", "45", "PM")) == ("01-05-2024", "14:45")


def test_normalize_date_time_too_few_groups() -> None:
    diagnostics: list[ParseDiagnostic] = []
    assert normalize_date_time(("05", "01", "24", "2", "45"), diagnostics) is None
    assert diagnostics[0].event == "date_time_unparsable"


def test_normalize_date_time_missing_component() -> None:
    diagnostics: list[ParseDiagnostic] = []
    assert normalize_date_time(("05", None, "24", "2", "45", None), diagnostics) is None
    assert [d.event for d in diagnostics] == ["date_time_unparsable"]


def test_normalize_date_time_non_numeric_hour() -> None:
    diagnostics: list[ParseDiagnostic] = []
    assert normalize_date_time(("05", "01", "24", "xx", "45", "PM"), diagnostics, template_id=3) is None
    assert diagnostics[0].template_id == 3
