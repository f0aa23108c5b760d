"""
normalize.py - Value normalization for extracted SMS fields.

Three normalizers:
    to_title_case(text)          -> "john DOE" -> "John Doe"
    strip_thousands(value)       -> "2,500.00" -> "2500.00"
    normalize_date_time(groups)  -> ("MM-DD-YYYY", "HH:MM") or None

Design principles:
    - Pure transformations, no lookups
    - Nothing is guessed: input that cannot be read yields None
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from logging_config import get_logger, record_diagnostic
from models import ParseDiagnostic

logger = get_logger(__name__)

# A first date group of this length is read as a full year (year-month-day).
FULL_YEAR_LENGTH = 4

# Century assumed for two-digit years.
CENTURY_PREFIX = "20"


def to_title_case(text: Optional[str]) -> str:
    """Upper-case the first letter of each space-delimited word, lower the rest."""
    if not text:
        return ""
    words = text.strip().lower().split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words)


def strip_thousands(value: Optional[str]) -> str:
    """Remove every ',' thousands separator. No numeric validation."""
    if not value:
        return ""
    return value.replace(",", "")


def normalize_date(first: str, second: str, third: str) -> str:
    """Build MM-DD-YYYY from three captured date parts.

    A 4-character first part means year-month-day. Anything else is read as
    day-month and a two-digit year in the 2000s.
    """
    if len(first) == FULL_YEAR_LENGTH:
        year, month, day = first, second, third
    else:
        day, month, year = first, second, CENTURY_PREFIX + third

    return f"{month.zfill(2)}-{day.zfill(2)}-{year}"


def normalize_time(hour_text: str, minute_text: str, period: Optional[str] = None) -> str:
    """Convert a captured clock time to 24-hour HH:MM.

    Minutes pass through unchanged. Raises ValueError for a non-numeric hour.
    """
    hours = int(hour_text.strip())
    marker = (period or "").strip().upper()

    if marker == "PM" and hours != 12:
        hours += 12
    elif marker == "AM" and hours == 12:
        hours = 0

    return f"{hours:02d}:{minute_text}"


def normalize_date_time(
    groups: Sequence[Optional[str]],
    diagnostics: Optional[list[ParseDiagnostic]] = None,
    template_id: Optional[int] = None,
) -> Optional[tuple[str, str]]:
    """Turn the six date/time capture groups into (date, time).

    groups[0:3] are the date parts and year fragment, groups[3:5] hour and
    minute, groups[5] an optional AM/PM marker. Returns None (and records
    `date_time_unparsable`) when fewer than six groups are given or one of
    the first five did not participate in the match.
    """
    if len(groups) < 6:
        record_diagnostic(
            logger,
            diagnostics,
            "date_time_unparsable",
            f"expected 6 capture groups, got {len(groups)}",
            template_id=template_id,
            slot="date_time_pattern",
        )
        return None

    first, second, third, hour, minute, period = groups[:6]
    if not all((first, second, third, hour, minute)):
        record_diagnostic(
            logger,
            diagnostics,
            "date_time_unparsable",
            f"missing date/time components in {list(groups[:6])!r}",
            template_id=template_id,
            slot="date_time_pattern",
        )
        return None

    try:
        time_value = normalize_time(hour, minute, period)
    except ValueError:
        record_diagnostic(
            logger,
            diagnostics,
            "date_time_unparsable",
            f"hour {hour!r} is not a number",
            level=logging.WARNING,
            template_id=template_id,
            slot="date_time_pattern",
        )
        return None

    date_value = normalize_date(first, second, third)
    logger.debug(
        "normalize_date_time | raw=%r | date=%s | time=%s",
        list(groups[:6]),
        date_value,
        time_value,
    )
    return date_value, time_value
