"""
patterns.py - Applying user-authored regex patterns to a message.

Template patterns are a tiny embedded DSL typed in by users. They should be
validated when a template is saved (`validate_template_patterns`), but
stored patterns may predate that check, so every application here guards
compile failures too. A bad pattern only ever costs the one field it was
meant to fill.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from logging_config import get_logger, record_diagnostic
from models import ParseDiagnostic, SmsTemplate

logger = get_logger(__name__)

PATTERN_FLAGS = re.IGNORECASE

# Groups the date/time slot must declare: date part, date part, year,
# hour, minute, AM/PM.
MIN_DATE_TIME_GROUPS = 6


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a template pattern with the engine's flags. Raises re.error."""
    return re.compile(pattern, PATTERN_FLAGS)


def search_pattern(
    message: str,
    pattern: Optional[str],
    diagnostics: Optional[list[ParseDiagnostic]] = None,
    template_id: Optional[int] = None,
    slot: Optional[str] = None,
) -> Optional[re.Match[str]]:
    """Search `message` with `pattern` and return the match object, or None.

    A missing pattern is not an attempt. A pattern that does not compile is
    logged and recorded as `pattern_compile_error`; it never raises.
    """
    if not pattern:
        return None

    try:
        regex = compile_pattern(pattern)
    except re.error as exc:
        record_diagnostic(
            logger,
            diagnostics,
            "pattern_compile_error",
            f"{exc} in pattern {pattern!r}",
            level=logging.WARNING,
            template_id=template_id,
            slot=slot,
        )
        return None

    return regex.search(message or "")


def apply_pattern(
    message: str,
    pattern: Optional[str] = None,
    group_index: int = 1,
    diagnostics: Optional[list[ParseDiagnostic]] = None,
    template_id: Optional[int] = None,
    slot: Optional[str] = None,
) -> Optional[str]:
    """Return capture group `group_index` of `pattern` in `message`, or None.

    None covers every "nothing to report" case: no pattern, no match, a
    group the pattern does not declare, or a group that did not take part
    in the match.

    Examples:
        >>> apply_pattern("Ksh2,500.00 sent", r"Ksh([\\d,.]+)")
        '2,500.00'
        >>> apply_pattern("Ksh2,500.00 sent", None) is None
        True
        >>> apply_pattern("Ksh2,500.00 sent", r"Ksh([\\d,.]+") is None
        True
    """
    match = search_pattern(message, pattern, diagnostics, template_id=template_id, slot=slot)
    if match is None:
        return None

    if group_index < 0 or group_index > (match.re.groups or 0):
        logger.debug(
            "pattern_group_missing | template_id=%s | slot=%s | group=%s | declared=%s",
            template_id,
            slot,
            group_index,
            match.re.groups,
        )
        return None

    return match.group(group_index)


def validate_pattern(pattern: Optional[str], min_groups: int = 0) -> Optional[str]:
    """Return an error message for `pattern`, or None when it is usable."""
    if not pattern:
        return None
    try:
        regex = compile_pattern(pattern)
    except re.error as exc:
        return f"Invalid regular expression: {exc}"
    if regex.groups < min_groups:
        return f"Pattern declares {regex.groups} capture group(s); at least {min_groups} required"
    return None


def validate_template_patterns(template: SmsTemplate) -> dict[str, str]:
    """Check every populated slot of `template`, returning {slot: error}.

    Meant for save time. Direct-capture slots need group 1; the date/time
    slot needs all six groups. Polarity slots only have to compile.
    """
    errors: dict[str, str] = {}
    for slot, pattern in template.pattern_slots:
        if slot == "date_time_pattern":
            min_groups = MIN_DATE_TIME_GROUPS
        elif slot in ("income_pattern", "expense_pattern"):
            min_groups = 0
        else:
            min_groups = 1

        error = validate_pattern(pattern, min_groups=min_groups)
        if error:
            errors[slot] = error

    if errors:
        logger.info(
            "template_validation | template_id=%s | invalid_slots=%s",
            template.id,
            sorted(errors),
        )
    return errors
