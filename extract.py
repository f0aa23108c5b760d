"""
extract.py - Field extraction for one template against one SMS.

This module turns a raw notification string plus a single `SmsTemplate`
into a `ParsedSmsData`, or rejects the attempt.

Pipeline role:
- It is the only module that walks a template's pattern slots.
- Each slot is independent: a field that fails to match (or whose pattern
  does not compile) is left unset and extraction moves on.
- Competition between templates happens in match.py; this module never
  looks at more than one template.

Extraction order:
    1. polarity (income pattern, then expense pattern)
    2. reference
    3. amount (commas stripped)
    4. recipient name (title-cased, then resolved against known recipients)
    5. recipient phone
    6. cost (commas stripped)
    7. date/time (only with >= 6 capture groups)
    8. template id (always)
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from logging_config import get_logger, record_diagnostic
from models import ParseDiagnostic, ParsedSmsData, Recipient, SmsTemplate
from normalize import normalize_date_time, strip_thousands, to_title_case
from patterns import MIN_DATE_TIME_GROUPS, apply_pattern, search_pattern
from recipients import resolve_recipient

logger = get_logger(__name__)


def detect_polarity(
    message: str,
    template: SmsTemplate,
    diagnostics: Optional[list[ParseDiagnostic]] = None,
) -> Optional[bool]:
    """True for income, False for expense, None when neither pattern matches.

    Income is checked first; an SMS matching both is income.
    """
    if search_pattern(
        message, template.income_pattern, diagnostics, template_id=template.id, slot="income_pattern"
    ):
        return True
    if search_pattern(
        message, template.expense_pattern, diagnostics, template_id=template.id, slot="expense_pattern"
    ):
        return False
    return None


def extract_date_time(
    message: str,
    template: SmsTemplate,
    diagnostics: Optional[list[ParseDiagnostic]] = None,
) -> Optional[tuple[str, str]]:
    """Normalized (date, time) from the template's date/time slot, or None."""
    match = search_pattern(
        message,
        template.date_time_pattern,
        diagnostics,
        template_id=template.id,
        slot="date_time_pattern",
    )
    if match is None:
        return None

    if match.re.groups < MIN_DATE_TIME_GROUPS:
        record_diagnostic(
            logger,
            diagnostics,
            "date_time_unparsable",
            f"pattern declares {match.re.groups} group(s), {MIN_DATE_TIME_GROUPS} required",
            template_id=template.id,
            slot="date_time_pattern",
        )
        return None

    return normalize_date_time(match.groups(), diagnostics, template_id=template.id)


def _extract_fields(
    message: str,
    template: SmsTemplate,
    recipients: Optional[Iterable[Recipient]],
    diagnostics: Optional[list[ParseDiagnostic]],
) -> ParsedSmsData:
    def capture(slot: str) -> Optional[str]:
        return apply_pattern(
            message,
            getattr(template, slot),
            diagnostics=diagnostics,
            template_id=template.id,
            slot=slot,
        )

    result = ParsedSmsData()
    result.is_income = detect_polarity(message, template, diagnostics)

    reference = capture("reference_pattern")
    if reference:
        result.reference = reference

    amount = capture("amount_pattern")
    if amount:
        result.amount = strip_thousands(amount)

    recipient_name = capture("recipient_name_pattern")
    if recipient_name:
        result.recipient_name = to_title_case(recipient_name)

    recipient_phone = capture("recipient_phone_pattern")
    if recipient_phone:
        result.recipient_phone = recipient_phone

    cost = capture("cost_pattern")
    if cost:
        result.cost = strip_thousands(cost)

    date_time = extract_date_time(message, template, diagnostics)
    if date_time is not None:
        result.date, result.time = date_time

    result.template_id = template.id

    if result.recipient_name and recipients is not None:
        result.recipient_id = resolve_recipient(result.recipient_name, recipients)

    return result


def parse_with_template(
    message: str,
    template: SmsTemplate,
    recipients: Optional[Iterable[Recipient]] = None,
    diagnostics: Optional[list[ParseDiagnostic]] = None,
) -> Optional[ParsedSmsData]:
    """Extract every field `template` describes from `message`.

    Returns None (a rejected attempt) when nothing beyond the template id
    was extracted. An unexpected error inside the attempt is logged and
    also counts as a rejection; it never propagates to the caller.

    Args:
        message: Raw SMS text as pasted by the user.
        template: The template to apply.
        recipients: Known recipients. When given and a name was extracted,
            `recipient_id` is filled on an exact name or alias match.
        diagnostics: Optional list that receives ParseDiagnostic records.

    Examples:
        >>> tpl = SmsTemplate(id=1, amount_pattern=r"Ksh([\\d,]+\\.\\d{2})")
        >>> parse_with_template("Ksh2,500.00 sent", tpl).amount
        '2500.00'
        >>> parse_with_template("no money here", tpl) is None
        True
    """
    try:
        result = _extract_fields(message or "", template, recipients, diagnostics)
    except Exception as exc:
        record_diagnostic(
            logger,
            diagnostics,
            "template_error",
            f"{type(exc).__name__}: {exc}",
            level=logging.WARNING,
            template_id=template.id,
        )
        logger.debug("template_error_trace | template_id=%s", template.id, exc_info=True)
        return None

    extracted = result.extracted_fields()
    if not extracted:
        record_diagnostic(
            logger,
            diagnostics,
            "template_rejected",
            "no field matched",
            template_id=template.id,
        )
        return None

    logger.debug(
        "template_attempt | template_id=%s | name=%r | fields=%s | recipient_id=%s",
        template.id,
        template.name,
        extracted,
        result.recipient_id,
    )
    return result
