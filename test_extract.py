"""
test_extract.py - Single-template extraction tests.

Tests parse_with_template against realistic mobile-money messages,
field independence, rejection rules and recipient resolution.

Usage: python -m pytest test_extract.py
"""

from __future__ import annotations

import os
import sys

# Ensure we can import from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from extract import detect_polarity, extract_date_time, parse_with_template
from models import ParseDiagnostic, Recipient, SmsTemplate

SENT_SMS = "Confirmed. Ksh2,500.00 sent to JOHN DOE on 05/01/24 at 2:45 PM"

FULL_SMS = (
    "SLK4H7YT2M Confirmed. Ksh1,250.50 sent to MARY WANJIKU 0712345678 "
    "on 2024-3-7 at 9:05 AM. Transaction cost, Ksh13.00."
)

DATE_TIME_DMY = r"(\d{1,2})/(\d{1,2})/(\d{2}).*?(\d{1,2}):(\d{2})\s*(PM|AM)"


def _sent_template(**overrides) -> SmsTemplate:
    fields = {
        "id": 1,
        "name": "M-PESA sent",
        "expense_pattern": r"sent to",
        "amount_pattern": r"Ksh([\d,]+\.\d{2})",
        "recipient_name_pattern": r"sent to (.+?) on",
        "date_time_pattern": DATE_TIME_DMY,
    }
    fields.update(overrides)
    return SmsTemplate(**fields)


def _full_template() -> SmsTemplate:
    return SmsTemplate(
        id=2,
        name="M-PESA full",
        income_pattern=r"received from",
        expense_pattern=r"sent to",
        reference_pattern=r"^([A-Z0-9]{10})\s+Confirmed",
        amount_pattern=r"Confirmed\.\s*Ksh([\d,]+\.\d{2})",
        recipient_name_pattern=r"sent to ([A-Z ]+?) \d",
        recipient_phone_pattern=r"(0\d{9})",
        cost_pattern=r"Transaction cost,\s*Ksh([\d,]+\.\d{2})",
        date_time_pattern=r"(\d{4})-(\d{1,2})-(\d{1,2}) at (\d{1,2}):(\d{2})\s*(AM|PM)?",
    )


def test_worked_example() -> None:
    result = parse_with_template(SENT_SMS, _sent_template())
    assert result is not None
    assert result.amount == "2500.00"
    assert result.recipient_name == "John Doe"
    assert result.date == "01-05-2024"
    assert result.time == "14:45"
    assert result.is_income is False
    assert result.template_id == 1
    assert result.reference is None
    assert result.recipient_id is None


def test_all_fields_with_year_first_date() -> None:
    result = parse_with_template(FULL_SMS, _full_template())
    assert result is not None
    assert result.reference == "SLK4H7YT2M"
    assert result.amount == "1250.50"
    assert result.recipient_name == "Mary Wanjiku"
    assert result.recipient_phone == "0712345678"
    assert result.cost == "13.00"
    assert result.date == "03-07-2024"
    assert result.time == "09:05"
    assert result.is_income is False
    assert len(result.extracted_fields()) == 8


def test_income_checked_before_expense() -> None:
    template = SmsTemplate(id=3, income_pattern=r"received", expense_pattern=r"Ksh")
    assert detect_polarity("You have received Ksh100.00", template) is True
    assert detect_polarity("Ksh100.00 paid", template) is False
    assert detect_polarity("Balance is 100", template) is None


def test_polarity_alone_is_not_rejected() -> None:
    template = SmsTemplate(id=3, income_pattern=r"received", amount_pattern=r"USD([\d.]+)")
    result = parse_with_template("You have received Ksh100.00", template)
    assert result is not None
    assert result.is_income is True
    assert result.amount is None


def test_amount_only_template_that_misses_is_rejected() -> None:
    diagnostics: list[ParseDiagnostic] = []
    template = SmsTemplate(id=9, amount_pattern=r"USD([\d,.]+)")
    assert parse_with_template(SENT_SMS, template, diagnostics=diagnostics) is None
    assert diagnostics[-1].event == "template_rejected"
    assert diagnostics[-1].template_id == 9


def test_template_without_patterns_is_rejected() -> None:
    assert parse_with_template(SENT_SMS, SmsTemplate(id=10, amount_pattern="  ")) is None


def test_bad_pattern_does_not_block_other_fields() -> None:
    diagnostics: list[ParseDiagnostic] = []
    template = _sent_template(amount_pattern=r"Ksh([\d,]+\.\d{2}", expense_pattern=r"(sent")
    result = parse_with_template(SENT_SMS, template, diagnostics=diagnostics)
    assert result is not None
    assert result.amount is None
    assert result.is_income is None
    assert result.recipient_name == "John Doe"
    assert result.time == "14:45"
    events = [(d.event, d.slot) for d in diagnostics]
    assert ("pattern_compile_error", "amount_pattern") in events
    assert ("pattern_compile_error", "expense_pattern") in events


def test_fewer_than_six_groups_leaves_date_and_time_unset() -> None:
    template = _sent_template(date_time_pattern=r"(\d{1,2})/(\d{1,2})/(\d{2}).*?(\d{1,2}):(\d{2})")
    result = parse_with_template(SENT_SMS, template)
    assert result is not None
    assert result.date is None
    assert result.time is None
    assert result.amount == "2500.00"


def test_missing_am_pm_marker_keeps_hour() -> None:
    template = _sent_template(
        date_time_pattern=r"(\d{1,2})/(\d{1,2})/(\d{2}).*?(\d{1,2}):(\d{2})\s*(XM)?"
    )
    assert extract_date_time(SENT_SMS, template) == ("01-05-2024", "02:45")


def test_recipient_resolved_when_recipients_given() -> None:
    recipients = [
        Recipient(id=11, name="Jane Roe", aliases="john doe; jd"),
        Recipient(id=12, name="JOHN DOE"),
    ]
    result = parse_with_template(SENT_SMS, _sent_template(), recipients)
    assert result is not None
    assert result.recipient_id == 12


def test_recipient_unresolved_leaves_id_unset() -> None:
    result = parse_with_template(SENT_SMS, _sent_template(), [Recipient(id=1, name="Someone")])
    assert result is not None
    assert result.recipient_name == "John Doe"
    assert result.recipient_id is None


def test_empty_message_is_rejected() -> None:
    assert parse_with_template("", _sent_template()) is None
