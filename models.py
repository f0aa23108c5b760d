"""
models.py - Data Models for the SMS parsing engine

This file defines ALL data structures used across the parser.
Every module communicates exclusively through these models:

    template_store.py ->  SmsTemplate, Recipient
    extract.py        ->  ParsedSmsData (one template attempt)
    match.py          ->  ParseCandidate, ParseOutcome
    recipients.py     ->  recipient id, DuplicatePair
    explain.py        ->  str / dict (uses ParseOutcome as input)

Design principles:
1. Templates and recipients are read-only inputs owned by the caller
2. ParsedSmsData never carries placeholder values: unset means None
3. Every recoverable failure leaves a ParseDiagnostic so callers can show
   what happened without scraping logs

Schema relationships:
    SmsTemplate   --referenced by--> ParsedSmsData.template_id
    Recipient     --referenced by--> ParsedSmsData.recipient_id
    ParsedSmsData --used by--> ParseCandidate.data, ParseOutcome.data
    ParseStatus   --used by--> ParseOutcome.status
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PATTERN_SLOTS: tuple[str, ...] = (
    "income_pattern",
    "expense_pattern",
    "reference_pattern",
    "amount_pattern",
    "recipient_name_pattern",
    "recipient_phone_pattern",
    "cost_pattern",
    "date_time_pattern",
)

# Fields counted by the scoring engine, in extraction order.
SCORED_FIELDS: tuple[str, ...] = (
    "is_income",
    "reference",
    "amount",
    "cost",
    "recipient_name",
    "recipient_phone",
    "date",
    "time",
)


class ParseStatus(str, Enum):
    """The four outcomes a caller has to tell apart."""

    # A template produced an admissible parse (an amount was extracted).
    PARSED = "parsed"

    # The caller picked a template and it could not yield an amount,
    # or the id does not name any supplied template.
    TEMPLATE_FAILED = "template_failed"

    # Auto-detect mode ran every active template and none yielded an amount.
    NO_MATCH = "no_match"

    # Nothing to parse: the message was blank.
    EMPTY_MESSAGE = "empty_message"


class SmsTemplate(BaseModel):
    """A named bundle of regular expressions for one notification format.

    Each pattern slot is an optional user-authored regex. Capture group 1
    holds the value for the direct-capture slots. The date/time slot must
    declare six groups: two date parts and a year fragment, then hour,
    minute and an optional AM/PM marker.

    Templates are stored and edited elsewhere. The engine only reads them.
    """

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Template identifier owned by the persistence layer.")
    name: str = Field(default="", description="Display name, e.g. 'M-PESA sent'.")
    description: Optional[str] = Field(default=None)
    account_id: Optional[int] = Field(
        default=None,
        description=(
            "Account (payment method) this template belongs to. When the "
            "caller passes the same account as a hint, this template is tried "
            "first and trusted if it yields an amount."
        ),
    )
    income_pattern: Optional[str] = Field(
        default=None,
        description="Regex whose presence marks the message as income, e.g. 'received from'.",
    )
    expense_pattern: Optional[str] = Field(
        default=None,
        description="Regex whose presence marks the message as an expense, e.g. 'sent to'.",
    )
    reference_pattern: Optional[str] = Field(
        default=None,
        description="Regex capturing the transaction reference, e.g. '^([A-Z0-9]{10})\\s+Confirmed'.",
    )
    amount_pattern: Optional[str] = Field(
        default=None,
        description="Regex capturing the amount, e.g. 'Ksh([\\d,]+\\.\\d{2})'. Commas are stripped.",
    )
    recipient_name_pattern: Optional[str] = Field(
        default=None,
        description="Regex capturing the counterparty name. The capture is title-cased.",
    )
    recipient_phone_pattern: Optional[str] = Field(default=None)
    cost_pattern: Optional[str] = Field(
        default=None,
        description="Regex capturing the transaction fee. Commas are stripped.",
    )
    date_time_pattern: Optional[str] = Field(
        default=None,
        description=(
            "Regex with six groups: date part, date part, year fragment, hour, "
            "minute, AM/PM. Example: "
            "'(\\d{1,2})/(\\d{1,2})/(\\d{2}).*?(\\d{1,2}):(\\d{2})\\s*(PM|AM)'"
        ),
    )
    is_active: bool = True
    created_at: Optional[datetime] = None

    @field_validator(*PATTERN_SLOTS, mode="before")
    @classmethod
    def _blank_pattern_is_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value)
        return text if text.strip() else None

    @property
    def pattern_slots(self) -> list[tuple[str, str]]:
        """Populated (slot, pattern) pairs in extraction order."""
        return [
            (slot, getattr(self, slot))
            for slot in PATTERN_SLOTS
            if getattr(self, slot)
        ]

    @property
    def has_patterns(self) -> bool:
        return bool(self.pattern_slots)


class Recipient(BaseModel):
    """A known counterparty (person, till, paybill) that transactions point to.

    `aliases` is a semicolon-delimited list of alternate names as typed by
    the user, e.g. "j. doe; johnny". Comparisons against it are always
    case-insensitive and whitespace-trimmed.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str = Field(..., min_length=1)
    aliases: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    till_number: Optional[str] = None
    paybill: Optional[str] = None
    account_number: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("recipient name cannot be blank")
        return value

    @property
    def alias_list(self) -> list[str]:
        """Alias tokens, trimmed and lower-cased, empties dropped."""
        if not self.aliases:
            return []
        tokens = (token.strip().lower() for token in self.aliases.split(";"))
        return [token for token in tokens if token]


class ParsedSmsData(BaseModel):
    """Structured, best-effort transaction fields pulled out of one SMS.

    Built fresh for every parse call and owned by the caller afterwards.
    A presentation layer lets the user accept or reject each field before a
    transaction is written; that step is outside this package.

    amount and cost are kept as strings with thousands separators removed.
    They are not numeric-validated here.
    """

    is_income: Optional[bool] = None
    reference: Optional[str] = None
    amount: Optional[str] = None
    cost: Optional[str] = None
    recipient_name: Optional[str] = Field(
        default=None,
        description="Counterparty name in title case, e.g. 'John Doe'.",
    )
    recipient_phone: Optional[str] = None
    date: Optional[str] = Field(default=None, description="Normalized date, MM-DD-YYYY.")
    time: Optional[str] = Field(default=None, description="24-hour time, HH:MM.")
    template_id: Optional[int] = None
    recipient_id: Optional[int] = Field(
        default=None,
        description="Set only when the recipient name resolved to a known recipient.",
    )

    @property
    def has_amount(self) -> bool:
        return bool(self.amount)

    def extracted_fields(self) -> list[str]:
        """Names of populated fields, excluding the two identifiers."""
        return [name for name in SCORED_FIELDS if getattr(self, name) is not None]

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "is_income": False,
                    "reference": "SLK4H7YT2M",
                    "amount": "2500.00",
                    "cost": "13.00",
                    "recipient_name": "John Doe",
                    "recipient_phone": "0712345678",
                    "date": "01-05-2024",
                    "time": "14:45",
                    "template_id": 1,
                    "recipient_id": 7,
                }
            ]
        }
    )


class ParseCandidate(BaseModel):
    """One admissible template attempt and its score.

    The score counts which of the eight extractable fields came back
    (polarity, reference, amount, cost, name, phone, date, time). Candidates
    live only inside one scoring run.
    """

    data: ParsedSmsData
    score: int = Field(..., ge=0, le=len(SCORED_FIELDS))

    @property
    def template_id(self) -> Optional[int]:
        return self.data.template_id


class ParseDiagnostic(BaseModel):
    """A structured record of something that went wrong or was skipped.

    Returned alongside the parse result so UIs can explain a failure
    instead of the engine printing to a console.
    """

    event: str = Field(
        ...,
        description=(
            "Machine-readable event name: pattern_compile_error, "
            "template_rejected, template_inadmissible, date_time_unparsable, "
            "template_error, template_not_found, no_admissible_candidate."
        ),
    )
    detail: str = ""
    template_id: Optional[int] = None
    slot: Optional[str] = None


class ParseOutcome(BaseModel):
    """Final answer of a preview/parse request, one of four statuses."""

    status: ParseStatus
    message: str = Field(..., description="User-facing sentence for this status.")
    data: Optional[ParsedSmsData] = None
    template_id: Optional[int] = None
    score: Optional[int] = None
    diagnostics: list[ParseDiagnostic] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ParseStatus.PARSED and self.data is not None


class DuplicatePair(BaseModel):
    """Two recipients whose names are close enough to be the same entity."""

    primary: Recipient
    duplicate: Recipient
    distance: int = Field(..., ge=0, description="Levenshtein distance of the lower-cased names.")
