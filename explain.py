"""
explain.py - Human-readable and JSON-ready parse outcome formatting.

This module converts a `ParseOutcome` into:
- terminal-friendly text output for CLI usage
- machine-friendly dictionary output for the API
"""

from __future__ import annotations

from typing import Any

from logging_config import get_logger
from match import MAX_SCORE
from models import DuplicatePair, ParseOutcome, ParseStatus

logger = get_logger(__name__)

STATUS_HEADERS: dict[ParseStatus, str] = {
    ParseStatus.PARSED: "SMS Parsed",
    ParseStatus.TEMPLATE_FAILED: "Template Failed",
    ParseStatus.NO_MATCH: "No Template Matched",
    ParseStatus.EMPTY_MESSAGE: "Empty Message",
}

FIELD_LABELS: list[tuple[str, str]] = [
    ("is_income", "Type"),
    ("reference", "Reference"),
    ("amount", "Amount"),
    ("cost", "Cost"),
    ("recipient_name", "Recipient"),
    ("recipient_phone", "Phone"),
    ("date", "Date"),
    ("time", "Time"),
]

OUTPUT_WIDTH = 56
SEPARATOR = "=" * OUTPUT_WIDTH
MAX_DIAGNOSTICS_DISPLAY = 6


def _display_value(field_name: str, value: Any) -> str:
    if value is None:
        return "-"
    if field_name == "is_income":
        return "Income" if value else "Expense"
    return str(value)


def format_outcome(outcome: ParseOutcome | None) -> str:
    """Format a ParseOutcome into a clean, human-readable text block."""
    if outcome is None:
        logger.error("explain_input_error | outcome_none=True | fallback=error_block")
        return "\n" + SEPARATOR + "\n  ERROR: No parse result available\n" + SEPARATOR + "\n"

    lines: list[str] = ["", SEPARATOR, f"  {STATUS_HEADERS[outcome.status]}", SEPARATOR, ""]
    lines.append(f"  {outcome.message}")

    if outcome.data is not None:
        lines.append("")
        for field_name, label in FIELD_LABELS:
            value = getattr(outcome.data, field_name)
            lines.append(f"  {label + ':':<12}{_display_value(field_name, value)}")

        if outcome.data.recipient_id is not None:
            lines.append(f"  {'Known as:':<12}recipient #{outcome.data.recipient_id}")
        lines.append("")
        lines.append(f"  Template {outcome.template_id}  |  score {outcome.score}/{MAX_SCORE}")

    if outcome.diagnostics:
        lines.append("")
        lines.append("  Notes:")
        shown = outcome.diagnostics[:MAX_DIAGNOSTICS_DISPLAY]
        for diagnostic in shown:
            where = f"template {diagnostic.template_id}" if diagnostic.template_id is not None else "engine"
            if diagnostic.slot:
                where += f" / {diagnostic.slot}"
            lines.append(f"    • [{where}] {diagnostic.event}: {diagnostic.detail}")
        remaining = len(outcome.diagnostics) - len(shown)
        if remaining > 0:
            lines.append(f"    • ... and {remaining} more note(s)")

    lines.append("")
    lines.append(SEPARATOR)
    lines.append("")
    return "\n".join(lines)


def format_outcome_json(outcome: ParseOutcome) -> dict[str, Any]:
    """Format a ParseOutcome into a JSON-serializable dictionary."""
    return {
        "status": outcome.status.value,
        "ok": outcome.ok,
        "message": outcome.message,
        "template_id": outcome.template_id,
        "score": outcome.score,
        "max_score": MAX_SCORE,
        "data": outcome.data.model_dump(mode="json") if outcome.data is not None else None,
        "diagnostics": [item.model_dump(mode="json") for item in outcome.diagnostics],
    }


def format_duplicates(pairs: list[DuplicatePair]) -> str:
    """Text listing of duplicate recipient pairs for the CLI."""
    if not pairs:
        return "\n  No duplicate recipients found.\n"

    lines = ["", SEPARATOR, f"  {len(pairs)} possible duplicate pair(s)", SEPARATOR, ""]
    for pair in pairs:
        lines.append(
            f"  #{pair.primary.id} {pair.primary.name!r}  <->  "
            f"#{pair.duplicate.id} {pair.duplicate.name!r}  (distance {pair.distance})"
        )
    lines.append("")
    return "\n".join(lines)


def format_duplicates_json(pairs: list[DuplicatePair]) -> list[dict[str, Any]]:
    return [
        {
            "primary_id": pair.primary.id,
            "primary_name": pair.primary.name,
            "duplicate_id": pair.duplicate.id,
            "duplicate_name": pair.duplicate.name,
            "distance": pair.distance,
        }
        for pair in pairs
    ]
