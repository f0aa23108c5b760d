"""
match.py - Template competition and best-parse selection.

This module runs `parse_with_template` across the template collection and
decides which attempt the caller gets:

- Single-template mode: the caller picked a template; it either yields an
  amount or the request fails for that template. No scoring.
- Auto-detect mode: a template tied to the caller's account is tried first
  and trusted when it yields an amount. Otherwise every active template is
  tried in stored order and the highest-scoring admissible attempt wins.

An attempt is admissible only when it extracted an amount. The score is the
number of the eight extractable fields that came back. Ties keep the
earlier template (strict `>` in the running best).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Protocol, Sequence

from extract import parse_with_template
from logging_config import get_logger, record_diagnostic
from models import (
    SCORED_FIELDS,
    ParseCandidate,
    ParseDiagnostic,
    ParsedSmsData,
    ParseOutcome,
    ParseStatus,
    Recipient,
    SmsTemplate,
)

logger = get_logger(__name__)

MAX_SCORE = len(SCORED_FIELDS)

EMPTY_MESSAGE_TEXT = "Please paste an SMS message"
TEMPLATE_FAILED_TEXT = "Selected template could not parse this SMS."
NO_MATCH_TEXT = "Could not parse SMS with any available template."
PARSED_TEXT = "Parsed with template {template_id} ({score}/{max_score} fields)."


class TemplateSource(Protocol):
    """Read-only collaborator owned by the persistence layer."""

    async def list_active_templates(self) -> list[SmsTemplate]: ...

    async def list_recipients(self) -> list[Recipient]: ...


def score_parse(data: ParsedSmsData) -> int:
    """Count populated fields among polarity, reference, amount, cost,
    recipient name, recipient phone, date and time."""
    return sum(1 for name in SCORED_FIELDS if getattr(data, name) is not None)


def _admissible(
    message: str,
    template: SmsTemplate,
    recipients: Optional[Sequence[Recipient]],
    diagnostics: Optional[list[ParseDiagnostic]],
) -> Optional[ParsedSmsData]:
    result = parse_with_template(message, template, recipients, diagnostics)
    if result is None:
        return None
    if not result.has_amount:
        record_diagnostic(
            logger,
            diagnostics,
            "template_inadmissible",
            f"no amount extracted (fields={result.extracted_fields()})",
            template_id=template.id,
        )
        return None
    return result


def find_template(template_id: int, templates: Iterable[SmsTemplate]) -> Optional[SmsTemplate]:
    for template in templates:
        if template.id == template_id:
            return template
    return None


def parse_with_chosen_template(
    message: str,
    template_id: int,
    templates: Iterable[SmsTemplate],
    recipients: Optional[Sequence[Recipient]] = None,
    diagnostics: Optional[list[ParseDiagnostic]] = None,
) -> Optional[ParsedSmsData]:
    """Parse with the one template the caller picked.

    Returns None when the template is unknown or yields no amount. The
    template is used even if inactive, since the user chose it explicitly.
    """
    template = find_template(template_id, templates)
    if template is None:
        record_diagnostic(
            logger,
            diagnostics,
            "template_not_found",
            f"no template with id {template_id}",
            level=logging.WARNING,
            template_id=template_id,
        )
        return None

    result = _admissible(message, template, recipients, diagnostics)
    logger.info(
        "chosen_template_parse | template_id=%s | admissible=%s",
        template_id,
        result is not None,
    )
    return result


def rank_candidates(
    message: str,
    templates: Iterable[SmsTemplate],
    recipients: Optional[Sequence[Recipient]] = None,
    diagnostics: Optional[list[ParseDiagnostic]] = None,
) -> Optional[ParseCandidate]:
    """Best admissible candidate across active templates, in supplied order."""
    best: Optional[ParseCandidate] = None
    attempted = 0
    admissible = 0

    for template in templates:
        if not template.is_active:
            continue
        attempted += 1
        result = _admissible(message, template, recipients, diagnostics)
        if result is None:
            continue

        admissible += 1
        score = score_parse(result)
        logger.debug(
            "candidate_scored | template_id=%s | score=%s | best_score=%s",
            template.id,
            score,
            best.score if best else None,
        )
        if best is None or score > best.score:
            best = ParseCandidate(data=result, score=score)

    logger.info(
        "auto_parse_complete | templates_attempted=%s | admissible=%s | winner=%s | score=%s",
        attempted,
        admissible,
        best.template_id if best else None,
        best.score if best else None,
    )
    return best


def _auto_candidate(
    message: str,
    templates: Sequence[SmsTemplate],
    recipients: Optional[Sequence[Recipient]],
    account_hint: Optional[int],
    diagnostics: Optional[list[ParseDiagnostic]],
) -> Optional[ParseCandidate]:
    if account_hint is not None:
        hinted = next(
            (t for t in templates if t.is_active and t.account_id == account_hint),
            None,
        )
        if hinted is not None:
            result = _admissible(message, hinted, recipients, diagnostics)
            if result is not None:
                logger.info(
                    "auto_parse_account_template | account_id=%s | template_id=%s",
                    account_hint,
                    hinted.id,
                )
                return ParseCandidate(data=result, score=score_parse(result))

    best = rank_candidates(message, templates, recipients, diagnostics)
    if best is None:
        record_diagnostic(
            logger,
            diagnostics,
            "no_admissible_candidate",
            "no active template extracted an amount",
            level=logging.INFO,
        )
    return best


def parse_auto(
    message: str,
    templates: Iterable[SmsTemplate],
    recipients: Optional[Sequence[Recipient]] = None,
    account_hint: Optional[int] = None,
    diagnostics: Optional[list[ParseDiagnostic]] = None,
) -> Optional[ParsedSmsData]:
    """Pick the best parse of `message` among `templates`, or None.

    Args:
        message: Raw SMS text.
        templates: Templates in stored (creation) order. Order decides ties.
        recipients: Known recipients for name resolution.
        account_hint: Account the user is importing into. A template tied
            to it is tried first and returned as-is if it yields an amount.
        diagnostics: Optional list that receives ParseDiagnostic records.
    """
    candidate = _auto_candidate(message, list(templates), recipients, account_hint, diagnostics)
    return candidate.data if candidate else None


def preview_parse(
    message: str,
    templates: Iterable[SmsTemplate],
    recipients: Optional[Sequence[Recipient]] = None,
    template_id: Optional[int] = None,
    account_hint: Optional[int] = None,
) -> ParseOutcome:
    """Parse `message` and report one of the four outcomes with its message.

    Never raises for message content and never returns an empty result:
    a failure always comes back with a status and a user-facing sentence.
    """
    diagnostics: list[ParseDiagnostic] = []

    if not message or not message.strip():
        return ParseOutcome(status=ParseStatus.EMPTY_MESSAGE, message=EMPTY_MESSAGE_TEXT)

    template_list = list(templates)
    recipient_list = list(recipients) if recipients is not None else None

    if template_id is not None:
        result = parse_with_chosen_template(
            message, template_id, template_list, recipient_list, diagnostics
        )
        if result is None:
            return ParseOutcome(
                status=ParseStatus.TEMPLATE_FAILED,
                message=TEMPLATE_FAILED_TEXT,
                template_id=template_id,
                diagnostics=diagnostics,
            )
        candidate = ParseCandidate(data=result, score=score_parse(result))
    else:
        candidate = _auto_candidate(message, template_list, recipient_list, account_hint, diagnostics)
        if candidate is None:
            return ParseOutcome(
                status=ParseStatus.NO_MATCH,
                message=NO_MATCH_TEXT,
                diagnostics=diagnostics,
            )

    return ParseOutcome(
        status=ParseStatus.PARSED,
        message=PARSED_TEXT.format(
            template_id=candidate.template_id,
            score=candidate.score,
            max_score=MAX_SCORE,
        ),
        data=candidate.data,
        template_id=candidate.template_id,
        score=candidate.score,
        diagnostics=diagnostics,
    )


async def parse_message_async(
    message: str,
    source: TemplateSource,
    template_id: Optional[int] = None,
    account_hint: Optional[int] = None,
) -> ParseOutcome:
    """Fetch templates and recipients from `source`, then `preview_parse`.

    The two lookups run concurrently. There is no timeout; callers that
    need cancellation should wrap this in their own task and drop the
    result if the user has moved on.
    """
    templates, recipients = await asyncio.gather(
        source.list_active_templates(),
        source.list_recipients(),
    )
    return preview_parse(
        message,
        templates,
        recipients,
        template_id=template_id,
        account_hint=account_hint,
    )
