"""
logging_config.py - Centralized logging configuration.

Provides consistent logging setup across all modules, plus a helper that
records a parse diagnostic both as a log line and as a structured record
handed back to the caller.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from models import ParseDiagnostic


def setup_logging(level: int = logging.INFO, json_format: bool | None = None) -> None:
    """Configure root logger with consistent formatting.

    Args:
        level: Logging level.
        json_format: If True, emit JSON-like log lines. When None, the
            SMS_PARSER_LOG_JSON environment variable decides.
    """
    if json_format is None:
        json_format = os.getenv("SMS_PARSER_LOG_JSON", "").strip().lower() in {"1", "true", "yes"}

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if json_format:
        formatter = logging.Formatter(
            '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
            '"module":"%(name)s","message":"%(message)s"}',
            datefmt="%H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(name)-16s] %(levelname)-7s %(message)s",
            datefmt="%H:%M:%S",
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)


def record_diagnostic(
    logger: logging.Logger,
    diagnostics: Optional[list["ParseDiagnostic"]],
    event: str,
    detail: str,
    level: int = logging.DEBUG,
    **context: Any,
) -> None:
    """Log a parse event and append it to the caller's diagnostics list.

    `context` may carry `template_id` and `slot`; both end up on the record
    and in the log line.
    """
    from models import ParseDiagnostic

    logger.log(
        level,
        "%s | template_id=%s | slot=%s | detail=%s",
        event,
        context.get("template_id"),
        context.get("slot"),
        detail,
    )
    if diagnostics is not None:
        diagnostics.append(
            ParseDiagnostic(
                event=event,
                detail=detail,
                template_id=context.get("template_id"),
                slot=context.get("slot"),
            )
        )
