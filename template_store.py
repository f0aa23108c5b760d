"""
template_store.py - Read-only template and recipient sources.

Stores the two collaborator collections the parser consumes in a local JSON
file: {"templates": [...], "recipients": [...]}. Template editing lives
elsewhere; this module only reads.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from logging_config import get_logger
from models import Recipient, SmsTemplate

logger = get_logger(__name__)

DEFAULT_DATA_FILE = "data/sms_parser.json"


class ParserDataState(BaseModel):
    """Snapshot of the templates and recipients known to the parser."""

    model_config = ConfigDict(extra="ignore")

    templates: list[SmsTemplate] = Field(default_factory=list)
    recipients: list[Recipient] = Field(default_factory=list)

    @field_validator("templates", "recipients", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> list[Any]:
        return value if isinstance(value, list) else []

    def active_templates(self) -> list[SmsTemplate]:
        """Active templates ordered by creation time; undated ones keep input order last."""
        indexed = [
            (index, template)
            for index, template in enumerate(self.templates)
            if template.is_active
        ]
        indexed.sort(
            key=lambda item: (
                item[1].created_at is None,
                item[1].created_at.timestamp() if item[1].created_at else 0.0,
                item[0],
            )
        )
        return [template for _, template in indexed]


class InMemoryTemplateStore:
    """Template source over lists already in memory (API payloads, tests)."""

    def __init__(
        self,
        templates: Optional[list[SmsTemplate]] = None,
        recipients: Optional[list[Recipient]] = None,
    ) -> None:
        self.state = ParserDataState(templates=templates or [], recipients=recipients or [])

    async def list_active_templates(self) -> list[SmsTemplate]:
        return self.state.active_templates()

    async def list_recipients(self) -> list[Recipient]:
        return list(self.state.recipients)


class JsonTemplateStore:
    """Disk-backed template source reading one JSON file per lookup."""

    def __init__(self, path: Optional[str] = None) -> None:
        target = path or os.getenv("SMS_PARSER_DATA_FILE", DEFAULT_DATA_FILE)
        self.path = Path(target).resolve()

    @staticmethod
    def empty_state() -> ParserDataState:
        return ParserDataState()

    def load_state(self) -> ParserDataState:
        """Load templates and recipients from disk, empty if missing/unreadable."""
        if not self.path.exists():
            logger.warning("store_missing | path=%s | fallback='empty'", self.path)
            return self.empty_state()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            state = ParserDataState.model_validate(raw)
        except Exception as exc:
            logger.warning(
                "store_load_warning | path=%s | error_type=%s | error=%s | fallback='empty'",
                self.path,
                type(exc).__name__,
                exc,
            )
            return self.empty_state()

        logger.debug(
            "store_loaded | path=%s | templates=%s | recipients=%s",
            self.path,
            len(state.templates),
            len(state.recipients),
        )
        return state

    async def list_active_templates(self) -> list[SmsTemplate]:
        state = await asyncio.to_thread(self.load_state)
        return state.active_templates()

    async def list_recipients(self) -> list[Recipient]:
        state = await asyncio.to_thread(self.load_state)
        return list(state.recipients)
