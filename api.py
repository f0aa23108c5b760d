"""
api.py - FastAPI HTTP layer for the SMS parser.

Exposes the existing engine over HTTP:
  - GET  /health
  - POST /sms/parse
  - POST /recipients/duplicates
  - POST /templates/validate

No parsing logic is implemented here.
"""

from __future__ import annotations

import os
from typing import Any, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from explain import format_duplicates_json, format_outcome_json
from logging_config import get_logger, setup_logging
from match import TemplateSource, parse_message_async
from models import Recipient, SmsTemplate
from patterns import validate_template_patterns
from recipients import find_all_duplicate_pairs
from template_store import InMemoryTemplateStore, JsonTemplateStore

logger = get_logger("sms-parser-api")

try:
    load_dotenv()
except UnicodeDecodeError:
    load_dotenv(encoding="cp1252")

app = FastAPI(
    title="SMS Transaction Parser API",
    version="1.0.0",
)

# Allows the local finance UI to call the API from another host/port.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

template_store: TemplateSource = JsonTemplateStore()


class ParseRequest(BaseModel):
    message: str
    template_id: Optional[int] = None
    account_hint: Optional[int] = None
    templates: Optional[list[SmsTemplate]] = Field(
        default=None,
        description="Inline templates; the configured store is used when omitted.",
    )
    recipients: Optional[list[Recipient]] = None


class DuplicatesRequest(BaseModel):
    recipients: Optional[list[Recipient]] = None


class _RequestSource:
    """Inline templates/recipients from the request, the configured store for the rest."""

    def __init__(
        self,
        templates: Optional[list[SmsTemplate]],
        recipients: Optional[list[Recipient]],
    ) -> None:
        self.inline = InMemoryTemplateStore(templates, recipients)
        self.has_templates = templates is not None
        self.has_recipients = recipients is not None

    async def list_active_templates(self) -> list[SmsTemplate]:
        if self.has_templates:
            return await self.inline.list_active_templates()
        return await template_store.list_active_templates()

    async def list_recipients(self) -> list[Recipient]:
        if self.has_recipients:
            return await self.inline.list_recipients()
        return await template_store.list_recipients()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/sms/parse")
async def parse_sms(request: ParseRequest) -> dict[str, Any]:
    """Parse one SMS and return the outcome, successful or not."""
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Please paste an SMS message")

    outcome = await parse_message_async(
        request.message,
        _RequestSource(request.templates, request.recipients),
        template_id=request.template_id,
        account_hint=request.account_hint,
    )
    logger.info(
        "api_parse | status=%s | template_id=%s | score=%s",
        outcome.status.value,
        outcome.template_id,
        outcome.score,
    )
    return format_outcome_json(outcome)


@app.post("/recipients/duplicates")
async def recipient_duplicates(request: DuplicatesRequest) -> dict[str, Any]:
    recipients = request.recipients
    if recipients is None:
        recipients = await template_store.list_recipients()
    pairs = find_all_duplicate_pairs(recipients)
    return {"count": len(pairs), "pairs": format_duplicates_json(pairs)}


@app.post("/templates/validate")
def validate_template(template: SmsTemplate = Body(...)) -> dict[str, Any]:
    """Save-time check: which pattern slots fail to compile or lack groups."""
    errors = validate_template_patterns(template)
    return {"template_id": template.id, "valid": not errors, "errors": errors}


if __name__ == "__main__":
    setup_logging()
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("api:app", host="0.0.0.0", port=port, reload=False)
