"""
test_template_store.py - Template/recipient source checks.

Usage:
    python -m pytest test_template_store.py
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from models import Recipient, SmsTemplate
from template_store import InMemoryTemplateStore, JsonTemplateStore, ParserDataState


def _sample_payload() -> dict:
    return {
        "templates": [
            {
                "id": 3,
                "name": "Bank credit",
                "income_pattern": "credited",
                "amount_pattern": r"KES\s*([\d,.]+)",
                "is_active": True,
                "created_at": "2024-03-01T10:00:00",
            },
            {
                "id": 1,
                "name": "M-PESA sent",
                "expense_pattern": "sent to",
                "amount_pattern": r"Ksh([\d,]+\.\d{2})",
                "is_active": True,
                "created_at": "2024-01-15T08:30:00",
            },
            {
                "id": 2,
                "name": "Old format",
                "amount_pattern": r"Amt:([\d.]+)",
                "is_active": False,
                "created_at": "2023-06-01T08:30:00",
            },
            {
                "id": 4,
                "name": "Undated",
                "amount_pattern": r"Paid ([\d.]+)",
                "reference_pattern": "",
            },
        ],
        "recipients": [
            {"id": 10, "name": "John Doe", "aliases": "jd; johnny"},
            {"id": 11, "name": "Mary Wanjiku", "unknown_field": "ignored"},
        ],
    }


def _write(path: Path, payload: dict) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_active_templates_ordered_by_creation(tmp_path: Path) -> None:
    store = JsonTemplateStore(str(_write(tmp_path / "data.json", _sample_payload())))
    templates = asyncio.run(store.list_active_templates())
    assert [t.id for t in templates] == [1, 3, 4]
    assert templates[-1].reference_pattern is None


def test_recipients_loaded(tmp_path: Path) -> None:
    store = JsonTemplateStore(str(_write(tmp_path / "data.json", _sample_payload())))
    recipients = asyncio.run(store.list_recipients())
    assert [r.id for r in recipients] == [10, 11]
    assert recipients[0].alias_list == ["jd", "johnny"]


def test_missing_file_is_empty(tmp_path: Path) -> None:
    store = JsonTemplateStore(str(tmp_path / "missing.json"))
    assert asyncio.run(store.list_active_templates()) == []
    assert asyncio.run(store.list_recipients()) == []


def test_unreadable_file_is_empty(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    state = JsonTemplateStore(str(path)).load_state()
    assert state.templates == [] and state.recipients == []


def test_invalid_recipient_is_reported_as_empty(tmp_path: Path) -> None:
    payload = {"templates": [], "recipients": [{"id": 1, "name": "   "}]}
    state = JsonTemplateStore(str(_write(tmp_path / "bad.json", payload))).load_state()
    assert state.recipients == []


def test_env_var_selects_file(tmp_path: Path, monkeypatch) -> None:
    path = _write(tmp_path / "env.json", _sample_payload())
    monkeypatch.setenv("SMS_PARSER_DATA_FILE", str(path))
    assert JsonTemplateStore().path == path.resolve()


def test_non_list_sections_become_empty() -> None:
    state = ParserDataState.model_validate({"templates": None, "recipients": "x"})
    assert state.templates == [] and state.recipients == []


def test_in_memory_store() -> None:
    store = InMemoryTemplateStore(
        templates=[SmsTemplate(id=2, amount_pattern="x"), SmsTemplate(id=1, is_active=False)],
        recipients=[Recipient(id=5, name="A")],
    )
    assert [t.id for t in asyncio.run(store.list_active_templates())] == [2]
    assert [r.id for r in asyncio.run(store.list_recipients())] == [5]
