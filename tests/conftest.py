from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from finchat.app import app
from finchat.services.finance_chat import finance_chat
from finchat.services.llm_client import ModelReply


class FakeLLM:
    """Stands in for LLMClient; records calls and returns a canned reply."""

    def __init__(self) -> None:
        self.reply = ModelReply(text="Here is the analysis.")
        self.error: Optional[Exception] = None
        self.calls: List[Dict[str, Any]] = []

    def create_message(self, model, messages, *, system, tools) -> ModelReply:
        self.calls.append({"model": model, "messages": messages, "system": system, "tools": tools})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_llm(monkeypatch: pytest.MonkeyPatch) -> FakeLLM:
    fake = FakeLLM()
    monkeypatch.setattr(finance_chat, "llm", fake)
    return fake


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def pie_payload() -> Dict[str, Any]:
    return {
        "chartType": "pie",
        "data": [
            {"segment": "Equities", "value": 5500000},
            {"segment": "Bonds", "value": 3200000},
        ],
        "config": {"title": "Alloc", "description": "d", "xAxisKey": "segment"},
        "chartConfig": {"equities": {"label": "Equities"}},
    }


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")
