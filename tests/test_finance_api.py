from __future__ import annotations

import pytest
from conftest import b64

from finchat.errors import UpstreamProviderError
from finchat.services.llm_client import ModelReply, ToolUse

MODEL = "claude-3-5-sonnet-20240620"


def _body(**overrides):
    body = {
        "messages": [{"role": "user", "content": "Chart our allocation"}],
        "fileData": None,
        "model": MODEL,
    }
    body.update(overrides)
    return body


def test_healthz(client):
    assert client.get("/api/healthz").json() == {"status": "ok"}


def test_models_lists_selectable_models(client):
    models = client.get("/api/models").json()

    assert {"id": "claude-3-haiku-20240307", "name": "Claude 3 Haiku"} in models
    assert all(set(m) == {"id", "name"} for m in models)


def test_missing_model_is_rejected(client, fake_llm):
    response = client.post("/api/finance", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 400
    assert response.json()["error"] == "Model selection is required"
    assert fake_llm.calls == []


@pytest.mark.parametrize("messages", [None, "hello", {"role": "user"}])
def test_messages_must_be_an_array(client, fake_llm, messages):
    body = _body()
    if messages is None:
        del body["messages"]
    else:
        body["messages"] = messages

    response = client.post("/api/finance", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "Messages array is required"
    assert "details" in response.json()


def test_file_data_requires_bytes(client, fake_llm):
    body = _body(fileData={"base64": "", "mediaType": "text/plain", "isText": True, "fileName": "a.csv"})

    response = client.post("/api/finance", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "No file data"


def test_bad_attachment_fails_before_model_call(client, fake_llm):
    body = _body(fileData={"base64": "@@@", "mediaType": "text/plain", "isText": True, "fileName": "a.csv"})

    response = client.post("/api/finance", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == "Failed to process file content"
    assert fake_llm.calls == []


def test_text_reply_without_chart(client, fake_llm):
    response = client.post("/api/finance", json=_body())

    assert response.status_code == 200
    assert response.json() == {
        "content": "Here is the analysis.",
        "hasToolUse": False,
        "chartData": None,
    }
    call = fake_llm.calls[0]
    assert call["model"] == MODEL
    assert call["tools"][0]["name"] == "generate_graph_data"
    assert "financial data visualization" in call["system"]


def test_tool_call_is_normalized_into_chart(client, fake_llm, pie_payload):
    fake_llm.reply = ModelReply(tool_use=ToolUse(name="generate_graph_data", input=pie_payload))

    response = client.post("/api/finance", json=_body())

    assert response.status_code == 200
    body = response.json()
    assert body["content"] == "Generated a chart."
    assert body["hasToolUse"] is True
    assert body["chartData"]["chartType"] == "pie"
    assert body["chartData"]["config"]["totalLabel"] == "Total"
    assert body["chartData"]["seriesConfig"]["equities"]["color"] == "hsl(var(--chart-1))"


def test_invalid_chart_still_returns_text(client, fake_llm):
    fake_llm.reply = ModelReply(
        text="Revenue grew 12%.",
        tool_use=ToolUse(name="generate_graph_data", input={"chartType": "bar"}),
    )

    body = client.post("/api/finance", json=_body()).json()

    assert body == {"content": "Revenue grew 12%.", "hasToolUse": True, "chartData": None}


def test_empty_reply_gets_placeholder(client, fake_llm):
    fake_llm.reply = ModelReply(tool_use=ToolUse(name="generate_graph_data", input=None))

    body = client.post("/api/finance", json=_body()).json()

    assert body["content"] == "I received an empty response."
    assert body["chartData"] is None


def test_text_file_is_sent_to_model(client, fake_llm):
    body = _body(
        fileData={"base64": b64("a,b\n1,2"), "mediaType": "text/plain", "isText": True, "fileName": "d.csv"}
    )

    assert client.post("/api/finance", json=body).status_code == 200

    sent = fake_llm.calls[0]["messages"][-1]["content"]
    assert sent[0]["text"] == "File contents of d.csv:\n\na,b\n1,2"
    assert sent[1]["text"] == "Chart our allocation"


def test_provider_status_is_mirrored(client, fake_llm):
    fake_llm.error = UpstreamProviderError(details="Overloaded", status_code=529)

    response = client.post("/api/finance", json=_body())

    assert response.status_code == 529
    assert response.json() == {"error": "API Processing Error", "details": "Overloaded"}


def test_unexpected_failure_is_reported_as_json(client, fake_llm):
    fake_llm.error = RuntimeError("boom")

    response = client.post("/api/finance", json=_body())

    assert response.status_code == 500
    assert response.json() == {"error": "API Processing Error", "details": "boom"}
