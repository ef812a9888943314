from __future__ import annotations

import pytest
from conftest import b64

from finchat.models.chat import FileData, FinanceResponse
from finchat.services.chat_session import (
    ChatSession,
    EmptySubmissionError,
    RequestState,
    SessionBusyError,
    UploadState,
)

MODEL = "claude-3-haiku-20240307"
CHART = {"chartType": "bar", "config": {"title": "T", "description": "D"}, "data": [], "seriesConfig": {}}


def _csv_upload() -> FileData:
    return FileData(base64=b64("a,b\n1,2"), media_type="text/plain", is_text=True, file_name="d.csv")


def test_new_session_is_idle():
    snapshot = ChatSession().snapshot()

    assert snapshot["uploadState"] == "idle"
    assert snapshot["requestState"] == "idle"
    assert snapshot["messages"] == []
    assert snapshot["currentChartIndex"] == 0
    assert set(snapshot) == {
        "sessionId",
        "uploadState",
        "requestState",
        "stagedFile",
        "currentChartIndex",
        "chartCount",
        "messages",
    }


def test_empty_submission_is_rejected():
    session = ChatSession()

    with pytest.raises(EmptySubmissionError):
        session.submit("   ", MODEL)
    assert session.messages == ()


def test_submit_adds_user_turn_and_placeholder():
    session = ChatSession()

    request = session.submit("  Show revenue  ", MODEL)

    assert session.request_state is RequestState.SENDING
    assert [(m.role, m.content) for m in session.messages] == [
        ("user", "Show revenue"),
        ("assistant", "Thinking..."),
    ]
    assert session.messages[-1].thinking is True
    assert request.model == MODEL
    assert request.file_data is None
    assert [(m.role, m.content) for m in request.messages] == [("user", "Show revenue")]


def test_only_one_request_in_flight():
    session = ChatSession()
    session.submit("first", MODEL)

    with pytest.raises(SessionBusyError) as excinfo:
        session.submit("second", MODEL)
    assert excinfo.value.status_code == 409


def test_upload_transitions_and_is_consumed_by_submit():
    session = ChatSession()
    session.begin_upload()
    assert session.upload_state is UploadState.UPLOADING
    with pytest.raises(SessionBusyError):
        session.submit("hi", MODEL)

    session.attach(_csv_upload())
    assert session.upload_state is UploadState.READY

    request = session.submit("", MODEL)

    assert request.file_data.file_name == "d.csv"
    assert session.messages[-1].content == "Analyzing d.csv..."
    assert session.upload is None
    assert session.upload_state is UploadState.IDLE


def test_failed_upload_returns_to_idle():
    session = ChatSession()
    session.begin_upload()

    session.fail_upload("Unsupported file type")

    assert session.upload_state is UploadState.IDLE
    assert session.upload is None
    with pytest.raises(SessionBusyError):
        session.attach(_csv_upload())


def test_complete_replaces_placeholder_and_selects_newest_chart():
    session = ChatSession()
    session.submit("chart 1", MODEL)
    session.complete(FinanceResponse(content="One", has_tool_use=True, chart_data=CHART))
    session.select_chart(0)
    session.submit("chart 2", MODEL)
    placeholder_id = session.messages[-1].id

    reply = session.complete(FinanceResponse(content="", has_tool_use=True, chart_data=CHART))

    assert reply.id == placeholder_id
    assert reply.content == "Generated a chart based on your request."
    assert session.request_state is RequestState.DONE
    assert len(session.charts) == 2
    assert session.current_chart_index == 1
    assert not any(m.thinking for m in session.messages)


def test_complete_without_anything_uses_empty_placeholder():
    session = ChatSession()
    session.submit("hello", MODEL)

    reply = session.complete(FinanceResponse(content=""))

    assert reply.content == "I received an empty response."


def test_fail_keeps_conversation_for_retry():
    session = ChatSession()
    session.submit("hello", MODEL)

    reply = session.fail("Overloaded")

    assert reply.content == "Sorry, I encountered an error: Overloaded"
    assert session.request_state is RequestState.ERROR

    request = session.submit("hello again", MODEL)
    assert [m.content for m in request.messages] == [
        "hello",
        "Sorry, I encountered an error: Overloaded",
        "hello again",
    ]


def test_select_chart_is_clamped():
    session = ChatSession()
    assert session.select_chart(3) == 0

    for text in ("a", "b"):
        session.submit(text, MODEL)
        session.complete(FinanceResponse(content=text, has_tool_use=True, chart_data=CHART))

    assert session.select_chart(-1) == 0
    assert session.select_chart(7) == 1
