from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from threading import RLock
from typing import Any, Dict, List, Optional, Tuple

from finchat.errors import FinanceAPIError, ValidationError
from finchat.models.chat import ChatMessage, FileData, FinanceRequest, FinanceResponse
from finchat.services.finance_chat import EMPTY_RESPONSE_TEXT
from finchat.utils.logger import logger

THINKING_TEXT = "Thinking..."
TOOL_ONLY_TEXT = "Generated a chart based on your request."


class UploadState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    READY = "ready"


class RequestState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    DONE = "done"
    ERROR = "error"


class SessionBusyError(FinanceAPIError):
    status_code = 409
    default_error = "Session busy"


class EmptySubmissionError(ValidationError):
    default_error = "Input required"


@dataclass(frozen=True)
class SessionMessage:
    role: str
    content: str
    attachment: Optional[FileData] = None
    chart: Optional[Dict[str, Any]] = None
    has_tool_use: bool = False
    thinking: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "fileName": self.attachment.file_name if self.attachment else None,
            "hasToolUse": self.has_tool_use,
            "chartData": self.chart,
            "thinking": self.thinking,
        }


class ChatSession:
    """Conversation state for one client: message log, staged upload and chart cursor.

    Uploads move idle -> uploading -> ready (or back to idle on failure).
    Requests move idle -> sending -> done | error, with one request in flight
    at a time.
    """

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.upload: Optional[FileData] = None
        self.upload_state = UploadState.IDLE
        self.request_state = RequestState.IDLE
        self.current_chart_index = 0
        self.created_at = time.time()
        self.last_used_at = self.created_at
        self._messages: List[SessionMessage] = []
        self._lock = RLock()

    @property
    def messages(self) -> Tuple[SessionMessage, ...]:
        return tuple(self._messages)

    @property
    def charts(self) -> List[Dict[str, Any]]:
        return [m.chart for m in self._messages if m.chart]

    def touch(self) -> None:
        self.last_used_at = time.time()

    # Uploads

    def begin_upload(self) -> None:
        with self._lock:
            if self.upload_state is UploadState.UPLOADING:
                raise SessionBusyError(details="An upload is already in progress.")
            self.upload = None
            self.upload_state = UploadState.UPLOADING

    def attach(self, file_data: FileData) -> None:
        with self._lock:
            if self.upload_state is not UploadState.UPLOADING:
                raise SessionBusyError(details="No upload in progress.")
            self.upload = file_data
            self.upload_state = UploadState.READY

    def fail_upload(self, reason: str) -> None:
        with self._lock:
            logger.info("Upload failed for session %s: %s", self.session_id, reason)
            self.upload = None
            self.upload_state = UploadState.IDLE

    def clear_upload(self) -> None:
        with self._lock:
            if self.upload_state is UploadState.READY:
                self.upload = None
                self.upload_state = UploadState.IDLE

    # Requests

    def submit(self, text: str, model: str) -> FinanceRequest:
        """Append the user turn plus a thinking placeholder and build the request body."""
        with self._lock:
            if self.request_state is RequestState.SENDING:
                raise SessionBusyError(details="A request is already in progress.")
            if self.upload_state is UploadState.UPLOADING:
                raise SessionBusyError(details="Wait for the upload to finish.")
            text = (text or "").strip()
            if not text and self.upload is None:
                raise EmptySubmissionError(details="Please type a message or upload a file.")

            user = SessionMessage(role="user", content=text, attachment=self.upload)
            placeholder_text = (
                f"Analyzing {self.upload.file_name}..." if self.upload else THINKING_TEXT
            )
            history = [m for m in self._messages if not m.thinking] + [user]
            self._messages.extend(
                [user, SessionMessage(role="assistant", content=placeholder_text, thinking=True)]
            )
            self.upload = None
            self.upload_state = UploadState.IDLE
            self.request_state = RequestState.SENDING
            self.touch()

            return FinanceRequest(
                messages=[ChatMessage(role=m.role, content=m.content) for m in history],
                file_data=user.attachment,
                model=model,
            )

    def complete(self, response: FinanceResponse) -> SessionMessage:
        with self._lock:
            content = response.content or (
                TOOL_ONLY_TEXT if response.has_tool_use else EMPTY_RESPONSE_TEXT
            )
            reply = SessionMessage(
                role="assistant",
                content=content,
                chart=response.chart_data,
                has_tool_use=response.has_tool_use,
            )
            reply = self._replace_placeholder(reply)
            self.request_state = RequestState.DONE
            if reply.chart:
                self.current_chart_index = len(self.charts) - 1
            return reply

    def fail(self, error_message: str) -> SessionMessage:
        with self._lock:
            reply = SessionMessage(
                role="assistant", content=f"Sorry, I encountered an error: {error_message}"
            )
            reply = self._replace_placeholder(reply)
            self.request_state = RequestState.ERROR
            return reply

    def _replace_placeholder(self, reply: SessionMessage) -> SessionMessage:
        for index in range(len(self._messages) - 1, -1, -1):
            if self._messages[index].thinking:
                reply = replace(reply, id=self._messages[index].id)
                self._messages[index] = reply
                return reply
        self._messages.append(reply)
        return reply

    # Charts

    def select_chart(self, index: int) -> int:
        with self._lock:
            last = len(self.charts) - 1
            self.current_chart_index = max(0, min(index, last)) if last >= 0 else 0
            return self.current_chart_index

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "sessionId": self.session_id,
                "uploadState": self.upload_state.value,
                "requestState": self.request_state.value,
                "stagedFile": self.upload.file_name if self.upload else None,
                "currentChartIndex": self.current_chart_index,
                "chartCount": len(self.charts),
                "messages": [m.to_dict() for m in self._messages],
            }
