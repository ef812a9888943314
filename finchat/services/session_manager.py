from __future__ import annotations

import asyncio
import time
from threading import RLock
from typing import Dict, Tuple

from fastapi import UploadFile

from finchat.config import settings
from finchat.errors import FinanceAPIError
from finchat.services.chat_session import ChatSession, SessionMessage
from finchat.services.file_decoder import UploadResult, decode_upload
from finchat.services.finance_chat import FinanceChat
from finchat.utils.logger import logger


class SessionManager:
    """In-memory store of chat sessions; nothing survives a restart."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ChatSession] = {}
        self._lock = RLock()

    def create_session(self) -> ChatSession:
        session = ChatSession()
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> ChatSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if not session:
            raise KeyError("Session not found or expired")
        session.touch()
        return session

    async def stage_upload(self, session: ChatSession, file: UploadFile) -> UploadResult:
        session.begin_upload()
        try:
            raw = await file.read()
            result = await asyncio.to_thread(
                decode_upload, raw, file.filename or "upload", file.content_type
            )
        except FinanceAPIError as exc:
            session.fail_upload(exc.details)
            raise
        except Exception as exc:
            session.fail_upload(str(exc))
            raise
        session.attach(result.file_data)
        return result

    async def send_message(
        self, session: ChatSession, chat: FinanceChat, text: str, model: str
    ) -> Tuple[SessionMessage, int]:
        """Run one turn for ``session``; returns the assistant message and an HTTP status."""
        request = session.submit(text, model)
        try:
            response = await asyncio.to_thread(chat.answer, request)
        except FinanceAPIError as exc:
            return session.fail(exc.details), exc.status_code
        except Exception:  # noqa: BLE001
            logger.exception("Session %s turn failed", session.session_id)
            return session.fail("An internal server error occurred."), 500
        return session.complete(response), 200

    def maybe_cleanup(self) -> None:
        ttl_seconds = settings.session_ttl_minutes * 60
        now = time.time()
        with self._lock:
            expired = [
                sid for sid, sess in self._sessions.items() if now - sess.last_used_at > ttl_seconds
            ]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("Cleaned up %d expired sessions", len(expired))


session_manager = SessionManager()
