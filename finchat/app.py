from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List

import orjson
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from finchat.config import settings
from finchat.errors import FinanceAPIError, InternalError, ValidationError
from finchat.models.chat import (
    FinanceRequest,
    FinanceResponse,
    ModelOption,
    SessionMessageRequest,
    UploadResponse,
)
from finchat.services.chat_session import ChatSession
from finchat.services.file_decoder import decode_upload
from finchat.services.finance_chat import finance_chat
from finchat.services.session_manager import session_manager
from finchat.utils.logger import logger

# Body field -> client-facing message when request validation fails
FIELD_ERRORS = {
    "messages": "Messages array is required",
    "model": "Model selection is required",
    "fileData": "Invalid file data",
}


class OrjsonResponse(JSONResponse):
    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, option=orjson.OPT_NON_STR_KEYS | orjson.OPT_SERIALIZE_NUMPY)


app = FastAPI(title="Finance Chart Chat", default_response_class=OrjsonResponse)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(exc: FinanceAPIError) -> OrjsonResponse:
    return OrjsonResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(FinanceAPIError)
async def finance_error_handler(request: Request, exc: FinanceAPIError) -> OrjsonResponse:
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> OrjsonResponse:
    errors = exc.errors()
    field_name = next((str(err["loc"][1]) for err in errors if len(err.get("loc", ())) > 1), "")
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in errors
    )
    return _error_response(ValidationError(FIELD_ERRORS.get(field_name), details))


def _session_or_404(session_id: str) -> ChatSession:
    try:
        return session_manager.get_session(session_id)
    except KeyError as ke:
        raise FinanceAPIError("Session not found", ke.args[0], status_code=404) from ke


@app.get("/api/healthz")
async def healthz() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/models", response_model=List[ModelOption])
async def list_models() -> List[ModelOption]:
    return [ModelOption(id=model_id, name=name) for model_id, name in settings.available_models]


@app.post("/api/finance", response_model=FinanceResponse)
async def finance(req: FinanceRequest) -> FinanceResponse:
    try:
        return await asyncio.to_thread(finance_chat.answer, req)
    except FinanceAPIError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Finance chat failed")
        raise InternalError(details=str(exc) or "An internal server error occurred.") from exc


@app.post("/api/upload", response_model=UploadResponse)
async def upload_file(file: UploadFile = File(...)) -> UploadResponse:
    try:
        raw = await file.read()
        result = await asyncio.to_thread(
            decode_upload, raw, file.filename or "upload", file.content_type
        )
    except FinanceAPIError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Upload failed")
        raise InternalError(details=str(exc)) from exc
    return UploadResponse(file_data=result.file_data, preview=result.preview)


@app.post("/api/sessions", status_code=201)
async def create_session() -> Dict[str, Any]:
    session_manager.maybe_cleanup()
    return session_manager.create_session().snapshot()


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str) -> Dict[str, Any]:
    return _session_or_404(session_id).snapshot()


@app.post("/api/sessions/{session_id}/upload")
async def upload_to_session(session_id: str, file: UploadFile = File(...)) -> Dict[str, Any]:
    session = _session_or_404(session_id)
    try:
        result = await session_manager.stage_upload(session, file)
    except FinanceAPIError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Session upload failed")
        raise InternalError(details=str(exc)) from exc
    return {
        "fileData": result.file_data.model_dump(by_alias=True),
        "preview": result.preview,
        "session": session.snapshot(),
    }


@app.post("/api/sessions/{session_id}/messages")
async def post_session_message(session_id: str, body: SessionMessageRequest) -> OrjsonResponse:
    session = _session_or_404(session_id)
    reply, status = await session_manager.send_message(
        session, finance_chat, body.message, body.model or settings.default_model
    )
    return OrjsonResponse(
        status_code=status, content={"message": reply.to_dict(), "session": session.snapshot()}
    )


@app.put("/api/sessions/{session_id}/current-chart/{index}")
async def select_chart(session_id: str, index: int) -> Dict[str, Any]:
    session = _session_or_404(session_id)
    session.select_chart(index)
    return session.snapshot()


# Serve frontend
root_dir = Path(__file__).resolve().parents[1]
frontend_dir = root_dir / "frontend"
if frontend_dir.exists():
    app.mount("/", StaticFiles(directory=str(frontend_dir), html=True), name="frontend")
