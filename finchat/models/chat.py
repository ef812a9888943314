from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Snake-case fields, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(WireModel):
    role: Literal["user", "assistant"]
    content: str = ""


class FileData(WireModel):
    base64: str = Field("", description="Base64 of the file bytes (or of its UTF-8 text)")
    media_type: str = ""
    is_text: bool = False
    file_name: str = ""


class FinanceRequest(WireModel):
    messages: Optional[List[ChatMessage]] = None
    file_data: Optional[FileData] = None
    model: Optional[str] = None


class FinanceResponse(WireModel):
    content: str
    has_tool_use: bool = False
    chart_data: Optional[Dict[str, Any]] = None


class UploadResponse(WireModel):
    file_data: FileData
    preview: Optional[Dict[str, Any]] = None


class SessionMessageRequest(WireModel):
    message: str = Field("", description="User text for the next turn")
    model: Optional[str] = None


class ModelOption(WireModel):
    id: str
    name: str
