from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List, Optional, Sequence

from finchat.errors import FileProcessingError
from finchat.models.chat import ChatMessage, FileData
from finchat.utils.logger import logger


def strip_data_url(encoded: str) -> str:
    """Drop a ``data:<type>;base64,`` prefix if the client sent a data URL."""
    if encoded.startswith("data:") and "base64," in encoded:
        return encoded.split("base64,", 1)[1]
    return encoded


def decode_base64(encoded: str) -> bytes:
    # MIME-wrapped payloads carry line breaks
    compact = "".join(strip_data_url(encoded).split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise FileProcessingError(details=f"Attachment is not valid base64: {exc}") from exc


def decode_text_attachment(encoded: str) -> str:
    raw = decode_base64(encoded)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FileProcessingError(details=f"Attachment is not valid UTF-8 text: {exc}") from exc


def _attachment_content(file_data: FileData, user_text: str) -> Optional[List[Dict[str, Any]]]:
    if file_data.is_text:
        text = decode_text_attachment(file_data.base64)
        return [
            {"type": "text", "text": f"File contents of {file_data.file_name}:\n\n{text}"},
            {"type": "text", "text": user_text},
        ]
    if file_data.media_type.startswith("image/"):
        data = strip_data_url(file_data.base64)
        decode_base64(data)
        return [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": file_data.media_type, "data": data},
            },
            {"type": "text", "text": user_text},
        ]
    return None


def assemble_messages(
    messages: Sequence[ChatMessage], file_data: Optional[FileData] = None
) -> List[Dict[str, Any]]:
    """Build the outbound message list for the model.

    Prior turns are passed through as ``{role, content}``. With an attachment
    the newest user turn is replaced by a two-part content block: the file
    (decoded text or a base64 image reference) followed by the typed text.
    Raises ``FileProcessingError`` when the attachment cannot be decoded.
    """
    outbound: List[Dict[str, Any]] = [{"role": m.role, "content": m.content} for m in messages]
    if file_data is None:
        return outbound

    user_text = next((m.content for m in reversed(messages) if m.role == "user"), "")
    content = _attachment_content(file_data, user_text)
    if content is None:
        logger.warning(
            "Attachment %s has unsupported media type %r; sending text only",
            file_data.file_name,
            file_data.media_type,
        )
        return outbound

    turn = {"role": "user", "content": content}
    if outbound and outbound[-1]["role"] == "user":
        outbound[-1] = turn
    else:
        outbound.append(turn)
    return outbound
