from __future__ import annotations

import base64
import io
import mimetypes
from dataclasses import dataclass
from typing import Any, Dict, Optional

import fitz
from PIL import Image

from finchat.config import settings
from finchat.errors import FileProcessingError
from finchat.models.chat import FileData
from finchat.utils.dataframe_utils import is_tabular, preview_dataframe, read_dataframe_from_text
from finchat.utils.logger import logger

UNSUPPORTED_FILE_MESSAGE = (
    "Unsupported file type. Please upload text files (CSV, TXT), PDFs, or images."
)


@dataclass(frozen=True)
class UploadResult:
    file_data: FileData
    preview: Optional[Dict[str, Any]] = None


def _text_file_data(text: str, filename: str) -> FileData:
    return FileData(
        base64=base64.b64encode(text.encode("utf-8")).decode("ascii"),
        media_type="text/plain",
        is_text=True,
        file_name=filename,
    )


def _verify_image(raw: bytes) -> None:
    try:
        with Image.open(io.BytesIO(raw)) as image:
            image.verify()
    except Exception as exc:  # noqa: BLE001
        raise FileProcessingError(details=f"Unable to read the image: {exc}") from exc


def extract_pdf_text(raw: bytes) -> str:
    try:
        with fitz.open(stream=raw, filetype="pdf") as doc:
            text = "\n".join(page.get_text() for page in doc).strip()
    except Exception as exc:  # noqa: BLE001
        logger.error("PDF parsing failed: %s", exc)
        text = ""
    if not text:
        raise FileProcessingError(
            details="Unable to extract text from the PDF. It might be image-based or corrupted."
        )
    return text


def _decode_text(raw: bytes, media_type: str) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        if media_type.startswith("text/"):
            return raw.decode("utf-8", errors="replace")
        raise FileProcessingError(details=UNSUPPORTED_FILE_MESSAGE) from exc


def _table_preview(text: str, filename: str, media_type: str) -> Optional[Dict[str, Any]]:
    if not is_tabular(filename, media_type):
        return None
    try:
        df = read_dataframe_from_text(text, filename)
    except Exception as exc:  # noqa: BLE001
        logger.info("No table preview for %s: %s", filename, exc)
        return None
    return preview_dataframe(df, settings.preview_rows)


def decode_upload(raw: bytes, filename: str, content_type: Optional[str] = None) -> UploadResult:
    """Turn an uploaded file into the attachment sent with a chat turn.

    Images are kept as base64 bytes; PDFs are reduced to their text; anything
    else must decode as UTF-8 text. CSV/TSV uploads also get a table preview.
    """
    if not raw:
        raise FileProcessingError("No file data", "Uploaded file is empty.")
    size_mb = len(raw) / (1024 * 1024)
    if size_mb > settings.max_file_size_mb:
        raise FileProcessingError(
            "File too large",
            f"File size exceeds the limit of {settings.max_file_size_mb}MB.",
        )

    media_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"

    if media_type.startswith("image/"):
        _verify_image(raw)
        file_data = FileData(
            base64=base64.b64encode(raw).decode("ascii"),
            media_type=media_type,
            is_text=False,
            file_name=filename,
        )
        return UploadResult(file_data=file_data)

    if media_type == "application/pdf" or filename.lower().endswith(".pdf"):
        return UploadResult(file_data=_text_file_data(extract_pdf_text(raw), filename))

    text = _decode_text(raw, media_type)
    return UploadResult(
        file_data=_text_file_data(text, filename),
        preview=_table_preview(text, filename, media_type),
    )
