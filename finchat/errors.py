from __future__ import annotations

from typing import Any, Dict, Optional


class FinanceAPIError(Exception):
    """Base for failures that are reported to the client as JSON.

    ``error`` is the short client-facing message and ``details`` a
    human-readable explanation; both end up in the response body.
    """

    status_code: int = 500
    default_error: str = "API Processing Error"

    def __init__(
        self,
        error: Optional[str] = None,
        details: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        self.error = error or self.default_error
        self.details = details or self.error
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.details)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "details": self.details}


class ValidationError(FinanceAPIError):
    status_code = 400
    default_error = "Invalid request"


class FileProcessingError(FinanceAPIError):
    status_code = 400
    default_error = "Failed to process file content"


class UpstreamProviderError(FinanceAPIError):
    status_code = 500


class InternalError(FinanceAPIError):
    status_code = 500
