"""
Error Mapper

Turns any failure on the upstream path (timeout, transport error, non-success
upstream status, unexpected exception) into one caller-visible shape that still
looks like a chat completion:

    {
        "error": "<category>",
        "details": <cause>,
        "choices": [{"index": 0,
                     "message": {"role": "assistant", "content": "Error: <msg>"},
                     "finish_reason": "stop"}]
    }
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Dict

from fastapi.responses import JSONResponse

from .error_types import ErrorType
from ..exceptions import UpstreamError

UNKNOWN_ERROR_MESSAGE = "Unknown error from upstream"


@dataclass
class NormalizedError:
    category: str
    message: str
    details: Any
    status_code: int

    def to_body(self) -> Dict[str, Any]:
        return {
            "error": self.category,
            "details": _json_safe(self.details),
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": f"Error: {self.message}"},
                    "finish_reason": "stop",
                }
            ],
        }

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_body())

    def to_sse_frame(self) -> bytes:
        payload = json.dumps(self.to_body(), ensure_ascii=False, default=str)
        return f"event: error\ndata: {payload}\n\n".encode("utf-8")


def _json_safe(value: Any) -> Any:
    """Replace values JSON cannot encode (NaN, Infinity) with None."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def extract_error_message(details: Any) -> str:
    """
    Best-effort human readable message from an error cause.

    Checked in order: a validation issue (``issues[0].message``), a structured
    error detail (``details._errors[0]``, then an OpenAI-style
    ``error.message``), a plain ``message`` field.
    """
    if isinstance(details, dict):
        issue = _first(details.get("issues"))
        if isinstance(issue, dict) and issue.get("message"):
            return str(issue["message"])

        nested = details.get("details")
        if isinstance(nested, dict):
            detail_error = _first(nested.get("_errors"))
            if detail_error:
                return str(detail_error)

        error = details.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])

        if details.get("message"):
            return str(details["message"])

        # Non-JSON upstream bodies are kept as {"text": ...}
        if isinstance(details.get("text"), str) and details["text"].strip():
            return details["text"].strip()

    return UNKNOWN_ERROR_MESSAGE


def map_error(failure: BaseException) -> NormalizedError:
    """Map a failure on the upstream path to a NormalizedError."""
    if isinstance(failure, UpstreamError):
        error_type = failure.error_type
        details = failure.details
        message = extract_error_message(details)
        if message == UNKNOWN_ERROR_MESSAGE and error_type is not ErrorType.UPSTREAM_STATUS_ERROR:
            message = failure.message
        return NormalizedError(
            category=error_type.code,
            message=message,
            details=details,
            status_code=failure.status_code,
        )

    details = {"type": type(failure).__name__, "message": str(failure)}
    return NormalizedError(
        category=ErrorType.INTERNAL_FAILURE.code,
        message=str(failure) or UNKNOWN_ERROR_MESSAGE,
        details=details,
        status_code=ErrorType.INTERNAL_FAILURE.status_code,
    )
