import json
from typing import Any

from fastapi import Request

from ..core.error_handling import ErrorHandler, ErrorContext


async def read_json_body(request: Request, max_body_bytes: int, context: ErrorContext) -> Any:
    """
    Read and decode the request body, enforcing the payload size limit.

    Raises:
        HTTPException: 413 when the body is too large, 400 when it is not JSON
    """
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > max_body_bytes:
        raise ErrorHandler.handle_payload_too_large(max_body_bytes, context)

    raw = await request.body()
    if len(raw) > max_body_bytes:
        raise ErrorHandler.handle_payload_too_large(max_body_bytes, context)

    try:
        return json.loads(raw)
    except ValueError as e:
        raise ErrorHandler.handle_malformed_body(context, e)
