import secrets
from typing import Optional

from fastapi import Request, Security
from fastapi.security import APIKeyHeader

from .error_handling import ErrorHandler, ErrorContext

CLIENT_HEADER = "X-Client"

client_header = APIKeyHeader(name=CLIENT_HEADER, auto_error=False)


async def verify_caller(
    request: Request,
    client_id: Optional[str] = Security(client_header)
) -> str:
    """
    Only the single configured caller may use the gateway.

    Runs as a dependency, so a mismatch is rejected before the body is read.
    """
    config = request.app.state.config

    if not client_id or not secrets.compare_digest(
        client_id.encode("utf-8"), config.expected_client.encode("utf-8")
    ):
        context = ErrorContext(
            request_id=getattr(request.state, "request_id", None),
            endpoint_path=request.url.path,
            presented_client=client_id
        )
        raise ErrorHandler.handle_authorization_denied(context)

    request.state.client_id = client_id
    return client_id
