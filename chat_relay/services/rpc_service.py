from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from ..core.error_handling import ErrorHandler, ErrorContext
from ..core.error_handling.error_mapper import map_error
from ..core.exceptions import UpstreamError
from ..core.logging import logger
from ..providers.rpc import RpcForwarder
from .chat.classifier import RpcRequest, classify_payload


class RpcService:
    def __init__(self, forwarder: RpcForwarder):
        self.forwarder = forwarder

    async def forward(self, request: Request, body: Any) -> Response:
        """
        Relay a JSON-RPC request to the configured endpoint.

        The upstream status and body are returned unchanged; timeouts and
        transport failures use the same error shape as the chat endpoint.
        """
        request_id = getattr(request.state, "request_id", "unknown")
        context = ErrorContext(
            request_id=request_id,
            client_id=getattr(request.state, "client_id", None),
            endpoint_path=request.url.path
        )

        rpc = classify_payload(body)
        if not isinstance(rpc, RpcRequest):
            raise ErrorHandler.handle_invalid_rpc_request(context)
        if not self.forwarder.enabled:
            raise ErrorHandler.handle_rpc_forwarding_disabled(context)

        logger.request(
            operation="RPC Forward Request",
            request_id=request_id,
            rpc_method=rpc.method,
            rpc_id=rpc.id
        )

        try:
            result = await self.forwarder.forward(rpc, request_id)
        except UpstreamError as e:
            return map_error(e).to_response()

        logger.response(
            operation="RPC Forward Response",
            request_id=request_id,
            status_code=result.status_code,
            rpc_method=rpc.method
        )
        return JSONResponse(content=result.body, status_code=result.status_code)
