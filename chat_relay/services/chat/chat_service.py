"""
Chat Service Module

Coordinates one chat completion request from decoded body to response:

- classification of the body (chat, JSON-RPC or invalid)
- normalization of the chat payload
- dispatch to the upstream provider, bounded by a timeout and tied to the
  caller connection through a cancellation signal
- a normalized JSON document, or a relayed event stream in stream mode
- every upstream failure mapped to the caller-visible error shape
"""

import asyncio
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from ...core.cancellation import CancellationSignal, watch_disconnect
from ...core.config import GatewayConfig
from ...core.error_handling import ErrorHandler, ErrorContext
from ...core.error_handling.error_mapper import map_error
from ...core.exceptions import UpstreamError
from ...core.logging import logger
from ...providers.upstream import DispatchMode, UpstreamDispatcher
from .classifier import ChatPayload, InvalidPayload, RpcRequest, classify_payload
from .request_normalizer import normalize_chat_payload
from .response_normalizer import normalize_completion
from .stream_relay import SSE_HEADERS, StreamRelay


class ChatService:
    """
    Facade over the relay core for the chat endpoint.

    Attributes:
        config (GatewayConfig): Immutable gateway settings
        dispatcher (UpstreamDispatcher): Issues the outbound call
    """

    def __init__(self, config: GatewayConfig, dispatcher: UpstreamDispatcher):
        self.config = config
        self.dispatcher = dispatcher

    async def chat_completions(self, request: Request, body: Any) -> Response:
        """
        Handle a decoded chat completion request.

        Returns:
            JSONResponse: Normalized completion, or the mapped error with the
                upstream status code
            StreamingResponse: Relayed event stream when ``stream`` is true

        Raises:
            HTTPException: 400 for JSON-RPC bodies and for bodies that are not
                chat requests; no upstream call is made in either case
        """
        request_id = getattr(request.state, "request_id", "unknown")
        client_id = getattr(request.state, "client_id", None)
        context = ErrorContext(request_id=request_id, client_id=client_id, endpoint_path=request.url.path)

        classified = classify_payload(body)
        if isinstance(classified, RpcRequest):
            raise ErrorHandler.handle_protocol_rejected(context)
        if isinstance(classified, InvalidPayload):
            raise ErrorHandler.handle_validation_failed(context, classified.reason)

        payload = normalize_chat_payload(classified, self.config.default_model)

        logger.request(
            operation="Chat Completion Request",
            request_id=request_id,
            client_id=client_id,
            model_id=payload.model,
            stream=payload.stream,
            messages_count=len(payload.messages)
        )
        logger.debug_data(
            title="Normalized Chat Request",
            data=payload.to_dict(),
            request_id=request_id,
            component="chat_service",
            data_flow="incoming"
        )

        signal = CancellationSignal(request_id)
        if payload.stream:
            return self._stream_response(request, payload, signal, request_id)
        return await self._document_response(request, payload, signal, request_id)

    def _stream_response(
        self,
        request: Request,
        payload: ChatPayload,
        signal: CancellationSignal,
        request_id: str
    ) -> StreamingResponse:
        relay = StreamRelay(
            dispatcher=self.dispatcher,
            payload=payload,
            signal=signal,
            heartbeat_interval=self.config.heartbeat_interval_seconds,
            request_id=request_id,
            disconnect_check=request.is_disconnected,
            disconnect_poll_interval=self.config.disconnect_poll_seconds
        )
        return StreamingResponse(
            relay.frames(),
            media_type="text/event-stream",
            headers=SSE_HEADERS
        )

    async def _document_response(
        self,
        request: Request,
        payload: ChatPayload,
        signal: CancellationSignal,
        request_id: str
    ) -> JSONResponse:
        stop_watching = asyncio.Event()
        watcher = asyncio.ensure_future(
            watch_disconnect(request.is_disconnected, signal, self.config.disconnect_poll_seconds, stop_watching)
        )
        try:
            with logger.request_context(
                operation="Chat Completion",
                request_id=request_id,
                model_id=payload.model
            ):
                result = await self.dispatcher.send(payload, signal, DispatchMode.DOCUMENT, request_id)
        except UpstreamError as e:
            return map_error(e).to_response()
        except Exception as e:
            logger.error(f"Unexpected error during chat completion: {e}", request_id=request_id)
            return map_error(e).to_response()
        finally:
            stop_watching.set()
            await asyncio.shield(watcher)

        if not result.ok:
            error = map_error(result.to_error())
            logger.response(
                operation="Chat Completion",
                request_id=request_id,
                status_code=error.status_code,
                error_code=error.category
            )
            return error.to_response()

        document = normalize_completion(result.body, self.config.default_model)
        logger.debug_data(
            title="Normalized Chat Response",
            data=document,
            request_id=request_id,
            component="chat_service",
            data_flow="outgoing"
        )
        return JSONResponse(content=document)
