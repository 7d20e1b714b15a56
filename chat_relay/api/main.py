from fastapi import FastAPI, Request, Depends
from typing import Optional
import uvicorn
import httpx

from ..core.auth import verify_caller
from ..core.config import GatewayConfig, load_config
from ..core.error_handling import ErrorContext
from ..core.logging import logger, setup_logging
from ..providers import RpcForwarder, UpstreamDispatcher
from ..services.chat.chat_service import ChatService
from ..services.rpc_service import RpcService
from .middleware import RequestLoggerMiddleware
from .request_body import read_json_body


def _context(request: Request) -> ErrorContext:
    return ErrorContext(
        request_id=getattr(request.state, "request_id", None),
        client_id=getattr(request.state, "client_id", None),
        endpoint_path=request.url.path
    )


def create_app(config: Optional[GatewayConfig] = None, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """
    Build the gateway application.

    A client passed in by the caller is left open on shutdown; a client created
    here is owned by the app and closed with it.
    """
    config = config or load_config()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient()

    app = FastAPI(title="Chat Relay Gateway")

    app.state.config = config
    app.state.httpx_client = client
    app.state.chat_service = ChatService(config, UpstreamDispatcher(config, client))
    app.state.rpc_service = RpcService(RpcForwarder(config, client))

    @app.on_event("shutdown")
    async def shutdown_event():
        if owns_client:
            await app.state.httpx_client.aclose()

    app.add_middleware(RequestLoggerMiddleware)

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    async def chat_completions(request: Request, client_id: str = Depends(verify_caller)):
        body = await read_json_body(request, config.max_body_bytes, _context(request))
        return await app.state.chat_service.chat_completions(request, body)

    app.add_api_route("/chat/completions", chat_completions, methods=["POST"])
    app.add_api_route("/v1/chat/completions", chat_completions, methods=["POST"])

    @app.post("/rpc")
    async def rpc(request: Request, client_id: str = Depends(verify_caller)):
        body = await read_json_body(request, config.max_body_bytes, _context(request))
        return await app.state.rpc_service.forward(request, body)

    logger.info(
        "Chat relay gateway initialized",
        upstream_url=config.upstream_url,
        rpc_forwarding_enabled=config.rpc_forward_url is not None,
        expected_client=config.expected_client
    )
    return app


def main():
    # Equivalent: uvicorn --factory chat_relay.api.main:create_app
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    main()
