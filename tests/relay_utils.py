"""
Shared helpers for the chat relay tests.

The upstream provider is always an ``httpx.MockTransport``; the gateway itself is
driven in-process through ``httpx.ASGITransport``.
"""

import json
from typing import Any, Callable, Dict, List

import httpx

from chat_relay.api.main import create_app
from chat_relay.core.config import GatewayConfig

UPSTREAM_URL = "https://upstream.test/api/v1/chat/completions"
RPC_URL = "https://rpc.test/rpc"
CLIENT_ID = "elevenlabs"


class UpstreamRecorder:
    """Mock upstream that records every outbound request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], Any]):
        self.handler = handler
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request):
        self.requests.append(request)
        response = self.handler(request)
        if not isinstance(response, httpx.Response):
            response = await response
        return response

    @property
    def calls(self) -> int:
        return len(self.requests)

    def json_body(self, index: int = 0) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


def json_upstream(payload: Any, status_code: int = 200) -> UpstreamRecorder:
    return UpstreamRecorder(lambda request: httpx.Response(status_code, json=payload))


def sse_upstream(frames: List[bytes]) -> UpstreamRecorder:
    async def body():
        for frame in frames:
            yield frame

    return UpstreamRecorder(
        lambda request: httpx.Response(200, headers={"Content-Type": "text/event-stream"}, content=body())
    )


def make_config(**overrides) -> GatewayConfig:
    values = dict(
        upstream_url=UPSTREAM_URL,
        api_key="test-upstream-key",
        expected_client=CLIENT_ID,
        upstream_timeout_seconds=2.0,
        heartbeat_interval_seconds=30.0,
        disconnect_poll_seconds=0.05,
    )
    values.update(overrides)
    return GatewayConfig(**values)


def upstream_client(upstream: UpstreamRecorder) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


def gateway_client(upstream: UpstreamRecorder, config: GatewayConfig = None) -> httpx.AsyncClient:
    """An AsyncClient talking to a fresh gateway app wired to ``upstream``."""
    app = create_app(config or make_config(), http_client=upstream_client(upstream))
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://gateway")
