"""
Tests for the JSON-RPC forwarding endpoint.
"""

import httpx
import pytest

from tests.relay_utils import RPC_URL, UpstreamRecorder, gateway_client, json_upstream, make_config

RPC_BODY = {"jsonrpc": "2.0", "method": "ping", "id": 1}


class TestRpcForwarding:

    @pytest.mark.asyncio
    async def test_forwarded_verbatim(self, caller_headers):
        upstream = json_upstream({"jsonrpc": "2.0", "result": "pong", "id": 1})
        async with gateway_client(upstream, make_config(rpc_forward_url=RPC_URL)) as client:
            response = await client.post("/rpc", headers=caller_headers, json=RPC_BODY)

        assert response.status_code == 200
        assert response.json() == {"jsonrpc": "2.0", "result": "pong", "id": 1}
        assert upstream.calls == 1
        assert str(upstream.requests[0].url) == RPC_URL
        assert upstream.json_body() == RPC_BODY
        assert upstream.requests[0].headers["Authorization"] == "Bearer test-upstream-key"

    @pytest.mark.asyncio
    async def test_upstream_status_returned_unchanged(self, caller_headers):
        error = {"jsonrpc": "2.0", "error": {"code": -32601, "message": "Method not found"}, "id": 1}
        upstream = json_upstream(error, status_code=404)
        async with gateway_client(upstream, make_config(rpc_forward_url=RPC_URL)) as client:
            response = await client.post("/rpc", headers=caller_headers, json=RPC_BODY)

        assert response.status_code == 404
        assert response.json() == error

    @pytest.mark.asyncio
    async def test_disabled_without_forward_url(self, caller_headers):
        upstream = json_upstream({})
        async with gateway_client(upstream) as client:
            response = await client.post("/rpc", headers=caller_headers, json=RPC_BODY)

        assert response.status_code == 503
        assert response.json()["detail"]["error"]["code"] == "rpc_forwarding_disabled"
        assert upstream.calls == 0

    @pytest.mark.asyncio
    async def test_chat_body_rejected(self, caller_headers):
        upstream = json_upstream({})
        async with gateway_client(upstream, make_config(rpc_forward_url=RPC_URL)) as client:
            response = await client.post("/rpc", headers=caller_headers, json={"messages": []})

        assert response.status_code == 400
        assert response.json()["detail"]["error"]["code"] == "validation_failed"
        assert upstream.calls == 0

    @pytest.mark.asyncio
    async def test_requires_caller_header(self):
        upstream = json_upstream({})
        async with gateway_client(upstream, make_config(rpc_forward_url=RPC_URL)) as client:
            response = await client.post("/rpc", json=RPC_BODY)

        assert response.status_code == 403
        assert upstream.calls == 0

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self, caller_headers):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        async with gateway_client(UpstreamRecorder(refuse), make_config(rpc_forward_url=RPC_URL)) as client:
            response = await client.post("/rpc", headers=caller_headers, json=RPC_BODY)

        assert response.status_code == 502
        data = response.json()
        assert data["error"] == "transport_error"
        assert data["choices"][0]["message"]["content"] == "Error: Connection refused"
