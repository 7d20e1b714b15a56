import httpx

from ..core.config import GatewayConfig
from ..core.error_handling import ErrorContext, ErrorLogger
from ..core.exceptions import UpstreamTimeoutError, UpstreamTransportError
from ..core.logging import logger
from ..services.chat.classifier import RpcRequest
from .upstream import UpstreamResult, parse_body


class RpcForwarder:
    """Forwards JSON-RPC requests verbatim to the configured RPC endpoint."""

    def __init__(self, config: GatewayConfig, client: httpx.AsyncClient):
        self.url = config.rpc_forward_url
        self.timeout_seconds = config.upstream_timeout_seconds
        self.client = client
        self.headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def forward(self, rpc: RpcRequest, request_id: str = "unknown") -> UpstreamResult:
        """
        Send one JSON-RPC request and return the upstream answer unchanged.

        Raises:
            UpstreamTimeoutError: No answer within the configured timeout
            UpstreamTransportError: The RPC endpoint could not be reached
        """
        logger.debug_data(
            title="RPC Forward Request",
            data={"url": self.url, "request_body": rpc.raw},
            request_id=request_id,
            component="rpc_forwarder",
            data_flow="to_upstream"
        )

        try:
            response = await self.client.post(
                self.url,
                headers=self.headers,
                json=rpc.raw,
                timeout=self.timeout_seconds
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(self.timeout_seconds) from e
        except httpx.RequestError as e:
            raise UpstreamTransportError(str(e) or type(e).__name__, original_exception=e) from e

        raw_text = response.text
        result = UpstreamResult(
            status_code=response.status_code,
            body=parse_body(raw_text),
            raw_text=raw_text
        )
        if not result.ok:
            ErrorLogger.log_upstream_error(
                error_details=raw_text,
                status_code=result.status_code,
                context=ErrorContext(request_id=request_id, rpc_method=rpc.method)
            )
        return result
