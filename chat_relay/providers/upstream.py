import asyncio
import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ..core.cancellation import CancellationSignal, CancelReason
from ..core.config import GatewayConfig
from ..core.error_handling import ErrorContext, ErrorLogger
from ..core.exceptions import UpstreamStatusError, UpstreamTimeoutError, UpstreamTransportError
from ..core.logging import logger
from ..services.chat.classifier import ChatPayload


class DispatchMode(Enum):
    DOCUMENT = "document"
    STREAM = "stream"


@dataclass
class UpstreamResult:
    """
    Outcome of one upstream call.

    A non-success status is still a result, not an exception, so the caller can
    surface the same status code. ``response`` is set only for a successfully
    opened stream and must be closed by whoever consumes it.
    """

    status_code: int
    body: Any = None
    raw_text: str = ""
    response: Optional[httpx.Response] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        if self.response is None:
            return
        async for chunk in self.response.aiter_bytes():
            if chunk:
                yield chunk

    async def aclose(self):
        if self.response is not None:
            await self.response.aclose()

    def to_error(self) -> UpstreamStatusError:
        return UpstreamStatusError(self.status_code, self.body, self.raw_text)


def _drop_constant(name: str) -> None:
    # NaN, Infinity and -Infinity are not valid JSON and cannot be re-encoded
    return None


def _finite_float(text: str) -> Optional[float]:
    value = float(text)
    return value if math.isfinite(value) else None


def parse_body(raw_text: str) -> Any:
    """Parse a response body, keeping non-JSON text instead of dropping it."""
    try:
        return json.loads(raw_text, parse_constant=_drop_constant, parse_float=_finite_float)
    except ValueError:
        return {"text": raw_text}


class UpstreamDispatcher:
    """
    Issues the single outbound call for a chat request.

    The call races two things: the configured timeout and the request's
    cancellation signal. Whichever fires first cancels the outbound request.
    """

    def __init__(self, config: GatewayConfig, client: httpx.AsyncClient):
        self.url = config.upstream_url
        self.timeout_seconds = config.upstream_timeout_seconds
        self.client = client
        self.headers = {"Content-Type": "application/json"}
        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"
        else:
            logger.warning("No upstream API key configured, requests will be sent without Authorization")

    def _headers(self, mode: DispatchMode) -> Dict[str, str]:
        headers = dict(self.headers)
        headers["Accept"] = "text/event-stream" if mode is DispatchMode.STREAM else "application/json"
        return headers

    def _timeout(self) -> httpx.Timeout:
        # In stream mode read is the allowed gap between chunks, not the total time
        return httpx.Timeout(
            connect=self.timeout_seconds,
            read=self.timeout_seconds,
            write=self.timeout_seconds,
            pool=self.timeout_seconds
        )

    async def send(
        self,
        payload: ChatPayload,
        signal: CancellationSignal,
        mode: DispatchMode = DispatchMode.DOCUMENT,
        request_id: str = "unknown"
    ) -> UpstreamResult:
        """
        Call upstream once.

        Raises:
            UpstreamTimeoutError: The timeout elapsed before upstream answered
            UpstreamTransportError: Network failure, or the call was aborted
                because the caller went away
        """
        call = asyncio.ensure_future(self._perform(payload, mode, request_id))
        cancelled = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait(
                {call, cancelled},
                timeout=self.timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED
            )
            if call in done:
                return call.result()

            if cancelled in done:
                if signal.reason is CancelReason.TIMEOUT:
                    raise UpstreamTimeoutError(self.timeout_seconds)
                raise UpstreamTransportError(
                    "Upstream call aborted: caller disconnected",
                    aborted=True
                )

            signal.fire(CancelReason.TIMEOUT)
            raise UpstreamTimeoutError(self.timeout_seconds)
        finally:
            cancelled.cancel()
            if not call.done():
                call.cancel()
                await asyncio.gather(call, return_exceptions=True)

    async def _perform(self, payload: ChatPayload, mode: DispatchMode, request_id: str) -> UpstreamResult:
        request_body = payload.to_dict()

        logger.debug_data(
            title="Upstream Request",
            data={
                "url": self.url,
                "mode": mode.value,
                "request_body": request_body
            },
            request_id=request_id,
            component="upstream_dispatcher",
            data_flow="to_upstream"
        )

        try:
            if mode is DispatchMode.STREAM:
                request = self.client.build_request(
                    "POST", self.url,
                    headers=self._headers(mode),
                    json=request_body,
                    timeout=self._timeout()
                )
                response = await self.client.send(request, stream=True)
                if response.is_success:
                    logger.debug("Upstream stream opened", request_id=request_id, status_code=response.status_code)
                    return UpstreamResult(status_code=response.status_code, response=response)
                try:
                    await response.aread()
                finally:
                    await response.aclose()
            else:
                response = await self.client.post(
                    self.url,
                    headers=self._headers(mode),
                    json=request_body,
                    timeout=self._timeout()
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

        if result.ok:
            logger.debug_data(
                title="Upstream Response",
                data=result.body,
                request_id=request_id,
                component="upstream_dispatcher",
                data_flow="from_upstream"
            )
        else:
            ErrorLogger.log_upstream_error(
                error_details=raw_text,
                status_code=result.status_code,
                context=ErrorContext(request_id=request_id, model_id=payload.model)
            )
        return result
