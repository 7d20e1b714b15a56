"""
Stream Relay Module

Relays an upstream server-sent event stream to the caller.

Lifecycle: OPENING -> RELAYING -> DRAINING -> CLOSED.

Three producers feed a single queue: the upstream pump, the heartbeat and the
cancellation watcher. The ``frames()`` generator is the only consumer, so every
write to the caller is a whole frame and frames never interleave. Upstream bytes
are forwarded verbatim; event boundaries are not parsed.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import AsyncGenerator, Awaitable, Callable, Optional

import httpx

from ...core.cancellation import CancellationSignal, CancelReason, watch_disconnect
from ...core.error_handling.error_mapper import map_error
from ...core.exceptions import UpstreamError, UpstreamTransportError
from ...core.logging import logger
from ...providers.upstream import DispatchMode, UpstreamDispatcher, UpstreamResult
from .classifier import ChatPayload

CONNECTED_FRAME = b": connected\n\n"
PING_FRAME = b": ping\n\n"
END_FRAME = b"event: end\ndata: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

QUEUE_SIZE = 64


class RelayState(Enum):
    OPENING = "opening"
    RELAYING = "relaying"
    DRAINING = "draining"
    CLOSED = "closed"


@dataclass
class _Failure:
    error: BaseException


_UPSTREAM_END = object()
_CALLER_GONE = object()


class StreamRelay:
    """
    One stream-mode request.

    ``frames()`` is handed to a StreamingResponse. ``aclose()`` is safe to call
    any number of times; the generator calls it on every exit path.
    """

    def __init__(
        self,
        dispatcher: UpstreamDispatcher,
        payload: ChatPayload,
        signal: CancellationSignal,
        heartbeat_interval: float,
        request_id: str = "unknown",
        disconnect_check: Optional[Callable[[], Awaitable[bool]]] = None,
        disconnect_poll_interval: float = 0.5,
    ):
        self.dispatcher = dispatcher
        self.payload = payload
        self.signal = signal
        self.heartbeat_interval = heartbeat_interval
        self.request_id = request_id
        self.disconnect_check = disconnect_check
        self.disconnect_poll_interval = disconnect_poll_interval

        self.state = RelayState.OPENING
        self.heartbeat_task: Optional[asyncio.Task] = None
        self._pump_task: Optional[asyncio.Task] = None
        self._cancel_watch_task: Optional[asyncio.Task] = None
        self._disconnect_task: Optional[asyncio.Task] = None
        self._stop_watching = asyncio.Event()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)

        self.chunks_relayed = 0
        self.bytes_relayed = 0
        self.heartbeats_sent = 0
        self._start_time = time.time()

    @property
    def caller_gone(self) -> bool:
        return self.signal.reason is CancelReason.CALLER_DISCONNECTED

    def _start(self):
        self._cancel_watch_task = asyncio.ensure_future(self._watch_cancellation())
        self.heartbeat_task = asyncio.ensure_future(self._heartbeat())
        if self.disconnect_check is not None:
            self._disconnect_task = asyncio.ensure_future(
                watch_disconnect(self.disconnect_check, self.signal, self.disconnect_poll_interval, self._stop_watching)
            )
        self._pump_task = asyncio.ensure_future(self._pump())

    def _offer(self, item) -> bool:
        try:
            self._queue.put_nowait(item)
            return True
        except asyncio.QueueFull:
            return False

    async def frames(self) -> AsyncGenerator[bytes, None]:
        """Yield the frames written to the caller, in order."""
        logger.info("Starting stream relay", request_id=self.request_id, model_id=self.payload.model)
        try:
            yield CONNECTED_FRAME
            self._start()

            while True:
                item = await self._queue.get()

                if item is _CALLER_GONE or self.caller_gone:
                    logger.info("Caller gone, closing stream without terminal frame", request_id=self.request_id)
                    break

                if item is _UPSTREAM_END:
                    self.state = RelayState.DRAINING
                    yield END_FRAME
                    break

                if isinstance(item, _Failure):
                    error = map_error(item.error)
                    logger.warning(
                        f"Stream relay failed: {error.message}",
                        request_id=self.request_id,
                        error_code=error.category,
                        chunks_relayed=self.chunks_relayed
                    )
                    yield error.to_sse_frame()
                    self.state = RelayState.DRAINING
                    yield END_FRAME
                    break

                if item is PING_FRAME:
                    self.heartbeats_sent += 1
                else:
                    self.chunks_relayed += 1
                    self.bytes_relayed += len(item)
                yield item
        except (asyncio.CancelledError, GeneratorExit):
            self.signal.fire(CancelReason.CALLER_DISCONNECTED)
            raise
        finally:
            await self.aclose()

    async def aclose(self):
        """Enter CLOSED: stop the heartbeat and release the upstream stream."""
        if self.state is RelayState.CLOSED:
            return
        self.state = RelayState.CLOSED

        tasks = [
            task for task in (self.heartbeat_task, self._cancel_watch_task, self._pump_task)
            if task is not None
        ]
        for task in tasks:
            task.cancel()
        # The disconnect watcher is stopped, never cancelled
        self._stop_watching.set()
        if self._disconnect_task is not None:
            tasks.append(asyncio.shield(self._disconnect_task))
        await asyncio.gather(*tasks, return_exceptions=True)

        duration = time.time() - self._start_time
        logger.info("Stream relay closed", request_id=self.request_id, stream_relay={
            "duration_seconds": round(duration, 3),
            "chunks_relayed": self.chunks_relayed,
            "bytes_relayed": self.bytes_relayed,
            "heartbeats_sent": self.heartbeats_sent,
            "caller_disconnected": self.caller_gone
        })

    async def _heartbeat(self):
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            # A full queue means frames are already flowing
            self._offer(PING_FRAME)

    async def _watch_cancellation(self):
        reason = await self.signal.wait()
        if reason is CancelReason.CALLER_DISCONNECTED:
            self._offer(_CALLER_GONE)

    async def _pump(self):
        try:
            result = await self.dispatcher.send(
                self.payload, self.signal, DispatchMode.STREAM, self.request_id
            )
        except UpstreamError as e:
            await self._queue.put(_Failure(e))
            return
        except Exception as e:
            logger.error(f"Unexpected error opening upstream stream: {e}", request_id=self.request_id)
            await self._queue.put(_Failure(e))
            return

        if not result.ok:
            await self._queue.put(_Failure(result.to_error()))
            return

        await self._relay_upstream(result)

    async def _relay_upstream(self, result: UpstreamResult):
        if self.state is RelayState.OPENING:
            self.state = RelayState.RELAYING
        try:
            async for chunk in result.aiter_bytes():
                await self._queue.put(chunk)
            await self._queue.put(_UPSTREAM_END)
        except httpx.HTTPError as e:
            await self._queue.put(_Failure(
                UpstreamTransportError(f"Upstream stream interrupted: {str(e) or type(e).__name__}", original_exception=e)
            ))
        except Exception as e:
            logger.error(f"Unexpected error relaying upstream stream: {e}", request_id=self.request_id)
            await self._queue.put(_Failure(e))
        finally:
            await result.aclose()
