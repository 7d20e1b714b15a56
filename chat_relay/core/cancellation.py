import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from .logging import logger


class CancelReason(Enum):
    CALLER_DISCONNECTED = "caller_disconnected"
    TIMEOUT = "timeout"


class CancellationSignal:
    """
    One-shot, request-scoped cancellation broadcast.

    The first ``fire`` wins and records its reason; later calls are no-ops.
    Everything working on behalf of the request (the upstream call, the
    streaming relay) observes the same instance.
    """

    def __init__(self, request_id: str = "unknown"):
        self.request_id = request_id
        self._event = asyncio.Event()
        self._reason: Optional[CancelReason] = None

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[CancelReason]:
        return self._reason

    def fire(self, reason: CancelReason) -> bool:
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        logger.debug(f"Cancellation signal fired: {reason.value}", request_id=self.request_id, cancel_reason=reason.value)
        return True

    async def wait(self) -> CancelReason:
        await self._event.wait()
        return self._reason


async def watch_disconnect(
    is_disconnected: Callable[[], Awaitable[bool]],
    signal: CancellationSignal,
    interval: float,
    stop: Optional[asyncio.Event] = None,
) -> None:
    """
    Poll the caller connection and fire the signal once it is gone.

    Stop it by setting ``stop`` and awaiting the task. Starlette runs
    ``is_disconnected`` inside an already-cancelled anyio scope, so a task
    cancellation that lands during the check is absorbed.
    """
    stop = stop or asyncio.Event()
    while not signal.fired and not stop.is_set():
        if await is_disconnected():
            logger.info("Caller disconnected", request_id=signal.request_id)
            signal.fire(CancelReason.CALLER_DISCONNECTED)
            return
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
