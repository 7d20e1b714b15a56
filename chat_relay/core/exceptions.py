from typing import Any, Optional

from .error_handling.error_types import ErrorType
from .logging import logger


class UpstreamError(Exception):
    """Base class for failures talking to the upstream completion provider."""

    error_type = ErrorType.INTERNAL_FAILURE

    def __init__(self, message: str, details: Any = None, original_exception: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.original_exception = original_exception

    @property
    def status_code(self) -> int:
        return self.error_type.status_code


class UpstreamTimeoutError(UpstreamError):
    """Upstream did not answer within the configured bound."""

    error_type = ErrorType.TIMEOUT

    def __init__(self, timeout_seconds: float):
        message = ErrorType.TIMEOUT.format_message(timeout_seconds=timeout_seconds)
        super().__init__(message, details={"timeout_seconds": timeout_seconds})
        self.timeout_seconds = timeout_seconds

        logger.warning(f"Upstream timeout: {message}", exception={
            "type": "UpstreamTimeoutError",
            "error_code": self.error_type.code,
            "timeout_seconds": timeout_seconds
        })


class UpstreamTransportError(UpstreamError):
    """Connection refused, DNS failure, or the call was aborted mid-flight."""

    error_type = ErrorType.TRANSPORT_ERROR

    def __init__(self, message: str, original_exception: Optional[BaseException] = None, aborted: bool = False):
        details = {
            "message": message,
            "type": type(original_exception).__name__ if original_exception else None,
            "aborted": aborted,
        }
        super().__init__(message, details=details, original_exception=original_exception)
        self.aborted = aborted

        logger.error(f"Upstream transport error: {message}", exc_info=False, exception={
            "type": "UpstreamTransportError",
            "error_code": self.error_type.code,
            "aborted": aborted,
            "original_exception_type": details["type"]
        })


class UpstreamStatusError(UpstreamError):
    """Upstream was reachable but answered with a non-success status."""

    error_type = ErrorType.UPSTREAM_STATUS_ERROR

    def __init__(self, status_code: int, body: Any, raw_text: str = ""):
        message = ErrorType.UPSTREAM_STATUS_ERROR.format_message(status_code=status_code)
        super().__init__(message, details=body)
        self._status_code = status_code
        self.raw_text = raw_text

    @property
    def status_code(self) -> int:
        return self._status_code
