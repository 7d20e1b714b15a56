"""
Small Logger wrapper used across the relay.

Keeps call sites short and gives full payload dumps only when LOG_LEVEL=DEBUG.
"""

import logging
import time
import json
from typing import Any
from contextlib import contextmanager
from .config import setup_logging


class Logger:
    """
    Thin wrapper over the project logger.

    Keyword arguments passed to the level methods end up in the record's
    ``extra`` so structured fields like ``request_id`` travel with every line.
    """

    def __init__(self):
        self._logger = setup_logging()

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def is_debug_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self._logger.isEnabledFor(logging.DEBUG)

    def info(self, message: str, **kwargs):
        if kwargs:
            self._logger.info(message, extra=kwargs)
        else:
            self._logger.info(message)

    def debug(self, message: str, **kwargs):
        if kwargs:
            self._logger.debug(message, extra=kwargs)
        else:
            self._logger.debug(message)

    def warning(self, message: str, **kwargs):
        if kwargs:
            self._logger.warning(message, extra=kwargs)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc_info: bool = True, **kwargs):
        if kwargs:
            self._logger.error(message, extra=kwargs, exc_info=exc_info)
        else:
            self._logger.error(message, exc_info=exc_info)

    def request(self, operation: str, request_id: str, **kwargs):
        """Log a request with context."""
        message_parts = [f"Request: {operation}"]
        if 'model_id' in kwargs:
            message_parts.append(f"model={kwargs['model_id']}")
        if 'stream' in kwargs:
            message_parts.append(f"stream={kwargs['stream']}")

        self.info(" | ".join(message_parts), request_id=request_id, **kwargs)

    def response(self, operation: str, request_id: str, status_code: int = 200, **kwargs):
        """Log a response with context."""
        message_parts = [f"Response: {operation}", f"status={status_code}"]
        if 'processing_time_ms' in kwargs:
            message_parts.append(f"time={kwargs['processing_time_ms']}ms")

        self.info(" | ".join(message_parts), request_id=request_id, status_code=status_code, **kwargs)

    def debug_data(self, title: str, data: Any, request_id: str, **kwargs):
        """Log debug data with full details when LOG_LEVEL=DEBUG."""
        if not self.is_debug_enabled():
            return

        if isinstance(data, (dict, list)):
            data_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        else:
            data_str = str(data)

        message = f"DEBUG: {title}"
        if 'component' in kwargs:
            message += f" | component={kwargs['component']}"
        if 'data_flow' in kwargs:
            message += f" | flow={kwargs['data_flow']}"

        self.debug(f"{message}\n{data_str}", request_id=request_id, **kwargs)

    @contextmanager
    def request_context(self, operation: str, request_id: str, **kwargs):
        """
        Request-scoped logging.

        Logs the start, any escaping exception and the completion time.
        """
        start_time = time.time()
        self.request(operation=operation, request_id=request_id, **kwargs)

        try:
            yield
        except Exception as e:
            self.error(f"{operation} failed: {e}", request_id=request_id, **kwargs)
            raise
        finally:
            duration_ms = int((time.time() - start_time) * 1000)
            self.info(
                f"Completed: {operation} | duration={duration_ms}ms",
                request_id=request_id,
                duration_ms=duration_ms,
                **kwargs
            )
