"""
Error Logging Utility

Centralized error logging so every rejection and upstream failure is logged
with the same structured fields.
"""

from typing import Dict, Any, Optional
import json
import re
from .error_types import ErrorType, ErrorContext
from ..logging import get_logger


class ErrorLogger:
    """Logs errors through the shared project logger."""

    _unicode_pattern = re.compile(r'\\u([0-9a-fA-F]{4})')

    @staticmethod
    def _decode_unicode_escapes(text):
        """
        Decode Unicode escape sequences in error messages.

        Args:
            text (str): Text that may contain Unicode escape sequences

        Returns:
            str: Text with Unicode escape sequences decoded to actual characters
        """
        if not text:
            return text

        try:
            if '\\u' in text and text.startswith('{') and text.endswith('}'):
                decoded = json.loads(text)
                if isinstance(decoded, dict):
                    return json.dumps(decoded, ensure_ascii=False)
        except (json.JSONDecodeError, ValueError):
            pass

        def replace_unicode(match):
            try:
                return chr(int(match.group(1), 16))
            except ValueError:
                return match.group(0)

        return ErrorLogger._unicode_pattern.sub(replace_unicode, text)

    @staticmethod
    def log_error(
        error_type: ErrorType,
        context: ErrorContext,
        original_exception: Optional[Exception] = None,
        additional_data: Optional[Dict[str, Any]] = None,
        **format_kwargs
    ):
        """Log an error of a known type."""
        logger = get_logger()

        log_extra = context.to_log_extra()
        log_extra["error_code"] = error_type.code
        log_extra["http_status_code"] = error_type.status_code

        if additional_data:
            log_extra.update(additional_data)

        log_message = error_type.format_message(**{**context.__dict__, **format_kwargs})

        if original_exception:
            log_extra["original_exception"] = str(original_exception)
            log_extra["original_exception_type"] = type(original_exception).__name__
            logger.error(log_message, exc_info=True, **log_extra)
        else:
            logger.warning(log_message, **log_extra)

    @staticmethod
    def log_upstream_error(
        error_details: str,
        status_code: int,
        context: ErrorContext
    ):
        """Log a non-success response returned by the upstream provider."""
        logger = get_logger()

        decoded_error_details = ErrorLogger._decode_unicode_escapes(error_details)

        log_extra = context.to_log_extra()
        log_extra.update({
            "upstream_error_details": decoded_error_details,
            "upstream_status_code": status_code,
            "error_code": ErrorType.UPSTREAM_STATUS_ERROR.code,
        })

        logger.error(
            f"Upstream returned error {status_code}: {decoded_error_details}",
            exc_info=False,
            **log_extra
        )
