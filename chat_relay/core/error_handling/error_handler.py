"""
Main Error Handler

Builds standardized HTTPExceptions, with logging, for the rejections the relay
issues before any upstream call is attempted.
"""

from typing import Optional
from fastapi import HTTPException

from .error_types import ErrorType, ErrorContext
from .error_logger import ErrorLogger


class ErrorHandler:
    """Centralized rejection handling utility."""

    @staticmethod
    def create_http_exception(
        error_type: ErrorType,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
        log_error: bool = True,
        **format_kwargs
    ) -> HTTPException:
        """
        Create a standardized HTTPException with proper logging.

        Args:
            error_type: The type of error to create
            context: Error context information
            original_exception: Original exception that caused this error
            log_error: Whether to log the error
            **format_kwargs: Additional kwargs for message formatting

        Returns:
            HTTPException with detail ``{"error": {"message", "code"}}``
        """
        if context is None:
            context = ErrorContext()

        format_dict = {**context.__dict__, **format_kwargs}
        error_detail = error_type.create_error_detail(**format_dict)

        if log_error:
            ErrorLogger.log_error(
                error_type=error_type,
                context=context,
                original_exception=original_exception,
                additional_data={"error_detail": error_detail},
                **format_kwargs
            )

        return HTTPException(
            status_code=error_type.status_code,
            detail=error_detail
        )

    @staticmethod
    def handle_authorization_denied(context: ErrorContext) -> HTTPException:
        """Caller identity header missing or wrong."""
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.AUTHORIZATION_DENIED,
            context=context
        )

    @staticmethod
    def handle_protocol_rejected(context: ErrorContext) -> HTTPException:
        """JSON-RPC payload sent to the chat endpoint."""
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.PROTOCOL_REJECTED,
            context=context
        )

    @staticmethod
    def handle_validation_failed(context: ErrorContext, reason: Optional[str] = None) -> HTTPException:
        """Body is neither a chat request nor a JSON-RPC request."""
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.VALIDATION_FAILED,
            context=context,
            reason=reason
        )

    @staticmethod
    def handle_malformed_body(context: ErrorContext, original_exception: Exception) -> HTTPException:
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.MALFORMED_BODY,
            context=context,
            error_details=str(original_exception)
        )

    @staticmethod
    def handle_invalid_rpc_request(context: ErrorContext) -> HTTPException:
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.INVALID_RPC_REQUEST,
            context=context
        )

    @staticmethod
    def handle_payload_too_large(limit_bytes: int, context: ErrorContext) -> HTTPException:
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.PAYLOAD_TOO_LARGE,
            context=context,
            limit_bytes=limit_bytes
        )

    @staticmethod
    def handle_rpc_forwarding_disabled(context: ErrorContext) -> HTTPException:
        return ErrorHandler.create_http_exception(
            error_type=ErrorType.RPC_FORWARDING_DISABLED,
            context=context
        )
