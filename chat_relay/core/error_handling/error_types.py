"""
Error Types and Context Definitions

Standardized error types and context information for consistent error
handling across the chat relay.
"""

from enum import Enum
from typing import Dict, Any, Optional
from fastapi import status


class ErrorType(Enum):
    """Enumeration of standard error types in the relay."""

    # Rejections issued before any upstream call (simple status + message)
    AUTHORIZATION_DENIED = ("authorization_denied", status.HTTP_403_FORBIDDEN, "Access denied. Unauthorized client.")
    PROTOCOL_REJECTED = ("protocol_rejected", status.HTTP_400_BAD_REQUEST, "JSON-RPC requests are not allowed here. Route them to the RPC endpoint.")
    VALIDATION_FAILED = ("validation_failed", status.HTTP_400_BAD_REQUEST, "Invalid chat request. 'messages' array is required.")
    MALFORMED_BODY = ("validation_failed", status.HTTP_400_BAD_REQUEST, "Request body is not valid JSON: {error_details}")
    INVALID_RPC_REQUEST = ("validation_failed", status.HTTP_400_BAD_REQUEST, "Invalid JSON-RPC request. 'jsonrpc' must be \"2.0\" and 'method' is required.")
    PAYLOAD_TOO_LARGE = ("payload_too_large", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "Request exceeds size limit of {limit_bytes} bytes. Please reduce payload size.")
    RPC_FORWARDING_DISABLED = ("rpc_forwarding_disabled", status.HTTP_503_SERVICE_UNAVAILABLE, "JSON-RPC forwarding is not configured on this gateway")

    # Failures that go through the error mapper (embedded choices shape)
    TIMEOUT = ("timeout", status.HTTP_504_GATEWAY_TIMEOUT, "Upstream did not respond within {timeout_seconds}s")
    TRANSPORT_ERROR = ("transport_error", status.HTTP_502_BAD_GATEWAY, "Could not reach upstream: {error_details}")
    UPSTREAM_STATUS_ERROR = ("upstream_status_error", None, "Upstream returned status {status_code}")
    INTERNAL_FAILURE = ("internal_failure", status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error: {error_details}")

    def __init__(self, code: str, status_code: Optional[int], message_template: str):
        self.code = code
        self.status_code = status_code
        self.message_template = message_template

    def format_message(self, **kwargs) -> str:
        """Format the error message with provided parameters."""
        try:
            return self.message_template.format(**kwargs)
        except (KeyError, IndexError):
            return self.message_template

    def create_error_detail(self, **kwargs) -> Dict[str, Any]:
        """Create standardized error detail dictionary."""
        return {
            "error": {
                "message": self.format_message(**kwargs),
                "code": self.code
            }
        }


class ErrorContext:
    """Context information for error handling."""

    def __init__(
        self,
        request_id: Optional[str] = None,
        client_id: Optional[str] = None,
        model_id: Optional[str] = None,
        endpoint_path: Optional[str] = None,
        **additional_context
    ):
        self.request_id = request_id
        self.client_id = client_id
        self.model_id = model_id
        self.endpoint_path = endpoint_path
        self.additional_context = additional_context

    def to_log_extra(self) -> Dict[str, Any]:
        """Convert context to logging extra dictionary."""
        extra = {
            "log_type": "error"
        }

        if self.request_id:
            extra["request_id"] = self.request_id
        if self.client_id:
            extra["client_id"] = self.client_id
        if self.model_id:
            extra["model_id"] = self.model_id
        if self.endpoint_path:
            extra["endpoint_path"] = self.endpoint_path

        extra.update(self.additional_context)
        return extra
