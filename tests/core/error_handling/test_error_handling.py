"""
Tests for the centralized error handling system.

Covers the rejection types raised before any upstream call and the error
mapper that turns upstream failures into the completion-shaped error body.
"""

import json

import pytest
from fastapi import HTTPException
import httpx

from chat_relay.core.error_handling import ErrorHandler, ErrorType, ErrorContext
from chat_relay.core.error_handling.error_mapper import (
    UNKNOWN_ERROR_MESSAGE, extract_error_message, map_error
)
from chat_relay.core.exceptions import (
    UpstreamStatusError, UpstreamTimeoutError, UpstreamTransportError
)
from chat_relay.providers.upstream import UpstreamResult, parse_body


class TestErrorTypes:
    """Test error type definitions and formatting."""

    def test_authorization_denied(self):
        error_type = ErrorType.AUTHORIZATION_DENIED
        assert error_type.code == "authorization_denied"
        assert error_type.status_code == 403

    def test_payload_too_large_message(self):
        message = ErrorType.PAYLOAD_TOO_LARGE.format_message(limit_bytes=1024)
        assert "1024" in message

    def test_missing_format_parameter_keeps_template(self):
        assert ErrorType.TIMEOUT.format_message() == ErrorType.TIMEOUT.message_template

    def test_error_detail_creation(self):
        error_detail = ErrorType.PROTOCOL_REJECTED.create_error_detail()
        assert error_detail["error"]["code"] == "protocol_rejected"
        assert error_detail["error"]["message"]

    def test_upstream_status_has_no_fixed_status(self):
        assert ErrorType.UPSTREAM_STATUS_ERROR.status_code is None


class TestErrorContext:
    """Test error context creation and logging."""

    def test_minimal_context(self):
        context = ErrorContext()
        assert context.request_id is None
        assert context.client_id is None

        log_extra = context.to_log_extra()
        assert log_extra["log_type"] == "error"
        assert "request_id" not in log_extra
        assert "client_id" not in log_extra

    def test_full_context(self):
        context = ErrorContext(
            request_id="req-123",
            client_id="elevenlabs",
            model_id="venice-uncensored",
            endpoint_path="/chat/completions",
            rpc_method="ping"
        )

        log_extra = context.to_log_extra()
        assert log_extra["request_id"] == "req-123"
        assert log_extra["client_id"] == "elevenlabs"
        assert log_extra["model_id"] == "venice-uncensored"
        assert log_extra["endpoint_path"] == "/chat/completions"
        assert log_extra["rpc_method"] == "ping"


class TestErrorHandler:
    """Test rejection handling."""

    def test_handle_authorization_denied(self):
        exception = ErrorHandler.handle_authorization_denied(ErrorContext(request_id="req-123"))

        assert isinstance(exception, HTTPException)
        assert exception.status_code == 403
        assert exception.detail["error"]["code"] == "authorization_denied"

    def test_handle_protocol_rejected(self):
        exception = ErrorHandler.handle_protocol_rejected(ErrorContext())
        assert exception.status_code == 400
        assert exception.detail["error"]["code"] == "protocol_rejected"

    def test_handle_validation_failed(self):
        exception = ErrorHandler.handle_validation_failed(ErrorContext(), "'messages' array is required")
        assert exception.status_code == 400
        assert exception.detail["error"]["code"] == "validation_failed"

    def test_handle_malformed_body(self):
        exception = ErrorHandler.handle_malformed_body(ErrorContext(), ValueError("Expecting value"))
        assert exception.status_code == 400
        assert exception.detail["error"]["code"] == "validation_failed"
        assert "Expecting value" in exception.detail["error"]["message"]

    def test_handle_payload_too_large(self):
        exception = ErrorHandler.handle_payload_too_large(10, ErrorContext())
        assert exception.status_code == 413
        assert exception.detail["error"]["code"] == "payload_too_large"
        assert "10 bytes" in exception.detail["error"]["message"]

    def test_handle_rpc_forwarding_disabled(self):
        exception = ErrorHandler.handle_rpc_forwarding_disabled(ErrorContext())
        assert exception.status_code == 503
        assert exception.detail["error"]["code"] == "rpc_forwarding_disabled"

    def test_handle_invalid_rpc_request(self):
        exception = ErrorHandler.handle_invalid_rpc_request(ErrorContext())
        assert exception.status_code == 400
        assert exception.detail["error"]["code"] == "validation_failed"


class TestExtractErrorMessage:
    """Best-effort message extraction order."""

    def test_validation_issue_first(self):
        details = {
            "issues": [{"message": "messages must not be empty"}],
            "message": "generic"
        }
        assert extract_error_message(details) == "messages must not be empty"

    def test_structured_detail_error(self):
        details = {"details": {"_errors": ["Field required"]}, "message": "generic"}
        assert extract_error_message(details) == "Field required"

    def test_openai_style_error(self):
        assert extract_error_message({"error": {"message": "Invalid API key"}}) == "Invalid API key"

    def test_generic_message(self):
        assert extract_error_message({"message": "rate limited"}) == "rate limited"

    def test_raw_text_fallback(self):
        assert extract_error_message({"text": "  Bad Gateway  "}) == "Bad Gateway"

    @pytest.mark.parametrize("details", [None, {}, [], "plain", {"issues": []}, {"text": "   "}])
    def test_unknown(self, details):
        assert extract_error_message(details) == UNKNOWN_ERROR_MESSAGE


class TestMapError:
    """Upstream failures become the completion-shaped error body."""

    def test_status_error_keeps_status(self):
        error = map_error(UpstreamStatusError(429, {"message": "rate limited"}))
        body = error.to_body()

        assert error.status_code == 429
        assert body["error"] == "upstream_status_error"
        assert body["details"] == {"message": "rate limited"}
        assert body["choices"] == [{
            "index": 0,
            "message": {"role": "assistant", "content": "Error: rate limited"},
            "finish_reason": "stop",
        }]

    def test_status_error_without_message(self):
        error = map_error(UpstreamStatusError(500, {}))
        assert error.message == UNKNOWN_ERROR_MESSAGE

    def test_timeout(self):
        error = map_error(UpstreamTimeoutError(30))
        assert error.status_code == 504
        assert error.category == "timeout"
        assert "30" in error.message

    def test_transport_error(self):
        cause = httpx.ConnectError("Connection refused")
        error = map_error(UpstreamTransportError("Connection refused", original_exception=cause))
        assert error.status_code == 502
        assert error.category == "transport_error"
        assert error.message == "Connection refused"
        assert error.details["type"] == "ConnectError"

    def test_unexpected_exception(self):
        error = map_error(RuntimeError("boom"))
        assert error.status_code == 500
        assert error.category == "internal_failure"
        assert error.to_body()["choices"][0]["message"]["content"] == "Error: boom"

    def test_response_and_frame(self):
        error = map_error(UpstreamStatusError(401, {"error": {"message": "bad key"}}))

        response = error.to_response()
        assert response.status_code == 401
        assert json.loads(response.body)["choices"][0]["message"]["content"] == "Error: bad key"

        frame = error.to_sse_frame()
        assert frame.startswith(b"event: error\ndata: ")
        assert frame.endswith(b"\n\n")

    def test_non_finite_upstream_body_renders(self):
        body = parse_body('{"message": "rate limited", "retry_after": Infinity, "limits": [NaN, 1e999, 3]}')
        error = map_error(UpstreamResult(status_code=429, body=body).to_error())

        response = error.to_response()
        assert response.status_code == 429
        details = json.loads(response.body)["details"]
        assert details == {"message": "rate limited", "retry_after": None, "limits": [None, None, 3]}

    def test_non_finite_details_are_nulled(self):
        error = map_error(UpstreamStatusError(500, {"message": "boom", "score": float("inf"), "nested": {"v": float("nan")}}))

        body = json.loads(error.to_response().body)
        assert body["details"] == {"message": "boom", "score": None, "nested": {"v": None}}
        assert error.to_sse_frame().startswith(b"event: error\ndata: ")

    def test_parse_body_drops_non_finite_numbers(self):
        assert parse_body("1e999") is None
        assert parse_body("NaN") is None
        assert parse_body('{"a": -Infinity}') == {"a": None}


if __name__ == "__main__":
    pytest.main([__file__])
