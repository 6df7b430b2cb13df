#!/usr/bin/env python3
"""
Test script for logging utilities.

This validates that the centralized logging and error classification works
correctly.
"""

import httpx
import pytest
from pydantic import BaseModel, ValidationError

from src.exceptions import (
    ClientHttpError,
    MissingCredentialError,
    StreamingError,
    UpstreamConnectError,
    UpstreamStatusError,
)
from src.logging_utils import (
    ContextualLogger,
    RelayErrorHandler,
    log_operation,
    mask_secret,
    operation_context,
)


class _Body(BaseModel):
    code: str


class TestRelayErrorHandler:
    """Test the RelayErrorHandler class."""

    def test_classify_missing_credential(self):
        status, category = RelayErrorHandler.classify_error(MissingCredentialError())
        assert status == 400
        assert category == "missing_credential"

    def test_classify_upstream_errors(self):
        assert RelayErrorHandler.classify_error(
            UpstreamConnectError("refused")
        ) == (502, "upstream_connect_error")
        assert RelayErrorHandler.classify_error(
            UpstreamStatusError(503, "busy")
        ) == (502, "upstream_status_error")
        assert RelayErrorHandler.classify_error(
            StreamingError("reset")
        ) == (502, "streaming_error")

    def test_classify_client_http_error_keeps_status(self):
        status, category = RelayErrorHandler.classify_error(ClientHttpError(404, "nope"))
        assert status == 404
        assert category == "client_http_error"

    def test_classify_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            _Body()
        status, category = RelayErrorHandler.classify_error(exc_info.value)
        assert status == 422
        assert category == "validation_error"

    def test_classify_timeouts(self):
        assert RelayErrorHandler.classify_error(TimeoutError("slow"))[1] == "timeout_error"
        assert RelayErrorHandler.classify_error(
            httpx.ReadTimeout("slow")
        )[1] == "timeout_error"

    def test_classify_raw_transport_errors(self):
        assert RelayErrorHandler.classify_error(
            httpx.ConnectError("refused")
        ) == (502, "upstream_connect_error")
        assert RelayErrorHandler.classify_error(
            ConnectionError("unreachable")
        )[1] == "upstream_connect_error"

    def test_classify_unknown_error(self):
        assert RelayErrorHandler.classify_error(
            RuntimeError("Unknown error")
        ) == (500, "unknown_error")

    def test_error_message_is_never_empty(self):
        assert RelayErrorHandler.error_message(RuntimeError()) == "RuntimeError"
        assert RelayErrorHandler.error_message(
            UpstreamStatusError(500, "oops")
        ) == "Upstream error 500: oops"

    def test_log_error_returns_wire_message(self):
        message = RelayErrorHandler.log_error(
            UpstreamConnectError("Connection refused"), "test_operation", {"mode": "chat"}
        )
        assert message == "Connection refused"


class TestDecorators:
    """Test logging decorators and context managers."""

    @pytest.mark.asyncio
    async def test_log_operation_success(self):
        @log_operation("test_operation", log_timing=True)
        async def successful_function():
            return "success"

        assert await successful_function() == "success"

    @pytest.mark.asyncio
    async def test_log_operation_with_error(self):
        @log_operation("test_operation", log_timing=True)
        async def failing_function():
            raise ValueError("Test error")

        with pytest.raises(ValueError, match="Test error"):
            await failing_function()

    @pytest.mark.asyncio
    async def test_operation_context_reraises(self):
        with pytest.raises(StreamingError):
            async with operation_context("test_operation", context={"k": "v"}):
                raise StreamingError("reset")

    @pytest.mark.asyncio
    async def test_operation_context_yields_logger(self):
        async with operation_context("test_operation") as op_logger:
            op_logger.info("inside")


class TestHelpers:
    """Test small logging helpers."""

    def test_mask_secret(self):
        assert mask_secret(None) == "<none>"
        assert mask_secret("short") == "***"
        assert mask_secret("nvapi-1234567890abcd") == "***abcd"

    def test_contextual_logger_bind_merges(self):
        base = ContextualLogger({"component": "relay"})
        bound = base.bind(mode="chat")
        assert bound.base_context == {"component": "relay", "mode": "chat"}
        assert base.base_context == {"component": "relay"}
        bound.debug("message", extra=1)
