"""
Streaming HTTP client for the upstream completion provider.

One fresh connection is opened per relay request; its lifetime is bound
to the `stream()` context so that closing the downstream response (or
cancelling it) always closes the upstream connection too.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from src.exceptions import StreamingError, UpstreamConnectError, UpstreamStatusError
from src.logging_utils import mask_secret, operation_context

from .models import CompletionRequest


class UpstreamClient:
    """HTTP client for OpenAI-compatible streaming chat completions."""

    def __init__(
        self,
        config: dict[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        # Validate required configuration parameters
        required_keys = ["base_url", "path", "model", "max_tokens"]
        for key in required_keys:
            if key not in config:
                raise ValueError(
                    f"Required upstream configuration parameter '{key}' not found. "
                    "All upstream parameters must be explicitly configured."
                )

        self.config: dict[str, Any] = config
        self._transport = transport
        self._timeout = self._build_timeout(config.get("timeouts") or {})
        self.connection_count = 0

    @staticmethod
    def _build_timeout(timeouts: dict[str, Any]) -> httpx.Timeout:
        return httpx.Timeout(
            None,
            connect=timeouts.get("connect_timeout"),
            read=timeouts.get("read_timeout"),
            write=timeouts.get("write_timeout"),
            pool=timeouts.get("pool_timeout"),
        )

    @property
    def model(self) -> str:
        return self.config["model"]

    @property
    def max_tokens(self) -> int:
        return self.config["max_tokens"]

    @asynccontextmanager
    async def stream(
        self, request: CompletionRequest, api_key: str
    ) -> AsyncIterator[httpx.Response]:
        """
        Open a streaming completion and yield the live response.

        Raises:
            UpstreamConnectError: The provider could not be reached
            UpstreamStatusError: The provider answered with a non-2xx status
            StreamingError: The connection failed while the body was read
        """
        self.connection_count += 1
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Accept": "text/event-stream",
        }
        context = {
            "base_url": self.config["base_url"],
            "model": request.model,
            "message_count": len(request.messages),
            "api_key": mask_secret(api_key),
        }

        started = False
        async with (
            operation_context("upstream_stream", context=context),
            httpx.AsyncClient(
                base_url=self.config["base_url"],
                timeout=self._timeout,
                transport=self._transport,
            ) as client,
        ):
            try:
                async with client.stream(
                    "POST",
                    self.config["path"],
                    json=request.to_payload(),
                    headers=headers,
                ) as response:
                    if not response.is_success:
                        error_text = await response.aread()
                        raise UpstreamStatusError(
                            response.status_code,
                            error_text.decode("utf-8", errors="replace"),
                        )

                    started = True
                    yield response
            except httpx.TransportError as e:
                if started:
                    raise StreamingError(
                        f"Upstream stream error: {e!s}" if str(e)
                        else "Upstream stream interrupted"
                    ) from e
                raise UpstreamConnectError(
                    str(e) or f"Upstream connection failed: {type(e).__name__}"
                ) from e
