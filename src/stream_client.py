"""
Client for consuming the relay's event stream.

The body is read incrementally and every decoded fragment is handed to a
callback as soon as it arrives. The call returns only once the response
body is exhausted.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import structlog

from src.exceptions import ClientHttpError
from src.logging_utils import log_operation
from src.streaming import EventKind, EventStreamDecoder, extract_relay_payload

logger = structlog.get_logger(__name__)

ChunkCallback = Callable[[str], None]
ErrorCallback = Callable[[str], None]


class StreamClient:
    """Async HTTP client for relay endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    @log_operation("relay_stream_request")
    async def stream(
        self,
        path: str,
        body: dict[str, Any],
        on_chunk: ChunkCallback,
        on_error: ErrorCallback | None = None,
    ) -> str:
        """
        POST a body to a relay endpoint and dispatch decoded events.

        Args:
            path: Endpoint path, e.g. ``/api/chat``
            body: JSON-serializable request body
            on_chunk: Called once per content fragment, in arrival order
            on_error: Called once per error event; reading continues

        Returns:
            The concatenated fragments

        Raises:
            ClientHttpError: The relay answered with a non-2xx status
        """
        decoder = EventStreamDecoder(extract_relay_payload, stop_on_terminator=False)
        fragments: list[str] = []

        async with self.client.stream(
            "POST",
            path,
            json=body,
            headers={"Accept": "text/event-stream"},
        ) as response:
            if not response.is_success:
                error_text = await response.aread()
                raise ClientHttpError(
                    response.status_code,
                    error_text.decode("utf-8", errors="replace"),
                )

            async for chunk in response.aiter_bytes():
                for event in decoder.feed(chunk):
                    self._dispatch(event.kind, event.text, fragments, on_chunk, on_error)

            for event in decoder.finish():
                self._dispatch(event.kind, event.text, fragments, on_chunk, on_error)

        logger.debug("Relay stream drained", **decoder.get_stats())
        return "".join(fragments)

    @staticmethod
    def _dispatch(
        kind: EventKind,
        text: str | None,
        fragments: list[str],
        on_chunk: ChunkCallback,
        on_error: ErrorCallback | None,
    ) -> None:
        if kind is EventKind.CONTENT and text:
            fragments.append(text)
            on_chunk(text)
        elif kind is EventKind.ERROR and text and on_error is not None:
            on_error(text)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> StreamClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


async def stream_from_api(
    base_url: str,
    path: str,
    body: dict[str, Any],
    on_chunk: ChunkCallback,
    on_error: ErrorCallback | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """One-shot helper: stream a single relay request and close the client."""
    async with StreamClient(base_url, transport=transport) as client:
        return await client.stream(path, body, on_chunk, on_error)
