#!/usr/bin/env python3
"""
Tests for the relay stream client, standalone and end-to-end against the
relay application.
"""

import httpx
import pytest

from src.exceptions import ClientHttpError
from src.main import create_app
from src.stream_client import StreamClient, stream_from_api


def relay_transport(status_code=200, chunks=(), calls=None):
    """Mock relay answering every request with the given body chunks."""

    async def body():
        for chunk in chunks:
            yield chunk.encode("utf-8")

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(
            status_code,
            headers={"content-type": "text/event-stream"},
            content=body(),
        )

    return httpx.MockTransport(handler)


class TestStreamClient:
    """Callback dispatch and fail-fast behaviour."""

    @pytest.mark.asyncio
    async def test_fragments_in_order(self):
        calls = []
        transport = relay_transport(chunks=[
            'data: {"content":"Hel"}\n\ndata: {"cont',
            'ent":"lo"}\n\ndata: [DONE]\n\n',
        ], calls=calls)
        received = []

        async with StreamClient("http://relay.test", transport=transport) as client:
            text = await client.stream("/api/chat", {"messages": []}, received.append)

        assert received == ["Hel", "lo"]
        assert text == "Hello"
        assert calls[0].url.path == "/api/chat"
        assert calls[0].headers["accept"] == "text/event-stream"

    @pytest.mark.asyncio
    async def test_non_2xx_fails_fast(self):
        transport = relay_transport(
            status_code=400,
            chunks=['{"error":"No API key configured"}'],
        )
        received = []

        async with StreamClient("http://relay.test", transport=transport) as client:
            with pytest.raises(ClientHttpError) as exc_info:
                await client.stream("/api/chat", {}, received.append)

        assert exc_info.value.status_code == 400
        assert "No API key configured" in exc_info.value.body
        assert str(exc_info.value).startswith("API error 400:")
        assert received == []

    @pytest.mark.asyncio
    async def test_error_event_does_not_stop_reading(self):
        transport = relay_transport(chunks=[
            'data: {"error":"upstream hiccup"}\n\n',
            'data: {"content":"after"}\n\n',
        ])
        received, errors = [], []

        async with StreamClient("http://relay.test", transport=transport) as client:
            await client.stream("/api/chat", {}, received.append, errors.append)

        assert errors == ["upstream hiccup"]
        assert received == ["after"]

    @pytest.mark.asyncio
    async def test_error_without_callback_is_ignored(self):
        transport = relay_transport(chunks=['data: {"error":"x"}\n\n'])
        received = []

        async with StreamClient("http://relay.test", transport=transport) as client:
            assert await client.stream("/api/chat", {}, received.append) == ""

        assert received == []

    @pytest.mark.asyncio
    async def test_reads_until_source_is_exhausted(self):
        transport = relay_transport(chunks=[
            "data: [DONE]\n\n",
            'data: {"content":"trailing"}',
        ])
        received = []

        async with StreamClient("http://relay.test", transport=transport) as client:
            await client.stream("/api/chat", {}, received.append)

        assert received == ["trailing"]

    @pytest.mark.asyncio
    async def test_stream_from_api_helper(self):
        transport = relay_transport(chunks=['data: {"content":"one-shot"}\n\n'])
        received = []

        text = await stream_from_api(
            "http://relay.test",
            "/api/generate-module",
            {"code": "x"},
            received.append,
            transport=transport,
        )

        assert text == "one-shot"
        assert received == ["one-shot"]


@pytest.mark.asyncio
async def test_end_to_end_through_relay(make_config, upstream):
    """Client -> relay -> upstream and back, fragment by fragment."""
    upstream.reply(
        'data: {"choices":[{"delta":{"content":"Hel"}}]}\n',
        'data: {"choices":[{"delta":{"content":"lo"}}]}\n',
        "data: [DONE]\n",
    )
    app = create_app(make_config(), upstream_transport=upstream.transport)
    received = []

    async with StreamClient(
        "http://relay.test", transport=httpx.ASGITransport(app=app)
    ) as client:
        text = await client.stream(
            "/api/chat",
            {"messages": [{"role": "user", "content": "hi"}], "apiKey": "sk"},
            received.append,
        )

    assert received == ["Hel", "lo"]
    assert text == "Hello"


@pytest.mark.asyncio
async def test_end_to_end_missing_credential(make_config, upstream):
    """The relay's 4xx surfaces as ClientHttpError without any upstream call."""
    app = create_app(make_config(), upstream_transport=upstream.transport)

    async with StreamClient(
        "http://relay.test", transport=httpx.ASGITransport(app=app)
    ) as client:
        with pytest.raises(ClientHttpError) as exc_info:
            await client.stream("/api/chat", {"messages": []}, lambda _: None)

    assert exc_info.value.status_code == 400
    assert upstream.requests == []
