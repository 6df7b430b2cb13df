"""
Incremental decoder for `data:` framed event streams.

The same line-buffering state machine serves both ends of the relay:
- Upstream dialect: fragment at ``choices[0].delta.content``
- Relay dialect: fragment at ``content``, message at ``error``

Event boundaries are newlines in the decoded text, never the chunk
boundaries of the transport.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncGenerator, AsyncIterable
from typing import Any

from .envelope import DATA_PREFIX, DONE_SENTINEL
from .models import PayloadExtractor, StreamEvent

logger = logging.getLogger(__name__)


def _as_message(value: Any) -> str | None:
    if not value:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("message"), str):
        return value["message"]
    return json.dumps(value, ensure_ascii=False)


def extract_upstream_payload(payload: Any) -> tuple[str | None, str | None]:
    """Extract (content, error) from an OpenAI-style completion chunk."""
    if not isinstance(payload, dict):
        return None, None

    content = None
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        delta = choices[0].get("delta") or {}
        if isinstance(delta, dict) and isinstance(delta.get("content"), str):
            content = delta["content"]

    return content or None, _as_message(payload.get("error"))


def extract_relay_payload(payload: Any) -> tuple[str | None, str | None]:
    """Extract (content, error) from a relay envelope payload."""
    if not isinstance(payload, dict):
        return None, None

    content = payload.get("content")
    if not isinstance(content, str):
        content = None
    return content or None, _as_message(payload.get("error"))


class EventStreamDecoder:
    """Stateful line decoder turning arbitrarily chunked input into events."""

    def __init__(
        self,
        extractor: PayloadExtractor,
        *,
        stop_on_terminator: bool = True,
    ):
        self.extractor = extractor
        self.stop_on_terminator = stop_on_terminator
        self._buffer = ""
        self._bytes_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._terminated = False
        self._finished = False
        self.stats = {
            'lines': 0,
            'content_events': 0,
            'error_events': 0,
            'malformed_lines': 0,
        }

    @property
    def done(self) -> bool:
        """True once no further events will be produced."""
        if self._finished:
            return True
        return self.stop_on_terminator and self._terminated

    def feed(self, chunk: str | bytes) -> list[StreamEvent]:
        """Consume one chunk and return the events completed by it."""
        if self.done:
            return []

        if isinstance(chunk, bytes):
            chunk = self._bytes_decoder.decode(chunk)

        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")

        events: list[StreamEvent] = []
        for line in lines:
            events.extend(self._process_line(line))
            if self.done:
                # Anything after the terminator belongs to no one.
                self._buffer = ""
                break
        return events

    def finish(self) -> list[StreamEvent]:
        """Flush the buffered tail and guarantee a terminator."""
        if self._finished:
            return []

        events: list[StreamEvent] = []
        if not self.done:
            tail = self._buffer + self._bytes_decoder.decode(b"", final=True)
            if tail.strip():
                events.extend(self._process_line(tail))

        if not self._terminated:
            self._terminated = True
            events.append(StreamEvent.terminator())

        self._buffer = ""
        self._finished = True
        return events

    def _process_line(self, line: str) -> list[StreamEvent]:
        if not line.startswith(DATA_PREFIX):
            return []
        self.stats['lines'] += 1

        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            self._terminated = True
            return [StreamEvent.terminator()]

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            self.stats['malformed_lines'] += 1
            logger.debug("Skipping malformed event line: %.100s", data)
            return []

        content, error = self.extractor(payload)
        events: list[StreamEvent] = []
        if content:
            self.stats['content_events'] += 1
            events.append(StreamEvent.content(content))
        if error:
            self.stats['error_events'] += 1
            events.append(StreamEvent.error(error))
        return events

    def get_stats(self) -> dict[str, int]:
        """Get decoding counters for monitoring."""
        return self.stats.copy()

    def reset_stats(self) -> None:
        """Reset decoding counters."""
        self.stats = {
            'lines': 0,
            'content_events': 0,
            'error_events': 0,
            'malformed_lines': 0,
        }


async def iter_events(
    chunks: AsyncIterable[str | bytes],
    decoder: EventStreamDecoder,
) -> AsyncGenerator[StreamEvent]:
    """Decode an async chunk source, ending with the decoder's final events."""
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.done:
            return
    for event in decoder.finish():
        yield event
