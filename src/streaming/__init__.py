"""
Event-stream framing shared by the relay server and the stream client.

This package contains:
- The line-buffering decoder for `data:` framed streams
- Payload extractors for the upstream and relay dialects
- Encoders for the relay envelope
"""

from __future__ import annotations

from .decoder import (
    EventStreamDecoder,
    extract_relay_payload,
    extract_upstream_payload,
    iter_events,
)
from .envelope import (
    DATA_PREFIX,
    DONE_SENTINEL,
    encode_content,
    encode_error,
    encode_event,
    encode_terminator,
)
from .models import EventKind, PayloadExtractor, StreamEvent

__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "EventKind",
    "EventStreamDecoder",
    "PayloadExtractor",
    "StreamEvent",
    "encode_content",
    "encode_error",
    "encode_event",
    "encode_terminator",
    "extract_relay_payload",
    "extract_upstream_payload",
    "iter_events",
]
