"""Encoders for the relay's own event-stream envelope."""

from __future__ import annotations

import json

from .models import EventKind, StreamEvent

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
EVENT_SEPARATOR = "\n\n"


def _encode_payload(payload: dict[str, str]) -> str:
    # Compact, non-ASCII-escaped JSON matches what browser/RN clients emit.
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return f"{DATA_PREFIX}{body}{EVENT_SEPARATOR}"


def encode_content(text: str) -> str:
    """Envelope for one content fragment."""
    return _encode_payload({"content": text})


def encode_error(message: str) -> str:
    """Envelope for a stream-terminating error."""
    return _encode_payload({"error": message})


def encode_terminator() -> str:
    """Envelope marking normal end of stream."""
    return f"{DATA_PREFIX}{DONE_SENTINEL}{EVENT_SEPARATOR}"


def encode_event(event: StreamEvent) -> str:
    """Encode a decoded event into the relay envelope."""
    if event.kind is EventKind.CONTENT:
        return encode_content(event.text or "")
    if event.kind is EventKind.ERROR:
        return encode_error(event.text or "")
    return encode_terminator()
