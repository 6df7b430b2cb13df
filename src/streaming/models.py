"""
Streaming event dataclasses.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class EventKind(Enum):
    """Kinds of decoded stream events."""
    CONTENT = "content"
    ERROR = "error"
    TERMINATOR = "terminator"


@dataclass(frozen=True)
class StreamEvent:
    """One decoded event: a fragment, an error message or the terminator."""
    kind: EventKind
    text: str | None = None

    @classmethod
    def content(cls, text: str) -> StreamEvent:
        return cls(EventKind.CONTENT, text)

    @classmethod
    def error(cls, message: str) -> StreamEvent:
        return cls(EventKind.ERROR, message)

    @classmethod
    def terminator(cls) -> StreamEvent:
        return cls(EventKind.TERMINATOR)

    @property
    def is_final(self) -> bool:
        """Whether the relay closes the stream after this event."""
        return self.kind is not EventKind.CONTENT


# Maps one parsed JSON payload to (content, error).
PayloadExtractor = Callable[[Any], tuple[str | None, str | None]]
