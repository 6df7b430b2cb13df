"""
Error types for the streaming relay.

Every failure is reduced to a single human-readable message before it
crosses the wire, either as an error envelope (mid-stream) or as an
exception (pre-stream and client-side):
- Missing credential detection
- Upstream connect/status/stream failures
- Client-side HTTP failures
"""

from __future__ import annotations


class RelayError(Exception):
    """Base relay error carrying the message sent to the caller."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingCredentialError(RelayError):
    """Neither the request nor the process supplied an API key."""

    status_code = 400

    def __init__(self, message: str = "No API key configured"):
        super().__init__(message)


class UpstreamError(RelayError):
    """Base class for failures talking to the completion provider."""

    status_code = 502


class UpstreamConnectError(UpstreamError):
    """DNS, TCP or TLS failure reaching the provider."""
    pass


class UpstreamStatusError(UpstreamError):
    """Provider answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Upstream error {status_code}: {body}")
        self.upstream_status = status_code
        self.body = body


class StreamingError(UpstreamError):
    """Read failure after the provider stream has started."""
    pass


class ClientHttpError(RelayError):
    """Non-2xx response to a stream client request."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body
