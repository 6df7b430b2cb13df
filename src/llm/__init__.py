"""
Upstream completion provider integration.

This package provides:
- Pydantic request bodies for the relay endpoints
- Per-mode prompt assembly
- A streaming httpx client for the provider
"""

from __future__ import annotations

from .client import UpstreamClient
from .models import (
    ChatRequest,
    ChatTurn,
    CompletionRequest,
    GenerateModuleRequest,
    MessageRole,
    RelayMode,
    SelfModifyRequest,
)

__all__ = [
    "ChatRequest",
    "ChatTurn",
    "CompletionRequest",
    "GenerateModuleRequest",
    "MessageRole",
    "RelayMode",
    "SelfModifyRequest",
    "UpstreamClient",
]
