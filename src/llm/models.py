"""
Request models for the relay endpoints and the upstream provider.

This module provides:
- Pydantic bodies for the three relay endpoints
- Relay operation modes
- The upstream chat-completions request
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RelayMode(Enum):
    """Relay operation modes, keyed like the temperature config."""
    CHAT = "chat"
    GENERATE_MODULE = "generate_module"
    SELF_MODIFY = "self_modify"


class MessageRole(Enum):
    """OpenAI-compatible message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One conversational turn forwarded verbatim to the provider."""
    role: str
    content: str


class RelayRequestBase(BaseModel):
    """Fields shared by every relay endpoint body."""
    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(default=None, alias="apiKey")


class ChatRequest(RelayRequestBase):
    messages: list[ChatTurn]


class GenerateModuleRequest(RelayRequestBase):
    code: str


class SelfModifyRequest(RelayRequestBase):
    code: str
    instruction: str


@dataclass(frozen=True)
class CompletionRequest:
    """Streaming chat-completions request sent upstream."""
    model: str
    messages: list[dict[str, str]]
    temperature: float
    max_tokens: int

    def to_payload(self) -> dict[str, Any]:
        """Build the provider JSON body with streaming enabled."""
        return {
            "model": self.model,
            "messages": self.messages,
            "stream": True,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
