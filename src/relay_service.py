"""
Relay Service for the streaming completion relay.

This module handles the business logic of one relay request:
- Credential resolution (request key, then the process fallback)
- Per-mode prompt assembly
- Decoding the provider's event stream and re-encoding each fragment
  into the relay envelope as soon as it arrives

Every stream that starts ends exactly once, with either one terminator
or one error envelope.
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import aclosing

from pydantic import BaseModel

from src.config import Configuration
from src.exceptions import MissingCredentialError
from src.llm.client import UpstreamClient
from src.llm.models import (
    ChatRequest,
    CompletionRequest,
    GenerateModuleRequest,
    RelayMode,
    SelfModifyRequest,
)
from src.llm.prompts import build_generate_module_messages, build_self_modify_messages
from src.logging_utils import ContextualLogger, RelayErrorHandler, mask_secret
from src.streaming import (
    EventKind,
    EventStreamDecoder,
    encode_error,
    encode_event,
    extract_upstream_payload,
    iter_events,
)


def _expect_body(mode: RelayMode, body: BaseModel, expected: type[BaseModel]) -> None:
    if not isinstance(body, expected):
        raise TypeError(f"{mode.value} expects {expected.__name__}")


class RelayService:
    """
    Bridges one inbound request to one upstream provider stream.
    1. Resolves which API key to use
    2. Builds the provider request for the requested mode
    3. Streams provider fragments back as relay envelopes
    """

    def __init__(
        self,
        configuration: Configuration,
        upstream_client: UpstreamClient,
    ):
        self.configuration = configuration
        self.upstream = upstream_client
        self._fallback_api_key = configuration.fallback_api_key
        self._log = ContextualLogger({"component": "relay"})

    def resolve_credential(self, request_key: str | None) -> str:
        """
        Pick the credential for a request.

        Raises:
            MissingCredentialError: Neither the request nor the process has one
        """
        if request_key and request_key.strip():
            return request_key
        if self._fallback_api_key:
            return self._fallback_api_key
        raise MissingCredentialError()

    def build_request(self, mode: RelayMode, body: BaseModel) -> CompletionRequest:
        """Assemble the upstream request for a relay mode."""
        if mode is RelayMode.CHAT:
            _expect_body(mode, body, ChatRequest)
            messages = [turn.model_dump() for turn in body.messages]
        elif mode is RelayMode.GENERATE_MODULE:
            _expect_body(mode, body, GenerateModuleRequest)
            messages = build_generate_module_messages(body.code)
        elif mode is RelayMode.SELF_MODIFY:
            _expect_body(mode, body, SelfModifyRequest)
            messages = build_self_modify_messages(body.code, body.instruction)
        else:
            raise ValueError(f"Unsupported relay mode: {mode}")

        return CompletionRequest(
            model=self.upstream.model,
            messages=messages,
            temperature=self.configuration.get_mode_temperature(mode.value),
            max_tokens=self.upstream.max_tokens,
        )

    async def relay(
        self,
        request: CompletionRequest,
        api_key: str,
        mode: RelayMode = RelayMode.CHAT,
    ) -> AsyncGenerator[str]:
        """
        Stream relay envelope lines for one completion.

        Upstream failures become a single error envelope. Cancellation
        (downstream disconnect) propagates and closes the upstream
        connection on the way out.
        """
        session_log = self._log.bind(
            mode=mode.value, model=request.model, api_key=mask_secret(api_key)
        )
        session_log.info("Relay stream started")

        decoder = EventStreamDecoder(extract_upstream_payload)
        start_time = time.perf_counter()
        fragments = 0
        outcome = "incomplete"

        try:
            async with self.upstream.stream(request, api_key) as response:
                events = iter_events(response.aiter_text(), decoder)
                async with aclosing(events):
                    async for event in events:
                        if event.kind is EventKind.CONTENT:
                            fragments += 1
                        yield encode_event(event)
                        if event.is_final:
                            outcome = (
                                "completed" if event.kind is EventKind.TERMINATOR
                                else "upstream_error"
                            )
                            return
        except Exception as e:
            if outcome != "incomplete":
                raise
            outcome = "error"
            message = RelayErrorHandler.log_error(
                e, "relay_stream", {"mode": mode.value, "fragments": fragments}
            )
            yield encode_error(message)
        finally:
            session_log.info(
                "Relay stream finished",
                outcome=outcome,
                fragments=fragments,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            session_log.debug("Upstream decoder stats", **decoder.get_stats())
