"""Shared fixtures: in-memory configuration and a scripted upstream provider."""

from __future__ import annotations

import copy
from collections.abc import Callable

import httpx
import pytest

from src.config import Configuration

TEST_CONFIG = {
    "upstream": {
        "base_url": "https://upstream.test",
        "path": "/v1/chat/completions",
        "model": "nvidia/nemotron-4-340b-instruct",
        "max_tokens": 4096,
        "api_key_env": "NVIDIA_NIM_API_KEY",
        "timeouts": {
            "connect_timeout": 5.0,
            "read_timeout": 5.0,
            "write_timeout": 5.0,
            "pool_timeout": 5.0,
        },
    },
    "modes": {
        "temperature": {
            "chat": 0.7,
            "generate_module": 0.6,
            "self_modify": 0.5,
        },
    },
    "server": {"host": "127.0.0.1", "port": 5000},
    "logging": {"level": "DEBUG"},
}


class ScriptedUpstream:
    """Records upstream requests and answers them from a script."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.chunks: list[bytes] = []
        self.status_code = 200
        self.error: Exception | None = None
        self.fail_after: Exception | None = None

    def reply(self, *lines: str) -> ScriptedUpstream:
        self.chunks = [line.encode("utf-8") for line in lines]
        return self

    async def _body(self):
        for chunk in self.chunks:
            yield chunk
        if self.fail_after is not None:
            raise self.fail_after

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(
            self.status_code,
            headers={"content-type": "text/event-stream"},
            content=self._body(),
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def make_config() -> Callable[..., Configuration]:
    def factory(fallback_api_key: str | None = None, **overrides) -> Configuration:
        config = copy.deepcopy(TEST_CONFIG)
        config.update(overrides)
        return Configuration.from_dict(config, fallback_api_key=fallback_api_key)

    return factory


@pytest.fixture
def upstream() -> ScriptedUpstream:
    return ScriptedUpstream()
