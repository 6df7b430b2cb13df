"""
HTTP entry point for the streaming completion relay.

Run:
- Development: uvicorn src.main:create_app --factory --reload
- Production: nim-relay
"""

from __future__ import annotations

import httpx
import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel

from src.config import Configuration
from src.exceptions import RelayError
from src.llm.client import UpstreamClient
from src.llm.models import (
    ChatRequest,
    GenerateModuleRequest,
    RelayMode,
    SelfModifyRequest,
)
from src.logging_utils import RelayErrorHandler, configure_logging
from src.relay_service import RelayService

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}

api_router = APIRouter()


async def start_stream(request: Request, mode: RelayMode, body: BaseModel) -> Response:
    """
    Validate the request and commit the downstream event stream.

    Credential and prompt problems are answered with a plain JSON error
    before any stream headers are sent or any upstream I/O happens.
    """
    service: RelayService = request.app.state.relay_service

    try:
        api_key = service.resolve_credential(getattr(body, "api_key", None))
        completion = service.build_request(mode, body)
    except Exception as e:
        message = RelayErrorHandler.log_error(e, "start_stream", {"mode": mode.value})
        status = e.status_code if isinstance(e, RelayError) else 500
        return JSONResponse(status_code=status, content={"error": message})

    # Starlette sends these headers before pulling the first body chunk.
    return StreamingResponse(
        service.relay(completion, api_key, mode),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@api_router.post("/chat", response_model=None)
async def chat(request: Request, body: ChatRequest) -> Response:
    """Relay a multi-turn conversation."""
    return await start_stream(request, RelayMode.CHAT, body)


@api_router.post("/generate-module", response_model=None)
async def generate_module(request: Request, body: GenerateModuleRequest) -> Response:
    """Relay a code-to-dynamic-module transformation."""
    return await start_stream(request, RelayMode.GENERATE_MODULE, body)


@api_router.post("/self-modify", response_model=None)
async def self_modify(request: Request, body: SelfModifyRequest) -> Response:
    """Relay an instructed code modification."""
    return await start_stream(request, RelayMode.SELF_MODIFY, body)


def create_app(
    configuration: Configuration | None = None,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the relay application.

    Args:
        configuration: Loaded configuration; read from config.yaml if omitted
        upstream_transport: Optional httpx transport for the provider

    Returns:
        Configured FastAPI application
    """
    if configuration is None:
        configuration = Configuration()

    upstream_client = UpstreamClient(
        configuration.get_upstream_config(), transport=upstream_transport
    )

    app = FastAPI(
        title="NIM Stream Relay",
        description="Relays streaming chat completions as server-sent events",
        version="0.1.0",
    )
    app.state.configuration = configuration
    app.state.relay_service = RelayService(configuration, upstream_client)

    app.include_router(api_router, prefix="/api", tags=["Relay"])

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check."""
        return {"status": "ok"}

    return app


def main() -> None:
    """Main entry point - serve the relay with uvicorn."""
    config = Configuration()
    configure_logging(config.get_logging_config().get("level", "INFO"))
    server_config = config.get_server_config()

    uvicorn.run(
        create_app(config),
        host=server_config["host"],
        port=server_config["port"],
    )


if __name__ == "__main__":
    main()
