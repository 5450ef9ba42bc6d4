"""HTTP/SSE front-end for the MCP server.

    GET  /sse       opens the event stream; the client receives an ``endpoint``
                    event pointing at /messages?session_id=<id>
    POST /messages  delivers a JSON-RPC message to the active channel
    GET  /health    liveness probe

Only one channel is tracked at a time.  A second connection replaces the
channel that posted messages are routed to, so this front-end serves a single
client.
"""

from __future__ import annotations

import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from mcp.server import Server
from mcp.server.sse import SseServerTransport
from starlette.types import Receive, Scope, Send

from dify_mcp.chat import ChatService
from dify_mcp.client import DifyClient
from dify_mcp.errors import ChannelStateError, ConfigurationError
from dify_mcp.logging import setup_logger
from dify_mcp.request_builder import PUSH_USER
from dify_mcp.settings import Settings, load_settings

from .server import create_mcp_server


class ActiveChannel:
    """Process-wide slot holding the SSE transport of the current connection."""

    def __init__(self) -> None:
        self._transport: Optional[SseServerTransport] = None

    @property
    def transport(self) -> Optional[SseServerTransport]:
        return self._transport

    @property
    def is_open(self) -> bool:
        return self._transport is not None

    def attach(self, transport: SseServerTransport) -> None:
        if self._transport is not None:
            logger.warning("📡 [SSE] Replacing the active channel with a new connection")
        self._transport = transport

    def detach(self, transport: SseServerTransport) -> None:
        # a newer connection may already own the slot
        if self._transport is transport:
            self._transport = None

    def require(self) -> SseServerTransport:
        if self._transport is None:
            raise ChannelStateError("No active SSE connection")
        return self._transport


class MessageEndpoint:
    """ASGI endpoint forwarding posted messages to the active channel."""

    def __init__(self, channel: ActiveChannel) -> None:
        self.channel = channel

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            transport = self.channel.require()
        except ChannelStateError as exc:
            logger.warning("📨 [SSE] Message rejected: {}", exc.message)
            await JSONResponse({"error": exc.message}, status_code=400)(scope, receive, send)
            return

        try:
            await transport.handle_post_message(scope, receive, send)
        except Exception as exc:
            logger.error("💥 [SSE] Error handling message: {}", exc)
            await JSONResponse(
                {"error": "Internal server error", "details": str(exc)},
                status_code=500,
            )(scope, receive, send)


def create_app(
    settings: Settings,
    *,
    server: Optional[Server] = None,
    client: Optional[DifyClient] = None,
    channel: Optional[ActiveChannel] = None,
) -> FastAPI:
    """Build the FastAPI application serving the MCP server over SSE."""

    if server is None:
        client = client or DifyClient.from_settings(settings)
        chat = ChatService(client, PUSH_USER, buffered=not settings.LEGACY_CHUNK_SPLITTING)
        server = create_mcp_server(chat)
    channel = channel or ActiveChannel()

    app = FastAPI(title="Dify MCP SSE server")
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.channel = channel
    app.state.server = server

    @app.on_event("shutdown")
    async def shutdown_event():
        if client is not None:
            await client.aclose()

    @app.get("/health")
    def health_check():
        return {"status": "ok", "active_channel": channel.is_open}

    @app.get(settings.SSE_PATH)
    async def sse_endpoint(request: Request):
        transport = SseServerTransport(settings.MESSAGES_PATH)
        channel.attach(transport)
        logger.info("📡 [SSE] SSE connection established")
        try:
            async with transport.connect_sse(request.scope, request.receive, request._send) as streams:
                await server.run(streams[0], streams[1], server.create_initialization_options())
        finally:
            channel.detach(transport)
            logger.info("📡 [SSE] SSE connection closed")
        # Required by Starlette to have a response
        return Response(status_code=204)

    app.add_route(settings.MESSAGES_PATH, MessageEndpoint(channel), methods=["POST"])

    return app


def run_sse() -> None:
    """Serve the SSE front-end with uvicorn."""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)

    setup_logger(settings.LOG_LEVEL.upper(), settings.LOG_DIR)
    app = create_app(settings)

    logger.info("🚀 [MCP SERVER] Dify MCP SSE server running on http://{}:{}", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run_sse()
