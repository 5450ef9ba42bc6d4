"""MCP server wiring and the stdio entry point."""

import asyncio
import sys

import mcp.server.stdio
import mcp.types as types
from loguru import logger
from mcp.server import Server

from dify_mcp.chat import ChatService
from dify_mcp.client import DifyClient
from dify_mcp.errors import ConfigurationError, DifyMcpError
from dify_mcp.logging import setup_logger
from dify_mcp.request_builder import PIPE_USER
from dify_mcp.settings import load_settings

from .plugin import discover, get_tool, list_tools, parse_arguments

SERVER_NAME = "dify-chat-server"
SERVER_VERSION = "0.1.0"


def create_mcp_server(chat: ChatService) -> Server:
    """Create the MCP server exposing every registered tool through *chat*."""

    server = Server(SERVER_NAME, version=SERVER_VERSION)
    discover()

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        """List available tools."""
        return list_tools()

    async def handle_call_tool(req: types.CallToolRequest) -> types.ServerResult:
        name = req.params.name
        arguments = req.params.arguments or {}
        logger.info("🔧 [MCP SERVER] Tool called: {} (user={})", name, chat.user)

        try:
            entry = get_tool(name)
            request = parse_arguments(name, arguments)
            result = await entry["fn"](request, chat)
        except DifyMcpError as exc:
            logger.error("💥 [MCP SERVER] Error handling tool {}: {}", name, exc)
            raise exc.to_mcp_error() from exc

        return types.ServerResult(result)

    # Registered directly: McpError raised here must reach the client as a
    # JSON-RPC error rather than an isError tool result.
    server.request_handlers[types.CallToolRequest] = handle_call_tool

    return server


async def serve_stdio(chat: ChatService) -> None:
    server = create_mcp_server(chat)
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        logger.info("🚀 [MCP SERVER] Dify MCP server running on stdio")
        await server.run(read_stream, write_stream, server.create_initialization_options())


async def _main(settings) -> None:
    async with DifyClient.from_settings(settings) as client:
        chat = ChatService(client, PIPE_USER, buffered=not settings.LEGACY_CHUNK_SPLITTING)
        await serve_stdio(chat)


def run_stdio() -> None:
    """Run the MCP server over stdin/stdout until EOF or Ctrl+C."""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)

    setup_logger(settings.LOG_LEVEL.upper(), settings.LOG_DIR)

    try:
        asyncio.run(_main(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, closing stdio channel")
        sys.exit(0)


if __name__ == "__main__":
    run_stdio()
