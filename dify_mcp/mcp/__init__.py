"""MCP front-ends: tool registry, stdio server and HTTP/SSE server."""

from .server import create_mcp_server, run_stdio
from .sse import ActiveChannel, create_app, run_sse

__all__ = ["create_mcp_server", "run_stdio", "ActiveChannel", "create_app", "run_sse"]
