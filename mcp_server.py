#!/usr/bin/env python3
"""
Dify MCP Server - HTTP Entry Point

Runs the MCP server as a standalone HTTP/SSE application using uvicorn.
Use ``dify-mcp-stdio`` to run it as a stdio subprocess instead.
"""

from dify_mcp.mcp.sse import run_sse

if __name__ == "__main__":
    run_sse()
