from __future__ import annotations

import mcp.types as types
from loguru import logger

from dify_mcp.chat import ChatService
from dify_mcp.errors import ChatCallError
from dify_mcp.mcp.plugin import tool
from dify_mcp.models import ChatRequest

CODEGEN_TOOL_NAME = "antd-component-codegen-mcp-tool"

codegen_schema = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": "The message to send",
        },
        "imageFilePath": {
            "type": "string",
            "description": "The image file absolute path to send",
        },
    },
    "required": ["query"],
}


@tool(
    CODEGEN_TOOL_NAME,
    "Send a message to Dify chat API for generating antd biz components code",
    codegen_schema,
    request_model=ChatRequest,
)
async def codegen_tool(request: ChatRequest, chat: ChatService) -> types.CallToolResult:
    """Forward the query (and image) to the chat API and return the aggregated answer.

    A failed chat call becomes an ``isError`` result; upload failures propagate.
    """
    try:
        result = await chat.run(request)
    except ChatCallError as exc:
        logger.error("💥 [MCP SERVER] Chat call failed: {}", exc.message)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=exc.message)],
            isError=True,
        )

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=result.text)],
        isError=result.is_error,
    )
