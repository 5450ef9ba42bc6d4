"""Centralised error types for the Dify MCP server.

Each custom error is JSON-serialisable via ``to_dict`` and knows which MCP
error code it maps to when it has to cross the protocol boundary.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData


class DifyMcpError(Exception):
    """Base class for all structured exceptions of this package."""

    code: str = "DIFY_MCP_ERROR"
    rpc_code: int = INTERNAL_ERROR

    def __init__(self, message: str, *, data: Optional[Dict[str, Any]] = None) -> None:  # noqa: D401 – simple init
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – utility
        return {
            "status": "error",
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }

    def to_mcp_error(self) -> McpError:
        """Wrap the error so the MCP session reports it as a JSON-RPC error."""
        return McpError(ErrorData(code=self.rpc_code, message=self.message, data=self.data or None))

    def __str__(self) -> str:  # noqa: D401 – friendly repr
        return f"{self.code}: {self.message}"


class ConfigurationError(DifyMcpError):
    code = "CONFIGURATION_ERROR"


class ValidationError(DifyMcpError):
    """Tool arguments are missing or malformed."""

    code = "INVALID_PARAMS"
    rpc_code = INVALID_PARAMS


class UnknownToolError(DifyMcpError):
    code = "METHOD_NOT_FOUND"
    rpc_code = METHOD_NOT_FOUND


class UploadError(DifyMcpError):
    """The remote file upload did not succeed."""

    code = "UPLOAD_ERROR"


class ChatCallError(DifyMcpError):
    """The remote chat call failed before or while streaming."""

    code = "CHAT_CALL_ERROR"

    def __init__(self, message: str, *, status_code: Optional[int] = None, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, data=data)
        self.status_code = status_code


class StreamParseError(DifyMcpError):
    """A single streamed record could not be parsed. Never raised by the aggregator."""

    code = "STREAM_PARSE_ERROR"

    def __init__(self, message: str, *, line: str = "") -> None:
        super().__init__(message, data={"line": line})
        self.line = line


class ChannelStateError(DifyMcpError):
    """A client message arrived while no SSE channel is open."""

    code = "CHANNEL_STATE_ERROR"
