from __future__ import annotations

from importlib.metadata import entry_points
from typing import Any, Callable, Dict, Optional, Type

import mcp.types as types
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dify_mcp.errors import UnknownToolError, ValidationError

_REGISTRY: Dict[str, Dict[str, Any]] = {}


def tool(name: str, description: str, input_schema: dict, request_model: Optional[Type[BaseModel]] = None):
    """Decorator to register an MCP tool implementation.

    The handler receives the validated *request_model* instance (or the raw
    arguments dict when no model is given) and the transport's chat service.

    Example:
        @tool("echo", "Echo the query", {"type": "object", "properties": {"query": {"type": "string"}}})
        async def echo_tool(arguments, chat):
            return types.CallToolResult(content=[types.TextContent(type="text", text=arguments["query"])])
    """

    def _decorator(fn: Callable):
        _REGISTRY[name] = {
            "fn": fn,
            "description": description,
            "inputSchema": input_schema,
            "model": request_model,
        }
        return fn

    return _decorator


def discover() -> Dict[str, Dict[str, Any]]:
    """Populate registry from local modules and entry-points; return the registry."""
    import importlib

    importlib.import_module("dify_mcp.mcp.tools")

    for ep in entry_points(group="dify_mcp.tools"):
        try:
            ep.load()
        except Exception as exc:
            logger.warning("Failed to load tool entry-point {}: {}", ep.name, exc)

    return _REGISTRY


def list_tools() -> list[types.Tool]:
    return [
        types.Tool(name=name, description=meta["description"], inputSchema=meta["inputSchema"])
        for name, meta in _REGISTRY.items()
    ]


def get_tool(name: str) -> Dict[str, Any]:
    if name not in _REGISTRY:
        raise UnknownToolError(f"Unknown tool: {name}")
    return _REGISTRY[name]


def parse_arguments(name: str, arguments: Optional[dict]) -> Any:
    """Validate *arguments* against the request model registered for *name*."""
    model = get_tool(name)["model"]
    arguments = arguments or {}
    if model is None:
        return arguments
    try:
        return model.model_validate(arguments)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid chat request arguments",
            data={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc
