"""Tests for the tool registry: entry-point discovery and model-less tools."""

import json

import httpx
import mcp.types as types
import pytest

from dify_mcp.chat import ChatService
from dify_mcp.mcp import plugin
from dify_mcp.mcp.server import create_mcp_server
from dify_mcp.mcp.tools import CODEGEN_TOOL_NAME
from dify_mcp.request_builder import PIPE_USER

from tests.helpers import make_client


@pytest.fixture(autouse=True)
def restore_registry():
    saved = dict(plugin._REGISTRY)
    yield
    plugin._REGISTRY.clear()
    plugin._REGISTRY.update(saved)


class FakeEntryPoint:
    def __init__(self, name, load):
        self.name = name
        self._load = load

    def load(self):
        return self._load()


def _register_lookup_tool():
    @plugin.tool("lookup-component", "Look up a component by name", {"type": "object"})
    async def lookup(arguments, chat):
        return types.CallToolResult(content=[types.TextContent(type="text", text="ok")])

    return lookup


def _broken_load():
    raise ImportError("missing optional dependency")


def test_entry_point_tools_are_discovered_and_failures_skipped(monkeypatch):
    groups = []

    def fake_entry_points(group):
        groups.append(group)
        return [
            FakeEntryPoint("broken", _broken_load),
            FakeEntryPoint("lookup", _register_lookup_tool),
        ]

    monkeypatch.setattr(plugin, "entry_points", fake_entry_points)
    plugin.discover()

    names = [t.name for t in plugin.list_tools()]
    assert groups == ["dify_mcp.tools"]
    assert "lookup-component" in names
    assert CODEGEN_TOOL_NAME in names


@pytest.mark.asyncio
async def test_tool_without_request_model_receives_raw_arguments():
    calls = []

    def remote(request):
        calls.append(request)
        return httpx.Response(500)

    @plugin.tool("echo-arguments", "Echo the raw arguments", {"type": "object"})
    async def echo(arguments, chat):
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=json.dumps(arguments, sort_keys=True))]
        )

    server = create_mcp_server(ChatService(make_client(remote), PIPE_USER))
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name="echo-arguments", arguments={"b": 2, "a": [1]}),
    )
    result = (await handler(request)).root

    assert result.isError is False
    assert result.content[0].text == '{"a": [1], "b": 2}'
    assert calls == []
    assert plugin.parse_arguments("echo-arguments", None) == {}
