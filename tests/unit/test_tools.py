"""Unit tests for the capability registry and built-in tools."""

from __future__ import annotations

from typing import Any

import pytest

from mcp_sse_server.errors import ToolExecutionError, ToolNotFoundError
from mcp_sse_server.tools import (
    EchoTool,
    GetTimeTool,
    HelloWorldTool,
    Tool,
    ToolDefinition,
    ToolRegistry,
    create_default_registry,
)


class FailingTool:
    """Tool that always raises."""

    definition = ToolDefinition(name="fail", description="Always fails")

    async def execute(self, arguments: dict[str, Any]) -> str:
        raise RuntimeError("kaput")


class UpperTool:
    definition = ToolDefinition(name="upper", description="Upper-cases text")

    async def execute(self, arguments: dict[str, Any]) -> str:
        return str(arguments.get("text", "")).upper()


# =============================================================================
# ToolDefinition Tests
# =============================================================================


class TestToolDefinition:
    """Tests for ToolDefinition."""

    def test_to_dict_uses_wire_names(self) -> None:
        definition = ToolDefinition(
            name="t",
            description="d",
            input_schema={"type": "object", "properties": {"x": {"type": "string"}}},
        )
        assert definition.to_dict() == {
            "name": "t",
            "description": "d",
            "inputSchema": {"type": "object", "properties": {"x": {"type": "string"}}},
        }

    def test_default_schema_is_empty_object(self) -> None:
        definition = ToolDefinition(name="t", description="d")
        assert definition.input_schema == {"type": "object", "properties": {}}

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="name"):
            ToolDefinition(name="", description="d")

    def test_builtins_satisfy_protocol(self) -> None:
        assert isinstance(EchoTool(), Tool)
        assert isinstance(HelloWorldTool(), Tool)
        assert isinstance(GetTimeTool(), Tool)


# =============================================================================
# ToolRegistry Tests
# =============================================================================


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_default_registry_order(self) -> None:
        """Built-ins are listed in registration order."""
        registry = create_default_registry()
        assert [d.name for d in registry.list_tools()] == ["hello_world", "get_time", "echo"]
        assert registry.count == 3

    def test_register_duplicate_raises(self) -> None:
        registry = ToolRegistry()
        registry.register(UpperTool())
        with pytest.raises(ValueError, match="already registered"):
            registry.register(UpperTool())

    def test_register_or_replace(self) -> None:
        registry = ToolRegistry()
        assert registry.register_or_replace(UpperTool()) is False
        assert registry.register_or_replace(UpperTool()) is True
        assert registry.count == 1

    def test_unregister(self) -> None:
        registry = create_default_registry()
        assert registry.unregister("echo") is True
        assert registry.has("echo") is False
        assert registry.unregister("echo") is False

    @pytest.mark.asyncio
    async def test_invoke(self) -> None:
        registry = ToolRegistry()
        registry.register(UpperTool())
        assert await registry.invoke("upper", {"text": "hi"}) == "HI"

    @pytest.mark.asyncio
    async def test_invoke_unknown_raises_not_found(self) -> None:
        registry = create_default_registry()
        with pytest.raises(ToolNotFoundError) as exc_info:
            await registry.invoke("missing", {})
        assert exc_info.value.tool_name == "missing"

    @pytest.mark.asyncio
    async def test_invoke_failure_raises_execution_error(self) -> None:
        registry = ToolRegistry()
        registry.register(FailingTool())
        with pytest.raises(ToolExecutionError, match="kaput"):
            await registry.invoke("fail", {})


# =============================================================================
# Built-in Tool Tests
# =============================================================================


class TestBuiltinTools:
    """Tests for hello_world, get_time and echo."""

    @pytest.mark.asyncio
    async def test_hello_world_default(self) -> None:
        assert await HelloWorldTool().execute({}) == "Hello, World!"

    @pytest.mark.asyncio
    async def test_hello_world_empty_name(self) -> None:
        assert await HelloWorldTool().execute({"name": ""}) == "Hello, World!"

    @pytest.mark.asyncio
    async def test_hello_world_named(self) -> None:
        assert await HelloWorldTool().execute({"name": "Ada"}) == "Hello, Ada!"

    @pytest.mark.asyncio
    async def test_echo(self) -> None:
        assert await EchoTool().execute({"message": "hi"}) == "Echo: hi"

    @pytest.mark.asyncio
    async def test_echo_empty(self) -> None:
        assert await EchoTool().execute({}) == "Echo: (empty message)"

    @pytest.mark.asyncio
    async def test_get_time_format(self) -> None:
        text = await GetTimeTool().execute({})
        assert text.startswith("Current server time: ")
        # yyyy-MM-dd HH:mm:ss
        assert len(text.removeprefix("Current server time: ")) == 19
