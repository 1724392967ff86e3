"""Capability registry and built-in tools.

Architecture:
- ToolDefinition: Immutable descriptor (name, description, input schema)
- Tool: Protocol every capability implements (definition + execute)
- ToolRegistry: Name-keyed registry; the dispatcher's only view of tools

Usage:
    registry = create_default_registry()
    registry.register(MyTool())

    text = await registry.invoke("echo", {"message": "hi"})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from .errors import ToolExecutionError, ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDefinition:
    """Descriptor of a callable capability.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description
        input_schema: JSON Schema for the tool's arguments
    """

    name: str
    description: str
    input_schema: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool name cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        """Wire form used by tools/list."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@runtime_checkable
class Tool(Protocol):
    """Protocol implemented by every capability."""

    @property
    def definition(self) -> ToolDefinition: ...

    async def execute(self, arguments: dict[str, Any]) -> str: ...


class ToolRegistry:
    """Name-keyed registry of capabilities.

    Registration order is preserved in listings.
    """

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        name = tool.definition.name
        if name in self._tools:
            raise ValueError(f"Tool '{name}' already registered")
        self._tools[name] = tool
        logger.info(f"Registered tool: {name}")

    def register_or_replace(self, tool: Tool) -> bool:
        """Register a tool, replacing any existing one. Returns True if replaced."""
        name = tool.definition.name
        replaced = name in self._tools
        self._tools[name] = tool
        action = "Replaced" if replaced else "Registered"
        logger.info(f"{action} tool: {name}")
        return replaced

    def unregister(self, name: str) -> bool:
        """Unregister a tool by name. Returns False if it was not registered."""
        if self._tools.pop(name, None) is None:
            return False
        logger.info(f"Unregistered tool: {name}")
        return True

    def has(self, name: str) -> bool:
        return name in self._tools

    @property
    def count(self) -> int:
        """Number of registered tools."""
        return len(self._tools)

    def list_tools(self) -> list[ToolDefinition]:
        """Descriptors of all registered tools, in registration order."""
        return [tool.definition for tool in self._tools.values()]

    async def invoke(self, name: str, arguments: dict[str, Any]) -> str:
        """Invoke a tool by name.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
            ToolExecutionError: If the tool raised
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        try:
            return await tool.execute(arguments)
        except Exception as e:
            logger.error(f"Tool '{name}' execution error: {e}")
            raise ToolExecutionError(name, f"Error executing tool '{name}': {e}") from e


# =============================================================================
# Built-in tools
# =============================================================================


class HelloWorldTool:
    """Greets the caller by name."""

    definition = ToolDefinition(
        name="hello_world",
        description="Returns a Hello World message",
        input_schema={
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Name to greet (optional)",
                },
            },
        },
    )

    async def execute(self, arguments: dict[str, Any]) -> str:
        name = arguments.get("name") or "World"
        return f"Hello, {name}!"


class GetTimeTool:
    """Reports the server's local time."""

    definition = ToolDefinition(
        name="get_time",
        description="Returns current server time",
        input_schema={"type": "object", "properties": {}},
    )

    async def execute(self, arguments: dict[str, Any]) -> str:
        return f"Current server time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"


class EchoTool:
    """Echoes the message argument back."""

    definition = ToolDefinition(
        name="echo",
        description="Echoes back the provided message",
        input_schema={
            "type": "object",
            "properties": {
                "message": {
                    "type": "string",
                    "description": "Message to echo back",
                },
            },
        },
    )

    async def execute(self, arguments: dict[str, Any]) -> str:
        message = arguments.get("message")
        if not message:
            return "Echo: (empty message)"
        return f"Echo: {message}"


def create_default_registry() -> ToolRegistry:
    """Registry pre-populated with the built-in tools."""
    registry = ToolRegistry()
    for tool in (HelloWorldTool(), GetTimeTool(), EchoTool()):
        registry.register(tool)
    return registry
