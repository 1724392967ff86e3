"""Exception hierarchy for the MCP SSE server."""

from __future__ import annotations

from typing import Any


class McpServerError(Exception):
    """Base class for all server errors."""


class JsonRpcProtocolError(McpServerError):
    """Raised inside a method handler to produce a specific JSON-RPC error."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class EnvelopeError(JsonRpcProtocolError):
    """An inbound message could not be decoded into a request.

    ``request_id`` is set when the id could still be read from the payload,
    so the error can be correlated.
    """

    def __init__(
        self,
        code: int,
        message: str,
        request_id: str | int | None = None,
    ) -> None:
        super().__init__(code, message)
        self.request_id = request_id


class SessionExistsError(McpServerError):
    """A session with the requested id is already live."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session already exists: {session_id}")
        self.session_id = session_id


class ChannelError(McpServerError):
    """Misuse of an outbound channel (e.g. a second subscriber)."""


class ToolError(McpServerError):
    """Base class for capability invocation failures."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """No capability is registered under the requested name."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool not found: {tool_name}")


class ToolExecutionError(ToolError):
    """A capability raised while executing."""
