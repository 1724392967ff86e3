"""JSON-RPC 2.0 envelope types.

Field names follow the MCP wire format (camelCase where the protocol
requires it) - do not change them to snake_case.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

# Protocol version echoed back on initialize
PROTOCOL_VERSION = "2024-11-05"

JSONRPC_VERSION = "2.0"

RequestId = str | int


# =============================================================================
# JSON-RPC 2.0 Base Types
# =============================================================================


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request. A request without an id is a notification."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    method: str
    params: dict[str, Any] | None = None
    id: RequestId | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response. Exactly one of result/error is set."""

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: RequestId | None = None
    result: Any | None = None
    error: JsonRpcError | None = None

    @model_validator(mode="after")
    def _result_xor_error(self) -> JsonRpcResponse:
        if (self.result is None) == (self.error is None):
            raise ValueError("response must carry exactly one of 'result' or 'error'")
        return self


# Standard JSON-RPC error codes
class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server-specific error codes
    SERVER_NOT_INITIALIZED = -32002


# =============================================================================
# MCP Result Types
# =============================================================================


class ToolsCapability(BaseModel):
    """Server support for capability listing."""

    listChanged: bool = True


class ServerCapabilities(BaseModel):
    """Capabilities advertised by the server on initialize."""

    tools: ToolsCapability = Field(default_factory=ToolsCapability)


class ServerInfo(BaseModel):
    """Server identity reported on initialize."""

    name: str
    version: str


class InitializeResult(BaseModel):
    """Result of the initialize method."""

    protocolVersion: str = PROTOCOL_VERSION
    capabilities: ServerCapabilities = Field(default_factory=ServerCapabilities)
    serverInfo: ServerInfo


class TextContent(BaseModel):
    """A single text content item returned by tools/call."""

    type: Literal["text"] = "text"
    text: str


class CallToolResult(BaseModel):
    """Result of the tools/call method."""

    content: list[TextContent]


# =============================================================================
# Helper functions
# =============================================================================


def create_result_response(request_id: RequestId | None, result: Any) -> JsonRpcResponse:
    """Create a JSON-RPC success response."""
    if result is None:
        result = {}
    elif isinstance(result, BaseModel):
        result = result.model_dump(exclude_none=True)
    return JsonRpcResponse(id=request_id, result=result)


def create_error_response(
    request_id: RequestId | None,
    code: int,
    message: str,
    data: Any | None = None,
) -> JsonRpcResponse:
    """Create a JSON-RPC error response."""
    return JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(code=code, message=message, data=data),
    )
