"""MCP request dispatcher.

Routes decoded requests to method handlers and turns every outcome into a
response envelope. Handshake state lives on the session, so the dispatcher
itself holds no per-client state:

    UNINITIALIZED --notifications/initialized--> INITIALIZED

Notifications never produce a response, not even on failure.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from ..errors import JsonRpcProtocolError, ToolError
from ..tools import ToolRegistry
from .types import (
    PROTOCOL_VERSION,
    CallToolResult,
    InitializeResult,
    JsonRpcErrorCode,
    JsonRpcRequest,
    JsonRpcResponse,
    ServerInfo,
    TextContent,
    create_error_response,
    create_result_response,
)

if TYPE_CHECKING:
    from ..session import Session

logger = logging.getLogger(__name__)

INITIALIZE = "initialize"
INITIALIZED_NOTIFICATION = "notifications/initialized"
TOOLS_LIST = "tools/list"
TOOLS_CALL = "tools/call"

MethodHandler = Callable[["Session", dict[str, Any]], Awaitable[Any]]


class Dispatcher:
    """Stateless protocol state machine over per-session handshake state."""

    def __init__(
        self,
        tools: ToolRegistry,
        *,
        server_name: str = "MCP SSE Server",
        server_version: str = "0.1.0",
        require_initialized: bool = False,
    ) -> None:
        self._tools = tools
        self._server_info = ServerInfo(name=server_name, version=server_version)
        self._require_initialized = require_initialized

        self._handlers: dict[str, MethodHandler] = {
            INITIALIZE: self._initialize,
            INITIALIZED_NOTIFICATION: self._initialized,
            TOOLS_LIST: self._list_tools,
            TOOLS_CALL: self._call_tool,
        }
        self._gated = frozenset({TOOLS_LIST, TOOLS_CALL})

    async def dispatch(self, request: JsonRpcRequest, session: Session) -> JsonRpcResponse | None:
        """Handle one request for ``session``.

        Returns:
            The response envelope, or None for notifications
        """
        method = request.method
        params = request.params or {}

        if request.is_notification:
            await self._dispatch_notification(method, params, session)
            return None

        try:
            handler = self._handlers.get(method)
            if handler is None:
                raise JsonRpcProtocolError(
                    JsonRpcErrorCode.METHOD_NOT_FOUND,
                    f"Method not found: {method}",
                )

            if self._blocked(method, session):
                raise JsonRpcProtocolError(
                    JsonRpcErrorCode.SERVER_NOT_INITIALIZED,
                    "Server not initialized. Complete the initialize handshake first.",
                )

            result = await handler(session, params)
            return create_result_response(request.id, result)

        except JsonRpcProtocolError as e:
            logger.warning(f"Request {method} (id: {request.id}) failed: {e.message}")
            return create_error_response(request.id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception(f"Error handling request {method}: {e}")
            return create_error_response(
                request.id,
                JsonRpcErrorCode.INTERNAL_ERROR,
                f"Internal error: {e}",
            )

    def _blocked(self, method: str, session: Session) -> bool:
        return method in self._gated and self._require_initialized and not session.initialized

    async def _dispatch_notification(
        self, method: str, params: dict[str, Any], session: Session
    ) -> None:
        handler = self._handlers.get(method)
        if handler is None:
            logger.warning(f"Ignoring unknown notification {method} from session {session.id}")
            return

        if self._blocked(method, session):
            logger.warning(
                f"Ignoring {method} notification before handshake from session {session.id}"
            )
            return

        try:
            await handler(session, params)
        except Exception as e:
            logger.exception(f"Error handling notification {method}: {e}")

    # -------------------------------------------------------------------------
    # Method handlers
    # -------------------------------------------------------------------------

    async def _initialize(self, session: Session, params: dict[str, Any]) -> InitializeResult:
        client_info = params.get("clientInfo")
        if not isinstance(client_info, dict):
            client_info = {}
        logger.info(
            f"Initialize from session {session.id} "
            f"(client: {client_info.get('name', 'unknown')}, "
            f"requested version: {params.get('protocolVersion', 'n/a')})"
        )
        return InitializeResult(protocolVersion=PROTOCOL_VERSION, serverInfo=self._server_info)

    async def _initialized(self, session: Session, params: dict[str, Any]) -> None:
        session.initialized = True
        logger.info(f"Handshake complete for session {session.id}")

    async def _list_tools(self, session: Session, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": [definition.to_dict() for definition in self._tools.list_tools()]}

    async def _call_tool(self, session: Session, params: dict[str, Any]) -> CallToolResult:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise JsonRpcProtocolError(
                JsonRpcErrorCode.INVALID_PARAMS,
                "Invalid params: 'name' must be a non-empty string",
            )

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict):
            raise JsonRpcProtocolError(
                JsonRpcErrorCode.INVALID_PARAMS,
                "Invalid params: 'arguments' must be an object",
            )

        logger.debug(f"Calling tool {name} for session {session.id} with {arguments}")
        try:
            text = await self._tools.invoke(name, arguments)
        except ToolError as e:
            raise JsonRpcProtocolError(
                JsonRpcErrorCode.INTERNAL_ERROR, str(e), {"tool": e.tool_name}
            ) from e

        return CallToolResult(content=[TextContent(text=text)])
