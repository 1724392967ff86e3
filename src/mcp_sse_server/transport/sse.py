"""Two-leg SSE transport.

Binds the push stream (``GET /sse``) to a new session and request-leg
submissions (``POST /message/{sessionId}``) to an existing one:

    subscribe -> open_session -> channel.stream()   (endpoint, ping, message...)
    submit    -> decode -> dispatch -> channel.publish_message()

Requests for sessions that are not live are dropped: there is no channel to
report the failure on.
"""

from __future__ import annotations

import logging

from starlette.requests import Request

from ..config import ServerConfig
from ..errors import EnvelopeError
from ..protocol.codec import decode_request
from ..protocol.dispatcher import Dispatcher
from ..protocol.types import JsonRpcResponse, create_error_response
from ..session import Session, SessionRegistry, generate_session_id
from .channel import OutboundChannel

logger = logging.getLogger(__name__)

# Session id used by POST /message when the client omits one
DEFAULT_SESSION_ID = "default"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def base_url_for(request: Request) -> str:
    """``scheme://host[:port]`` of the request, omitting default ports."""
    url = request.url
    host = url.hostname or ""
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal
    port = url.port
    if port is None or port in (80, 443):
        return f"{url.scheme}://{host}"
    return f"{url.scheme}://{host}:{port}"


class SseTransport:
    """Transport front shared by the HTTP routes."""

    def __init__(
        self,
        registry: SessionRegistry,
        dispatcher: Dispatcher,
        config: ServerConfig | None = None,
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.config = config or ServerConfig()

    def is_valid_origin(self, origin: str | None) -> bool:
        """Absent origins are allowed; present ones must match a prefix."""
        if not origin:
            return True
        return any(origin.startswith(prefix) for prefix in self.config.allowed_origins)

    def open_session(self, session_id: str | None, base_url: str) -> Session:
        """Create a session and its outbound channel.

        Raises:
            SessionExistsError: If ``session_id`` is already live
        """
        session_id = session_id or generate_session_id()
        channel = OutboundChannel(
            session_id,
            f"{base_url}/message/{session_id}",
            ping_interval=self.config.ping_interval,
            max_buffered=self.config.max_buffered_messages,
            overflow_policy=self.config.overflow_policy,
            on_close=self._on_channel_closed,
        )
        return self.registry.create(session_id, channel)

    def _on_channel_closed(self, channel: OutboundChannel) -> None:
        session = self.registry.get(channel.session_id)
        if session is not None and session.channel is channel:
            self.registry.discard(session)
            logger.info(f"MCP SSE client disconnected: {channel.session_id}")

    async def submit(self, session_id: str, data: str | bytes) -> JsonRpcResponse | None:
        """Handle one request-leg submission.

        Returns:
            The response that was published, or None when nothing was sent
            (notification, or no live session)
        """
        try:
            request = decode_request(data)
        except EnvelopeError as e:
            logger.warning(f"Malformed message for session {session_id}: {e.message}")
            return self._publish(session_id, create_error_response(e.request_id, e.code, e.message))

        session = self.registry.get(session_id)
        if session is None:
            logger.warning(
                f"No active connection for session {session_id}, "
                f"dropping {request.method} (id: {request.id})"
            )
            return None

        logger.debug(f"Received {request.method} (id: {request.id}) from session {session_id}")
        response = await self.dispatcher.dispatch(request, session)
        if response is None:
            return None
        return self._publish(session_id, response)

    def _publish(self, session_id: str, response: JsonRpcResponse) -> JsonRpcResponse | None:
        session = self.registry.get(session_id)
        if session is None:
            logger.warning(f"No active connection for session {session_id}, dropping response")
            return None
        if not session.channel.publish_message(response):
            return None
        return response

    def shutdown(self) -> None:
        """Close every live session."""
        live = self.registry.ids()
        closed = self.registry.close_all()
        if closed:
            logger.info(f"Closed {closed} session(s) on shutdown: {', '.join(live)}")
