"""MCP HTTP routes.

- GET  /sse                      - Push stream (endpoint, ping, message events)
- POST /message/{session_id}     - Request leg, session in the path
- POST /message?sessionId=...    - Request leg, session in the query string

The request leg only acknowledges receipt (202); responses are delivered
asynchronously on the push stream.
"""

from __future__ import annotations

import logging
from contextlib import aclosing

from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

from ..errors import SessionExistsError
from ..transport.channel import OutboundChannel
from ..transport.sse import DEFAULT_SESSION_ID, SSE_HEADERS, SseTransport, base_url_for

logger = logging.getLogger(__name__)


class ChannelStreamResponse(StreamingResponse):
    """Event stream that closes its channel when the response ends.

    Covers clients that disconnect before the body iterator is first read,
    in which case the generator's own cleanup never runs.
    """

    def __init__(self, content, channel: OutboundChannel) -> None:
        super().__init__(content, media_type="text/event-stream", headers=SSE_HEADERS)
        self.channel = channel

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.channel.close()


def _transport(request: Request) -> SseTransport:
    return request.app.state.transport


def _rejected_origin(origin: str | None) -> JSONResponse:
    logger.warning(f"Invalid origin rejected: {origin}")
    return JSONResponse({"error": "Invalid origin"}, status_code=403)


async def sse_endpoint(request: Request) -> Response:
    """Open a push stream for a new session.

    GET /sse?clientId=<optional id>
    """
    transport = _transport(request)
    origin = request.headers.get("origin")
    if not transport.is_valid_origin(origin):
        return _rejected_origin(origin)

    try:
        session = transport.open_session(
            request.query_params.get("clientId"),
            base_url_for(request),
        )
    except SessionExistsError as e:
        return JSONResponse({"error": str(e)}, status_code=409)

    logger.info(f"MCP SSE client connected: {session.id} from origin: {origin}")
    channel = session.channel

    async def event_stream():
        try:
            async with aclosing(channel.stream(request.is_disconnected)) as events:
                async for event in events:
                    yield event.encode()
        except Exception as e:
            logger.exception(f"MCP SSE error for client {session.id}: {e}")
        finally:
            channel.close()

    return ChannelStreamResponse(event_stream(), channel)


async def message_endpoint(request: Request) -> Response:
    """Accept one JSON-RPC envelope for a session.

    POST /message/{session_id}
    POST /message?sessionId=<id>
    """
    transport = _transport(request)
    origin = request.headers.get("origin")
    if not transport.is_valid_origin(origin):
        return _rejected_origin(origin)

    session_id = (
        request.path_params.get("session_id")
        or request.query_params.get("sessionId")
        or DEFAULT_SESSION_ID
    )

    body = await request.body()
    await transport.submit(session_id, body)
    return Response(status_code=202)


mcp_routes = [
    Route("/sse", sse_endpoint, methods=["GET"]),
    Route("/message/{session_id}", message_endpoint, methods=["POST"]),
    Route("/message", message_endpoint, methods=["POST"]),
]
