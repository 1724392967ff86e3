"""SDK Client - Connects to an MCP SSE server.

Speaks both legs of the protocol: it holds the push stream open, learns the
request-leg endpoint from the ``endpoint`` event, posts envelopes there and
correlates responses arriving on the stream by id.

Usage:
    async with McpSseClient("http://localhost:8080") as client:
        await client.initialize()
        text = await client.call_tool("echo", {"message": "hi"})
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from collections.abc import AsyncIterator, Iterable, Iterator
from typing import Any

import httpx

from ..errors import EnvelopeError, JsonRpcProtocolError, McpServerError
from ..protocol.codec import decode_response, encode_request
from ..protocol.types import PROTOCOL_VERSION, JsonRpcRequest
from ..transport.channel import ENDPOINT_EVENT, MESSAGE_EVENT, SseEvent

logger = logging.getLogger(__name__)


class SseParser:
    """Incremental text/event-stream parser.

    Feed it one line at a time (without the trailing newline); it returns an
    event whenever a blank line completes one.
    """

    def __init__(self) -> None:
        self._event = "message"
        self._data: list[str] = []

    def feed(self, line: str) -> SseEvent | None:
        if not line:
            if not self._data:
                self._event = "message"
                return None
            event = SseEvent(self._event, "\n".join(self._data))
            self._event = "message"
            self._data = []
            return event

        if line.startswith(":"):
            return None  # Comment

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        return None


def parse_sse_lines(lines: Iterable[str]) -> Iterator[SseEvent]:
    """Parse complete events out of an iterable of lines."""
    parser = SseParser()
    for line in lines:
        event = parser.feed(line.rstrip("\r\n"))
        if event is not None:
            yield event


class McpSseClient:
    """Async client for the two-leg MCP SSE protocol."""

    def __init__(
        self,
        base_url: str,
        *,
        client_id: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.timeout = timeout
        self.endpoint: str | None = None

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout, read=None),  # No read timeout for SSE
        )
        self._response: httpx.Response | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._pending: dict[str | int, asyncio.Future[Any]] = {}
        self._ids = itertools.count(1)

    async def __aenter__(self) -> McpSseClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def connect(self) -> str:
        """Open the push stream and wait for the endpoint announcement.

        Returns:
            The request-leg URI announced by the server
        """
        params = {"clientId": self.client_id} if self.client_id else None
        response = await self._client.send(
            self._client.build_request("GET", "/sse", params=params),
            stream=True,
        )
        response.raise_for_status()
        self._response = response

        events = self._events(response)
        first = await asyncio.wait_for(anext(events), timeout=self.timeout)
        if first.event != ENDPOINT_EVENT:
            raise McpServerError(f"Expected '{ENDPOINT_EVENT}' event, got '{first.event}'")

        self.endpoint = first.data
        self._reader_task = asyncio.create_task(self._read_loop(events))
        logger.info(f"Connected to {self.base_url}, endpoint {self.endpoint}")
        return self.endpoint

    async def _events(self, response: httpx.Response) -> AsyncIterator[SseEvent]:
        parser = SseParser()
        async for line in response.aiter_lines():
            event = parser.feed(line)
            if event is not None:
                yield event

    async def _read_loop(self, events: AsyncIterator[SseEvent]) -> None:
        try:
            async for event in events:
                if event.event == MESSAGE_EVENT:
                    self._resolve(event.data)
        except httpx.HTTPError as e:
            logger.warning(f"Push stream lost: {e}")
        finally:
            for future in self._pending.values():
                if not future.done():
                    future.set_exception(McpServerError("Push stream closed"))
            self._pending.clear()

    def _resolve(self, data: str) -> None:
        try:
            response = decode_response(data)
        except EnvelopeError as e:
            logger.warning(f"Ignoring undecodable message: {e.message}")
            return

        future = self._pending.pop(response.id, None) if response.id is not None else None
        if future is None:
            logger.warning(f"Received response for unknown request: {response.id}")
            return
        if future.done():
            return

        if response.error is not None:
            future.set_exception(
                JsonRpcProtocolError(
                    response.error.code,
                    response.error.message,
                    response.error.data,
                )
            )
        else:
            future.set_result(response.result)

    async def _post(self, request: JsonRpcRequest) -> None:
        if self.endpoint is None:
            raise McpServerError("Not connected. Call connect() first.")
        response = await self._client.post(
            self.endpoint,
            content=encode_request(request),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()

    async def request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Send a request and wait for its correlated response.

        Raises:
            JsonRpcProtocolError: If the server answered with an error
        """
        request_id = str(next(self._ids))
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._post(JsonRpcRequest(method=method, params=params, id=request_id))
            return await asyncio.wait_for(future, timeout=self.timeout)
        finally:
            self._pending.pop(request_id, None)

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification (no response expected)."""
        await self._post(JsonRpcRequest(method=method, params=params))

    async def initialize(
        self,
        client_name: str = "mcp-sse-client",
        client_version: str = "0.1.0",
    ) -> dict[str, Any]:
        """Perform the initialize / initialized handshake."""
        result = await self.request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": client_name, "version": client_version},
            },
        )
        await self.notify("notifications/initialized")
        return result

    async def list_tools(self) -> list[dict[str, Any]]:
        result = await self.request("tools/list")
        return result.get("tools", [])

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """Invoke a tool and return its text content."""
        result = await self.request("tools/call", {"name": name, "arguments": arguments or {}})
        return "".join(
            item.get("text", "") for item in result.get("content", []) if item.get("type") == "text"
        )

    async def close(self) -> None:
        """Close the push stream and the HTTP client."""
        if self._reader_task is not None:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None
        if self._response is not None:
            await self._response.aclose()
            self._response = None
        if self._owns_client:
            await self._client.aclose()
