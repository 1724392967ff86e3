"""Per-session outbound channel feeding the SSE push stream.

Each channel has exactly one consumer (its ``stream()``) and any number of
publishers (request-leg handlers and its own heartbeat). Publishing never
blocks: events go into a bounded FIFO buffer governed by an overflow policy.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from ..config import OverflowPolicy
from ..errors import ChannelError
from ..protocol.codec import encode_response
from ..protocol.types import JsonRpcResponse

logger = logging.getLogger(__name__)

ENDPOINT_EVENT = "endpoint"
PING_EVENT = "ping"
MESSAGE_EVENT = "message"

PING_DATA = '{"type":"ping"}'

DisconnectCheck = Callable[[], Awaitable[bool]]
CloseCallback = Callable[["OutboundChannel"], None]


@dataclass(frozen=True)
class SseEvent:
    """A single named Server-Sent Event."""

    event: str
    data: str

    def encode(self) -> str:
        """Render in text/event-stream format."""
        lines = self.data.splitlines() or [""]
        body = "".join(f"data: {line}\n" for line in lines)
        return f"event: {self.event}\n{body}\n"


class OutboundChannel:
    """Bounded, single-consumer event sink for one session.

    The stream always starts with the ``endpoint`` event, then yields
    published events in FIFO order interleaved with periodic ``ping``
    events. Closing is idempotent; the ``on_close`` callback runs once.
    """

    def __init__(
        self,
        session_id: str,
        endpoint_uri: str,
        *,
        ping_interval: float = 30.0,
        max_buffered: int = 1000,
        overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST,
        on_close: CloseCallback | None = None,
        disconnect_poll_interval: float = 1.0,
    ) -> None:
        self.session_id = session_id
        self.endpoint_uri = endpoint_uri
        self._ping_interval = ping_interval
        self._max_buffered = max_buffered
        self._overflow_policy = overflow_policy
        self._on_close = on_close
        self._poll_interval = disconnect_poll_interval

        self._buffer: deque[SseEvent] = deque()
        self._wakeup = asyncio.Event()
        self._closed = False
        self._subscribed = False
        self._dropped = 0
        self._heartbeat_task: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    @property
    def pending(self) -> int:
        """Number of events buffered and not yet drained."""
        return len(self._buffer)

    @property
    def dropped(self) -> int:
        """Number of events discarded by the drop-oldest policy."""
        return self._dropped

    def publish(self, event: SseEvent) -> bool:
        """Enqueue an event without blocking.

        Returns:
            False if the channel is (or becomes) closed and the event was
            not buffered, True otherwise
        """
        if self._closed:
            logger.debug(f"Dropping {event.event} event for closed session {self.session_id}")
            return False

        if len(self._buffer) >= self._max_buffered:
            if self._overflow_policy is OverflowPolicy.CLOSE:
                logger.warning(
                    f"Outbound buffer full for session {self.session_id} "
                    f"({self._max_buffered} events), closing"
                )
                self.close()
                return False

            dropped = self._buffer.popleft()
            self._dropped += 1
            logger.warning(
                f"Outbound buffer full for session {self.session_id}, "
                f"dropped oldest {dropped.event} event"
            )

        self._buffer.append(event)
        self._wakeup.set()
        return True

    def publish_message(self, response: JsonRpcResponse) -> bool:
        """Encode a JSON-RPC envelope and enqueue it as a ``message`` event."""
        return self.publish(SseEvent(MESSAGE_EVENT, encode_response(response)))

    async def stream(self, is_disconnected: DisconnectCheck | None = None) -> AsyncIterator[SseEvent]:
        """Iterate over the session's events until the channel closes.

        Args:
            is_disconnected: Optional check polled while idle (e.g. the
                request's ``is_disconnected``); the stream ends when it
                returns True

        Raises:
            ChannelError: If the channel already has a subscriber or is closed
        """
        if self._subscribed:
            raise ChannelError(f"Session {self.session_id} already has a subscriber")
        if self._closed:
            raise ChannelError(f"Session {self.session_id} is closed")
        self._subscribed = True

        self._heartbeat_task = asyncio.create_task(self._heartbeat())

        try:
            yield SseEvent(ENDPOINT_EVENT, self.endpoint_uri)

            while True:
                while self._buffer:
                    yield self._buffer.popleft()

                if self._closed:
                    break

                if is_disconnected is not None and await is_disconnected():
                    logger.info(f"Client disconnected: {self.session_id}")
                    break

                self._wakeup.clear()
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(self._wakeup.wait(), timeout=self._poll_interval)
        finally:
            self._heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat_task
            self.close()

    async def _heartbeat(self) -> None:
        """Publish a ping on a fixed interval while the channel is open."""
        while not self._closed:
            await asyncio.sleep(self._ping_interval)
            self.publish(SseEvent(PING_EVENT, PING_DATA))

    def close(self) -> None:
        """Stop buffering, end the stream and run the close callback once."""
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        self._wakeup.set()

        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()

        if self._on_close is not None:
            try:
                self._on_close(self)
            except Exception:
                logger.exception(f"Error in close callback for session {self.session_id}")
