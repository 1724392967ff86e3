"""Unit tests for the outbound channel and SSE event framing."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mcp_sse_server.config import OverflowPolicy
from mcp_sse_server.errors import ChannelError
from mcp_sse_server.protocol.types import create_result_response
from mcp_sse_server.transport.channel import (
    ENDPOINT_EVENT,
    MESSAGE_EVENT,
    PING_DATA,
    PING_EVENT,
    OutboundChannel,
    SseEvent,
)

ENDPOINT = "http://localhost:8080/message/s1"


def make_channel(**kwargs) -> OutboundChannel:
    kwargs.setdefault("ping_interval", 60.0)
    kwargs.setdefault("disconnect_poll_interval", 0.05)
    return OutboundChannel("s1", ENDPOINT, **kwargs)


def message(data: str) -> SseEvent:
    return SseEvent(MESSAGE_EVENT, data)


async def next_event(stream, timeout: float = 1.0) -> SseEvent:
    return await asyncio.wait_for(anext(stream), timeout=timeout)


# =============================================================================
# SseEvent Tests
# =============================================================================


class TestSseEvent:
    """Tests for text/event-stream framing."""

    def test_encode(self) -> None:
        event = SseEvent("message", '{"a":1}')
        assert event.encode() == 'event: message\ndata: {"a":1}\n\n'

    def test_encode_multiline_data(self) -> None:
        event = SseEvent("message", "line1\nline2")
        assert event.encode() == "event: message\ndata: line1\ndata: line2\n\n"

    def test_encode_empty_data(self) -> None:
        assert SseEvent("ping", "").encode() == "event: ping\ndata: \n\n"


# =============================================================================
# Stream Ordering
# =============================================================================


class TestChannelStream:
    """Tests for OutboundChannel.stream()."""

    @pytest.mark.asyncio
    async def test_endpoint_is_first_event(self) -> None:
        """The endpoint event precedes messages published before subscription."""
        channel = make_channel()
        channel.publish(message("early"))

        stream = channel.stream()
        first = await next_event(stream)
        second = await next_event(stream)
        await stream.aclose()

        assert first == SseEvent(ENDPOINT_EVENT, ENDPOINT)
        assert second == message("early")

    @pytest.mark.asyncio
    async def test_messages_in_publish_order(self) -> None:
        channel = make_channel()
        stream = channel.stream()
        await next_event(stream)

        for i in range(5):
            channel.publish(message(str(i)))

        received = [(await next_event(stream)).data for _ in range(5)]
        await stream.aclose()

        assert received == ["0", "1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_publish_wakes_waiting_consumer(self) -> None:
        """A consumer blocked on an empty buffer receives a later publish."""
        channel = make_channel(disconnect_poll_interval=10.0)
        stream = channel.stream()
        await next_event(stream)

        pending = asyncio.ensure_future(next_event(stream))
        await asyncio.sleep(0.01)
        channel.publish(message("late"))

        assert (await pending).data == "late"
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_pings_do_not_reorder_messages(self) -> None:
        """Liveness pings interleave without reordering application messages."""
        channel = make_channel(ping_interval=0.01)
        stream = channel.stream()
        await next_event(stream)

        async def publisher() -> None:
            for i in range(5):
                channel.publish(message(str(i)))
                await asyncio.sleep(0.015)

        task = asyncio.create_task(publisher())
        messages: list[str] = []
        pings = 0
        while len(messages) < 5:
            event = await next_event(stream)
            if event.event == PING_EVENT:
                pings += 1
                assert event.data == PING_DATA
            else:
                messages.append(event.data)
        await task
        await stream.aclose()

        assert messages == ["0", "1", "2", "3", "4"]
        assert pings > 0

    @pytest.mark.asyncio
    async def test_ping_emitted_when_idle(self) -> None:
        channel = make_channel(ping_interval=0.02)
        stream = channel.stream()
        await next_event(stream)

        event = await next_event(stream)
        await stream.aclose()

        assert event.event == PING_EVENT
        assert json.loads(event.data) == {"type": "ping"}

    @pytest.mark.asyncio
    async def test_second_subscriber_rejected(self) -> None:
        channel = make_channel()
        stream = channel.stream()
        await next_event(stream)

        with pytest.raises(ChannelError):
            await anext(channel.stream())
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_closed_channel_cannot_be_subscribed(self) -> None:
        channel = make_channel()
        channel.close()
        with pytest.raises(ChannelError):
            await anext(channel.stream())

    @pytest.mark.asyncio
    async def test_publish_message_encodes_envelope(self) -> None:
        channel = make_channel()
        stream = channel.stream()
        await next_event(stream)

        channel.publish_message(create_result_response("1", {"ok": True}))
        event = await next_event(stream)
        await stream.aclose()

        assert event.event == MESSAGE_EVENT
        assert json.loads(event.data) == {"jsonrpc": "2.0", "id": "1", "result": {"ok": True}}


# =============================================================================
# Teardown
# =============================================================================


class TestChannelClose:
    """Tests for close semantics."""

    def test_close_runs_callback_once(self) -> None:
        on_close = MagicMock()
        channel = make_channel(on_close=on_close)

        channel.close()
        channel.close()

        on_close.assert_called_once_with(channel)
        assert channel.closed is True

    def test_publish_after_close_is_dropped(self) -> None:
        channel = make_channel()
        channel.close()
        assert channel.publish(message("x")) is False
        assert channel.pending == 0

    def test_close_discards_buffer(self) -> None:
        channel = make_channel()
        channel.publish(message("x"))
        channel.close()
        assert channel.pending == 0

    def test_callback_errors_are_contained(self) -> None:
        channel = make_channel(on_close=MagicMock(side_effect=RuntimeError("boom")))
        channel.close()
        assert channel.closed is True

    @pytest.mark.asyncio
    async def test_close_ends_stream(self) -> None:
        on_close = MagicMock()
        channel = make_channel(on_close=on_close)
        stream = channel.stream()
        await next_event(stream)

        channel.close()

        with pytest.raises(StopAsyncIteration):
            await next_event(stream)
        on_close.assert_called_once()

    @pytest.mark.asyncio
    async def test_disconnect_ends_stream_and_closes(self) -> None:
        on_close = MagicMock()
        channel = make_channel(on_close=on_close)
        is_disconnected = AsyncMock(return_value=True)

        events = [event async for event in channel.stream(is_disconnected)]

        assert [e.event for e in events] == [ENDPOINT_EVENT]
        assert channel.closed is True
        on_close.assert_called_once_with(channel)

    @pytest.mark.asyncio
    async def test_consumer_abort_closes_channel(self) -> None:
        """Abandoning the stream (cancellation) tears the channel down."""
        on_close = MagicMock()
        channel = make_channel(on_close=on_close)
        stream = channel.stream()
        await next_event(stream)

        await stream.aclose()

        assert channel.closed is True
        on_close.assert_called_once()


# =============================================================================
# Overflow Policy
# =============================================================================


class TestOverflowPolicy:
    """Tests for the bounded buffer."""

    def test_drop_oldest(self) -> None:
        channel = make_channel(max_buffered=2)
        channel.publish(message("a"))
        channel.publish(message("b"))
        assert channel.publish(message("c")) is True

        assert channel.pending == 2
        assert channel.dropped == 1
        assert [e.data for e in channel._buffer] == ["b", "c"]

    def test_close_policy(self) -> None:
        on_close = MagicMock()
        channel = make_channel(
            max_buffered=1,
            overflow_policy=OverflowPolicy.CLOSE,
            on_close=on_close,
        )
        channel.publish(message("a"))

        assert channel.publish(message("b")) is False
        assert channel.closed is True
        on_close.assert_called_once()
