"""Unit tests for ListenerConnection using a scripted in-memory connection."""
from __future__ import annotations

import asyncio
from collections import namedtuple

import pytest

from relq.errors import RelqConnectionError
from relq.session import ListenerConnection
from relq.session.listener import decode_payload, next_backoff

Notify = namedtuple("Notify", "channel payload")


class FakeConnection:
    """Mimics the slice of psycopg's AsyncConnection the listener uses."""

    def __init__(self) -> None:
        self.executed: list[str] = []
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    async def execute(self, sql):
        self.executed.append(sql)

    async def notifies(self, timeout=None):
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return
        if isinstance(item, Exception):
            raise item
        yield item

    async def close(self):
        self.closed = True

    def push(self, channel: str, payload: str) -> None:
        self._queue.put_nowait(Notify(channel, payload))

    def fail(self, exc: Exception) -> None:
        self._queue.put_nowait(exc)


def _listener(connections: list[FakeConnection]) -> ListenerConnection:
    async def connect(conninfo):
        return connections.pop(0)

    return ListenerConnection("dbname=test", connect=connect, initial_delay=0.01, poll_interval=0.01)


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


def test_backoff_doubles_up_to_cap():
    delays = [1.0]
    for _ in range(6):
        delays.append(next_backoff(delays[-1]))
    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]


def test_payload_decoding_falls_back_to_text():
    assert decode_payload('{"id": 1}') == {"id": 1}
    assert decode_payload("plain text") == "plain text"


def test_subscribe_listens_and_dispatches():
    async def scenario():
        conn = FakeConnection()
        listener = _listener([conn])
        sub = await listener.subscribe("orders")
        received = []
        stream = sub.on(received.append).__aiter__()
        state = listener.state
        conn.push("orders", '{"id": 1}')
        conn.push("other", "ignored")
        payload = await asyncio.wait_for(stream.__anext__(), 2)
        await listener.close()
        return conn, listener, state, received, payload

    conn, listener, state, received, payload = asyncio.run(scenario())
    assert state == "connected"
    assert conn.executed == ['LISTEN "orders"']
    assert received == [{"id": 1}]
    assert payload == {"id": 1}
    assert conn.closed
    assert listener.state == "closing"


def test_concurrent_subscribes_share_one_connection():
    async def scenario():
        conn = FakeConnection()
        calls = []

        async def connect(conninfo):
            calls.append(conninfo)
            await asyncio.sleep(0)
            return conn

        listener = ListenerConnection("dbname=test", connect=connect, poll_interval=0.01)
        first, second = await asyncio.gather(listener.subscribe("a"), listener.subscribe("a"))
        channels = listener.channels
        await listener.close()
        return conn, calls, channels, first, second

    conn, calls, channels, first, second = asyncio.run(scenario())
    assert calls == ["dbname=test"]
    assert conn.executed == ['LISTEN "a"']
    assert channels == ["a"]
    assert first is not second


def test_closing_last_subscription_unlistens_and_closes():
    async def scenario():
        conn = FakeConnection()
        listener = _listener([conn])
        sub = await listener.subscribe("a")
        await sub.close()
        await sub.close()
        remaining = [payload async for payload in sub]
        return conn, listener, remaining

    conn, listener, remaining = asyncio.run(scenario())
    assert conn.executed == ['LISTEN "a"', 'UNLISTEN "a"']
    assert conn.closed
    assert remaining == []
    assert listener.channels == []


def test_failing_callback_does_not_block_delivery():
    async def scenario():
        conn = FakeConnection()
        listener = _listener([conn])
        sub = await listener.subscribe("a")
        seen = []

        def broken(payload):
            raise RuntimeError("boom")

        stream = sub.on(broken).on(seen.append).__aiter__()
        conn.push("a", "1")
        payload = await asyncio.wait_for(stream.__anext__(), 2)
        await listener.close()
        return seen, payload

    seen, payload = asyncio.run(scenario())
    assert seen == [1]
    assert payload == 1


def test_reconnects_and_resubscribes_after_connection_loss():
    async def scenario():
        first, second = FakeConnection(), FakeConnection()
        listener = _listener([first, second])
        stream = (await listener.subscribe("orders")).__aiter__()
        first.fail(OSError("connection reset"))
        await _wait_for(lambda: second.executed)
        second.push("orders", '"after"')
        payload = await asyncio.wait_for(stream.__anext__(), 2)
        state = listener.state
        await listener.close()
        return first, second, payload, state

    first, second, payload, state = asyncio.run(scenario())
    assert first.closed
    assert second.executed == ['LISTEN "orders"']
    assert payload == "after"
    assert state == "connected"


def test_connect_failure_raises_connection_error():
    async def scenario():
        async def connect(conninfo):
            raise OSError("refused")

        listener = ListenerConnection("dbname=test", connect=connect)
        with pytest.raises(RelqConnectionError):
            await listener.subscribe("a")
        return listener

    listener = asyncio.run(scenario())
    assert listener.state == "disconnected"
    assert listener.channels == []


def test_callback_only_subscription_buffers_nothing():
    async def scenario():
        conn = FakeConnection()
        listener = _listener([conn])
        sub = await listener.subscribe("a")
        seen = []
        sub.on(seen.append)
        for i in range(50):
            conn.push("a", str(i))
        await _wait_for(lambda: len(seen) == 50)
        buffered = sub.buffered
        await listener.close()
        return seen, buffered

    seen, buffered = asyncio.run(scenario())
    assert seen == list(range(50))
    assert buffered == 0


def test_reconnect_delay_doubles_then_resets():
    async def scenario():
        first, second = FakeConnection(), FakeConnection()
        script = [first, OSError("down"), OSError("down"), OSError("down"), second]
        delays = []

        async def connect(conninfo):
            delays.append(listener.reconnect_delay)
            outcome = script.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        listener = ListenerConnection(
            "dbname=test", connect=connect, initial_delay=0.01, max_delay=0.04, poll_interval=0.01
        )
        await listener.subscribe("orders")
        first.fail(OSError("connection reset"))
        await _wait_for(lambda: second.executed)
        state, delay = listener.state, listener.reconnect_delay
        await listener.close()
        return second, delays, state, delay

    second, delays, state, delay = asyncio.run(scenario())
    assert delays == pytest.approx([0.01, 0.01, 0.02, 0.04, 0.04])
    assert second.executed == ['LISTEN "orders"']
    assert state == "connected"
    assert delay == pytest.approx(0.01)


def test_close_cancels_pending_reconnect():
    async def scenario():
        first = FakeConnection()
        attempts = []

        async def connect(conninfo):
            attempts.append(conninfo)
            if len(attempts) == 1:
                return first
            raise OSError("down")

        listener = ListenerConnection("dbname=test", connect=connect, initial_delay=0.01, poll_interval=0.01)
        await listener.subscribe("orders")
        first.fail(OSError("connection reset"))
        await _wait_for(lambda: len(attempts) >= 2)
        await listener.close()
        after_close = len(attempts)
        await asyncio.sleep(0.1)
        return listener, after_close, len(attempts)

    listener, after_close, final = asyncio.run(scenario())
    assert final == after_close
    assert listener.state == "closing"
    assert listener.channels == []
