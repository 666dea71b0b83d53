"""Shared LISTEN connection with automatic reconnect.

One :class:`ListenerConnection` owns one upstream psycopg
``AsyncConnection`` in autocommit mode and fans notifications out to any
number of in-process :class:`Subscription` handles.

Usage::

    listener = ListenerConnection(config)
    sub = await listener.subscribe("orders")
    sub.on(lambda payload: print(payload))
    async for payload in sub:
        ...
    await sub.close()

States: ``disconnected`` -> ``connecting`` -> ``connected``, back to
``disconnected`` on a lost connection, plus ``closing`` which suppresses
reconnects.  Concurrent ``subscribe()`` calls share a single connect
attempt.  After a lost connection a reconnect is attempted after 1s, then
2s, 4s ... capped at 30s; on success every registered channel is LISTENed
again and the delay resets.  Notifications missed while disconnected are
not replayed.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, Any, Literal

from relq.errors import RelqConnectionError, parse_postgres_error
from relq.session.pubsub import ListenBuilder, UnlistenBuilder

if TYPE_CHECKING:
    from relq.config import RelqConfig

logger = logging.getLogger(__name__)

INITIAL_RECONNECT_DELAY = 1.0
MAX_RECONNECT_DELAY = 30.0

#: Seconds the reader waits for notifications before yielding the connection.
POLL_INTERVAL = 1.0

ListenerState = Literal["disconnected", "connecting", "connected", "closing"]

NotificationCallback = Callable[[Any], None]
Connector = Callable[[str], Awaitable[Any]]

_CLOSED = object()


def next_backoff(delay: float, maximum: float = MAX_RECONNECT_DELAY) -> float:
    """Return the reconnect delay that follows *delay*."""
    return min(delay * 2, maximum)


def decode_payload(payload: str) -> Any:
    """Parse a notification payload as JSON, falling back to the raw text."""
    try:
        return json.loads(payload)
    except ValueError:
        return payload


async def psycopg_connect(conninfo: str) -> Any:
    """Open an autocommit psycopg ``AsyncConnection``."""
    import psycopg

    return await psycopg.AsyncConnection.connect(conninfo, autocommit=True)


# ---------------------------------------------------------------------------
# Subscription
# ---------------------------------------------------------------------------


class Subscription:
    """A handle on one channel of a :class:`ListenerConnection`.

    Payloads are delivered to every callback registered with :meth:`on`.
    They are queued for ``async for`` only once iteration has started, so a
    callback-only subscription buffers nothing.  Iteration stops once the
    subscription (or the whole listener) is closed.
    """

    def __init__(self, listener: ListenerConnection, channel: str) -> None:
        self.channel = channel
        self.closed = False
        self._listener = listener
        self._callbacks: list[NotificationCallback] = []
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._iterating = False

    def on(self, callback: NotificationCallback) -> Subscription:
        self._callbacks.append(callback)
        return self

    @property
    def buffered(self) -> int:
        """Payloads queued for iteration and not yet consumed."""
        return max(self._queue.qsize() - int(self.closed), 0)

    async def close(self) -> None:
        """Stop receiving notifications; calling it twice is a no-op."""
        if self.closed:
            return
        self._finish()
        await self._listener._remove(self)

    def _deliver(self, payload: Any) -> None:
        for callback in list(self._callbacks):
            try:
                callback(payload)
            except Exception:
                logger.exception("Notification callback failed on channel '%s'", self.channel)
        if self._iterating:
            self._queue.put_nowait(payload)

    def _finish(self) -> None:
        self.closed = True
        self._callbacks.clear()
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[Any]:
        self._iterating = True
        return self

    async def __anext__(self) -> Any:
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------


class ListenerConnection:
    """Multiplexes LISTEN channels over one reconnecting connection.

    Args:
        config: A :class:`~relq.config.RelqConfig` or a libpq conninfo string.
        connect: Coroutine function opening the upstream connection.  It
            receives the conninfo string and returns an object with async
            ``execute(sql)``, ``notifies(timeout=...)`` and ``close()``.
            Defaults to :func:`psycopg_connect`.
        initial_delay: First reconnect delay in seconds.
        max_delay: Reconnect delay cap in seconds.
        poll_interval: Seconds each ``notifies()`` batch waits.
    """

    def __init__(
        self,
        config: RelqConfig | str,
        *,
        connect: Connector | None = None,
        initial_delay: float = INITIAL_RECONNECT_DELAY,
        max_delay: float = MAX_RECONNECT_DELAY,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self.conninfo = config if isinstance(config, str) else config.conninfo()
        self._connect_fn = connect or psycopg_connect
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.poll_interval = poll_interval
        self.reconnect_delay = initial_delay

        self._conn: Any = None
        self._closing = False
        self._channels: dict[str, list[Subscription]] = {}
        self._connect_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

    # -- state ------------------------------------------------------------

    @property
    def state(self) -> ListenerState:
        if self._closing:
            return "closing"
        if self._conn is not None:
            return "connected"
        if self._connect_task is not None:
            return "connecting"
        return "disconnected"

    @property
    def channels(self) -> list[str]:
        """Registered channels in subscription order."""
        return list(self._channels)

    # -- public API -------------------------------------------------------

    async def subscribe(self, channel: str) -> Subscription:
        """Register a subscriber on *channel*, connecting first if needed.

        Raises:
            RelqConnectionError: If the connection cannot be established.
            RelqQueryError: If ``LISTEN`` is rejected.
        """
        self._closing = False
        await self._ensure_connected()
        subscribers = self._channels.get(channel)
        if subscribers is None:
            subscribers = self._channels[channel] = []
            try:
                await self._execute(ListenBuilder(channel).to_string())
            except Exception:
                if not subscribers:
                    del self._channels[channel]
                raise
        subscription = Subscription(self, channel)
        subscribers.append(subscription)
        return subscription

    async def close(self) -> None:
        """Enter the closing state and release the upstream connection."""
        self._closing = True
        current = asyncio.current_task()
        for task in (self._reconnect_task, self._reader_task, self._connect_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._reconnect_task = self._reader_task = self._connect_task = None
        conn, self._conn = self._conn, None
        if conn is not None:
            await self._close_quietly(conn)
        for subscribers in self._channels.values():
            for subscription in subscribers:
                if not subscription.closed:
                    subscription._finish()
        self._channels.clear()

    # -- connection management -------------------------------------------

    async def _ensure_connected(self) -> None:
        if self._conn is not None:
            return
        if self._connect_task is None:
            self._connect_task = asyncio.ensure_future(self._connect())
        task = self._connect_task
        try:
            await asyncio.shield(task)
        finally:
            if self._connect_task is task and task.done():
                self._connect_task = None

    async def _connect(self) -> None:
        logger.debug("Opening listener connection")
        try:
            conn = await self._connect_fn(self.conninfo)
        except Exception as exc:
            error = parse_postgres_error(exc)
            if not isinstance(error, RelqConnectionError):
                error = RelqConnectionError(str(exc) or type(exc).__name__, cause=exc)
            if self._channels:
                self._schedule_reconnect()
            raise error from exc
        if self._closing:
            await self._close_quietly(conn)
            raise RelqConnectionError("Listener was closed while connecting.")
        self._conn = conn
        self.reconnect_delay = self.initial_delay
        await self._resubscribe_all()
        self._reader_task = asyncio.ensure_future(self._read(conn))

    async def _resubscribe_all(self) -> None:
        for channel in list(self._channels):
            try:
                await self._execute(ListenBuilder(channel).to_string())
            except Exception as exc:
                logger.warning("Failed to resubscribe to channel '%s': %s", channel, exc)

    async def _read(self, conn: Any) -> None:
        try:
            while not self._closing and conn is self._conn:
                async for notify in conn.notifies(timeout=self.poll_interval):
                    self._dispatch(notify.channel, notify.payload)
                if getattr(conn, "closed", False):
                    raise RelqConnectionError("Listener connection ended.")
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if conn is self._conn and not self._closing:
                logger.warning("Listener connection lost: %s", exc)
                await self._handle_disconnect()

    async def _handle_disconnect(self) -> None:
        conn, self._conn = self._conn, None
        self._reader_task = None
        if conn is not None:
            await self._close_quietly(conn)
        if not self._closing and self._channels:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._closing:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.ensure_future(self._reconnect_loop())

    async def _reconnect_loop(self) -> None:
        while not self._closing and self._channels:
            logger.info("Reconnecting listener in %.1fs", self.reconnect_delay)
            await asyncio.sleep(self.reconnect_delay)
            if self._closing:
                return
            try:
                await self._ensure_connected()
            except Exception as exc:
                logger.error("Listener reconnect failed: %s", exc)
                self.reconnect_delay = next_backoff(self.reconnect_delay, self.max_delay)
            else:
                logger.info("Listener reconnected; %d channel(s) restored", len(self._channels))
                return

    # -- helpers ----------------------------------------------------------

    def _dispatch(self, channel: str, payload: str) -> None:
        subscribers = self._channels.get(channel)
        if not subscribers:
            return
        data = decode_payload(payload)
        logger.debug("Notification on '%s' for %d subscriber(s)", channel, len(subscribers))
        for subscription in list(subscribers):
            subscription._deliver(data)

    async def _execute(self, sql: str) -> None:
        if self._conn is None:
            raise RelqConnectionError("Listener is not connected.")
        try:
            await self._conn.execute(sql)
        except Exception as exc:
            raise parse_postgres_error(exc, sql) from exc

    async def _remove(self, subscription: Subscription) -> None:
        subscribers = self._channels.get(subscription.channel)
        if subscribers is None or subscription not in subscribers:
            return
        subscribers.remove(subscription)
        if subscribers:
            return
        del self._channels[subscription.channel]
        if self._conn is not None:
            try:
                await self._execute(UnlistenBuilder(subscription.channel).to_string())
            except Exception as exc:
                logger.warning("UNLISTEN '%s' failed: %s", subscription.channel, exc)
        if not self._channels:
            await self.close()

    @staticmethod
    async def _close_quietly(conn: Any) -> None:
        try:
            await conn.close()
        except Exception as exc:
            logger.debug("Ignoring error while closing listener connection: %s", exc)
