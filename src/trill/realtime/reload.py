"""Live-reload broadcast channel.

Browsers in development connect a websocket to ``/_trill/live``.  After
every successful rebuild the dev loop calls ``broadcast("reload")`` and
each connected browser receives the text frame ``reload``.

Thread-safe.  Each subscriber gets its own bounded queue; a subscriber
whose queue is full misses the signal instead of blocking the sender.
"""

import asyncio
import contextlib
import logging
import threading
from collections.abc import AsyncIterator

import anyio

from trill._internal.asgi import Receive, Scope, Send

logger = logging.getLogger("trill.reload")

RELOAD = "reload"


class ReloadChannel:
    """Fan-out of reload signals to connected browsers.

    Usage::

        channel = ReloadChannel()
        channel.broadcast("reload")           # from the dev loop
        await channel.handle(scope, receive, send)  # websocket scope
    """

    __slots__ = ("_lock", "_max_queue", "_subscribers")

    def __init__(self, max_queue: int = 16) -> None:
        self._subscribers: set[asyncio.Queue[str | None]] = set()
        self._lock = threading.Lock()
        self._max_queue = max_queue

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def broadcast(self, signal: str = RELOAD) -> int:
        """Send *signal* to every subscriber. Returns how many received it."""
        with self._lock:
            queues = set(self._subscribers)
        delivered = 0
        for queue in queues:
            with contextlib.suppress(asyncio.QueueFull):
                queue.put_nowait(signal)
                delivered += 1
        logger.debug("Broadcast %r to %d client(s)", signal, delivered)
        return delivered

    async def subscribe(self) -> AsyncIterator[str]:
        """Yield signals until ``close()`` is called or the caller stops."""
        queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=self._max_queue)
        with self._lock:
            self._subscribers.add(queue)
        try:
            while True:
                signal = await queue.get()
                if signal is None:
                    break
                yield signal
        finally:
            with self._lock:
                self._subscribers.discard(queue)

    def close(self) -> None:
        """Tell every subscriber to stop."""
        with self._lock:
            queues, self._subscribers = self._subscribers, set()
        for queue in queues:
            with contextlib.suppress(asyncio.QueueFull):
                queue.put_nowait(None)

    async def handle(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI websocket handler for one browser."""
        await self.accept_connection(receive, send)

    async def accept_connection(self, receive: Receive, send: Send) -> None:
        """Serve one websocket connection until either side ends it."""
        message = await receive()
        if message["type"] != "websocket.connect":
            return
        await send({"type": "websocket.accept"})
        disconnected = False

        async with anyio.create_task_group() as tg:

            async def forward() -> None:
                async for signal in self.subscribe():
                    await send({"type": "websocket.send", "text": signal})
                tg.cancel_scope.cancel()

            async def watch_disconnect() -> None:
                nonlocal disconnected
                while True:
                    incoming = await receive()
                    if incoming["type"] == "websocket.disconnect":
                        disconnected = True
                        tg.cancel_scope.cancel()
                        return

            tg.start_soon(forward)
            tg.start_soon(watch_disconnect)

        if not disconnected:
            await send({"type": "websocket.close", "code": 1000})
