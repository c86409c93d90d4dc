"""Tests for trill.realtime.reload: the live-reload channel."""

import asyncio
from pathlib import Path
from typing import Any

from trill import Trill
from trill.config import BuildOptions
from trill.realtime.reload import RELOAD, ReloadChannel


class FakeSocket:
    """Scripted websocket peer: connects, then waits to be told to leave."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self._incoming: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._incoming.put_nowait({"type": "websocket.connect"})
        self.accepted = asyncio.Event()

    def disconnect(self) -> None:
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": 1001})

    async def receive(self) -> dict[str, Any]:
        return await self._incoming.get()

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)
        if message["type"] == "websocket.accept":
            self.accepted.set()


async def _wait_for_subscribers(channel: ReloadChannel, count: int) -> None:
    while channel.client_count < count:
        await asyncio.sleep(0)


class TestChannel:
    async def test_broadcast_without_subscribers(self) -> None:
        assert ReloadChannel().broadcast() == 0

    async def test_subscribers_receive_signal(self) -> None:
        channel = ReloadChannel()
        received: list[str] = []

        async def listen() -> None:
            async for signal in channel.subscribe():
                received.append(signal)

        task = asyncio.create_task(listen())
        await _wait_for_subscribers(channel, 1)
        assert channel.broadcast(RELOAD) == 1
        channel.close()
        await asyncio.wait_for(task, timeout=5)

        assert received == [RELOAD]
        assert channel.client_count == 0

    async def test_full_queue_drops_signal(self) -> None:
        channel = ReloadChannel(max_queue=1)
        stream = channel.subscribe()
        pending = asyncio.ensure_future(anext(stream))
        await _wait_for_subscribers(channel, 1)

        assert channel.broadcast() == 1
        await pending
        assert channel.broadcast() == 1
        assert channel.broadcast() == 0
        await stream.aclose()


class TestWebsocket:
    async def test_forwards_reload_then_disconnects(self) -> None:
        channel = ReloadChannel()
        socket = FakeSocket()
        task = asyncio.create_task(channel.handle({"type": "websocket"}, socket.receive, socket.send))

        await asyncio.wait_for(socket.accepted.wait(), timeout=5)
        await _wait_for_subscribers(channel, 1)
        channel.broadcast(RELOAD)
        while len(socket.sent) < 2:
            await asyncio.sleep(0)
        socket.disconnect()
        await asyncio.wait_for(task, timeout=5)

        assert socket.sent == [
            {"type": "websocket.accept"},
            {"type": "websocket.send", "text": "reload"},
        ]
        assert channel.client_count == 0

    async def test_close_ends_connection(self) -> None:
        channel = ReloadChannel()
        socket = FakeSocket()
        task = asyncio.create_task(channel.handle({"type": "websocket"}, socket.receive, socket.send))
        await _wait_for_subscribers(channel, 1)

        channel.close()
        await asyncio.wait_for(task, timeout=5)
        assert socket.sent[-1] == {"type": "websocket.close", "code": 1000}

    async def test_live_path_rejected_outside_development(self, tmp_path: Path) -> None:
        app = Trill(BuildOptions(root=tmp_path, dev=False))
        socket = FakeSocket()
        await app({"type": "websocket", "path": "/_trill/live"}, socket.receive, socket.send)
        assert socket.sent == [{"type": "websocket.close", "code": 1008}]
