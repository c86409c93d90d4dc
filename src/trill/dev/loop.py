"""Development rebuild loop.

State machine::

    IDLE --events--> REBUILDING --done, queue empty--> IDLE
                         ^   |
                         +---+  done, queue non-empty (one coalesced rebuild)

Events that arrive while a rebuild is running are queued, and all of
them are applied together in the next rebuild.  A failed rebuild is
logged; the previous generation keeps serving and the loop returns to
IDLE.  The next rebuild after a failure rescans the pages directory.
"""

import asyncio
import logging
from collections.abc import Iterable
from enum import StrEnum
from pathlib import Path

from trill.build.orchestrator import Orchestrator
from trill.dev.watcher import FileEvent, Watcher
from trill.errors import CompilationError, ConfigurationError, RouteConflictError
from trill.realtime.reload import RELOAD, ReloadChannel
from trill.routing.table import FileEventKind, RouteTable, scan

logger = logging.getLogger("trill.dev")


class DevState(StrEnum):
    IDLE = "idle"
    REBUILDING = "rebuilding"


class DevLoop:
    """Applies file events to the route table and rebuilds.

    Usage::

        loop = DevLoop(orchestrator, channel, table)
        await loop.start(options.pages_path, options.watch)
        ...
        await loop.stop()
    """

    __slots__ = (
        "_channel",
        "_idle",
        "_orchestrator",
        "_pending",
        "_rescan",
        "_task",
        "state",
        "table",
    )

    def __init__(
        self,
        orchestrator: Orchestrator,
        channel: ReloadChannel,
        table: RouteTable,
        *,
        rescan: bool = False,
    ) -> None:
        self._orchestrator = orchestrator
        self._channel = channel
        self.table = table
        self.state = DevState.IDLE
        self._pending: list[FileEvent] = []
        # Set when *table* no longer follows the disk; the next rebuild rescans
        self._rescan = rescan
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: asyncio.Task[None] | None = None

    # -- Lifecycle --

    async def start(self, pages_dir: Path, extra_globs: Iterable[str] = ()) -> None:
        """Watch *pages_dir* and *extra_globs* in a background task.

        Globs are relative to the project root; the poll interval comes
        from the build options.
        """
        if self._task is not None:
            return
        options = self._orchestrator.options
        watcher = Watcher(pages_dir, options.root, extra_globs, interval=options.poll_interval)
        self._task = asyncio.create_task(self._consume(watcher), name="trill-dev-loop")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _consume(self, watcher: Watcher) -> None:
        async for events in watcher.watch():
            await self.notify(events)

    # -- Events --

    async def notify(self, events: Iterable[FileEvent]) -> None:
        """Queue *events*; rebuild unless a rebuild is already running.

        Returns once the loop is idle again, or immediately if another
        caller is already driving a rebuild (that caller picks up the
        queued events).
        """
        self._pending.extend(events)
        if self.state is DevState.REBUILDING or not self._pending:
            return

        self.state = DevState.REBUILDING
        self._idle.clear()
        try:
            while self._pending:
                batch, self._pending = self._pending, []
                await self._rebuild(batch)
        finally:
            self.state = DevState.IDLE
            self._idle.set()

    async def wait_idle(self) -> None:
        """Block until no rebuild is running."""
        await self._idle.wait()

    async def _rebuild(self, events: list[FileEvent]) -> bool:
        table = self._apply(events)
        if table is None:
            return False
        try:
            await self._orchestrator.bundle(table)
        except (CompilationError, OSError) as exc:
            # The batch's add/unlink events are already consumed
            self._rescan = True
            logger.error("Rebuild failed, still serving the previous build: %s", exc)
            return False

        self.table = table
        clients = self._channel.broadcast(RELOAD)
        logger.info("Rebuilt after %d change(s); reloading %d client(s)", len(events), clients)
        return True

    def _apply(self, events: list[FileEvent]) -> RouteTable | None:
        """The route table after *events*, or ``None`` if it is invalid."""
        try:
            if self._rescan:
                table = scan(self.table.pages_dir)
            else:
                table = self.table
                for event in events:
                    if event.in_pages and event.kind is not FileEventKind.CHANGE:
                        table = table.apply_file_event(event.kind, event.relative_path)
        except (RouteConflictError, ConfigurationError) as exc:
            self._rescan = True
            logger.error("Route table not updated: %s", exc)
            return None
        self._rescan = False
        return table
