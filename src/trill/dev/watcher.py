"""Polling file watcher for the dev loop.

Compares mtime snapshots of the pages directory and any extra globs
every ``interval`` seconds and yields the differences as file events.
Snapshots are taken in a worker thread so the event loop keeps serving.
"""

from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from pathlib import Path

import anyio
import anyio.to_thread

from trill.routing.table import FileEventKind

_SKIP_DIRS = frozenset({"__pycache__", "node_modules", ".git"})

type Snapshot = dict[Path, float]


@dataclass(frozen=True, slots=True)
class FileEvent:
    """One observed change.

    ``relative_path`` is relative to the pages directory when
    ``in_pages`` is true, otherwise relative to the project root.
    """

    kind: FileEventKind
    path: Path
    relative_path: str
    in_pages: bool


class Watcher:
    """Watches the pages directory plus extra globs under *root*."""

    __slots__ = ("_globs", "_interval", "_pages_dir", "_root")

    def __init__(
        self,
        pages_dir: Path,
        root: Path,
        globs: Iterable[str] = (),
        *,
        interval: float = 0.5,
    ) -> None:
        self._pages_dir = pages_dir.resolve()
        self._root = root.resolve()
        self._globs = tuple(globs)
        self._interval = interval

    def snapshot(self) -> Snapshot:
        """Map every watched file to its mtime."""
        mtimes: Snapshot = {}
        candidates: list[Path] = []
        if self._pages_dir.is_dir():
            candidates.extend(self._pages_dir.rglob("*"))
        for pattern in self._globs:
            candidates.extend(self._root.glob(pattern))

        for path in candidates:
            if _SKIP_DIRS.intersection(path.parts):
                continue
            try:
                if path.is_file():
                    mtimes[path] = path.stat().st_mtime
            except FileNotFoundError:
                # Vanished between listing and stat
                continue
        return mtimes

    def diff(self, before: Snapshot, after: Snapshot) -> list[FileEvent]:
        """Events that turn *before* into *after*, unlinks first."""
        events: list[FileEvent] = []
        for path in sorted(before.keys() - after.keys()):
            events.append(self._event(FileEventKind.UNLINK, path))
        for path in sorted(after.keys() - before.keys()):
            events.append(self._event(FileEventKind.ADD, path))
        for path in sorted(before.keys() & after.keys()):
            if before[path] != after[path]:
                events.append(self._event(FileEventKind.CHANGE, path))
        return events

    def _event(self, kind: FileEventKind, path: Path) -> FileEvent:
        if path.is_relative_to(self._pages_dir):
            return FileEvent(kind, path, path.relative_to(self._pages_dir).as_posix(), True)
        relative = path.relative_to(self._root).as_posix() if path.is_relative_to(self._root) else str(path)
        return FileEvent(kind, path, relative, False)

    async def watch(self) -> AsyncIterator[list[FileEvent]]:
        """Yield batches of events until cancelled."""
        previous = await anyio.to_thread.run_sync(self.snapshot)
        while True:
            await anyio.sleep(self._interval)
            current = await anyio.to_thread.run_sync(self.snapshot)
            events = self.diff(previous, current)
            previous = current
            if events:
                yield events
