"""Development mode: file watching and incremental rebuilds."""

from trill.dev.loop import DevLoop, DevState
from trill.dev.watcher import FileEvent, Watcher

__all__ = ["DevLoop", "DevState", "FileEvent", "Watcher"]
