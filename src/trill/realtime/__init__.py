"""Live reload for development."""

from trill.realtime.reload import RELOAD, ReloadChannel

__all__ = ["RELOAD", "ReloadChannel"]
