"""HTTP serving: request pipeline, static mounts, and the pounce launcher."""

from trill.server.handler import RequestServer, handle_http, state_scripts
from trill.server.static import StaticFiles

__all__ = ["RequestServer", "StaticFiles", "handle_http", "state_scripts"]
