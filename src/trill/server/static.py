"""Static file serving.

Two mounts exist: ``/_trill/`` serves the client output of the live
generation, ``/`` serves the project's ``public/`` directory.  A mount
returns ``None`` for paths it does not own so the request continues to
the page renderer.
"""

import mimetypes
from collections.abc import Callable
from pathlib import Path

from trill.http.response import Response

type DirectorySource = Path | Callable[[], Path | None]


class StaticFiles:
    """Serves files from a directory for paths under a URL prefix.

    *directory* may be a callable, evaluated per request, so a mount can
    follow the live build generation.

    Security: resolves symlinks and verifies the final path is within
    the directory to prevent path traversal.

    Usage::

        public = StaticFiles(root / "public", prefix="/")
        response = public.resolve("GET", "/favicon.ico")
    """

    __slots__ = ("_cache_control", "_directory", "_index", "_prefix")

    def __init__(
        self,
        directory: DirectorySource,
        prefix: str = "/",
        *,
        index: str = "index.html",
        cache_control: str = "public, max-age=3600",
    ) -> None:
        self._directory = directory
        self._index = index
        self._cache_control = cache_control

        # Root prefix "/" normalizes to "" (every path is a candidate)
        stripped = "/" + prefix.strip("/")
        self._prefix = stripped if stripped != "/" else ""

    def owns(self, path: str) -> bool:
        if not self._prefix:
            return True
        return path == self._prefix or path.startswith(self._prefix + "/")

    def _root(self) -> Path | None:
        directory = self._directory() if callable(self._directory) else self._directory
        if directory is None or not directory.is_dir():
            return None
        return directory.resolve()

    def resolve(self, method: str, path: str) -> Response | None:
        """Serve *path* or return ``None`` to fall through."""
        if method not in ("GET", "HEAD") or not self.owns(path):
            return None
        root = self._root()
        if root is None:
            return None

        relative = path[len(self._prefix) :].lstrip("/")
        file_path = (root / relative).resolve() if relative else root
        if not file_path.is_relative_to(root):
            return Response(body="Forbidden", status=403, content_type="text/plain; charset=utf-8")

        if file_path.is_dir():
            index_path = file_path / self._index
            if not index_path.is_file():
                return None
            if not path.endswith("/") and relative:
                return Response(body="", status=301).with_header("Location", path + "/")
            file_path = index_path

        if not file_path.is_file():
            return None
        return self._serve_file(file_path)

    def _serve_file(self, file_path: Path) -> Response:
        content_type, _ = mimetypes.guess_type(str(file_path))
        if content_type is None:
            content_type = "application/octet-stream"
        return Response(
            body=file_path.read_bytes(),
            content_type=content_type,
        ).with_header("Cache-Control", self._cache_control)
