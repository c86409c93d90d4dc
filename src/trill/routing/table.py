"""Route table built from the pages directory.

The table is immutable.  A full scan builds it once; file events from
the dev loop produce a new table, leaving the old one untouched so a
failed rebuild never disturbs the table that is currently serving.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from enum import StrEnum
from pathlib import Path

from trill.errors import IdentifierCollisionError, RouteConflictError
from trill.routing.patterns import (
    CLIENT_EXTENSIONS,
    companion_owner,
    derive_identifier,
    derive_pattern,
    is_page_file,
    normalize_pattern,
)
from trill.routing.route import RouteDescriptor
from trill.routing.router import Router


class FileEventKind(StrEnum):
    ADD = "add"
    CHANGE = "change"
    UNLINK = "unlink"


@dataclass(frozen=True, slots=True)
class RouteTable:
    """Ordered page routes plus the implicit catch-all, always last.

    Routes are kept sorted by relative path so the same set of files
    always produces the same table (and byte-identical generated entries).
    """

    pages_dir: Path
    routes: tuple[RouteDescriptor, ...] = ()

    @classmethod
    def from_paths(cls, pages_dir: str | Path, relative_paths: Iterable[str]) -> RouteTable:
        """Build a table from page paths relative to *pages_dir*.

        Raises ``RouteConflictError`` if two pages normalize to the same
        pattern, ``IdentifierCollisionError`` if two pages sanitize to
        the same identifier, and ``ConfigurationError`` for malformed
        file names.
        """
        root = Path(pages_dir).resolve()
        by_pattern: dict[str, str] = {}
        by_identifier: dict[str, str] = {}
        routes: list[RouteDescriptor] = []

        for rel in sorted({p.replace("\\", "/").strip("/") for p in relative_paths}):
            pattern = derive_pattern(rel)
            key = normalize_pattern(pattern)
            if key in by_pattern:
                raise RouteConflictError(pattern, by_pattern[key], rel)
            by_pattern[key] = rel

            identifier = derive_identifier(rel)
            if identifier in by_identifier:
                raise IdentifierCollisionError(identifier, by_identifier[identifier], rel)
            by_identifier[identifier] = rel

            source = root / rel
            routes.append(
                RouteDescriptor(
                    url_pattern=pattern,
                    source_path=source,
                    relative_path=rel,
                    identifier=identifier,
                    client_path=_find_companion(source),
                )
            )
        return cls(pages_dir=root, routes=tuple(routes))

    # -- Queries --

    def __iter__(self) -> Iterator[RouteDescriptor]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self.routes)

    @property
    def relative_paths(self) -> frozenset[str]:
        return frozenset(r.relative_path for r in self.routes)

    def get(self, relative_path: str) -> RouteDescriptor | None:
        for route in self.routes:
            if route.relative_path == relative_path:
                return route
        return None

    def router(self) -> Router:
        """Compile the table into a matcher."""
        return Router(self.routes)

    def routes_by_precedence(self) -> list[RouteDescriptor]:
        """Routes in the order the matcher tries them."""
        return self.router().routes

    # -- File events --

    def apply_file_event(self, kind: FileEventKind | str, relative_path: str) -> RouteTable:
        """Return the table that results from one file event.

        ``add``/``unlink`` of a page change the URL space; ``change`` of a
        page does not.  Events for a browser companion only rebind the
        owning page's ``client_path``.  Anything else is ignored.
        """
        kind = FileEventKind(kind)
        rel = relative_path.replace("\\", "/").strip("/")

        if is_page_file(rel):
            paths = set(self.relative_paths)
            if kind is FileEventKind.ADD:
                if rel in paths:
                    return self
                paths.add(rel)
            elif kind is FileEventKind.UNLINK:
                if rel not in paths:
                    return self
                paths.discard(rel)
            else:
                return self
            return RouteTable.from_paths(self.pages_dir, paths)

        owner = companion_owner(rel)
        if owner is None or kind is FileEventKind.CHANGE:
            return self
        route = self.get(owner)
        if route is None:
            return self
        client = self.pages_dir / rel if kind is FileEventKind.ADD else _find_companion(route.source_path)
        if client == route.client_path:
            return self
        routes = tuple(
            replace(r, client_path=client) if r.relative_path == owner else r for r in self.routes
        )
        return replace(self, routes=routes)


def scan(pages_dir: str | Path) -> RouteTable:
    """Walk *pages_dir* and build a route table.

    A missing directory is not an error: the table is empty and only the
    catch-all serves.
    """
    root = Path(pages_dir).resolve()
    if not root.is_dir():
        return RouteTable(pages_dir=root)

    relative = [
        path.relative_to(root).as_posix()
        for path in root.rglob("*")
        if path.is_file() and is_page_file(path.relative_to(root))
    ]
    return RouteTable.from_paths(root, relative)


def _find_companion(source: Path) -> Path | None:
    """Return the browser companion next to a page module, if present."""
    stem = source.name.removesuffix(source.suffix)
    for ext in CLIENT_EXTENSIONS:
        candidate = source.with_name(f"{stem}.client{ext}")
        if candidate.is_file():
            return candidate
    return None
