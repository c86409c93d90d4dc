"""RouteDescriptor, PathSegment, and RouteMatch frozen dataclasses."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route pattern.

    Static:   ``/docs``   (kind="static")
    Param:    ``/:id``    (kind="param", value="id")
    Wildcard: ``/*``      (kind="wildcard", value="*")
    """

    value: str
    kind: str = "static"

    @property
    def is_param(self) -> bool:
        return self.kind == "param"

    @property
    def is_wildcard(self) -> bool:
        return self.kind == "wildcard"


@dataclass(frozen=True, slots=True)
class RouteDescriptor:
    """One discovered page file.

    Attributes:
        url_pattern: URL template with a leading slash, e.g. ``/docs/:id``.
        source_path: Absolute path to the page module.
        relative_path: Path relative to the pages root (POSIX separators);
            the key used when applying file events.
        identifier: Binding name derived from ``relative_path``; unique
            within a table.
        client_path: Absolute path of the browser companion module
            (``about.client.js``), if one exists.
    """

    url_pattern: str
    source_path: Path
    relative_path: str
    identifier: str
    client_path: Path | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful match.

    ``path`` is the concrete resolved path (parameters substituted), the
    key under which the route's loader data is stored.
    """

    route: RouteDescriptor
    params: dict[str, str] = field(default_factory=dict)
    path: str = "/"
