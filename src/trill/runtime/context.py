"""Request-scoped rendering context via ContextVar.

Provides:
- ``RequestContext``: status code, route data, and head tags for the
  page being rendered.
- ``LoadContext``: what a page's ``load()`` receives.
- ``use_context()`` / ``use_route_data()`` / ``use_head()``: accessors
  for components.

The request server sets the context before rendering and resets it
afterwards.  Accessing it outside a render raises ``LookupError``.

Thread safety:
    ``ContextVar`` is task-local under asyncio. No locks needed.
"""

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class LoadContext:
    """Argument passed to a page's ``load()``.

    Usage::

        async def load(context):
            return {"title": await fetch_title(context.params["id"])}
    """

    params: dict[str, str]
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    path: str = "/"


@dataclass(slots=True)
class Head:
    """Document head collected while the page body renders.

    Usage::

        head = use_head()
        head.title = "About"
        head.add_meta(name="description", content="About us")
        head.html_attrs["lang"] = "en"
    """

    title: str | None = None
    meta: list[dict[str, str]] = field(default_factory=list)
    links: list[dict[str, str]] = field(default_factory=list)
    html_attrs: dict[str, str] = field(default_factory=dict)
    body_attrs: dict[str, str] = field(default_factory=dict)

    def add_meta(self, **attrs: str) -> None:
        """Add a ``<meta>`` tag. ``http_equiv`` is written ``http-equiv``."""
        self.meta.append(_attrs(attrs))

    def add_link(self, **attrs: str) -> None:
        """Add a ``<link>`` tag."""
        self.links.append(_attrs(attrs))


def _attrs(attrs: dict[str, str]) -> dict[str, str]:
    return {name.rstrip("_").replace("_", "-"): str(value) for name, value in attrs.items()}


@dataclass(slots=True)
class RequestContext:
    """Mutable per-request rendering state.

    ``route_data`` maps concrete paths to loader results.  ``path`` is the
    concrete path of the matched route, set by the router component.
    """

    url: str
    route_data: dict[str, Any] = field(default_factory=dict)
    status_code: int = 200
    head: Head = field(default_factory=Head)
    path: str = "/"
    params: dict[str, str] = field(default_factory=dict)


context_var: ContextVar[RequestContext] = ContextVar("trill_context")
"""The current render context. Set by the request server."""


def use_context() -> RequestContext:
    """Return the context of the page being rendered.

    Raises ``LookupError`` if called outside a render.
    """
    return context_var.get()


def use_route_data() -> Any:
    """Return the loader result for the current route, or ``None``."""
    context = context_var.get()
    return context.route_data.get(context.path)


def use_head() -> Head:
    """Return the head collector for the page being rendered."""
    return context_var.get().head
