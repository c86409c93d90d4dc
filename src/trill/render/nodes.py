"""Render nodes: what components return.

Frozen dataclasses the renderer walks.  A component is any callable; it
may return:

- ``str`` or ``Markup``: trusted markup, emitted as-is
- ``Template`` / ``InlineTemplate``: rendered with kida
- ``Element``: another component with props
- ``Suspense`` / ``ErrorBoundary``: boundaries around a subtree
- a list or tuple of the above
- an awaitable resolving to any of the above
- ``None``: nothing

Usage::

    def default():
        data = use_route_data()
        return [
            Template("docs/header.html", title=data["title"]),
            h(Comments, post_id=data["id"]),
        ]
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

type Component = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class Template:
    """Render a kida template from the pages or templates directory.

    Usage::

        return Template("about.html", title="About")
    """

    name: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, name: str, /, **context: Any) -> None:
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "context", context)

    @staticmethod
    def inline(source: str, /, **context: Any) -> InlineTemplate:
        """Create a template from a string.

        Usage::

            return Template.inline("<h1>{{ title }}</h1>", title="Hello")
        """
        return InlineTemplate(source, **context)


@dataclass(frozen=True, slots=True)
class InlineTemplate:
    """A kida template rendered from a string source."""

    source: str
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, source: str, /, **context: Any) -> None:
        object.__setattr__(self, "source", source)
        object.__setattr__(self, "context", context)


@dataclass(frozen=True, slots=True)
class Element:
    """A component plus the props it will be called with."""

    component: Component
    props: Mapping[str, Any] = field(default_factory=dict)


def h(component: Component, /, **props: Any) -> Element:
    """Shorthand for ``Element(component, props)``."""
    return Element(component, props)


@dataclass(frozen=True, slots=True)
class Suspense:
    """Boundary around a subtree that may resolve asynchronously.

    Server rendering waits for every awaitable inside the boundary.
    Hydratable output marks the boundary with ``<!--$-->`` and
    ``<!--/$-->`` comments so the browser can find it again.
    """

    children: Any
    fallback: Any = None


@dataclass(frozen=True, slots=True)
class ErrorBoundary:
    """Boundary that turns failures inside a subtree into a fallback.

    *fallback* is called with the exception and its result rendered in
    place of the subtree.  Without a fallback the failure propagates as
    a ``RenderError``.
    """

    children: Any
    fallback: Callable[[Exception], Any] | None = None
