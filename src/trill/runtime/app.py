"""Runtime support for the generated server entry.

The generated ``routes.py`` of each build imports page modules with
``load_page``, pairs them with their patterns through ``page_route``,
and wires the root component with ``create_app``.  Page modules are
registered under names that include the build id, so two generations
never share module objects.
"""

import importlib.util
import re
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any

from kida import Markup, html_escape

from trill.errors import ConfigurationError
from trill.render.nodes import Component, Element, ErrorBoundary, Suspense
from trill.routing.route import RouteDescriptor
from trill.routing.router import Router
from trill.runtime.context import use_context

NOT_FOUND_ATTR = "data-trill-not-found"

_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9_]")

type Loader = Callable[..., Any]


def module_prefix(build_id: str) -> str:
    """Prefix of every ``sys.modules`` key owned by *build_id*."""
    return f"_trill_{_UNSAFE_RE.sub('_', build_id)}_"


def load_page(build_id: str, identifier: str, path: str | Path) -> ModuleType:
    """Import the page module at *path* for one build generation.

    Raises ``ConfigurationError`` if the module has no callable
    ``default`` component.
    """
    name = module_prefix(build_id) + identifier
    existing = sys.modules.get(name)
    if existing is not None:
        return existing

    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        msg = f"Cannot import page module {path}"
        raise ConfigurationError(msg)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        del sys.modules[name]
        raise

    if not callable(getattr(module, "default", None)):
        del sys.modules[name]
        msg = f"Page module {path} must define a callable `default` component"
        raise ConfigurationError(msg)
    return module


def release_build(build_id: str) -> int:
    """Drop every page module imported for *build_id*. Returns the count."""
    prefix = module_prefix(build_id)
    names = [name for name in sys.modules if name.startswith(prefix)]
    for name in names:
        del sys.modules[name]
    return len(names)


@dataclass(frozen=True, slots=True)
class PageRoute:
    """A route bound to its imported page module."""

    descriptor: RouteDescriptor
    component: Component
    loader: Loader | None = None

    @property
    def pattern(self) -> str:
        return self.descriptor.url_pattern


def page_route(pattern: str, identifier: str, relative_path: str, module: ModuleType) -> PageRoute:
    """Bind an imported page module to its URL pattern."""
    descriptor = RouteDescriptor(
        url_pattern=pattern,
        source_path=Path(module.__file__ or relative_path),
        relative_path=relative_path,
        identifier=identifier,
    )
    return PageRoute(
        descriptor=descriptor,
        component=module.default,
        loader=getattr(module, "load", None),
    )


def create_app(routes: Sequence[PageRoute], router: Router, *, dev: bool = False) -> Component:
    """Build the root component for one generation.

    The tree is an error boundary around a suspense boundary around the
    router.  Unmatched paths render ``NotFound``, which sets status 404.
    """
    components = {route.descriptor.identifier: route.component for route in routes}
    patterns = [route.url_pattern for route in router.routes]

    def Routes() -> Any:
        context = use_context()
        match = router.match(context.url)
        if match is None:
            return Element(NotFound, {"patterns": patterns if dev else ()})
        context.path = match.path
        context.params = match.params
        return Element(components[match.route.identifier], {})

    def App() -> Any:
        return ErrorBoundary(Suspense(Element(Routes)))

    return App


def NotFound(*, patterns: Sequence[str] = ()) -> Any:
    """Catch-all page. In development it lists the known routes."""
    use_context().status_code = 404
    parts = [f"<div {NOT_FOUND_ATTR}><h1>404</h1><p>Page not found.</p>"]
    if patterns:
        items = "".join(f"<li><code>{html_escape(p)}</code></li>" for p in patterns)
        parts.append(f"<p>Known routes:</p><ul>{items}</ul>")
    parts.append("</div>")
    return Markup("".join(parts))
