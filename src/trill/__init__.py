"""Trill: file-routed server rendering with browser hydration.

Pages are Python modules under ``pages/``; the file path is the URL.
Each page exports a ``default`` component and, optionally, a ``load()``
that fetches its data on the server.  A page may ship a browser
companion (``about.client.ts``) that hydrates the server-rendered HTML.

Basic usage::

    # pages/docs/[id].py
    from trill import Template, use_route_data

    async def load(context):
        return {"title": await fetch_title(context.params["id"])}

    def default():
        return Template("docs/page.html", **use_route_data())

Run it::

    trill dev          # rebuild on change, live reload
    trill build        # production build
    trill start        # serve the last build
"""

__version__ = "0.1.0"
__all__ = [
    "BuildOptions",
    "Element",
    "ErrorBoundary",
    "InlineTemplate",
    "LoadContext",
    "Suspense",
    "Template",
    "Trill",
    "TrillError",
    "h",
    "use_context",
    "use_head",
    "use_route_data",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import trill`` fast while providing a clean top-level API.
    """
    if name == "Trill":
        from trill.app import Trill

        return Trill

    if name == "BuildOptions":
        from trill.config import BuildOptions

        return BuildOptions

    if name == "TrillError":
        from trill.errors import TrillError

        return TrillError

    if name in ("Element", "ErrorBoundary", "InlineTemplate", "Suspense", "Template", "h"):
        from trill.render import nodes

        return getattr(nodes, name)

    if name in ("LoadContext", "use_context", "use_head", "use_route_data"):
        from trill.runtime import context

        return getattr(context, name)

    msg = f"module 'trill' has no attribute {name!r}"
    raise AttributeError(msg)
