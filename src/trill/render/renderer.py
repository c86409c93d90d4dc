"""Renderer contract and the kida-backed implementation.

The runtime only ever calls two operations on a renderer:

- ``render_to_string(tree)``: hydratable markup for the page body
- ``render_to_static_markup(tree)``: plain markup for the document shell

Both are coroutines because components may return awaitables.
"""

from __future__ import annotations

import inspect
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from kida import ChoiceLoader, Environment, FileSystemLoader, Markup, html_escape

from trill.errors import RenderError
from trill.render.nodes import Element, ErrorBoundary, InlineTemplate, Suspense, Template


class Renderer(Protocol):
    """What the request server needs from a rendering library."""

    async def render_to_string(self, tree: Any) -> str: ...

    async def render_to_static_markup(self, tree: Any) -> str: ...


def create_environment(template_dirs: Sequence[Path], *, auto_reload: bool = False) -> Environment:
    """Create a kida Environment over the existing *template_dirs*.

    Directories that do not exist are skipped; with none left the
    environment can still render inline templates.
    """
    loaders = [FileSystemLoader(str(d)) for d in template_dirs if d.is_dir()]
    if not loaders:
        return Environment(autoescape=True, auto_reload=auto_reload)
    return Environment(
        loader=ChoiceLoader(loaders),
        autoescape=True,
        auto_reload=auto_reload,
        trim_blocks=True,
        lstrip_blocks=True,
    )


class KidaRenderer:
    """Walks render nodes and renders templates with kida.

    Usage::

        renderer = KidaRenderer(create_environment([root / "pages"]))
        html = await renderer.render_to_string(h(App))
    """

    __slots__ = ("_env",)

    def __init__(self, env: Environment | None = None) -> None:
        self._env = env or Environment(autoescape=True)

    @property
    def env(self) -> Environment:
        return self._env

    async def render_to_string(self, tree: Any) -> str:
        return await self._render(tree, hydratable=True)

    async def render_to_static_markup(self, tree: Any) -> str:
        return await self._render(tree, hydratable=False)

    async def _render(self, node: Any, *, hydratable: bool) -> str:
        if inspect.isawaitable(node):
            node = await node

        match node:
            case None | False | True:
                return ""
            case str():
                # Markup is a str subclass; both are trusted markup
                return str(node)
            case Template():
                return self._env.get_template(node.name).render(node.context)
            case InlineTemplate():
                return self._env.from_string(node.source).render(node.context)
            case Element():
                return await self._render(node.component(**node.props), hydratable=hydratable)
            case Suspense():
                inner = await self._render(node.children, hydratable=hydratable)
                if hydratable:
                    return f"<!--$-->{inner}<!--/$-->"
                return inner
            case ErrorBoundary():
                return await self._render_boundary(node, hydratable=hydratable)
            case list() | tuple():
                parts = [await self._render(child, hydratable=hydratable) for child in node]
                return "".join(parts)
            case _ if callable(node):
                return await self._render(node(), hydratable=hydratable)
            case _:
                return str(html_escape(str(node)))

    async def _render_boundary(self, node: ErrorBoundary, *, hydratable: bool) -> str:
        try:
            return await self._render(node.children, hydratable=hydratable)
        except RenderError:
            raise
        except Exception as exc:
            if node.fallback is None:
                raise RenderError(_describe(node.children)) from exc
            return await self._render(node.fallback(exc), hydratable=hydratable)


def _describe(children: Any) -> str:
    if isinstance(children, Element):
        return getattr(children.component, "__qualname__", repr(children.component))
    if isinstance(children, Suspense):
        return _describe(children.children)
    return type(children).__name__


def render_attrs(attrs: dict[str, str]) -> Markup:
    """Render ``{"lang": "en"}`` as `` lang="en"`` with escaped values."""
    parts = [f' {name}="{html_escape(str(value))}"' for name, value in attrs.items()]
    return Markup("".join(parts))
