"""Tests for trill.runtime: page modules, the root component, and context."""

import sys
from pathlib import Path

import pytest

from trill.errors import ConfigurationError
from trill.render import KidaRenderer
from trill.render.nodes import Element
from trill.routing.table import scan
from trill.runtime.app import NOT_FOUND_ATTR, create_app, load_page, module_prefix, page_route, release_build
from trill.runtime.context import RequestContext, context_var, use_context, use_head, use_route_data


class TestLoadPage:
    def test_imports_under_build_prefix(self, site: Path) -> None:
        module = load_page("t-1", "page_about_py", site / "pages" / "about.py")
        try:
            assert module.__name__ == module_prefix("t-1") + "page_about_py"
            assert callable(module.default)
            assert load_page("t-1", "page_about_py", site / "pages" / "about.py") is module
        finally:
            assert release_build("t-1") == 1
        assert module.__name__ not in sys.modules

    def test_generations_do_not_share_modules(self, site: Path) -> None:
        path = site / "pages" / "about.py"
        try:
            assert load_page("t-1", "page_about_py", path) is not load_page("t-2", "page_about_py", path)
        finally:
            release_build("t-1")
            release_build("t-2")

    def test_requires_default(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.py"
        path.write_text("TITLE = 'x'\n")
        with pytest.raises(ConfigurationError, match="default"):
            load_page("t-3", "page_empty_py", path)
        assert release_build("t-3") == 0

    def test_module_prefix_is_identifier_safe(self) -> None:
        assert module_prefix("1700000000000-12") == "_trill_1700000000000_12_"


class TestRootComponent:
    async def _render(self, site: Path, url: str, *, dev: bool = False) -> tuple[str, RequestContext]:
        table = scan(site / "pages")
        routes = [
            page_route(
                route.url_pattern,
                route.identifier,
                route.relative_path,
                load_page("t-root", route.identifier, route.source_path),
            )
            for route in table
        ]
        app = create_app(routes, table.router(), dev=dev)
        context = RequestContext(url=url, route_data={"/docs/abc": {"title": "Loaded"}})
        token = context_var.set(context)
        try:
            html = await KidaRenderer().render_to_string(Element(app))
        finally:
            context_var.reset(token)
            release_build("t-root")
        return html, context

    async def test_matched_route(self, site: Path) -> None:
        html, context = await self._render(site, "/docs/abc")
        assert "<h1>Loaded</h1>" in html
        assert context.path == "/docs/abc"
        assert context.params == {"id": "abc"}
        assert context.status_code == 200

    async def test_not_found(self, site: Path) -> None:
        html, context = await self._render(site, "/missing")
        assert NOT_FOUND_ATTR in html
        assert context.status_code == 404
        assert "<code>" not in html

    async def test_not_found_lists_routes_in_dev(self, site: Path) -> None:
        html, _ = await self._render(site, "/missing", dev=True)
        assert "<code>/about</code>" in html

    async def test_component_sets_head(self, site: Path) -> None:
        _, context = await self._render(site, "/about")
        assert context.head.title == "About"


class TestContext:
    def test_outside_render_raises(self) -> None:
        with pytest.raises(LookupError):
            use_context()

    def test_accessors(self) -> None:
        context = RequestContext(url="/docs/a", route_data={"/docs/a": {"n": 1}}, path="/docs/a")
        token = context_var.set(context)
        try:
            assert use_context() is context
            assert use_route_data() == {"n": 1}
            assert use_head() is context.head
        finally:
            context_var.reset(token)

    def test_route_data_missing_for_path(self) -> None:
        token = context_var.set(RequestContext(url="/about", path="/about"))
        try:
            assert use_route_data() is None
        finally:
            context_var.reset(token)
