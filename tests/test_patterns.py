"""Tests for trill.routing.patterns: page paths to URL patterns."""

import pytest

from trill.errors import ConfigurationError
from trill.routing.patterns import (
    companion_owner,
    concrete_path,
    derive_identifier,
    derive_pattern,
    is_page_file,
    normalize_pattern,
    parse_pattern,
    specificity,
    to_js_regex,
)


class TestDerivePattern:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("index.py", "/"),
            ("about.py", "/about"),
            ("about/index.py", "/about"),
            ("docs/[id].py", "/docs/:id"),
            ("docs/[id]/edit.py", "/docs/:id/edit"),
            ("docs/[...slug].py", "/docs/*"),
            ("[...all].py", "/*"),
        ],
    )
    def test_conventions(self, path: str, expected: str) -> None:
        assert derive_pattern(path) == expected

    def test_windows_separators(self) -> None:
        assert derive_pattern("docs\\[id].py") == "/docs/:id"

    @pytest.mark.parametrize("path", ["index.py", "a/index/index.py", "docs/[id].py", "x/[...r].py"])
    def test_idempotent(self, path: str) -> None:
        once = derive_pattern(path)
        assert derive_pattern(once) == once

    def test_spread_must_be_last(self) -> None:
        with pytest.raises(ConfigurationError, match="must be the last"):
            derive_pattern("docs/[...slug]/edit.py")


class TestPageFiles:
    def test_page_module(self) -> None:
        assert is_page_file("about.py")
        assert is_page_file("docs/[id].py")

    def test_private_and_hidden_skipped(self) -> None:
        assert not is_page_file("_layout.py")
        assert not is_page_file("_lib/helpers.py")
        assert not is_page_file(".cache/x.py")

    def test_non_python_skipped(self) -> None:
        assert not is_page_file("about.client.js")
        assert not is_page_file("about.html")

    def test_companion_owner(self) -> None:
        assert companion_owner("about.client.js") == "about.py"
        assert companion_owner("docs/[id].client.tsx") == "docs/[id].py"
        assert companion_owner("about.js") is None
        assert companion_owner("about.client.css") is None


class TestIdentifiers:
    def test_sanitized(self) -> None:
        assert derive_identifier("docs/[id].py") == "page_docs__id__py"
        assert derive_identifier("about.py").isidentifier()

    def test_distinct_paths_can_collide(self) -> None:
        assert derive_identifier("a-b.py") == derive_identifier("a_b.py")


class TestPatternHelpers:
    def test_parse(self) -> None:
        segments = parse_pattern("/docs/:id/*")
        assert [s.kind for s in segments] == ["static", "param", "wildcard"]
        assert segments[1].value == "id"

    def test_parse_root(self) -> None:
        assert parse_pattern("/") == []

    def test_normalize_erases_names(self) -> None:
        assert normalize_pattern("/docs/:id") == normalize_pattern("/docs/:slug")

    def test_specificity_order(self) -> None:
        patterns = ["/*", "/docs/:id", "/docs/new", "/docs/*"]
        assert sorted(patterns, key=specificity) == ["/docs/new", "/docs/:id", "/docs/*", "/*"]

    def test_concrete_path(self) -> None:
        assert concrete_path("/docs/:id", {"id": "abc"}) == "/docs/abc"
        assert concrete_path("/docs/*", {"*": "a/b"}) == "/docs/a/b"
        assert concrete_path("/docs/*", {"*": ""}) == "/docs"

    def test_concrete_path_quotes(self) -> None:
        assert concrete_path("/docs/:id", {"id": "a b"}) == "/docs/a%20b"


class TestJsRegex:
    def test_static(self) -> None:
        assert to_js_regex("/about") == ("^/about/?$", [])

    def test_param_and_wildcard(self) -> None:
        source, keys = to_js_regex("/docs/:id/*")
        assert source == "^/docs/([^/]+?)(?:/(.*))?/?$"
        assert keys == ["id", "*"]

    def test_escapes_metacharacters(self) -> None:
        source, _ = to_js_regex("/a.b")
        assert "a\\.b" in source
