"""Tests for trill.routing.table: scanning pages and applying file events."""

from pathlib import Path

import pytest

from trill.errors import IdentifierCollisionError, RouteConflictError
from trill.routing.table import FileEventKind, RouteTable, scan


def _touch(root: Path, *relative: str) -> None:
    for rel in relative:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("def default():\n    return ''\n", encoding="utf-8")


class TestScan:
    def test_scan_builds_routes(self, tmp_path: Path) -> None:
        _touch(tmp_path, "index.py", "about.py", "docs/[id].py")
        table = scan(tmp_path)
        assert [r.url_pattern for r in table] == ["/about", "/docs/:id", "/"]
        assert len(table) == 3

    def test_routes_sorted_by_relative_path(self, tmp_path: Path) -> None:
        _touch(tmp_path, "zeta.py", "alpha.py", "docs/[id].py")
        table = scan(tmp_path)
        assert [r.relative_path for r in table] == ["alpha.py", "docs/[id].py", "zeta.py"]

    def test_private_modules_skipped(self, tmp_path: Path) -> None:
        _touch(tmp_path, "about.py", "_helpers.py", "_lib/db.py")
        table = scan(tmp_path)
        assert table.relative_paths == frozenset({"about.py"})

    def test_companion_attached(self, tmp_path: Path) -> None:
        _touch(tmp_path, "about.py", "index.py")
        (tmp_path / "about.client.ts").write_text("export function hydrate() {}")
        table = scan(tmp_path)
        about = table.get("about.py")
        assert about is not None
        assert about.client_path == tmp_path.resolve() / "about.client.ts"
        index = table.get("index.py")
        assert index is not None
        assert index.client_path is None

    def test_missing_directory_gives_empty_table(self, tmp_path: Path) -> None:
        table = scan(tmp_path / "nope")
        assert len(table) == 0

    def test_source_paths_are_absolute(self, tmp_path: Path) -> None:
        _touch(tmp_path, "about.py")
        route = next(iter(scan(tmp_path)))
        assert route.source_path.is_absolute()
        assert route.identifier == "page_about_py"


class TestConflicts:
    def test_same_pattern_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(RouteConflictError) as exc_info:
            RouteTable.from_paths(tmp_path, ["about.py", "about/index.py"])
        assert exc_info.value.pattern == "/about"

    def test_param_names_do_not_disambiguate(self, tmp_path: Path) -> None:
        with pytest.raises(RouteConflictError):
            RouteTable.from_paths(tmp_path, ["docs/[id].py", "docs/[slug].py"])

    def test_identifier_collision_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(IdentifierCollisionError) as exc_info:
            RouteTable.from_paths(tmp_path, ["a-b.py", "a_b.py"])
        assert exc_info.value.identifier == "page_a_b_py"


class TestFileEvents:
    def test_add_page(self, tmp_path: Path) -> None:
        table = RouteTable.from_paths(tmp_path, ["index.py"])
        updated = table.apply_file_event(FileEventKind.ADD, "about.py")
        assert updated.relative_paths == frozenset({"index.py", "about.py"})
        assert table.relative_paths == frozenset({"index.py"})

    def test_unlink_page(self, tmp_path: Path) -> None:
        table = RouteTable.from_paths(tmp_path, ["index.py", "about.py"])
        updated = table.apply_file_event("unlink", "about.py")
        assert updated.relative_paths == frozenset({"index.py"})

    def test_change_keeps_table(self, tmp_path: Path) -> None:
        table = RouteTable.from_paths(tmp_path, ["index.py"])
        assert table.apply_file_event(FileEventKind.CHANGE, "index.py") is table

    def test_unrelated_file_ignored(self, tmp_path: Path) -> None:
        table = RouteTable.from_paths(tmp_path, ["index.py"])
        assert table.apply_file_event(FileEventKind.ADD, "styles.css") is table

    def test_conflicting_add_raises(self, tmp_path: Path) -> None:
        table = RouteTable.from_paths(tmp_path, ["docs/[id].py"])
        with pytest.raises(RouteConflictError):
            table.apply_file_event(FileEventKind.ADD, "docs/[slug].py")

    def test_companion_add_and_unlink(self, tmp_path: Path) -> None:
        _touch(tmp_path, "about.py")
        table = scan(tmp_path)
        companion = tmp_path / "about.client.js"
        companion.write_text("export function hydrate() {}")

        added = table.apply_file_event(FileEventKind.ADD, "about.client.js")
        route = added.get("about.py")
        assert route is not None
        assert route.client_path == tmp_path.resolve() / "about.client.js"

        companion.unlink()
        removed = added.apply_file_event(FileEventKind.UNLINK, "about.client.js")
        route = removed.get("about.py")
        assert route is not None
        assert route.client_path is None

    def test_precedence_order(self, tmp_path: Path) -> None:
        table = RouteTable.from_paths(tmp_path, ["[...all].py", "docs/[id].py", "docs/new.py"])
        patterns = [r.url_pattern for r in table.routes_by_precedence()]
        assert patterns == ["/docs/new", "/docs/:id", "/*"]
