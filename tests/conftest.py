"""Shared fixtures: project trees on disk and a browser compiler stand-in."""

import shutil
import textwrap
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from trill.build.compiler import BuildArtifact, CompileOptions
from trill.errors import CompilationError


class CopyCompiler:
    """Browser compiler for tests: copies entries instead of running esbuild."""

    def __init__(self) -> None:
        self.calls: list[CompileOptions] = []
        self.closed = False
        self.fail_next = False

    async def compile(self, entry_points: Sequence[Path], options: CompileOptions) -> BuildArtifact:
        self.calls.append(options)
        if self.fail_next:
            self.fail_next = False
            raise CompilationError(options.platform, "Expected ';' but found '}'")
        options.out_dir.mkdir(parents=True, exist_ok=True)
        files = []
        for entry in entry_points:
            target = options.out_dir / entry.name
            shutil.copyfile(entry, target)
            files.append(target)
        return BuildArtifact(platform=options.platform, out_dir=options.out_dir, files=tuple(files))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def copy_compiler() -> CopyCompiler:
    return CopyCompiler()


@pytest.fixture
def write_files(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write ``{relative path: source}`` under ``tmp_path`` and return it."""

    def write(files: dict[str, str]) -> Path:
        for relative, source in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(source), encoding="utf-8")
        return tmp_path

    return write


SITE = {
    "pages/index.py": """
        def default():
            return "<h1>Home</h1>"
    """,
    "pages/about.py": """
        from trill import use_head

        def default():
            use_head().title = "About"
            return "<h1>About</h1>"
    """,
    "pages/about.client.js": """
        export function hydrate(root, state) {}
    """,
    "pages/docs/[id].py": """
        from trill import Template, use_route_data

        def load(context):
            return {"title": "X"}

        def default():
            data = use_route_data()
            return Template.inline("<h1>{{ title }}</h1>", title=data["title"])
    """,
    "pages/broken.py": """
        async def load(context):
            raise RuntimeError("database unavailable")

        def default():
            return "<p>never rendered</p>"
    """,
}


@pytest.fixture
def site(write_files: Callable[[dict[str, str]], Path]) -> Path:
    """A small project with static, dynamic, and failing pages."""
    return write_files(SITE)
