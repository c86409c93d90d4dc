"""Tests for trill.build.orchestrator and trill.build.generation."""

import sys
from pathlib import Path

import pytest

from trill.build.generation import BuildIdentifier, Generation, build_sort_key
from trill.build.orchestrator import Orchestrator
from trill.build.templates import CLIENT_ENTRY, SERVER_ENTRY
from trill.config import BuildMeta, BuildOptions, load_build_meta, save_build_meta
from trill.errors import CompilationError, ConfigurationError
from trill.routing.table import scan

from conftest import CopyCompiler


def _orchestrator(root: Path, compiler: CopyCompiler, *, dev: bool = True, esm: bool = False) -> Orchestrator:
    return Orchestrator(
        BuildOptions(root=root, dev=dev, esm=esm),
        client_compiler=lambda: compiler,
        build_ids=BuildIdentifier(clock=lambda: 1.0),
    )


class TestBuildIdentifier:
    def test_ids_are_ordered(self) -> None:
        ids = BuildIdentifier(clock=lambda: 2.5)
        assert [ids.next(), ids.next()] == ["2500-1", "2500-2"]

    def test_sort_key(self) -> None:
        assert sorted(["1-10", "1-9", "2-1"], key=build_sort_key) == ["1-9", "1-10", "2-1"]
        assert build_sort_key("junk") == (-1,)


class TestBundle:
    async def test_writes_generation(self, site: Path, copy_compiler: CopyCompiler) -> None:
        orchestrator = _orchestrator(site, copy_compiler)
        generation = await orchestrator.bundle(scan(site / "pages"))

        assert orchestrator.current is generation
        assert generation.build_id == "1000-1"
        assert (generation.server_dir / SERVER_ENTRY).is_file()
        assert (generation.client_dir / CLIENT_ENTRY).is_file()
        assert not (orchestrator.templates_dir / generation.build_id).exists()
        await orchestrator.dispose()

    async def test_server_module_exposes_app(self, site: Path, copy_compiler: CopyCompiler) -> None:
        orchestrator = _orchestrator(site, copy_compiler)
        generation = await orchestrator.bundle(scan(site / "pages"))
        module = generation.server_module()

        assert module.BUILD_ID == generation.build_id
        assert module.IS_SERVER is True
        assert module.DEV is True
        assert {route.pattern for route in module.ROUTES} == {"/", "/about", "/broken", "/docs/:id"}
        assert module.__spec__ is not None
        assert module.__spec__.origin == str(generation.server_dir / SERVER_ENTRY)
        assert sys.modules[module.__name__] is module
        assert callable(module.App)
        assert generation.server_module() is module
        generation.release()
        await orchestrator.dispose()

    async def test_client_options(self, site: Path, copy_compiler: CopyCompiler) -> None:
        orchestrator = _orchestrator(site, copy_compiler, dev=False, esm=True)
        await orchestrator.bundle(scan(site / "pages"))

        (options,) = copy_compiler.calls
        assert options.platform == "browser"
        assert options.format == "esm"
        assert options.splitting is True
        assert options.minify is True
        assert options.define["__TRILL_IS_SERVER__"] == "false"
        assert options.define["process.env.NODE_ENV"] == '"production"'
        await orchestrator.dispose()

    async def test_single_bundle_client(self, site: Path, copy_compiler: CopyCompiler) -> None:
        orchestrator = _orchestrator(site, copy_compiler)
        await orchestrator.bundle(scan(site / "pages"))

        (options,) = copy_compiler.calls
        assert options.format == "iife"
        assert options.splitting is False
        assert options.sourcemap is True
        assert options.external == ()
        await orchestrator.dispose()

    async def test_failed_pass_keeps_current(self, site: Path, copy_compiler: CopyCompiler) -> None:
        orchestrator = _orchestrator(site, copy_compiler)
        first = await orchestrator.bundle(scan(site / "pages"))

        copy_compiler.fail_next = True
        with pytest.raises(CompilationError) as exc_info:
            await orchestrator.bundle(scan(site / "pages"))

        assert exc_info.value.platform == "browser"
        assert orchestrator.current is first
        assert not (orchestrator.builds_dir / "1000-2").exists()
        await orchestrator.dispose()

    async def test_prunes_old_generations(self, site: Path, copy_compiler: CopyCompiler) -> None:
        orchestrator = _orchestrator(site, copy_compiler)
        for _ in range(4):
            await orchestrator.bundle(scan(site / "pages"))

        remaining = sorted(p.name for p in orchestrator.builds_dir.iterdir())
        assert remaining == ["1000-3", "1000-4"]
        assert orchestrator.current is not None
        assert orchestrator.current.build_id == "1000-4"
        await orchestrator.dispose()

    async def test_prune_keeps_recorded_build(self, site: Path, copy_compiler: CopyCompiler) -> None:
        builder = _orchestrator(site, copy_compiler, dev=False)
        built = await builder.bundle(scan(site / "pages"))
        save_build_meta(builder.options.cache_path, BuildMeta(build_id=built.build_id))
        await builder.dispose()

        dev = Orchestrator(
            BuildOptions(root=site, dev=True),
            client_compiler=CopyCompiler,
            build_ids=BuildIdentifier(clock=lambda: 2.0),
        )
        for _ in range(3):
            await dev.bundle(scan(site / "pages"))
        await dev.dispose()

        remaining = sorted(p.name for p in dev.builds_dir.iterdir())
        assert remaining == ["1000-1", "2000-2", "2000-3"]
        meta = load_build_meta(site / ".trill")
        adopted = _orchestrator(site, CopyCompiler(), dev=False).adopt(meta.build_id)
        assert adopted.build_id == "1000-1"


class TestLifecycle:
    async def test_dispose_closes_services(self, site: Path, copy_compiler: CopyCompiler) -> None:
        orchestrator = _orchestrator(site, copy_compiler)
        await orchestrator.bundle(scan(site / "pages"))
        await orchestrator.dispose()
        assert copy_compiler.closed
        await orchestrator.dispose()

    async def test_adopt(self, site: Path, copy_compiler: CopyCompiler) -> None:
        builder = _orchestrator(site, copy_compiler, dev=False)
        built = await builder.bundle(scan(site / "pages"))
        await builder.dispose()

        fresh = _orchestrator(site, CopyCompiler(), dev=False)
        adopted = fresh.adopt(built.build_id)
        assert fresh.current is adopted
        assert adopted.directory == built.directory

    def test_adopt_missing_build(self, tmp_path: Path) -> None:
        orchestrator = _orchestrator(tmp_path, CopyCompiler())
        with pytest.raises(ConfigurationError):
            orchestrator.adopt("404-1")

    def test_open_requires_both_halves(self, tmp_path: Path) -> None:
        (tmp_path / "1-1" / "server").mkdir(parents=True)
        (tmp_path / "1-1" / "server" / SERVER_ENTRY).write_text("")
        with pytest.raises(ConfigurationError):
            Generation.open(tmp_path, "1-1")
