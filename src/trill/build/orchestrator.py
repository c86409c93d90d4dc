"""Build orchestration.

``bundle(table)`` turns a route table into a live generation:

1. issue a build id and emit both entry sources
2. run the server and browser passes concurrently
3. if both succeeded, swap the current-generation pointer
4. prune generations older than the previous one

A failed pass raises ``CompilationError`` and leaves the current
generation untouched.  Calls are serialized by a lock, so a later
bundle can never be replaced by an earlier one.
"""

import asyncio
import json
import logging
import shutil
import time
from collections.abc import Callable
from pathlib import Path

import anyio

from trill.build.compiler import (
    ASSET_LOADERS,
    BuildArtifact,
    CompileOptions,
    Compiler,
    EsbuildCompiler,
    ModuleCompiler,
)
from trill.build.external import get_external_deps
from trill.build.generation import BuildIdentifier, Generation, build_sort_key
from trill.build.templates import emit, write_entries
from trill.config import BuildOptions, load_build_meta
from trill.errors import CompilationError, ConfigurationError
from trill.routing.table import RouteTable

logger = logging.getLogger("trill.build")

type CompilerFactory = Callable[[], Compiler]


class Orchestrator:
    """Owns compiler services and the current generation.

    Usage::

        orchestrator = Orchestrator(options)
        generation = await orchestrator.bundle(scan(options.pages_path))
        ...
        await orchestrator.dispose()
    """

    __slots__ = (
        "_client_factory",
        "_current",
        "_externals",
        "_ids",
        "_keep",
        "_lock",
        "_server_factory",
        "_services",
        "options",
    )

    def __init__(
        self,
        options: BuildOptions,
        *,
        server_compiler: CompilerFactory | None = None,
        client_compiler: CompilerFactory | None = None,
        build_ids: BuildIdentifier | None = None,
        keep: int = 2,
    ) -> None:
        self.options = options
        self._server_factory: CompilerFactory = server_compiler or ModuleCompiler
        self._client_factory: CompilerFactory = client_compiler or (
            lambda: EsbuildCompiler(options.esbuild)
        )
        self._ids = build_ids or BuildIdentifier()
        self._keep = max(keep, 1)
        self._services: dict[str, Compiler] = {}
        self._current: Generation | None = None
        self._externals: tuple[str, ...] | None = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> Generation | None:
        """The live generation, or ``None`` before the first successful build."""
        return self._current

    @property
    def builds_dir(self) -> Path:
        return self.options.cache_path / "builds"

    @property
    def templates_dir(self) -> Path:
        return self.options.cache_path / "templates"

    # -- Options --

    def externals(self) -> tuple[str, ...]:
        if self._externals is None:
            self._externals = get_external_deps(self.options.root)
        return self._externals

    def compile_options(self, directory: Path) -> tuple[CompileOptions, CompileOptions]:
        """Server and browser options for a generation written to *directory*."""
        dev = self.options.dev
        common = {
            "process.env.NODE_ENV": json.dumps("development" if dev else "production"),
            "__TRILL_DEV__": json.dumps(dev),
        }
        server = CompileOptions(
            platform="server",
            format="cjs",
            out_dir=directory / "server",
            bundle=True,
            minify=not dev,
            sourcemap=dev,
            define={**common, "__TRILL_IS_SERVER__": "true"},
            external=self.externals(),
            loader=ASSET_LOADERS,
        )
        client = CompileOptions(
            platform="browser",
            format="esm" if self.options.esm else "iife",
            out_dir=directory / "client",
            bundle=True,
            minify=not dev,
            sourcemap=dev,
            splitting=self.options.esm,
            define={**common, "__TRILL_IS_SERVER__": "false"},
            loader=ASSET_LOADERS,
        )
        return server, client

    # -- Compiler services --

    def _service(self, platform: str) -> Compiler:
        service = self._services.get(platform)
        if service is None:
            factory = self._server_factory if platform == "server" else self._client_factory
            service = self._services[platform] = factory()
        return service

    # -- Build --

    async def bundle(self, table: RouteTable) -> Generation:
        """Build *table* into a new generation and make it current.

        Raises ``CompilationError`` if either pass fails.
        """
        async with self._lock:
            build_id = self._ids.next()
            start = time.perf_counter()
            logger.info("Bundle %s - %d route(s)", build_id, len(table))

            sources = emit(table, build_id, esm=self.options.esm)
            server_entry, client_entry = write_entries(sources, self.templates_dir / build_id)
            directory = self.builds_dir / build_id
            server_options, client_options = self.compile_options(directory)

            artifacts: dict[str, BuildArtifact] = {}
            errors: dict[str, CompilationError] = {}

            async def run(platform: str, entry: Path, options: CompileOptions) -> None:
                try:
                    artifacts[platform] = await self._service(platform).compile([entry], options)
                except CompilationError as exc:
                    errors[platform] = exc
                except OSError as exc:
                    errors[platform] = CompilationError(platform, str(exc))

            async with anyio.create_task_group() as tg:
                tg.start_soon(run, "server", server_entry, server_options)
                tg.start_soon(run, "browser", client_entry, client_options)

            shutil.rmtree(self.templates_dir / build_id, ignore_errors=True)
            if errors:
                shutil.rmtree(directory, ignore_errors=True)
                error = errors.get("server") or errors["browser"]
                logger.error("Bundle %s failed: %s", build_id, error)
                raise error

            generation = Generation(build_id=build_id, directory=directory, esm=self.options.esm)
            self._current = generation
            self._prune()
            elapsed = (time.perf_counter() - start) * 1000
            logger.info("Bundle %s - done in %.0fms", build_id, elapsed)
            return generation

    def adopt(self, build_id: str, *, esm: bool = False) -> Generation:
        """Make a generation written by ``trill build`` current."""
        generation = Generation.open(self.builds_dir, build_id, esm=esm)
        self._current = generation
        return generation

    def _prune(self) -> None:
        """Keep the newest ``keep`` generations on disk, current included.

        The build recorded by ``trill build`` is never pruned, so a dev
        session in the same project leaves ``trill start`` working.
        """
        if not self.builds_dir.is_dir() or self._current is None:
            return
        ids = sorted(
            (p.name for p in self.builds_dir.iterdir() if p.is_dir()),
            key=build_sort_key,
            reverse=True,
        )
        keep = set(ids[: self._keep]) | {self._current.build_id}
        recorded = self._recorded_build()
        if recorded is not None:
            keep.add(recorded)
        for build_id in ids:
            if build_id not in keep:
                Generation(build_id=build_id, directory=self.builds_dir / build_id).release()
                shutil.rmtree(self.builds_dir / build_id, ignore_errors=True)
                logger.debug("Pruned build %s", build_id)

    def _recorded_build(self) -> str | None:
        try:
            return load_build_meta(self.options.cache_path).build_id
        except ConfigurationError:
            return None

    # -- Teardown --

    async def dispose(self) -> None:
        """Stop every compiler service. Safe to call more than once.

        The current generation stays current; its imported modules are
        released and re-imported on next use.
        """
        if self._current is not None:
            self._current.release()
        services, self._services = self._services, {}
        for platform, service in services.items():
            try:
                await service.close()
            except OSError:
                logger.warning("Closing the %s compiler failed", platform, exc_info=True)
