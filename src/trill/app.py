"""Trill runtime: the ASGI application object.

Lifecycle::

    app = Trill(BuildOptions(root="site", dev=True))
    app.prepare()            # scan pages/ into a route table
    await app.bundle()       # build a generation and make it live
    ...                      # serve (ASGI) or stop after a build
    await app.dispose()      # stop the dev loop and compiler services

``startup()`` runs the right sequence for the mode and is called by the
ASGI lifespan protocol, so serving under pounce needs only
``run_server(app, ...)``.

- development: scan, bundle, then watch for changes and rebuild
- production: reattach to the generation written by ``trill build``
"""

import logging
import sys
from collections.abc import Callable
from pathlib import Path

from trill._internal.asgi import Receive, Scope, Send
from trill.build.compiler import Compiler
from trill.build.generation import Generation
from trill.build.orchestrator import Orchestrator
from trill.build.templates import RELOAD_PATH
from trill.config import BuildMeta, BuildOptions, load_build_meta, save_build_meta
from trill.dev.loop import DevLoop
from trill.errors import CompilationError, ConfigurationError, RouteConflictError
from trill.realtime.reload import ReloadChannel
from trill.render.renderer import KidaRenderer, Renderer, create_environment
from trill.routing.table import RouteTable, scan
from trill.server.handler import ASSET_PREFIX, RequestServer, handle_http
from trill.server.static import StaticFiles

logger = logging.getLogger("trill.app")


class Trill:
    """The runtime: route table, build orchestration, and request serving.

    *server_compiler* / *client_compiler* are factories for the compiler
    services; the defaults compile the server entry in-process and run
    esbuild for the browser.
    """

    __slots__ = (
        "_mounts",
        "_server",
        "_started",
        "_table",
        "channel",
        "dev_loop",
        "options",
        "orchestrator",
    )

    def __init__(
        self,
        options: BuildOptions | None = None,
        *,
        renderer: Renderer | None = None,
        server_compiler: Callable[[], Compiler] | None = None,
        client_compiler: Callable[[], Compiler] | None = None,
    ) -> None:
        self.options = options or BuildOptions()
        self._table = RouteTable(pages_dir=self.options.pages_path.resolve())
        self.orchestrator = Orchestrator(
            self.options,
            server_compiler=server_compiler,
            client_compiler=client_compiler,
        )
        self.channel = ReloadChannel()
        self.dev_loop: DevLoop | None = None
        self._started = False

        if renderer is None:
            env = create_environment(
                [self.options.pages_path, self.options.root / "templates"],
                auto_reload=self.options.dev,
            )
            renderer = KidaRenderer(env)
        self._server = RequestServer(
            lambda: self.orchestrator.current,
            renderer,
            dev=self.options.dev,
            loader_timeout=self.options.loader_timeout,
        )
        asset_cache = "no-cache" if self.options.dev else "public, max-age=31536000, immutable"
        public_cache = "no-cache" if self.options.dev else "public, max-age=3600"
        self._mounts = (
            StaticFiles(self._client_dir, prefix=ASSET_PREFIX, cache_control=asset_cache),
            StaticFiles(self.options.public_path, prefix="/", cache_control=public_cache),
        )

    def _client_dir(self) -> Path | None:
        generation = self.orchestrator.current
        return generation.client_dir if generation is not None else None

    @property
    def server(self) -> RequestServer:
        return self._server

    @property
    def table(self) -> RouteTable:
        """The route table of the live generation."""
        if self.dev_loop is not None:
            return self.dev_loop.table
        return self._table

    @property
    def generation(self) -> Generation | None:
        return self.orchestrator.current

    # -- Lifecycle --

    def prepare(self) -> RouteTable:
        """Scan the pages directory into a fresh route table.

        The project root goes on ``sys.path`` so page modules can import
        project-local helpers.
        """
        root = str(self.options.root)
        if root not in sys.path:
            sys.path.insert(0, root)
        self._table = scan(self.options.pages_path)
        logger.info("Found %d page(s) in %s", len(self.table), self.options.pages_path)
        return self.table

    async def bundle(self) -> Generation:
        """Build the current route table into a live generation."""
        return await self.orchestrator.bundle(self.table)

    async def build(self) -> Generation:
        """Production build: scan, bundle, record the build, stop."""
        try:
            self.prepare()
            generation = await self.bundle()
            save_build_meta(
                self.options.cache_path,
                BuildMeta(build_id=generation.build_id, format=self.options.module_format),
            )
            return generation
        finally:
            await self.dispose()

    async def startup(self) -> None:
        """Bring the runtime to a serving state. Idempotent."""
        if self._started:
            return
        self._started = True
        if self.options.dev:
            await self._start_dev()
        else:
            self._start_production()

    async def _start_dev(self) -> None:
        scanned = True
        try:
            self.prepare()
        except (RouteConflictError, ConfigurationError) as exc:
            scanned = False
            logger.error("Pages not loaded, serving the catch-all only: %s", exc)
        try:
            await self.bundle()
        except CompilationError as exc:
            logger.error("Initial build failed; waiting for changes: %s", exc)

        self.dev_loop = DevLoop(self.orchestrator, self.channel, self._table, rescan=not scanned)
        await self.dev_loop.start(self.options.pages_path, self.options.watch)

    def _start_production(self) -> None:
        meta = load_build_meta(self.options.cache_path)
        if meta.esm != self.options.esm:
            logger.info("Serving build %s in its recorded %s format", meta.build_id, meta.format)
        self.orchestrator.adopt(meta.build_id, esm=meta.esm)
        logger.info("Serving build %s", meta.build_id)

    async def dispose(self) -> None:
        """Stop the dev loop, disconnect browsers, stop compiler services."""
        if self.dev_loop is not None:
            await self.dev_loop.stop()
            self._table = self.dev_loop.table
            self.dev_loop = None
        self.channel.close()
        await self.orchestrator.dispose()
        self._started = False

    def start_server(self) -> None:
        """Serve with pounce until interrupted (blocking)."""
        from trill.server.serve import run_server

        workers = 1 if self.options.dev else self.options.workers
        run_server(self, self.options.host, self.options.port, workers=workers)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        match scope["type"]:
            case "lifespan":
                await self._handle_lifespan(scope, receive, send)
            case "http":
                await handle_http(scope, receive, send, server=self._server, mounts=self._mounts)
            case "websocket":
                await self._handle_websocket(scope, receive, send)
            case _:
                # pounce.worker.* and other server-specific scopes
                return

    async def _handle_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self.options.dev and scope.get("path") == RELOAD_PATH:
            await self.channel.handle(scope, receive, send)
            return
        message = await receive()
        if message["type"] == "websocket.connect":
            await send({"type": "websocket.close", "code": 1008})

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.dispose()
                await send({"type": "lifespan.shutdown.complete"})
                return
