"""Request handling: match, load, render.

``RequestServer.handle`` is the whole per-request pipeline:

1. match the path against the live generation's router
2. run the matched route's loader, if any, under a timeout
3. ``Accept: application/json``: return the loader data as JSON
4. otherwise render the page, then the document shell around it,
   with the serialized state and the client entry script

Every failure is caught here and becomes a 500 response; the server
keeps serving the next request.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlsplit

import anyio
from kida import html_escape

from trill._internal.asgi import Receive, Scope, Send
from trill._internal.invoke import invoke
from trill.build.generation import Generation
from trill.build.templates import STATE_GLOBAL
from trill.errors import LoaderError, RenderError, RequestError, RequestHandlingError
from trill.http.headers import Headers, wants_json
from trill.http.response import Response
from trill.render.document import Document
from trill.render.nodes import Element
from trill.render.renderer import Renderer
from trill.routing.route import RouteMatch
from trill.runtime.context import LoadContext, RequestContext, context_var
from trill.serialize import encode
from trill.server.errors import handle_internal_error
from trill.server.sender import send_response
from trill.server.static import StaticFiles

logger = logging.getLogger("trill.server")

ASSET_PREFIX = "/_trill"
ALLOWED_METHODS = ("GET", "HEAD")

type GenerationSource = Callable[[], Generation | None]


class RequestServer:
    """Serves pages from whichever generation is live.

    *generation* is called once per request; the request then uses that
    generation's server module and client entry throughout.
    """

    __slots__ = ("_dev", "_generation", "_loader_timeout", "_renderer")

    def __init__(
        self,
        generation: GenerationSource,
        renderer: Renderer,
        *,
        dev: bool = False,
        loader_timeout: float | None = 30.0,
    ) -> None:
        self._generation = generation
        self._renderer = renderer
        self._dev = dev
        self._loader_timeout = loader_timeout

    async def handle(self, method: str, url: str, headers: Mapping[str, str] | None = None) -> Response:
        """Handle one request. Never raises."""
        headers = Headers.from_mapping(headers or {})
        if method not in ALLOWED_METHODS:
            return Response(
                body="Method Not Allowed",
                status=405,
                content_type="text/plain; charset=utf-8",
            ).with_header("Allow", ", ".join(ALLOWED_METHODS))

        try:
            generation = self._generation()
            if generation is None:
                raise RequestHandlingError("No build is available yet")
            try:
                module = generation.server_module()
            except Exception as exc:
                raise RequestHandlingError(f"Loading build {generation.build_id} failed") from exc
            return await self._respond(module, url, headers)
        except Exception as exc:
            return handle_internal_error(exc, method, url, dev=self._dev)

    async def _respond(self, module: Any, url: str, headers: Headers) -> Response:
        path = urlsplit(url).path or "/"
        match = module.ROUTER.match(path)
        route_data: dict[str, Any] = {}
        if match is not None:
            loader = dict(module.LOADERS).get(match.route.url_pattern)
            if loader is not None:
                route_data[match.path] = await self._load(loader, match, url, headers)

        if wants_json(headers):
            return Response(
                body=encode(route_data),
                status=200 if match is not None else 404,
                content_type="application/json",
            )

        context = RequestContext(url=url, route_data=route_data)
        token = context_var.set(context)
        try:
            main = await self._renderer.render_to_string(Element(module.App))
        except RequestError:
            raise
        except Exception as exc:
            raise RenderError(url) from exc
        finally:
            context_var.reset(token)

        scripts = state_scripts(
            context,
            build_id=module.BUILD_ID,
            entry=module.CLIENT_ENTRY,
            esm=module.CLIENT_FORMAT == "esm",
        )
        try:
            document = await self._renderer.render_to_static_markup(
                Element(Document, {"head": context.head, "main": main, "scripts": scripts})
            )
        except Exception as exc:
            raise RenderError(url) from exc
        return Response(body="<!DOCTYPE html>" + document, status=context.status_code)

    async def _load(self, loader: Callable[..., Any], match: RouteMatch, url: str, headers: Headers) -> Any:
        context = LoadContext(params=dict(match.params), url=url, headers=headers, path=match.path)
        try:
            if self._loader_timeout is None:
                return await invoke(loader, context)
            with anyio.fail_after(self._loader_timeout):
                return await invoke(loader, context)
        except Exception as exc:
            raise LoaderError(match.route.url_pattern, match.path) from exc


def state_scripts(context: RequestContext, *, build_id: str, entry: str, esm: bool) -> str:
    """Inline state script plus the client entry script tag."""
    state = encode({"statusCode": context.status_code, "routeData": context.route_data})
    kind = ' type="module"' if esm else ""
    src = html_escape(f"{ASSET_PREFIX}/{entry}?t={build_id}")
    return (
        f"<script>window.{STATE_GLOBAL} = {state};</script>\n"
        f'<script{kind} src="{src}"></script>'
    )


async def handle_http(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    server: RequestServer,
    mounts: tuple[StaticFiles, ...] = (),
) -> None:
    """ASGI HTTP entry: static mounts first, then the page pipeline."""
    method = scope["method"]
    path = scope.get("path") or "/"
    query = scope.get("query_string", b"").decode("latin-1")
    url = f"{path}?{query}" if query else path

    response: Response | None = None
    for mount in mounts:
        response = mount.resolve(method, path)
        if response is not None:
            break
    if response is None:
        response = await server.handle(method, url, Headers(tuple(scope.get("headers", ()))))
    logger.debug("%d %s %s", response.status, method, url)
    await send_response(response, send, head=method == "HEAD")
