"""Entry-point source generation.

Each build writes two entry files from the current route table:

- ``routes.py``: the server entry.  Imports every page module, pairs it
  with its pattern, and exposes ``ROUTES``, ``LOADERS``, ``ROUTER`` and
  the root component ``App``.
- ``client-entry.js``: the browser entry.  Matches ``location.pathname``
  against the same routes in the same precedence order and hydrates the
  page's browser companion, if it has one.

Output is a pure function of the route table, the build id, and the
module format: emitting twice yields byte-identical sources.  String
literals come from ``repr()`` (Python) and ``json.dumps`` (JavaScript).
"""

import json
from dataclasses import dataclass
from pathlib import Path

from trill.routing.patterns import to_js_regex
from trill.routing.table import RouteTable
from trill.serialize import JS_REVIVER

SERVER_ENTRY = "routes.py"
CLIENT_ENTRY = "client-entry.js"

RELOAD_PATH = "/_trill/live"
STATE_GLOBAL = "__TRILL_STATE__"


@dataclass(frozen=True, slots=True)
class EntrySources:
    server: str
    client: str


def emit(table: RouteTable, build_id: str, *, esm: bool = False) -> EntrySources:
    """Generate the server and client entry sources for *table*."""
    return EntrySources(
        server=emit_server(table, build_id, esm=esm),
        client=emit_client(table, build_id, esm=esm),
    )


def emit_server(table: RouteTable, build_id: str, *, esm: bool = False) -> str:
    """Generate the server entry.

    ``__TRILL_IS_SERVER__`` and ``__TRILL_DEV__`` are defined by the
    server compiler when it compiles this source.
    """
    fmt = "esm" if esm else "cjs"
    lines = [
        "# Generated by trill. Do not edit.",
        "from trill.routing import Router",
        "from trill.runtime import create_app, load_page, page_route",
        "",
        f"BUILD_ID = {build_id!r}",
        f"CLIENT_ENTRY = {CLIENT_ENTRY!r}",
        f"CLIENT_FORMAT = {fmt!r}",
        "IS_SERVER = __TRILL_IS_SERVER__",
        "DEV = __TRILL_DEV__",
        "",
    ]

    for route in table:
        lines.append(
            f"{route.identifier} = load_page(BUILD_ID, {route.identifier!r}, "
            f"{route.source_path.as_posix()!r})"
        )
    if len(table):
        lines.append("")

    lines.append("ROUTES = (")
    for route in table:
        lines.append(
            f"    page_route({route.url_pattern!r}, {route.identifier!r}, "
            f"{route.relative_path!r}, {route.identifier}),"
        )
    lines.append(")")
    lines.append("")

    lines.append("LOADERS = (")
    for route in table:
        lines.append(f"    ({route.url_pattern!r}, getattr({route.identifier}, 'load', None)),")
    lines.append(")")
    lines.append("")

    lines.append("ROUTER = Router(route.descriptor for route in ROUTES)")
    lines.append("App = create_app(ROUTES, ROUTER, dev=DEV)")
    lines.append("")
    return "\n".join(lines)


def emit_client(table: RouteTable, build_id: str, *, esm: bool = False) -> str:
    """Generate the browser entry.

    Companions are imported statically for the single-bundle format and
    lazily (``import()``) for split ES-module output.
    """
    imports: list[str] = []
    entries: list[str] = []

    for route in table.routes_by_precedence():
        source, keys = to_js_regex(route.url_pattern)
        if route.client_path is None:
            load = "null"
        elif esm:
            load = f"() => import({json.dumps(route.client_path.as_posix())})"
        else:
            binding = f"client_{route.identifier}"
            imports.append(f"import * as {binding} from {json.dumps(route.client_path.as_posix())};")
            load = f"() => Promise.resolve({binding})"
        entries.append(
            "  { "
            f"pattern: {json.dumps(route.url_pattern)}, "
            f"regex: new RegExp({json.dumps(source)}), "
            f"keys: {json.dumps(keys)}, "
            f"load: {load}"
            " },"
        )

    parts = ["// Generated by trill. Do not edit."]
    parts.extend(imports)
    parts.append("")
    parts.append(JS_REVIVER)
    parts.append(f"const BUILD_ID = {json.dumps(build_id)};")
    parts.append("const routes = [")
    parts.extend(entries)
    parts.append("];")
    parts.append(_CLIENT_RUNTIME.replace("$RELOAD_PATH", json.dumps(RELOAD_PATH)).replace(
        "$STATE_GLOBAL", STATE_GLOBAL
    ))
    return "\n".join(parts)


_CLIENT_RUNTIME = """
function matchRoute(pathname) {
  for (const route of routes) {
    const found = route.regex.exec(pathname);
    if (!found) continue;
    const params = {};
    route.keys.forEach((key, i) => {
      params[key] = found[i + 1] === undefined ? "" : decodeURIComponent(found[i + 1]);
    });
    return { route, params };
  }
  return null;
}

async function hydrate() {
  const root = document.getElementById("_trill");
  const state = __trillRevive(window.$STATE_GLOBAL || {});
  const found = matchRoute(window.location.pathname);
  if (!root || !found || !found.route.load) return;
  const page = await found.route.load();
  if (typeof page.hydrate !== "function") return;
  const routeData = state.routeData || {};
  const key = Object.keys(routeData)[0];
  page.hydrate(root, {
    buildId: BUILD_ID,
    statusCode: state.statusCode,
    params: found.params,
    routeData,
    data: key === undefined ? null : routeData[key],
  });
}

function liveReload() {
  const scheme = window.location.protocol === "https:" ? "wss" : "ws";
  const socket = new WebSocket(`${scheme}://${window.location.host}${$RELOAD_PATH}`);
  socket.addEventListener("message", (event) => {
    if (event.data === "reload") window.location.reload();
  });
}

if (!__TRILL_IS_SERVER__ && __TRILL_DEV__) liveReload();
hydrate();
"""


def write_entries(sources: EntrySources, directory: Path) -> tuple[Path, Path]:
    """Write both entries into *directory* and return ``(server, client)``."""
    directory.mkdir(parents=True, exist_ok=True)
    server = directory / SERVER_ENTRY
    client = directory / CLIENT_ENTRY
    server.write_text(sources.server, encoding="utf-8")
    client.write_text(sources.client, encoding="utf-8")
    return server, client
