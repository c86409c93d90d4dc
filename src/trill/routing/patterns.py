"""Page path to URL pattern conversion.

File naming conventions under ``pages/``::

    index.py               -> /
    about.py               -> /about
    about/index.py         -> /about
    docs/[id].py           -> /docs/:id
    docs/[...slug].py      -> /docs/*
    docs/[id].client.ts    -> browser companion of docs/[id].py

Patterns use ``:name`` for a single-segment parameter and a trailing
``*`` for the rest of the path.  The wildcard value is bound to the
parameter named ``*``.
"""

import re
from pathlib import PurePath
from urllib.parse import quote

from trill.errors import ConfigurationError
from trill.routing.route import PathSegment

# Page module extensions recognised by the route table builder
SOURCE_EXTENSIONS: tuple[str, ...] = (".py",)

# Browser companion extensions (``<stem>.client<ext>``)
CLIENT_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".ts", ".tsx")

WILDCARD = "*"

_SPREAD_RE = re.compile(r"^\[\.\.\.(\w+)\]$")
_PARAM_RE = re.compile(r"^\[(\w+)\]$")
_IDENT_RE = re.compile(r"[^a-zA-Z0-9]")
_COMPANION_RE = re.compile(r"^(?P<stem>.+)\.client(?P<ext>\.[a-z]+)$")

# Characters left unescaped when rebuilding a concrete path
_PATH_SAFE = ":@!$&'()*+,;="


def _posix(path: str | PurePath) -> str:
    return str(path).replace("\\", "/")


def is_page_file(relative_path: str | PurePath) -> bool:
    """True if *relative_path* names a routable page module."""
    text = _posix(relative_path)
    parts = [p for p in text.split("/") if p]
    if not parts:
        return False
    if any(p.startswith(("_", ".")) for p in parts):
        return False
    return parts[-1].endswith(SOURCE_EXTENSIONS)


def companion_owner(relative_path: str | PurePath) -> str | None:
    """Return the page a browser companion belongs to, or ``None``.

    ``docs/[id].client.ts`` belongs to ``docs/[id].py``.
    """
    text = _posix(relative_path)
    parts = [p for p in text.split("/") if p]
    if not parts or any(p.startswith(("_", ".")) for p in parts):
        return None
    match = _COMPANION_RE.match(parts[-1])
    if match is None or match.group("ext") not in CLIENT_EXTENSIONS:
        return None
    owner = match.group("stem") + SOURCE_EXTENSIONS[0]
    return "/".join([*parts[:-1], owner])


def derive_pattern(relative_path: str | PurePath) -> str:
    """Derive the URL pattern for a page path relative to the pages root.

    Idempotent: ``derive_pattern(derive_pattern(p)) == derive_pattern(p)``.

    Raises ``ConfigurationError`` if a spread segment is not last.
    """
    text = _posix(relative_path).strip("/")
    for ext in SOURCE_EXTENSIONS:
        if text.endswith(ext):
            text = text[: -len(ext)]
            break

    segments = [s for s in text.split("/") if s]
    while segments and segments[-1] == "index":
        segments.pop()

    out: list[str] = []
    last = len(segments) - 1
    for i, segment in enumerate(segments):
        if spread := _SPREAD_RE.match(segment):
            if i != last:
                msg = (
                    f"Spread segment {segment!r} in {_posix(relative_path)!r} "
                    "must be the last path segment"
                )
                raise ConfigurationError(msg)
            out.append(WILDCARD)
        elif param := _PARAM_RE.match(segment):
            out.append(":" + param.group(1))
        elif segment == WILDCARD and i != last:
            msg = f"Wildcard in {_posix(relative_path)!r} must be the last path segment"
            raise ConfigurationError(msg)
        else:
            out.append(segment)
    return "/" + "/".join(out)


def derive_identifier(relative_path: str | PurePath) -> str:
    """Derive a Python-identifier-safe binding name from a page path."""
    return "page_" + _IDENT_RE.sub("_", _posix(relative_path))


def parse_pattern(pattern: str) -> list[PathSegment]:
    """Parse a URL pattern into segments.

    Examples::

        "/"          -> []
        "/docs"      -> [PathSegment("docs")]
        "/docs/:id"  -> [PathSegment("docs"), PathSegment("id", kind="param")]
        "/docs/*"    -> [PathSegment("docs"), PathSegment("*", kind="wildcard")]
    """
    segments: list[PathSegment] = []
    for part in pattern.strip("/").split("/"):
        if not part:
            continue
        if part == WILDCARD:
            segments.append(PathSegment(WILDCARD, kind="wildcard"))
        elif part.startswith(":") and len(part) > 1:
            segments.append(PathSegment(part[1:], kind="param"))
        else:
            segments.append(PathSegment(part))
    return segments


def normalize_pattern(pattern: str) -> str:
    """Erase parameter names so structurally identical patterns compare equal.

    ``/docs/:id`` and ``/docs/:slug`` both normalize to ``/docs/:``.
    """
    parts: list[str] = []
    for segment in parse_pattern(pattern):
        if segment.is_param:
            parts.append(":")
        else:
            parts.append(segment.value)
    return "/" + "/".join(parts)


def specificity(pattern: str) -> tuple[int, ...]:
    """Sort key implementing static > parameter > wildcard per segment."""
    ranks = {"static": 0, "param": 1, "wildcard": 2}
    return tuple(ranks[segment.kind] for segment in parse_pattern(pattern))


def concrete_path(pattern: str, params: dict[str, str]) -> str:
    """Substitute resolved parameters back into *pattern*.

    ``concrete_path("/docs/:id", {"id": "abc"}) == "/docs/abc"``
    """
    parts: list[str] = []
    for segment in parse_pattern(pattern):
        if segment.is_wildcard:
            rest = params.get(WILDCARD, "")
            if rest:
                parts.append("/".join(quote(p, safe=_PATH_SAFE) for p in rest.split("/")))
        elif segment.is_param:
            parts.append(quote(params[segment.value], safe=_PATH_SAFE))
        else:
            parts.append(segment.value)
    return "/" + "/".join(parts)


def to_js_regex(pattern: str) -> tuple[str, list[str]]:
    """Compile *pattern* to a JavaScript regular expression source.

    Returns ``(source, keys)`` where *keys* lists parameter names in
    capture-group order.  Used by the browser entry to find the route
    for ``location.pathname``.
    """
    source = "^"
    keys: list[str] = []
    for segment in parse_pattern(pattern):
        if segment.is_wildcard:
            source += "(?:/(.*))?"
            keys.append(WILDCARD)
        elif segment.is_param:
            source += "/([^/]+?)"
            keys.append(segment.value)
        else:
            source += "/" + re.sub(r"([\\^$.|?*+()\[\]{}/])", r"\\\1", segment.value)
    source += "/?$"
    return source, keys
