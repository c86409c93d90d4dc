"""Compiled router with trie-based path matching.

Built from a route table when a build is loaded and immutable afterwards.

Precedence, decided one segment at a time with backtracking:

1. a static segment that equals the path part
2. the parameter edge (``:name``)
3. the wildcard edge (``*``), which consumes the rest of the path

Parameter names live on the route, not the trie, so ``/docs/:id`` and
``/docs/:slug/edit`` share one parameter edge and each route gets its
own names back.  Two routes can never end on the same node: the route
table rejects patterns that normalize to the same string.
"""

from collections.abc import Iterable
from urllib.parse import unquote

from trill.routing.patterns import WILDCARD, concrete_path, parse_pattern, specificity
from trill.routing.route import RouteDescriptor, RouteMatch


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("children", "param_child", "route", "wildcard_route")

    def __init__(self) -> None:
        # Static segment children: "docs" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child, shared by every ``:name`` at this depth
        self.param_child: _TrieNode | None = None
        # Route whose pattern ends with ``*`` at this depth
        self.wildcard_route: RouteDescriptor | None = None
        # Route whose pattern ends exactly here
        self.route: RouteDescriptor | None = None


class Router:
    """Compiled router with trie-based path matching.

    Usage::

        router = Router(table)
        match = router.match("/docs/42")
        match.route.url_pattern   # "/docs/:id"
        match.params              # {"id": "42"}
        match.path                # "/docs/42"
    """

    __slots__ = ("_names", "_root", "_routes")

    def __init__(self, routes: Iterable[RouteDescriptor] = ()) -> None:
        self._root = _TrieNode()
        self._routes: list[RouteDescriptor] = []
        # identifier -> parameter names in positional order
        self._names: dict[str, list[str]] = {}
        for route in routes:
            self._add(route)

    def _add(self, route: RouteDescriptor) -> None:
        segments = parse_pattern(route.url_pattern)
        node = self._root
        names: list[str] = []

        for seg in segments:
            if seg.is_wildcard:
                names.append(WILDCARD)
                # First declared wins
                if node.wildcard_route is None:
                    node.wildcard_route = route
                break
            if seg.is_param:
                names.append(seg.value)
                if node.param_child is None:
                    node.param_child = _TrieNode()
                node = node.param_child
            else:
                if seg.value not in node.children:
                    node.children[seg.value] = _TrieNode()
                node = node.children[seg.value]
        else:
            if node.route is None:
                node.route = route

        self._names[route.identifier] = names
        self._routes.append(route)

    @property
    def routes(self) -> list[RouteDescriptor]:
        """All routes in matching precedence order.

        Sorting is stable, so same-specificity patterns keep their
        declaration order.
        """
        return sorted(self._routes, key=lambda r: specificity(r.url_pattern))

    def match(self, path: str) -> RouteMatch | None:
        """Match a request path against the compiled routes.

        Returns ``None`` when nothing matches; the caller falls back to
        the catch-all.
        """
        parts = [unquote(p) for p in path.split("?", 1)[0].strip("/").split("/") if p]
        result = self._match_node(self._root, parts, 0, [])
        if result is None:
            return None

        route, values = result
        params = dict(zip(self._names[route.identifier], values, strict=True))
        return RouteMatch(
            route=route,
            params=params,
            path=concrete_path(route.url_pattern, params),
        )

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        values: list[str],
    ) -> tuple[RouteDescriptor, list[str]] | None:
        """Recursively match path parts against the trie."""
        # All parts consumed: an exact route wins over an empty wildcard
        if index == len(parts):
            if node.route is not None:
                return node.route, values
            if node.wildcard_route is not None:
                return node.wildcard_route, [*values, ""]
            return None

        part = parts[index]

        # 1. Static child
        if part in node.children:
            result = self._match_node(node.children[part], parts, index + 1, values)
            if result is not None:
                return result

        # 2. Parameter child
        if node.param_child is not None:
            result = self._match_node(node.param_child, parts, index + 1, [*values, part])
            if result is not None:
                return result

        # 3. Wildcard
        if node.wildcard_route is not None:
            return node.wildcard_route, [*values, "/".join(parts[index:])]

        return None
