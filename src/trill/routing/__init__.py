"""Routing: file-derived route table with trie-based matching.

The table is rebuilt whenever the pages directory changes and compiled
into an immutable matcher for each build.
"""

from trill.routing.patterns import concrete_path, derive_identifier, derive_pattern
from trill.routing.route import RouteDescriptor, RouteMatch
from trill.routing.router import Router
from trill.routing.table import FileEventKind, RouteTable, scan

__all__ = [
    "FileEventKind",
    "RouteDescriptor",
    "RouteMatch",
    "RouteTable",
    "Router",
    "concrete_path",
    "derive_identifier",
    "derive_pattern",
    "scan",
]
