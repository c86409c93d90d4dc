"""What page modules and the generated server entry import."""

from trill.runtime.app import (
    NOT_FOUND_ATTR,
    NotFound,
    PageRoute,
    create_app,
    load_page,
    module_prefix,
    page_route,
    release_build,
)
from trill.runtime.context import (
    Head,
    LoadContext,
    RequestContext,
    context_var,
    use_context,
    use_head,
    use_route_data,
)

__all__ = [
    "NOT_FOUND_ATTR",
    "Head",
    "LoadContext",
    "NotFound",
    "PageRoute",
    "RequestContext",
    "context_var",
    "create_app",
    "load_page",
    "module_prefix",
    "page_route",
    "release_build",
    "use_context",
    "use_head",
    "use_route_data",
]
