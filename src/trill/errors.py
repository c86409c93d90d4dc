"""trill exception hierarchy.

Shared across the route table builder, the build orchestrator, the dev
loop, and the request server so every module raises and catches the
same types.

Build-time errors (``RouteConflictError``, ``CompilationError``) stay
local to the dev loop and orchestrator; the server keeps serving the
last good build.  Request-time errors (``LoaderError``, ``RenderError``,
``RequestHandlingError``) are caught per request and become 500
responses.
"""


class TrillError(Exception):
    """Base for all trill-specific errors."""


class ConfigurationError(TrillError):
    """Raised when build options or the pages tree are invalid."""


class RouteConflictError(TrillError):
    """Two page files normalize to the same URL pattern.

    Aborts the current route table rebuild.  The previous table remains
    authoritative.
    """

    def __init__(self, pattern: str, first: str, second: str) -> None:
        self.pattern = pattern
        self.first = first
        self.second = second
        super().__init__(
            f"Route conflict: {first!r} and {second!r} both map to {pattern!r}"
        )


class IdentifierCollisionError(RouteConflictError):
    """Two page files sanitize to the same generated binding name."""

    def __init__(self, identifier: str, first: str, second: str) -> None:
        self.identifier = identifier
        self.pattern = identifier
        self.first = first
        self.second = second
        TrillError.__init__(
            self,
            f"Identifier collision: {first!r} and {second!r} both map to {identifier!r}",
        )


class CompilationError(TrillError):
    """A server or browser compilation pass failed.

    Aborts the current ``bundle()`` call; previously built artifacts
    stay live.
    """

    def __init__(self, platform: str, detail: str) -> None:
        self.platform = platform
        self.detail = detail
        super().__init__(f"{platform} build failed: {detail}")


class RequestError(TrillError):
    """Base for failures raised while handling a single request."""


class LoaderError(RequestError):
    """A route's data loader raised or timed out."""

    def __init__(self, pattern: str, path: str) -> None:
        self.pattern = pattern
        self.path = path
        super().__init__(f"Loader for {pattern!r} failed while loading {path!r}")


class RenderError(RequestError):
    """Rendering the component tree raised."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Rendering {url!r} failed")


class RequestHandlingError(RequestError):
    """Catch-all for anything else at the request boundary."""
