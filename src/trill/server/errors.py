"""Request-boundary error handling.

Unexpected failures while handling a request become 500 responses.
Development shows the escaped traceback; production shows a fixed
message so nothing internal leaks.
"""

import logging
import traceback

from kida import html_escape

from trill.http.response import Response

logger = logging.getLogger("trill.server")

INTERNAL_ERROR = "Internal Server Error"


def render_traceback_page(exc: BaseException) -> str:
    """Plain development error page with the full exception chain."""
    trace = "".join(traceback.format_exception(exc))
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>500 {html_escape(type(exc).__name__)}</title></head><body>"
        f"<h1>{html_escape(str(exc) or type(exc).__name__)}</h1>"
        f"<pre>{html_escape(trace)}</pre>"
        "</body></html>"
    )


def handle_internal_error(exc: BaseException, method: str, url: str, *, dev: bool) -> Response:
    """Log *exc* and map it to a 500 response."""
    logger.error("500 %s %s", method, url, exc_info=exc)
    if dev:
        return Response(body=render_traceback_page(exc), status=500)
    return Response(body=INTERNAL_ERROR, status=500, content_type="text/plain; charset=utf-8")
