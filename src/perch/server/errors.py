"""Error responses for failures outside the render pipeline.

The render pipeline answers its own failures.  What reaches this module
is an ``HTTPError`` raised by middleware or the dispatcher (403 from
CSRF validation, 405 for unsupported methods) or an unexpected
exception escaping middleware.  The site's ``_errors/<status>.html``
page is used when it exists.  Otherwise partial requests get a JSON
envelope so the navigation client can react; everyone else gets a small
page.
"""

import html
import logging

from perch.config import AppConfig
from perch.context import RenderContext
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.pages.renderer import RenderPipeline
from perch.server.navigation import is_partial_request

logger = logging.getLogger("perch.server")

_REASONS = {
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}


def error_document(status: int, detail: str) -> str:
    """Minimal standalone HTML page for an error status."""
    reason = _REASONS.get(status, "Error")
    return (
        "<!DOCTYPE html>\n"
        f"<html><head><title>{status} {reason}</title></head>\n"
        f"<body><h1>{status} {reason}</h1><p>{html.escape(detail)}</p></body></html>\n"
    )


def error_envelope(status: int, detail: str) -> Response:
    return Response.json(
        {
            "ok": False,
            "status": status,
            "html": "",
            "title": None,
            "redirect": None,
            "error": detail,
        },
        status=status,
    )


def _status_context(request: Request, config: AppConfig) -> RenderContext:
    return RenderContext.from_request(request, partial=is_partial_request(request, config))


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    config: AppConfig,
    pipeline: RenderPipeline | None = None,
) -> Response:
    """Map an HTTPError to a Response.

    Uses the site's ``_errors/<status>.html`` page when *pipeline* is
    given and the template exists.
    """
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    detail = exc.detail or _REASONS.get(exc.status, f"Error {exc.status}")
    response = None
    if pipeline is not None:
        ctx = _status_context(request, config)
        response = await pipeline.render_status(exc.status, ctx, detail=detail)
    if response is None:
        if is_partial_request(request, config):
            response = error_envelope(exc.status, detail)
        else:
            response = Response(body=error_document(exc.status, detail), status=exc.status)

    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    config: AppConfig,
    pipeline: RenderPipeline | None = None,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.path)

    if pipeline is not None:
        ctx = _status_context(request, config)
        response = await pipeline.render_status(
            500, ctx, detail="Internal Server Error", exc=exc
        )
        if response is not None:
            return response

    detail = "Internal Server Error"
    if config.debug:
        detail = f"{type(exc).__name__}: {exc}"

    if is_partial_request(request, config):
        return error_envelope(500, detail)
    return Response(body=error_document(500, detail), status=500)
