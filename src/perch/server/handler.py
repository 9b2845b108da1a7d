"""ASGI handler — translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly.  Converts scope dicts
to typed Request objects, runs the middleware chain around page
dispatch, and sends the Response back through ASGI send().
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch.config import AppConfig
from perch.context import RenderContext
from perch.errors import HTTPError, InvalidPath, MethodNotAllowed
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.csrf import get_csrf_token
from perch.middleware.protocol import Next
from perch.middleware.sessions import current_session
from perch.pages.layout import select_layout
from perch.pages.renderer import RenderPipeline
from perch.routing.catalog import CatalogStore
from perch.routing.path import normalize
from perch.routing.resolver import resolve
from perch.routing.route import RouteMatch
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.navigation import is_partial_request, vary_header
from perch.server.sender import send_response

logger = logging.getLogger("perch.server")

# Methods that reach pages; everything else is answered with 405
PAGE_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "POST"})


async def dispatch_page(
    request: Request,
    *,
    store: CatalogStore,
    pipeline: RenderPipeline,
    config: AppConfig,
) -> Response:
    """Resolve *request* against the current catalog and render the page.

    The catalog snapshot is taken once, so a rebuild mid-request never
    changes what this request sees.
    """
    if request.method not in PAGE_METHODS:
        raise MethodNotAllowed(PAGE_METHODS)

    catalog = store.refresh_if_stale() if config.debug else store.snapshot()

    try:
        match = resolve(normalize(request.path), catalog)
    except InvalidPath as exc:
        logger.debug("%s %s: %s", request.method, request.path, exc.reason)
        match = RouteMatch.not_found()

    form = await request.form() if request.method == "POST" else None
    ctx = RenderContext.from_request(
        request,
        partial=is_partial_request(request, config),
        csrf_token=get_csrf_token(),
        session=current_session(),
        form=form,
    )
    layout = select_layout(match, config=config)
    return await pipeline.render(match, layout, ctx)


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatch: Callable[[Request], Awaitable[Response]],
    middleware: tuple[Callable[..., Any], ...],
    config: AppConfig,
    pipeline: RenderPipeline | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline.

    Every response varies on the partial-navigation headers: the same URL
    serves a document or a JSON envelope depending on them.
    """
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    try:
        # Wrap middleware around the dispatch, first-added outermost
        handler = dispatch
        for mw in reversed(middleware):
            outer = handler

            async def make_next(req: Request, _mw: Any = mw, _next: Next = outer) -> Response:
                return await _mw(req, _next)

            handler = make_next

        response = await handler(request)

    except HTTPError as exc:
        response = await handle_http_error(exc, request, config, pipeline)
    except Exception as exc:
        response = await handle_internal_error(exc, request, config, pipeline)

    response = response.with_header("Vary", vary_header(config))
    logger.debug("%d %s %s", response.status, request.method, request.path)
    await send_response(response, send, head=request.method == "HEAD")
