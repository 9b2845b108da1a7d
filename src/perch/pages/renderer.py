"""The render pipeline — from a route match to a finished response.

One render executes the page once, then either wraps the result in its
layout (full document) or packs it into a JSON envelope (partial
navigation).  Unmatched paths render the not-found page, at most once:
if that page fails too, a built-in body is returned.

Every failure inside a render is caught here, reported once to the
diagnostics sink, and answered with a generic 500.  Sites customize
status pages with ``_errors/<status>.html`` templates; the built-in
bodies are used when none exists or it fails too.
"""

from __future__ import annotations

import html as html_module
import logging
import re
import traceback
from collections.abc import Mapping, Sequence
from typing import Any

from kida import Environment
from kida.environment.exceptions import TemplateNotFoundError

from perch.config import AppConfig
from perch.context import RenderContext
from perch.diagnostics import DiagnosticsSink, LoggingSink
from perch.errors import RenderFailure
from perch.http.response import Redirect, Response
from perch.pages.execute import TemplateExecutor
from perch.pages.layout import LayoutSpec, error_template
from perch.pages.types import PageResult
from perch.routing.route import RouteMatch

logger = logging.getLogger("perch.pages")

_H1_RE = re.compile(r"<h1\b[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_ID_SELECTOR_RE = re.compile(r"#([A-Za-z][\w-]*)")

NOT_FOUND_FRAGMENT = "<h1>404 Not Found</h1><p>The page you requested does not exist.</p>"
NOT_FOUND_BODY = (
    "<!DOCTYPE html>\n<html><head><title>404 Not Found</title></head>\n"
    f"<body>{NOT_FOUND_FRAGMENT}</body></html>\n"
)

SERVER_ERROR_BODY = (
    "<!DOCTYPE html>\n<html><head><title>500 Internal Server Error</title></head>\n"
    "<body><h1>500 Internal Server Error</h1>"
    "<p>Something went wrong while rendering this page.</p>{detail}</body></html>\n"
)


def extract_title(html: str) -> str | None:
    """Plain text of the first ``<h1>`` in *html*, or ``None``."""
    match = _H1_RE.search(html)
    if match is None:
        return None
    text = html_module.unescape(_TAG_RE.sub("", match.group(1)))
    text = " ".join(text.split())
    return text or None


def resolve_title(result: PageResult, match: RouteMatch, config: AppConfig) -> str:
    """Pick the document title for a rendered page.

    Priority: the page context's ``title``, then the template's
    ``{# title: ... #}`` declaration, then the first ``<h1>`` plus
    ``config.title_suffix``, then ``config.app_name``.
    """
    if result.title:
        return result.title
    if match.entry is not None and match.entry.title:
        return match.entry.title
    heading = extract_title(result.html)
    if heading:
        return heading + config.title_suffix
    return config.app_name


def content_element_id(selector: str) -> str:
    """The element id an ``#id`` content selector targets, else ``""``."""
    match = _ID_SELECTOR_RE.fullmatch(selector.strip())
    return match.group(1) if match else ""


def script_tags(urls: Sequence[str]) -> str:
    return "".join(
        f'<script src="{html_module.escape(url, quote=True)}" defer></script>\n' for url in urls
    )


def inject_before_body_end(document: str, snippet: str) -> str:
    """Insert *snippet* before ``</body>``, or append it when there is none."""
    if not snippet:
        return document
    index = document.lower().rfind("</body>")
    if index == -1:
        return document + snippet
    return document[:index] + snippet + document[index:]


class RenderPipeline:
    """Turns a :class:`RouteMatch` plus a :class:`LayoutSpec` into a response.

    Args:
        env: The kida environment that loads layouts.
        executor: Runs page logic and templates.
        config: Titles, not-found template and debug flag come from here.
        sink: Receives one entry per failed render.
        navigation_script: Markup appended to the ``scripts`` slot of
            every full document (the zero-refresh navigation client).
    """

    __slots__ = ("_config", "_env", "_executor", "_navigation_script", "_sink")

    def __init__(
        self,
        env: Environment,
        executor: TemplateExecutor,
        *,
        config: AppConfig,
        sink: DiagnosticsSink | None = None,
        navigation_script: str = "",
    ) -> None:
        self._env = env
        self._executor = executor
        self._config = config
        self._sink = sink if sink is not None else LoggingSink()
        self._navigation_script = navigation_script

    @property
    def sink(self) -> DiagnosticsSink:
        return self._sink

    async def render(self, match: RouteMatch, layout: LayoutSpec, ctx: RenderContext) -> Response:
        """Render *match* wrapped in *layout* for the request in *ctx*."""
        if not match.found:
            return await self._render_not_found(match, layout, ctx)

        assert match.template_id is not None
        try:
            result = await self._executor.execute(match.template_id, match.params, ctx)
        except Exception as exc:
            return await self._failure(match.template_id, exc, ctx)

        if result.redirect is not None:
            return self._redirect(result.redirect, ctx)

        title = resolve_title(result, match, self._config)
        if ctx.partial:
            return self._envelope(ok=True, status=200, html=result.html, title=title)

        try:
            document = self._compose(layout, result, title, ctx)
        except Exception as exc:
            return await self._failure(layout.template_name, exc, ctx)
        return Response(body=document)

    async def render_status(
        self,
        status: int,
        ctx: RenderContext,
        *,
        detail: str = "",
        exc: BaseException | None = None,
    ) -> Response | None:
        """Render the site's ``_errors/<status>.html`` page.

        The template sees ``status`` and ``detail``; ``error`` (the
        exception type and message) is added only in debug mode.

        Returns ``None`` when the site has no such template, or when it
        fails; that failure is reported to the sink.
        """
        template_id = error_template(status)
        if not self._has_template(template_id):
            return None

        params = {"status": str(status), "detail": detail}
        if exc is not None and self._config.debug:
            params["error"] = f"{type(exc).__name__}: {exc}"

        layout = LayoutSpec(self._config.default_layout)
        try:
            result = await self._executor.execute(template_id, params, ctx)
            title = resolve_title(result, RouteMatch.not_found(), self._config)
            if ctx.partial:
                return self._envelope(
                    ok=False,
                    status=status,
                    html=result.html,
                    title=title,
                    extra={"error": detail},
                )
            document = self._compose(layout, result, title, ctx)
        except Exception as render_exc:
            self._report(template_id, render_exc, ctx)
            return None
        return Response(body=document, status=status)

    # -- Not found --

    async def _render_not_found(
        self,
        match: RouteMatch,
        layout: LayoutSpec,
        ctx: RenderContext,
    ) -> Response:
        """Render the not-found page once; fall back to the built-in body."""
        template_id = self._config.not_found_template
        try:
            result = await self._executor.execute(template_id, {}, ctx)
            title = resolve_title(result, match, self._config)
            if ctx.partial:
                return self._envelope(ok=False, status=404, html=result.html, title=title)
            document = self._compose(layout, result, title, ctx)
        except Exception as exc:
            self._report(template_id, exc, ctx)
            if ctx.partial:
                return self._envelope(
                    ok=False, status=404, html=NOT_FOUND_FRAGMENT, title="404 Not Found"
                )
            return Response(body=NOT_FOUND_BODY, status=404)
        return Response(body=document, status=404)

    # -- Composition --

    def _compose(
        self,
        layout: LayoutSpec,
        result: PageResult,
        title: str,
        ctx: RenderContext,
    ) -> str:
        """Render the layout around the page and inject the scripts slot."""
        scripts = script_tags(result.scripts) + self._navigation_script
        filled = layout.with_slots(content=result.html, title=title, scripts=scripts)

        context: dict[str, Any] = {
            **result.context,
            "request": ctx,
            "title": title,
            "csrf_token_value": ctx.csrf_token or "",
            "content_selector": self._config.content_selector,
            "content_id": content_element_id(self._config.content_selector),
        }
        template = self._env.get_template(filled.template_name)
        document = template.render_with_blocks({"content": filled.slot("content")}, **context)
        return inject_before_body_end(document, filled.slot("scripts"))

    # -- Outcomes --

    def _redirect(self, redirect: Redirect, ctx: RenderContext) -> Response:
        if ctx.partial:
            return self._envelope(ok=True, status=200, html="", title=None, redirect=redirect.url)
        return Response(body="", status=redirect.status).with_header("Location", redirect.url)

    def _envelope(
        self,
        *,
        ok: bool,
        status: int,
        html: str,
        title: str | None,
        redirect: str | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> Response:
        payload: dict[str, Any] = {
            "ok": ok,
            "status": status,
            "html": html,
            "title": title,
            "redirect": redirect,
        }
        if extra:
            payload.update(extra)
        return Response.json(payload, status=status)

    async def _failure(
        self, template_id: str | None, exc: Exception, ctx: RenderContext
    ) -> Response:
        """Report *exc* and answer with the 500 page."""
        self._report(template_id, exc, ctx)

        custom = await self.render_status(500, ctx, detail="Internal Server Error", exc=exc)
        if custom is not None:
            return custom

        if ctx.partial:
            return self._envelope(
                ok=False,
                status=500,
                html="",
                title=self._config.app_name,
                extra={"error": "Internal Server Error"},
            )
        detail = ""
        if self._config.debug:
            trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            detail = f"<pre>{html_module.escape(trace)}</pre>"
        return Response(body=SERVER_ERROR_BODY.format(detail=detail), status=500)

    def _has_template(self, name: str) -> bool:
        """Whether *name* exists in the loader chain.

        A template that exists but does not compile still counts; its
        failure surfaces (and is reported) when it is rendered.
        """
        try:
            self._env.get_template(name)
        except TemplateNotFoundError:
            return False
        except Exception:
            return True
        return True

    def _report(self, template_id: str | None, exc: Exception, ctx: RenderContext) -> None:
        failure = RenderFailure(template_id, exc)
        try:
            self._sink.report(failure, path=ctx.path, method=ctx.method)
        except Exception:
            logger.exception("Diagnostics sink failed while reporting %s", failure)
