"""Perch application class.

Mutable during setup (middleware, template filters and globals).
Frozen at runtime when app.run() or __call__() is first invoked: the
page tree is compiled into a catalog, the kida environment and render
pipeline are created, and nothing can be registered any more.
"""

import functools
import inspect
import logging
import threading
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from kida import Environment

from perch._internal.asgi import Receive, Scope, Send
from perch.config import AppConfig
from perch.diagnostics import DiagnosticsSink
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.csrf import csrf_field, csrf_token
from perch.middleware.protocol import Middleware
from perch.pages.discovery import build_catalog, page_tree_fingerprint
from perch.pages.execute import KidaExecutor, TemplateExecutor
from perch.pages.layout import select_layout
from perch.pages.renderer import RenderPipeline
from perch.routing.catalog import CatalogStore, PageCatalog
from perch.routing.path import normalize
from perch.routing.resolver import resolve
from perch.routing.route import RouteMatch
from perch.server.handler import dispatch_page, handle_request
from perch.server.navigation import navigation_script_tag
from perch.templating.integration import create_environment

logger = logging.getLogger("perch.server")


class App:
    """The perch application.

    Usage::

        from perch import App, AppConfig

        app = App(AppConfig(pages_dir="pages", app_name="Docs"))

        @app.template_filter()
        def shout(value: str) -> str:
            return value.upper()

        app.run()

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app, even when several ASGI workers receive
        their first request at the same time.
    """

    __slots__ = (
        "_catalog_store",
        "_dispatch",
        "_executor",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_middleware",
        "_middleware_list",
        "_pipeline",
        "_shutdown_hooks",
        "_sink",
        "_startup_hooks",
        "_template_filters",
        "_template_globals",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        executor: TemplateExecutor | None = None,
        sink: DiagnosticsSink | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._executor = executor
        self._sink = sink
        self._middleware_list: list[Middleware] = []
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Compiled state, set during _freeze()
        self._catalog_store: CatalogStore | None = None
        self._kida_env: Environment | None = None
        self._pipeline: RenderPipeline | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._dispatch: Callable[[Request], Awaitable[Response]] | None = None

    # -- Setup --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware; the first one added runs outermost."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    def template_filter(self, name: str | None = None) -> Callable[..., Any]:
        """Register a kida template filter via decorator.

        Usage::

            @app.template_filter()
            def currency(value: float) -> str:
                return f"${value:,.2f}"
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(self, name: str | None = None) -> Callable[..., Any]:
        """Register a kida template global via decorator.

        Usage::

            @app.template_global()
            def site_name() -> str:
                return "Docs"
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a lifespan startup hook (sync or async)."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a lifespan shutdown hook (sync or async)."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Introspection --

    @property
    def catalog(self) -> PageCatalog:
        """The current page catalog snapshot (freezes the app)."""
        self._ensure_frozen()
        assert self._catalog_store is not None
        return self._catalog_store.snapshot()

    def reload_pages(self) -> PageCatalog:
        """Rebuild the catalog from the page tree and swap it in."""
        self._ensure_frozen()
        assert self._catalog_store is not None
        return self._catalog_store.rebuild()

    def match(self, path: str) -> RouteMatch:
        """Resolve *path* the way a request for it would be resolved."""
        return resolve(normalize(path), self.catalog)

    def layout_for(self, match: RouteMatch) -> str:
        """Layout id a match would be wrapped in."""
        return select_layout(match, config=self.config).layout_id

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with pounce.

        In debug mode the server reloads on code changes and the page
        catalog is refreshed whenever the page tree changes.
        """
        self._ensure_frozen()

        from perch.server.dev import run_dev_server

        run_dev_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
            pages_dir=self.config.pages_dir,
            log_level=self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()
        assert self._dispatch is not None

        await handle_request(
            scope,
            receive,
            send,
            dispatch=self._dispatch,
            middleware=self._middleware,
            config=self.config,
            pipeline=self._pipeline,
        )

    async def _handle_lifespan(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup so a broken page tree fails the
        server start instead of the first request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    for hook in self._startup_hooks:
                        result = hook()
                        if inspect.isawaitable(result):
                            await result
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    result = hook()
                    if inspect.isawaitable(result):
                        await result
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        config = self.config
        pages_dir = Path(config.pages_dir)

        # 1. Page catalog (ambiguous or malformed trees fail here)
        fingerprint = functools.partial(page_tree_fingerprint, pages_dir) if config.debug else None
        store = CatalogStore(
            functools.partial(
                _build_versioned_catalog, pages_dir, case_sensitive=config.case_sensitive
            ),
            fingerprint=fingerprint,
        )
        catalog = store.snapshot()
        logger.info("Discovered %d pages in %s", len(catalog), pages_dir)

        # 2. Kida environment with CSRF helpers always available
        template_globals = {"csrf_token": csrf_token, "csrf_field": csrf_field}
        template_globals.update(self._template_globals)
        env = create_environment(config, self._template_filters, template_globals)

        # 3. Render pipeline
        executor = self._executor or KidaExecutor(env, pages_dir, reload=config.debug)
        pipeline = RenderPipeline(
            env,
            executor,
            config=config,
            sink=self._sink,
            navigation_script=navigation_script_tag(config) if config.navigation_script else "",
        )

        self._catalog_store = store
        self._kida_env = env
        self._pipeline = pipeline
        self._middleware = tuple(self._middleware_list)
        self._dispatch = functools.partial(
            dispatch_page, store=store, pipeline=pipeline, config=config
        )
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register middleware, filters and globals before calling app.run()."
            )
            raise RuntimeError(msg)


def _build_versioned_catalog(
    pages_dir: Path, version: int, *, case_sensitive: bool
) -> PageCatalog:
    return build_catalog(pages_dir, case_sensitive=case_sensitive, version=version)
