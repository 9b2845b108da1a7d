"""Development server with hot reload.

Starts a pounce ASGI server with the live perch App object.  Uses
single-worker mode with reload enabled, watching page templates too.
"""

from pathlib import Path


def run_dev_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = True,
    pages_dir: str | Path | None = None,
    app_path: str | None = None,
    log_level: str = "info",
) -> None:
    """Start a pounce dev server with the given perch App.

    Pounce's ``run()`` takes an import string (``"myapp:app"``), but we
    have a live ``App`` object, so ``pounce.Server`` is used directly.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Enable auto-reload on file changes.
        pages_dir: Pages directory to watch alongside cwd.
        app_path: Optional ``"module:attribute"`` import string so pounce
            can reimport the app after code changes.
        log_level: Server log level.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    reload_dirs = (str(pages_dir),) if pages_dir is not None else ()
    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        reload_include=(".html", ".py"),
        reload_dirs=reload_dirs,
        log_level=log_level,
    )
    server = Server(config, app, app_path=app_path)
    server.run()
