"""Perch — file-based routing for server-rendered sites.

The directory tree under ``pages/`` is the route table: ``pages/about/``
holding an ``index.html`` serves ``/about``, ``pages/users/[id]/``
serves ``/users/<anything>``.  Pages render into a layout for full loads
and into a JSON fragment envelope for zero-refresh navigation.

Basic usage::

    from perch import App, AppConfig

    app = App(AppConfig(pages_dir="pages", app_name="My Site"))
    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "InvalidPath",
    "MatchKind",
    "PerchError",
    "Redirect",
    "RenderContext",
    "Request",
    "Response",
    "RouteMatch",
    "load_config",
    "normalize",
    "resolve",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name in ("AppConfig", "load_config"):
        from perch import config as _config

        return getattr(_config, name)

    if name == "RenderContext":
        from perch.context import RenderContext

        return RenderContext

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("MatchKind", "RouteMatch"):
        from perch.routing import route as _route

        return getattr(_route, name)

    if name == "normalize":
        from perch.routing.path import normalize

        return normalize

    if name == "resolve":
        from perch.routing.resolver import resolve

        return resolve

    if name in ("PerchError", "ConfigurationError", "HTTPError", "InvalidPath"):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module 'perch' has no attribute {name!r}"
    raise AttributeError(msg)
