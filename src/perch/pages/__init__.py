"""Filesystem-based pages: discovery, layout selection, and rendering.

The ``pages/`` directory structure is the route table.  Every directory
holding an ``index.html`` is a page; ``[name]`` directories capture
path parameters; ``index.py`` next to a template supplies page logic.

Conventions::

    pages/
      _layouts/main.html      # Default layout ({% block content %})
      _errors/404.html        # Not-found page
      index.html              # GET /
      about/index.html        # GET /about
      users/
        index.html            # GET /users
        [id]/
          index.html          # GET /users/{id}
          index.py            # def context(id, ctx) -> dict
"""

__all__ = [
    "KidaExecutor",
    "LayoutSpec",
    "PageEntry",
    "PageResult",
    "RenderPipeline",
    "TemplateExecutor",
    "build_catalog",
    "discover_pages",
    "select_layout",
]


def __getattr__(name: str) -> object:
    """Lazy imports — keeps ``perch.pages.types`` importable from routing."""
    if name in ("PageEntry", "PageResult"):
        from perch.pages import types as _types

        return getattr(_types, name)

    if name in ("build_catalog", "discover_pages"):
        from perch.pages import discovery as _discovery

        return getattr(_discovery, name)

    if name in ("LayoutSpec", "select_layout"):
        from perch.pages import layout as _layout

        return getattr(_layout, name)

    if name in ("KidaExecutor", "TemplateExecutor"):
        from perch.pages import execute as _execute

        return getattr(_execute, name)

    if name == "RenderPipeline":
        from perch.pages.renderer import RenderPipeline

        return RenderPipeline

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
