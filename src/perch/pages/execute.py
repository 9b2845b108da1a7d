"""Page execution — the narrow seam between routing and page bodies.

The render pipeline only knows ``execute(template_id, params, ctx)``.
:class:`KidaExecutor` is the default implementation: it runs the page's
optional ``index.py`` logic, then renders its kida template.

Page logic is a ``context()`` function.  Its signature decides what it
receives::

    # pages/users/[id]/index.py
    def context(id: int, ctx: RenderContext) -> dict:
        return {"user": USERS[id], "title": f"User {id}"}

    # Redirect instead of rendering
    def context(ctx):
        if "token" not in ctx.session:
            return Redirect("/login")
        return {}
"""

from __future__ import annotations

import importlib.util
import inspect
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from kida import Environment

from perch._internal.invoke import invoke
from perch.context import RenderContext
from perch.errors import ConfigurationError
from perch.http.response import Redirect
from perch.pages.discovery import INDEX_LOGIC, INDEX_TEMPLATE
from perch.pages.types import PageResult

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@runtime_checkable
class TemplateExecutor(Protocol):
    """Runs one page and returns its rendered output."""

    async def execute(
        self,
        template_id: str,
        params: Mapping[str, str],
        ctx: RenderContext,
    ) -> PageResult: ...


class KidaExecutor:
    """Execute pages as ``index.py`` logic plus a kida template.

    Args:
        env: The kida environment that loads page templates.
        pages_dir: Root of the page tree (``index.py`` files live there).
        reload: Re-import page logic when its file changes (debug mode).
    """

    __slots__ = ("_env", "_lock", "_modules", "_pages_dir", "_reload")

    def __init__(self, env: Environment, pages_dir: str | Path, *, reload: bool = False) -> None:
        self._env = env
        self._pages_dir = Path(pages_dir).resolve()
        self._reload = reload
        # logic file -> (mtime_ns, context function or None)
        self._modules: dict[Path, tuple[int, Callable[..., Any] | None]] = {}
        self._lock = threading.Lock()

    async def execute(
        self,
        template_id: str,
        params: Mapping[str, str],
        ctx: RenderContext,
    ) -> PageResult:
        """Run the page logic (if any) and render the template."""
        page_ctx: dict[str, Any] = {}

        logic = self._load_logic(template_id)
        if logic is not None:
            result = await invoke(logic, **_build_logic_kwargs(logic, params, ctx))
            if isinstance(result, Redirect):
                return PageResult(redirect=result)
            if isinstance(result, dict):
                page_ctx.update(result)
            elif result is not None:
                msg = (
                    f"context() for {template_id} returned {type(result).__name__}; "
                    "expected a dict, a Redirect, or None."
                )
                raise TypeError(msg)

        context: dict[str, Any] = {
            **params,
            "params": dict(params),
            "request": ctx,
            **page_ctx,
        }
        html = self._env.get_template(template_id).render(context)

        title = page_ctx.get("title")
        scripts = page_ctx.get("scripts") or ()
        return PageResult(
            html=html,
            title=str(title) if title is not None else None,
            scripts=tuple(scripts),
            context=MappingProxyType(context),
        )

    # -- Page logic loading --

    def _load_logic(self, template_id: str) -> Callable[..., Any] | None:
        """Return the ``context()`` function beside *template_id*, if any."""
        if Path(template_id).name != INDEX_TEMPLATE:
            return None
        logic_file = (self._pages_dir / template_id).with_name(INDEX_LOGIC)
        if not logic_file.is_file():
            return None

        mtime = logic_file.stat().st_mtime_ns
        cached = self._modules.get(logic_file)
        if cached is not None and (not self._reload or cached[0] == mtime):
            return cached[1]

        with self._lock:
            cached = self._modules.get(logic_file)
            if cached is not None and (not self._reload or cached[0] == mtime):
                return cached[1]
            func = _import_context_function(logic_file, self._pages_dir)
            self._modules[logic_file] = (mtime, func)
            return func


def _import_context_function(logic_file: Path, root: Path) -> Callable[..., Any] | None:
    """Import an ``index.py`` and return its ``context`` callable.

    Returns ``None`` when the module defines no ``context``.
    """
    rel = logic_file.relative_to(root).with_suffix("").as_posix()
    safe = "".join(ch if ch.isalnum() else "_" for ch in rel)
    spec = importlib.util.spec_from_file_location(f"_perch_page_{safe}", logic_file)
    if spec is None or spec.loader is None:
        msg = f"Cannot load page logic from {logic_file}"
        raise ConfigurationError(msg)

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    func = getattr(module, "context", None)
    if func is None or not callable(func):
        return None
    return func


def _build_logic_kwargs(
    func: Callable[..., Any],
    params: Mapping[str, str],
    ctx: RenderContext,
) -> dict[str, Any]:
    """Inspect a ``context()`` signature and build its kwargs.

    Resolution order:
    1. ``ctx`` (by name or ``RenderContext`` annotation)
    2. ``params`` — all captured parameters as a dict
    3. Individual path parameters, converted when annotated ``int``,
       ``float``, ``bool`` or ``str``
    """
    sig = inspect.signature(func, eval_str=True)
    kwargs: dict[str, Any] = {}

    for name, param in sig.parameters.items():
        if name == "ctx" or param.annotation is RenderContext:
            kwargs[name] = ctx
        elif name == "params":
            kwargs[name] = dict(params)
        elif name in params:
            kwargs[name] = _convert_param(params[name], param.annotation)

    return kwargs


def _to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    msg = f"not a boolean: {value!r}"
    raise ValueError(msg)


# Annotations a path parameter is converted to; anything else gets the string
_CONVERTERS: dict[Any, Callable[[str], Any]] = {
    int: int,
    float: float,
    bool: _to_bool,
    str: str,
}


def _convert_param(value: str, annotation: Any) -> Any:
    """Convert a captured segment for an annotated ``context()`` parameter.

    Unsupported annotations and unconvertible values pass the string through.
    """
    converter = _CONVERTERS.get(annotation)
    if converter is None:
        return value
    try:
        return converter(value)
    except ValueError:
        return value
