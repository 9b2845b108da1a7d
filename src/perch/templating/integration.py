"""Kida environment setup and app binding.

Creates a kida Environment from perch's AppConfig and binds
user-registered filters and globals.  The environment is created
once during ``App._freeze()`` and shared by every render.
"""

from collections.abc import Callable
from typing import Any

from kida import ChoiceLoader, DictLoader, Environment, FileSystemLoader

from perch.config import AppConfig
from perch.templating.builtins import BUILTIN_TEMPLATES


def create_environment(
    config: AppConfig,
    filters: dict[str, Callable[..., Any]] | None = None,
    globals_: dict[str, Any] | None = None,
) -> Environment:
    """Create a kida Environment from app configuration.

    Loader order: the pages directory, then ``config.component_dirs``
    (partials, macros), then perch's built-in layout and 404 page.
    """
    loaders: list[Any] = [FileSystemLoader(str(config.pages_dir))]
    loaders.extend(FileSystemLoader(str(d)) for d in config.component_dirs)
    loaders.append(DictLoader(BUILTIN_TEMPLATES))

    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=config.autoescape,
        auto_reload=config.debug,
    )

    if filters:
        env.update_filters(filters)

    for name, value in (globals_ or {}).items():
        env.add_global(name, value)

    return env
