"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.  ``load_config()`` reads environment overrides
once per process and hands every caller the same instance.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from functools import cache
from pathlib import Path

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, pages_dir="site/pages", app_name="Docs")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Security
    secret_key: str = ""

    # Identity
    app_name: str = "Perch App"
    title_suffix: str = ""  # Appended to titles taken from a page's first <h1>

    # Pages
    pages_dir: str | Path = "pages"
    component_dirs: tuple[str | Path, ...] = ()  # Extra template dirs (partials, macros)
    default_layout: str = "main"  # Resolved as _layouts/<id>.html under pages_dir
    not_found_layout: str | None = None  # None = default_layout
    not_found_template: str = "_errors/404.html"
    case_sensitive: bool = True
    autoescape: bool = True

    # Zero-refresh navigation
    partial_header: str = "X-Perch-Partial"
    partial_query_param: str = "_partial"
    navigation_script: bool = True
    # The built-in layout gives its <main> this id for "#id" selectors;
    # other selectors need a custom _layouts/main.html
    content_selector: str = "#app-content"

    # Logging
    log_level: str = "info"

    @classmethod
    def from_env(cls, prefix: str = "PERCH_", **overrides: object) -> AppConfig:
        """Build a config from ``PERCH_*`` environment variables.

        Only scalar fields are read (``PERCH_DEBUG=1``, ``PERCH_PORT=9000``,
        ``PERCH_PAGES_DIR=site/pages``).  Keyword *overrides* win over
        the environment.
        """
        values: dict[str, object] = {}
        for f in fields(cls):
            raw = os.environ.get(prefix + f.name.upper())
            if raw is None:
                continue
            default = f.default
            if isinstance(default, bool):
                values[f.name] = raw.strip().lower() in _TRUE_VALUES
            elif isinstance(default, int):
                values[f.name] = int(raw)
            elif isinstance(default, (str, Path)) or default is None:
                values[f.name] = raw
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


@cache
def load_config() -> AppConfig:
    """Return the process-wide configuration, read from the environment once."""
    return AppConfig.from_env()
