"""Layout selection.

Every page is wrapped in the process-wide default layout unless its
template declares ``{# layout: name #}``.  Layout ids map to templates
under ``_layouts/`` in the pages root; status pages live under ``_errors/``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from perch.config import AppConfig
    from perch.routing.route import RouteMatch

LAYOUTS_DIR = "_layouts"
ERRORS_DIR = "_errors"


def error_template(status: int) -> str:
    """Template name for a status page: ``500`` -> ``"_errors/500.html"``."""
    return f"{ERRORS_DIR}/{status}.html"


def layout_template(layout_id: str) -> str:
    """Template name for a layout id: ``"main"`` -> ``"_layouts/main.html"``."""
    return f"{LAYOUTS_DIR}/{layout_id}.html"


@dataclass(frozen=True, slots=True)
class LayoutSpec:
    """A layout and the named slots it will be rendered with.

    ``select_layout()`` returns a stub with no slots; the render pipeline
    fills ``content`` (and ``scripts``) with :meth:`with_slots`.
    """

    layout_id: str
    slots: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def template_name(self) -> str:
        return layout_template(self.layout_id)

    def with_slots(self, **slots: str) -> LayoutSpec:
        """Return a copy with *slots* added (later values win)."""
        return replace(self, slots=MappingProxyType({**self.slots, **slots}))

    def slot(self, name: str, default: str = "") -> str:
        return self.slots.get(name, default)


def select_layout(
    match: RouteMatch,
    override: str | None = None,
    *,
    config: AppConfig,
) -> LayoutSpec:
    """Pick the layout that wraps *match*.

    Priority: explicit *override*, then the page's own declaration, then
    the not-found layout for unmatched paths, then the default layout.
    """
    if override:
        return LayoutSpec(override)
    if match.entry is not None and match.entry.layout:
        return LayoutSpec(match.entry.layout)
    if not match.found:
        return LayoutSpec(config.not_found_layout or config.default_layout)
    return LayoutSpec(config.default_layout)
