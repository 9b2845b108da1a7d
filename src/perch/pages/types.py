"""Data models for filesystem-based pages.

Immutable frozen dataclasses representing discovered pages and the
output of running one.  Entries are built once at startup during
discovery; results are built once per render.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from perch.http.response import Redirect
from perch.routing.route import PathSegment, format_pattern


@dataclass(frozen=True, slots=True)
class PageEntry:
    """A page discovered in the filesystem.

    Attributes:
        segments: Pattern segments from the pages root, e.g.
            ``(PathSegment("users"), PathSegment("[id]", is_param=True, ...))``.
        template_id: Template name relative to the pages root
            (``"users/[id]/index.html"``).
        logic_path: Path of a sibling ``index.py``, if the page has one.
        layout: Layout id declared with ``{# layout: name #}``.
        title: Title declared with ``{# title: ... #}``.
    """

    segments: tuple[PathSegment, ...]
    template_id: str
    logic_path: str | None = None
    layout: str | None = None
    title: str | None = None

    @property
    def pattern(self) -> str:
        """Human-readable pattern, e.g. ``/users/[id]``."""
        return format_pattern(self.segments)

    @property
    def is_dynamic(self) -> bool:
        return any(seg.is_param for seg in self.segments)

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(seg.param_name for seg in self.segments if seg.param_name)


@dataclass(frozen=True, slots=True)
class PageResult:
    """What executing a page produced.

    Attributes:
        html: Rendered page content (fills the layout's ``content`` slot).
        title: Title from the page context, if it set one.
        redirect: Redirect returned by the page logic instead of content.
        scripts: Page-level script URLs to load after the layout's own.
        context: The context the template was rendered with; layouts
            see the same variables.
    """

    html: str = ""
    title: str | None = None
    redirect: Redirect | None = None
    scripts: tuple[str, ...] = ()
    context: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
