"""Route pattern segments and match results."""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from perch.errors import ConfigurationError

if TYPE_CHECKING:
    from perch.pages.types import PageEntry

# Directory names like [slug] or [user_id]
_PARAM_RE = re.compile(r"^\[([A-Za-z_][A-Za-z0-9_]*)\]$")


class MatchKind(enum.Enum):
    """How a request path was resolved."""

    STATIC = "static"
    DYNAMIC = "dynamic"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a page pattern.

    Static:  ``about``   (is_param=False)
    Param:   ``[slug]``  (is_param=True, param_name="slug")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None

    @classmethod
    def parse(cls, name: str) -> PathSegment:
        """Parse a directory name into a segment.

        Raises ``ConfigurationError`` for half-bracketed names such as
        ``[slug`` or ``[]`` so typos fail at startup instead of becoming
        literal URL segments.
        """
        match = _PARAM_RE.match(name)
        if match:
            return cls(value=name, is_param=True, param_name=match.group(1))
        if "[" in name or "]" in name:
            msg = (
                f"Invalid page directory name {name!r}. Dynamic segments are "
                f"written as [name] with a Python identifier inside."
            )
            raise ConfigurationError(msg)
        return cls(value=name)


def format_pattern(segments: tuple[PathSegment, ...]) -> str:
    """Render a pattern for humans: ``/users/[id]``."""
    return "/" + "/".join(seg.value for seg in segments)


_EMPTY_PARAMS: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of resolving a path against the catalog.

    ``params`` is a read-only mapping; ``entry`` is the matched page
    (``None`` for NOT_FOUND).
    """

    kind: MatchKind
    template_id: str | None = None
    params: Mapping[str, str] = field(default=_EMPTY_PARAMS)
    entry: PageEntry | None = None

    @classmethod
    def not_found(cls) -> RouteMatch:
        return cls(kind=MatchKind.NOT_FOUND)

    @property
    def found(self) -> bool:
        return self.kind is not MatchKind.NOT_FOUND
