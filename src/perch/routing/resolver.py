"""Resolve a normalized path against the page catalog.

Precedence at every depth:

1. the static child whose name equals the segment
2. the parameter child, capturing the segment

A branch that runs out of path on a node without a page (a bare
directory) fails and the walk backtracks.  Nothing matching is a normal
``NOT_FOUND`` result, never an exception.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

from perch.routing.route import MatchKind, RouteMatch

if TYPE_CHECKING:
    from perch.pages.types import PageEntry
    from perch.routing.catalog import PageCatalog, _Node
    from perch.routing.path import RoutePath


def resolve(path: RoutePath, catalog: PageCatalog) -> RouteMatch:
    """Map *path* to a page in *catalog*.

    Returns a ``STATIC`` match when every segment matched literally,
    ``DYNAMIC`` when the page pattern captured at least one parameter,
    and ``NOT_FOUND`` otherwise.
    """
    result = _match_node(catalog, catalog.root, path.segments, 0, {})
    if result is None:
        return RouteMatch.not_found()

    entry, params = result
    kind = MatchKind.DYNAMIC if entry.is_dynamic else MatchKind.STATIC
    return RouteMatch(
        kind=kind,
        template_id=entry.template_id,
        params=MappingProxyType(params),
        entry=entry,
    )


def _match_node(
    catalog: PageCatalog,
    node: _Node,
    parts: tuple[str, ...],
    index: int,
    params: dict[str, str],
) -> tuple[PageEntry, dict[str, str]] | None:
    """Recursively match path parts against the trie."""
    # Out of parts: only a node with a page counts
    if index == len(parts):
        if node.entry is not None:
            return node.entry, params
        return None

    part = parts[index]

    # 1. Static child first (exact match)
    child = node.children.get(catalog.key(part))
    if child is not None:
        result = _match_node(catalog, child, parts, index + 1, params)
        if result is not None:
            return result

    # 2. Parameter child
    edge = node.param_edge
    if edge is not None:
        new_params = {**params, edge.param_name: part}
        return _match_node(catalog, edge.node, parts, index + 1, new_params)

    return None
