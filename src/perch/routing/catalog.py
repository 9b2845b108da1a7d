"""The page catalog — a compiled, immutable trie of discovered pages.

Built once from the page tree.  Each node has static children keyed by
segment text, at most one parameter edge, and at most one page entry.
That shape makes resolution independent of the order entries were added:
there is never a choice between two edges of the same kind.

``CatalogStore`` owns the current catalog snapshot.  Readers take the
snapshot reference without locking; a single writer builds a replacement
and swaps the reference, so in-flight requests keep the catalog they
started with.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from perch.errors import AmbiguousRoute, ConfigurationError
from perch.pages.types import PageEntry
from perch.routing.route import format_pattern

logger = logging.getLogger("perch.routing")


class _Node:
    """A node in the catalog trie. Mutable during build only."""

    __slots__ = ("children", "entry", "label", "param_edge")

    def __init__(self, label: str = "") -> None:
        # Original spelling of the static segment leading here
        self.label = label
        # Static children, keyed by (possibly case-folded) segment
        self.children: dict[str, _Node] = {}
        # Single parameter child
        self.param_edge: _ParamEdge | None = None
        # The page served when the path ends here
        self.entry: PageEntry | None = None


@dataclass(slots=True)
class _ParamEdge:
    """A ``[name]`` edge in the trie."""

    param_name: str
    node: _Node
    first_pattern: str


class PageCatalog:
    """Immutable lookup structure mapping page patterns to templates.

    Usage::

        catalog = PageCatalog.build(discover_pages("pages"))
        match = resolve(normalize("/users/42"), catalog)
    """

    __slots__ = ("_entries", "_root", "case_sensitive", "fingerprint", "version")

    def __init__(
        self,
        root: _Node,
        entries: tuple[PageEntry, ...],
        *,
        case_sensitive: bool,
        version: int,
        fingerprint: str | None,
    ) -> None:
        self._root = root
        self._entries = entries
        self.case_sensitive = case_sensitive
        self.version = version
        self.fingerprint = fingerprint

    @classmethod
    def build(
        cls,
        entries: Iterable[PageEntry],
        *,
        case_sensitive: bool = True,
        version: int = 1,
        fingerprint: str | None = None,
    ) -> PageCatalog:
        """Compile *entries* into a catalog.

        Raises:
            AmbiguousRoute: If two pages share a pattern, two parameter
                directories with different names sit at the same depth
                under the same prefix, or (case-insensitive catalogs) two
                static names differ only by case.
            ConfigurationError: If one pattern repeats a parameter name.
        """
        fold = _identity if case_sensitive else str.casefold
        root = _Node()
        ordered = tuple(sorted(entries, key=lambda e: e.pattern))

        for entry in ordered:
            _check_param_names(entry)
            node = root
            for seg in entry.segments:
                if seg.is_param:
                    assert seg.param_name is not None
                    edge = node.param_edge
                    if edge is None:
                        edge = _ParamEdge(seg.param_name, _Node(seg.value), entry.pattern)
                        node.param_edge = edge
                    elif edge.param_name != seg.param_name:
                        raise AmbiguousRoute(
                            edge.first_pattern,
                            entry.pattern,
                            f"[{edge.param_name}] and [{seg.param_name}] "
                            "capture the same position",
                        )
                    node = edge.node
                else:
                    key = fold(seg.value)
                    child = node.children.get(key)
                    if child is None:
                        child = _Node(seg.value)
                        node.children[key] = child
                    elif child.label != seg.value:
                        raise AmbiguousRoute(
                            child.label,
                            seg.value,
                            "names differ only by case in a case-insensitive catalog",
                        )
                    node = child

            if node.entry is not None:
                raise AmbiguousRoute(
                    node.entry.template_id,
                    entry.template_id,
                    f"both serve {entry.pattern}",
                )
            node.entry = entry

        logger.debug("Built page catalog v%d with %d pages", version, len(ordered))
        return cls(
            root,
            ordered,
            case_sensitive=case_sensitive,
            version=version,
            fingerprint=fingerprint,
        )

    # -- Introspection --

    @property
    def entries(self) -> tuple[PageEntry, ...]:
        """All pages, sorted by pattern."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PageEntry]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"<PageCatalog v{self.version} pages={len(self._entries)}>"

    # -- Lookup primitives used by the resolver --

    @property
    def root(self) -> _Node:
        return self._root

    def key(self, segment: str) -> str:
        """The child key *segment* is looked up under."""
        return segment if self.case_sensitive else segment.casefold()


def _identity(value: str) -> str:
    return value


def _check_param_names(entry: PageEntry) -> None:
    seen: set[str] = set()
    for seg in entry.segments:
        if not seg.is_param:
            continue
        if seg.param_name in seen:
            msg = f"Page {entry.pattern} captures [{seg.param_name}] more than once."
            raise ConfigurationError(msg)
        seen.add(seg.param_name or "")


class CatalogStore:
    """Holds the current catalog snapshot and swaps in rebuilt ones.

    Args:
        builder: Builds a fresh catalog; receives the version number to
            stamp on it.
        fingerprint: Optional callable returning a digest of the page tree.
            When given, :meth:`refresh_if_stale` rebuilds after the digest
            changes (debug mode).

    Thread safety:
        ``snapshot()`` is a plain attribute read once the first catalog
        exists.  Builds happen under a lock, so there is a single writer
        and readers always see one complete catalog.
    """

    __slots__ = ("_builder", "_current", "_failed_fingerprint", "_fingerprint", "_lock")

    def __init__(
        self,
        builder: Callable[[int], PageCatalog],
        *,
        fingerprint: Callable[[], str] | None = None,
    ) -> None:
        self._builder = builder
        self._fingerprint = fingerprint
        self._current: PageCatalog | None = None
        self._failed_fingerprint: str | None = None
        self._lock = threading.Lock()

    def snapshot(self) -> PageCatalog:
        """Return the current catalog, building it on first use."""
        current = self._current
        if current is not None:
            return current
        with self._lock:
            if self._current is None:
                self._current = self._builder(1)
            return self._current

    def rebuild(self) -> PageCatalog:
        """Build a new catalog and make it current.

        Errors from the builder propagate and leave the previous snapshot
        in place.
        """
        with self._lock:
            version = 1 if self._current is None else self._current.version + 1
            catalog = self._builder(version)
            self._current = catalog
        logger.info("Page catalog rebuilt (v%d, %d pages)", catalog.version, len(catalog))
        return catalog

    def refresh_if_stale(self) -> PageCatalog:
        """Rebuild when the page tree changed since the current snapshot.

        A rebuild that fails (for example an edit that introduced an
        ambiguous page) is logged and the previous snapshot keeps serving.
        """
        current = self.snapshot()
        if self._fingerprint is None:
            return current
        digest = self._fingerprint()
        if digest in (current.fingerprint, self._failed_fingerprint):
            return current
        try:
            return self.rebuild()
        except ConfigurationError:
            self._failed_fingerprint = digest
            logger.exception("Page tree changed but the catalog could not be rebuilt")
            return current
