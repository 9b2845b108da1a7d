"""Filesystem page discovery for the pages/ directory.

Walks the pages tree and records one :class:`PageEntry` per directory
that holds an ``index.html``.  Directory names wrapped in ``[brackets]``
become path parameters.  Names starting with ``_`` or ``.`` are never
routes: ``_layouts/`` and ``_errors/`` live beside the pages they serve.

Discovery only reads the tree; page logic in ``index.py`` is imported
later by the executor, so rebuilding the catalog in debug mode stays a
cheap directory scan.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

from perch.errors import ConfigurationError
from perch.pages.types import PageEntry
from perch.routing.catalog import PageCatalog
from perch.routing.route import PathSegment

INDEX_TEMPLATE = "index.html"
INDEX_LOGIC = "index.py"

# {# layout: admin #} and {# title: About us #} declarations in page templates
_LAYOUT_RE = re.compile(r"\{#\s*layout:\s*(\S+)\s*#\}")
_TITLE_RE = re.compile(r"\{#\s*title:\s*(.+?)\s*#\}")


def discover_pages(pages_dir: str | Path) -> list[PageEntry]:
    """Walk a pages directory and discover every page.

    Args:
        pages_dir: Path to the ``pages/`` directory.

    Returns:
        Discovered pages, in directory-walk order.

    Raises:
        ConfigurationError: If the directory is missing or a directory
            name is a malformed ``[param]``.
    """
    root = Path(pages_dir).resolve()
    if not root.is_dir():
        msg = f"Pages directory not found: {root}"
        raise ConfigurationError(msg)

    entries: list[PageEntry] = []
    _walk_directory(root, root, segments=(), entries=entries)
    return entries


def build_catalog(
    pages_dir: str | Path,
    *,
    case_sensitive: bool = True,
    version: int = 1,
) -> PageCatalog:
    """Discover pages and compile them into a :class:`PageCatalog`.

    The catalog is stamped with the tree fingerprint so a
    :class:`~perch.routing.catalog.CatalogStore` can tell when it is stale.
    """
    fingerprint = page_tree_fingerprint(pages_dir)
    return PageCatalog.build(
        discover_pages(pages_dir),
        case_sensitive=case_sensitive,
        version=version,
        fingerprint=fingerprint,
    )


def page_tree_fingerprint(pages_dir: str | Path) -> str:
    """Digest of every file path, size and mtime under *pages_dir*."""
    root = Path(pages_dir).resolve()
    digest = hashlib.sha1(usedforsecurity=False)
    if not root.is_dir():
        return digest.hexdigest()
    for item in sorted(root.rglob("*")):
        if not item.is_file():
            continue
        stat = item.stat()
        rel = item.relative_to(root).as_posix()
        digest.update(f"{rel}:{stat.st_size}:{stat.st_mtime_ns}\n".encode())
    return digest.hexdigest()


def _walk_directory(
    directory: Path,
    root: Path,
    *,
    segments: tuple[PathSegment, ...],
    entries: list[PageEntry],
) -> None:
    """Recursively walk a directory, recording pages.

    Args:
        directory: Current directory being walked.
        root: Root pages directory (template ids are relative to it).
        segments: Pattern segments accumulated so far.
        entries: Accumulator for discovered pages.
    """
    template_file = directory / INDEX_TEMPLATE
    if template_file.is_file():
        entries.append(_make_entry(template_file, root, segments))

    for item in sorted(directory.iterdir()):
        if not item.is_dir():
            continue
        if item.name.startswith("_") or item.name.startswith("."):
            continue

        _walk_directory(
            item,
            root,
            segments=(*segments, PathSegment.parse(item.name)),
            entries=entries,
        )


def _make_entry(
    template_file: Path,
    root: Path,
    segments: tuple[PathSegment, ...],
) -> PageEntry:
    """Build the entry for one ``index.html``, reading its declarations."""
    source = template_file.read_text(encoding="utf-8")
    layout_match = _LAYOUT_RE.search(source)
    title_match = _TITLE_RE.search(source)

    logic_file = template_file.with_name(INDEX_LOGIC)

    return PageEntry(
        segments=segments,
        template_id=template_file.relative_to(root).as_posix(),
        logic_path=str(logic_file) if logic_file.is_file() else None,
        layout=layout_match.group(1) if layout_match else None,
        title=title_match.group(1) if title_match else None,
    )
