"""Tests for perch.routing.resolver — precedence, captures, backtracking."""

import pytest

from perch.pages.types import PageEntry
from perch.routing.catalog import PageCatalog
from perch.routing.path import normalize
from perch.routing.resolver import resolve
from perch.routing.route import MatchKind, PathSegment, RouteMatch


def _entry(pattern: str) -> PageEntry:
    parts = [p for p in pattern.split("/") if p]
    return PageEntry(
        segments=tuple(PathSegment.parse(p) for p in parts),
        template_id="/".join([*parts, "index.html"]),
    )


def _catalog(*patterns: str, case_sensitive: bool = True) -> PageCatalog:
    return PageCatalog.build([_entry(p) for p in patterns], case_sensitive=case_sensitive)


def _resolve(path: str, catalog: PageCatalog) -> RouteMatch:
    return resolve(normalize(path), catalog)


class TestStatic:
    def test_root(self) -> None:
        match = _resolve("/", _catalog("/"))
        assert match.kind is MatchKind.STATIC
        assert match.template_id == "index.html"
        assert match.params == {}

    def test_nested(self) -> None:
        match = _resolve("/users/new", _catalog("/users", "/users/new"))
        assert match.kind is MatchKind.STATIC
        assert match.template_id == "users/new/index.html"

    def test_entry_attached(self) -> None:
        match = _resolve("/about", _catalog("/about"))
        assert match.entry is not None
        assert match.entry.pattern == "/about"


class TestDynamic:
    def test_capture(self) -> None:
        match = _resolve("/users/42", _catalog("/users/[id]"))
        assert match.kind is MatchKind.DYNAMIC
        assert match.params == {"id": "42"}
        assert match.template_id == "users/[id]/index.html"

    def test_multiple_captures(self) -> None:
        match = _resolve("/users/7/posts/9", _catalog("/users/[id]/posts/[post]"))
        assert dict(match.params) == {"id": "7", "post": "9"}

    def test_capture_is_percent_decoded(self) -> None:
        match = _resolve("/docs/hello%20world", _catalog("/docs/[slug]"))
        assert match.params["slug"] == "hello world"

    def test_params_read_only(self) -> None:
        match = _resolve("/users/42", _catalog("/users/[id]"))
        with pytest.raises(TypeError):
            match.params["id"] = "43"  # type: ignore[index]


class TestPrecedence:
    def test_static_beats_dynamic(self) -> None:
        catalog = _catalog("/about", "/[slug]")
        assert _resolve("/about", catalog).template_id == "about/index.html"
        assert _resolve("/other", catalog).params == {"slug": "other"}

    def test_static_beats_dynamic_at_depth(self) -> None:
        catalog = _catalog("/users/new", "/users/[id]")
        assert _resolve("/users/new", catalog).kind is MatchKind.STATIC
        assert _resolve("/users/5", catalog).kind is MatchKind.DYNAMIC

    def test_longer_static_prefix_wins(self) -> None:
        catalog = _catalog("/docs/[page]", "/[section]/[page]")
        assert _resolve("/docs/intro", catalog).template_id == "docs/[page]/index.html"

    def test_backtracks_from_dead_static_branch(self) -> None:
        # /docs exists as a prefix but has no /docs/x/edit page
        catalog = _catalog("/docs/intro", "/[section]/[page]/edit")
        match = _resolve("/docs/intro/edit", catalog)
        assert match.params == {"section": "docs", "page": "intro"}


class TestNotFound:
    def test_no_match(self) -> None:
        match = _resolve("/missing", _catalog("/"))
        assert match.kind is MatchKind.NOT_FOUND
        assert match == RouteMatch.not_found()
        assert not match.found

    def test_bare_directory_is_not_a_page(self) -> None:
        catalog = _catalog("/archive/2024")
        assert not _resolve("/archive", catalog).found
        assert _resolve("/archive/2024", catalog).found

    def test_too_many_segments(self) -> None:
        assert not _resolve("/users/1/extra", _catalog("/users/[id]")).found

    def test_empty_catalog(self) -> None:
        assert not _resolve("/", _catalog()).found


class TestCaseSensitivity:
    def test_sensitive_by_default(self) -> None:
        assert not _resolve("/ABOUT", _catalog("/about")).found

    def test_insensitive_lookup(self) -> None:
        catalog = _catalog("/about", "/users/[id]", case_sensitive=False)
        assert _resolve("/ABOUT", catalog).template_id == "about/index.html"

    def test_insensitive_keeps_capture_spelling(self) -> None:
        catalog = _catalog("/users/[id]", case_sensitive=False)
        assert _resolve("/USERS/MixedCase", catalog).params == {"id": "MixedCase"}
