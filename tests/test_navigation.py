"""Tests for perch.server.navigation — partial detection and client script."""

import pytest

from perch.config import AppConfig
from perch.http.headers import Headers
from perch.http.query import QueryParams
from perch.http.request import Request
from perch.server.navigation import is_partial_request, navigation_script_tag


def _request(headers: dict[str, str] | None = None, query: bytes = b"") -> Request:
    return Request(
        method="GET",
        path="/",
        headers=Headers.from_dict(headers or {}),
        query=QueryParams(query),
        cookies={},
    )


class TestIsPartialRequest:
    def test_plain_request(self) -> None:
        assert not is_partial_request(_request(), AppConfig())

    @pytest.mark.parametrize("value", ["true", "1", "TRUE", " yes "])
    def test_partial_header(self, value: str) -> None:
        assert is_partial_request(_request({"X-Perch-Partial": value}), AppConfig())

    def test_partial_header_false(self) -> None:
        assert not is_partial_request(_request({"X-Perch-Partial": "false"}), AppConfig())

    def test_xhr_header(self) -> None:
        request = _request({"X-Requested-With": "XMLHttpRequest"})
        assert is_partial_request(request, AppConfig())

    @pytest.mark.parametrize("query", [b"_partial=1", b"_partial", b"a=b&_partial=true"])
    def test_query_flag(self, query: bytes) -> None:
        assert is_partial_request(_request(query=query), AppConfig())

    def test_query_flag_off(self) -> None:
        assert not is_partial_request(_request(query=b"_partial=0"), AppConfig())

    def test_custom_header_name(self) -> None:
        config = AppConfig(partial_header="X-Fragment")
        assert is_partial_request(_request({"X-Fragment": "1"}), config)
        assert not is_partial_request(_request({"X-Perch-Partial": "1"}), config)


class TestScriptTag:
    def test_embeds_config(self) -> None:
        tag = navigation_script_tag(AppConfig(content_selector="#main"))
        assert tag.startswith("<script>")
        assert '"selector": "#main"' in tag
        assert "__PERCH_NAV_CONFIG__" not in tag

    def test_selector_cannot_close_script(self) -> None:
        tag = navigation_script_tag(AppConfig(content_selector="</script><b>"))
        assert "</script><b>" not in tag
