"""Immutable HTTP request.

Frozen metadata with async body access.  Perch pages only need the
method, path, query string and a few headers, so the request stays small.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, quote

from perch._internal.asgi import Receive
from perch.http.cookies import parse_cookies
from perch.http.headers import Headers
from perch.http.query import QueryParams

# Sub-delims and pchar punctuation kept as-is when re-quoting a path
_PATH_SAFE = "/!$&'()*+,;=:@"


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the raw, still percent-encoded path when the server
    provides ``raw_path``; decoding is the path normalizer's job.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    cookies: Mapping[str, str]
    client: tuple[str, int] | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive | None = None

    # Private: mutable cache for body and parsed form data
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def is_xhr(self) -> bool:
        """True if sent with ``X-Requested-With: XMLHttpRequest``."""
        return (self.headers.get("x-requested-with") or "").lower() == "xmlhttprequest"

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body (cached after the first call)."""
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks: list[bytes] = []
        while self._receive is not None:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                chunks.append(chunk)
            if not message.get("more_body", False):
                break
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def form(self) -> dict[str, str]:
        """Parse an ``application/x-www-form-urlencoded`` body.

        Returns the first value per field.  Other content types yield an
        empty dict.
        """
        if "_form" in self._cache:
            return self._cache["_form"]
        ct = self.content_type or ""
        data: dict[str, str] = {}
        if "application/x-www-form-urlencoded" in ct:
            raw = await self.body()
            parsed = parse_qs(raw.decode("utf-8", errors="replace"), keep_blank_values=True)
            data = {key: values[0] for key, values in parsed.items()}
        self._cache["_form"] = data
        return data

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: dict[str, Any], receive: Receive | None = None) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=_request_target_path(scope),
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            cookies=parse_cookies(headers.get("cookie", "") or ""),
            client=tuple(client) if client else None,
            _receive=receive,
        )


def _request_target_path(scope: dict[str, Any]) -> str:
    """The request path, percent-encoded, for the path normalizer.

    ``raw_path`` keeps encoded separators intact; raw non-ASCII bytes in
    it are percent-encoded so the normalizer decodes them as UTF-8.
    Without ``raw_path`` the already-decoded ``path`` is re-encoded,
    including any literal ``%``.
    """
    raw_path: bytes | None = scope.get("raw_path")
    if raw_path:
        return quote(raw_path.split(b"?", 1)[0], safe=_PATH_SAFE + "%")
    return quote(scope["path"], safe=_PATH_SAFE)
