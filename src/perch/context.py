"""Per-request render context.

A :class:`RenderContext` is built by the HTTP handler for exactly one
request, handed to one render invocation, and dropped with the response.
Page logic receives it as ``ctx``; templates see it as ``request``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from perch.http.query import QueryParams

if TYPE_CHECKING:
    from perch.http.request import Request


@dataclass(frozen=True, slots=True)
class RenderContext:
    """Everything a page may know about the request being rendered.

    Attributes:
        method: HTTP method (``GET``, ``HEAD`` or ``POST``).
        path: The request path as received.
        query: Parsed query string.
        partial: True for a zero-refresh navigation fetch; the response
            carries the page fragment only.
        csrf_token: The session's CSRF token, if CSRF protection is on.
        session: Read-only view of the session data.
        form: Parsed urlencoded body for ``POST`` requests.
    """

    method: str = "GET"
    path: str = "/"
    query: QueryParams = field(default_factory=QueryParams)
    partial: bool = False
    csrf_token: str | None = None
    session: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    form: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_request(
        cls,
        request: Request,
        *,
        partial: bool,
        csrf_token: str | None = None,
        session: Mapping[str, Any] | None = None,
        form: Mapping[str, str] | None = None,
    ) -> RenderContext:
        return cls(
            method=request.method,
            path=request.path,
            query=request.query,
            partial=partial,
            csrf_token=csrf_token,
            session=MappingProxyType(dict(session or {})),
            form=MappingProxyType(dict(form or {})),
        )

    @property
    def is_post(self) -> bool:
        return self.method == "POST"
