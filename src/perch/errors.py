"""Perch exception hierarchy.

Shared across the catalog builder, resolver, render pipeline and the
ASGI handler so every module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app configuration or the page tree is invalid.

    Typically raised during ``App._freeze()`` at startup.
    """


class InvalidPath(PerchError):  # noqa: N818 — mirrors the NotFound naming
    """A request path that cannot be normalized.

    Raised for undecodable percent-escapes, encoded separators, and
    ``..`` segments that would climb above the page root.  The handler
    answers these exactly like a missing page.
    """

    def __init__(self, raw_path: str, reason: str) -> None:
        super().__init__(f"Invalid path {raw_path!r}: {reason}")
        self.raw_path = raw_path
        self.reason = reason


class AmbiguousRoute(ConfigurationError):  # noqa: N818
    """Two page patterns compete for the same position in the catalog.

    Raised while building the catalog, never while serving requests.
    """

    def __init__(self, first: str, second: str, detail: str = "") -> None:
        message = f"Ambiguous pages {first!r} and {second!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.first = first
        self.second = second


class RenderFailure(PerchError):
    """A page template or its logic failed while rendering.

    Only ever handed to the diagnostics sink; clients see a generic
    error body.
    """

    def __init__(self, template_id: str | None, cause: BaseException) -> None:
        super().__init__(f"Rendering {template_id or '<unknown>'} failed: {cause!r}")
        self.template_id = template_id
        self.cause = cause


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by middleware (e.g. CSRF validation).  The ASGI handler
    catches these and turns them into plain responses.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — nothing in the catalog matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403 — the request was understood but refused (e.g. bad CSRF token)."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """405 — pages only answer the methods the framework routes to them."""

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
