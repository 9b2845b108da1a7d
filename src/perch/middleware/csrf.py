"""CSRF protection middleware — token-based, session-backed.

Generates a random token per session and validates it on ``POST``
requests to pages.  Partial-navigation clients send it in the
``X-CSRF-Token`` header; plain forms send it in a hidden field.

Requires ``SessionMiddleware`` — the token is stored in the session.

Templates::

    <meta name="csrf-token" content="{{ csrf_token() }}">

    <form method="post">
        {{ csrf_field() }}
    </form>
"""

import secrets
from contextvars import ContextVar
from dataclasses import dataclass

from kida.template import Markup

from perch.errors import ConfigurationError, Forbidden
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next
from perch.middleware.sessions import current_session

_csrf_token_var: ContextVar[str | None] = ContextVar("perch_csrf_token", default=None)

_UNSAFE_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def get_csrf_token() -> str | None:
    """The CSRF token of the current request, if CSRF protection is on."""
    return _csrf_token_var.get()


def csrf_token() -> str:
    """Template global: the raw token, or ``""`` outside CSRF-protected requests."""
    return _csrf_token_var.get() or ""


def csrf_field() -> Markup:
    """Template global: a hidden input carrying the token."""
    token = csrf_token()
    return Markup(f'<input type="hidden" name="csrf_token" value="{token}">')


@dataclass(frozen=True, slots=True)
class CSRFConfig:
    """CSRF middleware configuration.

    Attributes:
        field_name: Form field name for the token.
        header_name: HTTP header name for partial-navigation requests.
        session_key: Key used to store the token in the session.
        token_length: Length of the random token in bytes (hex-encoded).
        exempt_paths: Paths that skip validation.
    """

    field_name: str = "csrf_token"
    header_name: str = "X-CSRF-Token"
    session_key: str = "_csrf_token"
    token_length: int = 32
    exempt_paths: frozenset[str] = frozenset()


class CSRFMiddleware:
    """Token-based CSRF protection middleware.

    On every request:
    1. Loads or generates a CSRF token in the session.
    2. Exposes it through ``get_csrf_token()`` (and so ``ctx.csrf_token``).
    3. On unsafe methods, validates the token from the header or form.
    4. Rejects with 403 if the token is missing or wrong.
    """

    __slots__ = ("_config",)

    def __init__(self, config: CSRFConfig | None = None) -> None:
        self._config = config or CSRFConfig()

    async def __call__(self, request: Request, next: Next) -> Response:
        session = current_session()
        if session is None:
            msg = (
                "CSRFMiddleware requires SessionMiddleware. "
                "Add SessionMiddleware before CSRFMiddleware."
            )
            raise ConfigurationError(msg)

        cfg = self._config
        token = session.get(cfg.session_key)
        if not token:
            token = secrets.token_hex(cfg.token_length)
            session[cfg.session_key] = token

        cv_token = _csrf_token_var.set(token)
        try:
            if request.method in _UNSAFE_METHODS and request.path not in cfg.exempt_paths:
                await _validate_token(request, token, cfg)
            return await next(request)
        finally:
            _csrf_token_var.reset(cv_token)


async def _validate_token(request: Request, expected: str, config: CSRFConfig) -> None:
    """Raise ``Forbidden`` unless the request carries *expected*."""
    submitted = request.headers.get(config.header_name)

    if submitted is None:
        form = await request.form()
        submitted = form.get(config.field_name)

    if submitted is None:
        raise Forbidden("CSRF token missing")
    if not secrets.compare_digest(submitted, expected):
        raise Forbidden("CSRF token invalid")
