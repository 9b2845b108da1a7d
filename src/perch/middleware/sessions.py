"""Session middleware — signed cookie sessions.

Session data is serialized as JSON and signed with ``itsdangerous``.
The session dict lives in a ContextVar for the duration of the request;
``get_session()`` returns it, and the render pipeline hands a read-only
copy to pages as ``ctx.session``.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

from itsdangerous import BadData, URLSafeTimedSerializer

from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next

_session_var: ContextVar[dict[str, Any] | None] = ContextVar("perch_session", default=None)


def get_session() -> dict[str, Any]:
    """Return the current session dict.

    Raises ``LookupError`` outside a request handled by
    ``SessionMiddleware``.
    """
    session = _session_var.get()
    if session is None:
        msg = (
            "No active session. Ensure SessionMiddleware is added "
            "to the app before accessing the session."
        )
        raise LookupError(msg)
    return session


def current_session() -> dict[str, Any] | None:
    """The current session dict, or ``None`` when sessions are off."""
    return _session_var.get()


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session middleware configuration.

    ``secret_key`` is required — sessions are signed, not encrypted.
    """

    secret_key: str
    cookie_name: str = "perch_session"
    max_age: int = 86400  # 24 hours
    path: str = "/"
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


class SessionMiddleware:
    """Signed cookie session middleware.

    Usage::

        app.add_middleware(SessionMiddleware(SessionConfig(secret_key="...")))

        # pages/account/index.py
        def context(ctx):
            return {"visits": ctx.session.get("visits", 0)}
    """

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="perch.session")

    def _load_session(self, request: Request) -> dict[str, Any]:
        """Deserialize and verify the session cookie.

        Tampered, expired or malformed cookies start an empty session.
        """
        cookie_value = request.cookies.get(self._config.cookie_name)
        if not cookie_value:
            return {}
        try:
            data = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadData:
            return {}
        return data if isinstance(data, dict) else {}

    def _save_session(self, response: Response, session: dict[str, Any]) -> Response:
        cfg = self._config
        return response.with_cookie(
            cfg.cookie_name,
            self._serializer.dumps(session),
            max_age=cfg.max_age,
            path=cfg.path,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )

    async def __call__(self, request: Request, next: Next) -> Response:
        """Load session, dispatch, then save session to response."""
        session = self._load_session(request)
        token = _session_var.set(session)
        try:
            response = await next(request)
        finally:
            _session_var.reset(token)

        # Always re-sign so the expiry slides with activity
        return self._save_session(response, session)
