"""Request middleware: the protocol plus session and CSRF support."""

from perch.middleware.csrf import CSRFConfig, CSRFMiddleware, csrf_field, csrf_token
from perch.middleware.protocol import Middleware, Next
from perch.middleware.sessions import SessionConfig, SessionMiddleware, get_session

__all__ = [
    "CSRFConfig",
    "CSRFMiddleware",
    "Middleware",
    "Next",
    "SessionConfig",
    "SessionMiddleware",
    "csrf_field",
    "csrf_token",
    "get_session",
]
