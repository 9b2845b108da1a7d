"""Tests for session and CSRF middleware on page requests."""

import re
from collections.abc import Callable
from pathlib import Path

import pytest

from perch.app import App
from perch.config import AppConfig
from perch.errors import ConfigurationError
from perch.middleware.csrf import CSRFConfig, CSRFMiddleware, csrf_token, get_csrf_token
from perch.middleware.sessions import SessionConfig, SessionMiddleware, get_session
from perch.testing import TestClient

type WritePages = Callable[[dict[str, str]], Path]

_TOKEN_RE = re.compile(r'<span id="token">([0-9a-f]+)</span>')

CONTACT = {
    "contact/index.html": (
        "{% if sent %}<p>Sent {{ sent }}</p>{% end %}"
        '<span id="token">{{ csrf_token() }}</span>'
        "<i>{{ has_token }}</i>"
    ),
    "contact/index.py": (
        "def context(ctx):\n"
        "    return {\n"
        "        'sent': ctx.form.get('message'),\n"
        "        'has_token': 'yes' if ctx.csrf_token else 'no',\n"
        "    }\n"
    ),
    "visits/index.html": "<p>{{ visits }}</p>",
    "visits/index.py": (
        "from perch.middleware.sessions import get_session\n"
        "\n"
        "def context():\n"
        "    session = get_session()\n"
        "    session['visits'] = session.get('visits', 0) + 1\n"
        "    return {'visits': session['visits']}\n"
    ),
}


def _app(root: Path, csrf: CSRFConfig | None = None) -> App:
    app = App(AppConfig(pages_dir=root))
    app.add_middleware(SessionMiddleware(SessionConfig(secret_key="test-secret")))
    app.add_middleware(CSRFMiddleware(csrf))
    return app


async def _token(client: TestClient) -> str:
    response = await client.get("/contact")
    match = _TOKEN_RE.search(response.text)
    assert match is not None
    return match.group(1)


class TestConfig:
    def test_session_requires_secret(self) -> None:
        with pytest.raises(ConfigurationError, match="secret_key"):
            SessionMiddleware(SessionConfig(secret_key=""))

    def test_csrf_defaults(self) -> None:
        config = CSRFConfig()
        assert config.field_name == "csrf_token"
        assert config.header_name == "X-CSRF-Token"

    def test_helpers_outside_request(self) -> None:
        assert get_csrf_token() is None
        assert csrf_token() == ""
        with pytest.raises(LookupError, match="No active session"):
            get_session()


class TestSessions:
    async def test_session_persists_across_requests(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            await client.get("/visits")
            response = await client.get("/visits")
        assert "<p>2</p>" in response.text

    async def test_tampered_cookie_starts_fresh(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            await client.get("/visits")
            client.cookies["perch_session"] = "garbage.value"
            response = await client.get("/visits")
        assert "<p>1</p>" in response.text


class TestCSRF:
    async def test_token_exposed_to_page(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            response = await client.get("/contact")
        assert _TOKEN_RE.search(response.text)
        assert "<i>yes</i>" in response.text

    async def test_token_stable_within_session(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            assert await _token(client) == await _token(client)

    async def test_post_without_token_forbidden(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            await client.get("/contact")
            response = await client.post("/contact", data={"message": "hi"})
        assert response.status == 403

    async def test_post_with_form_token(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            token = await _token(client)
            response = await client.post(
                "/contact", data={"message": "hi", "csrf_token": token}
            )
        assert response.status == 200
        assert "<p>Sent hi</p>" in response.text

    async def test_partial_post_with_header_token(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            token = await _token(client)
            response = await client.partial(
                "/contact",
                method="POST",
                headers={"X-CSRF-Token": token},
                data={"message": "hello"},
            )
        envelope = response.json_body()
        assert envelope["ok"] is True
        assert "Sent hello" in envelope["html"]

    async def test_wrong_token_forbidden_partial_envelope(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT))
        async with TestClient(app) as client:
            await client.get("/contact")
            response = await client.partial(
                "/contact", method="POST", headers={"X-CSRF-Token": "0" * 64}
            )
        assert response.status == 403
        envelope = response.json_body()
        assert envelope["ok"] is False
        assert envelope["error"] == "CSRF token invalid"

    async def test_custom_forbidden_page(self, write_pages: WritePages) -> None:
        root = write_pages({**CONTACT, "_errors/403.html": "<h1>Denied</h1><p>{{ detail }}</p>"})
        app = _app(root)
        async with TestClient(app) as client:
            await client.get("/contact")
            response = await client.post("/contact", data={"message": "hi"})
            partial = await client.partial("/contact", method="POST", data={"message": "hi"})
        assert response.status == 403
        assert "<h1>Denied</h1><p>CSRF token missing</p>" in response.text
        envelope = partial.json_body()
        assert partial.status == 403
        assert "Denied" in envelope["html"]
        assert envelope["error"] == "CSRF token missing"

    async def test_exempt_path(self, write_pages: WritePages) -> None:
        app = _app(write_pages(CONTACT), CSRFConfig(exempt_paths=frozenset({"/contact"})))
        async with TestClient(app) as client:
            response = await client.post("/contact", data={"message": "hi"})
        assert response.status == 200

    async def test_csrf_without_sessions_is_misconfigured(
        self, write_pages: WritePages
    ) -> None:
        app = App(AppConfig(pages_dir=write_pages(CONTACT)))
        app.add_middleware(CSRFMiddleware())
        async with TestClient(app) as client:
            response = await client.get("/contact")
        assert response.status == 500


class TestWithoutMiddleware:
    async def test_token_helpers_render_empty(self, write_pages: WritePages) -> None:
        app = App(AppConfig(pages_dir=write_pages(CONTACT)))
        async with TestClient(app) as client:
            response = await client.get("/contact")
        assert '<span id="token"></span>' in response.text
        assert "<i>no</i>" in response.text
