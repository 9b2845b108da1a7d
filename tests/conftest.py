"""Shared fixtures: on-disk page trees and apps built from them."""

from collections.abc import Callable
from pathlib import Path

import pytest

from perch.app import App
from perch.config import AppConfig
from perch.diagnostics import RecordingSink

type WritePages = Callable[[dict[str, str]], Path]

LAYOUT = """\
<!DOCTYPE html>
<html>
<head><title>{{ title }}</title></head>
<body>
<main id="app-content">{% block content %}{% endblock %}</main>
</body>
</html>
"""

SITE = {
    "_layouts/main.html": LAYOUT,
    "_layouts/admin.html": LAYOUT.replace("<body>", '<body class="admin">'),
    "index.html": "<h1>Home</h1>",
    "about/index.html": "{# title: About us #}<h1>About</h1>",
    "users/index.html": "<h1>Users</h1>",
    "users/new/index.html": "<h1>New user</h1>",
    "users/[id]/index.html": "<h1>User {{ id }}</h1><p>{{ doubled }}</p>",
    "users/[id]/index.py": (
        "def context(id: int, ctx):\n"
        "    return {'doubled': id * 2}\n"
    ),
    "docs/[slug]/index.html": "<p>Doc {{ slug }}</p>",
    "archive/2024/index.html": "<h1>2024</h1>",
    "admin/index.html": "{# layout: admin #}<h1>Admin</h1>",
    "boom/index.html": "<h1>never</h1>",
    "boom/index.py": "def context():\n    raise RuntimeError('secret /srv/app/db.sqlite')\n",
    "go/index.html": "<h1>never</h1>",
    "go/index.py": (
        "from perch.http.response import Redirect\n"
        "\n"
        "def context():\n"
        "    return Redirect('/about')\n"
    ),
    "_errors/404.html": "<h1>Lost</h1><p>{{ request.path }}</p>",
}


@pytest.fixture
def write_pages(tmp_path: Path) -> WritePages:
    """Write ``{relative path: content}`` under ``tmp_path/pages``."""
    root = tmp_path / "pages"

    def write(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        root.mkdir(exist_ok=True)
        return root

    return write


@pytest.fixture
def site(write_pages: WritePages) -> Path:
    return write_pages(SITE)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def site_app(site: Path, sink: RecordingSink) -> App:
    config = AppConfig(pages_dir=site, app_name="Test Site", title_suffix=" | Test Site")
    return App(config, sink=sink)
