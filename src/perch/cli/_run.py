"""``perch run`` — start the pounce server for an app."""

import argparse
import sys

from perch.cli._resolve import resolve_app
from perch.errors import ConfigurationError


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it.

    Debug apps run with auto-reload unless ``--no-reload`` is given;
    the import string is handed to pounce so reloads pick up code
    changes.
    """
    try:
        app = resolve_app(args.app)
        app._ensure_frozen()
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    from perch.server.dev import run_dev_server

    run_dev_server(
        app,
        args.host or app.config.host,
        args.port or app.config.port,
        reload=app.config.debug and not args.no_reload,
        pages_dir=app.config.pages_dir,
        app_path=args.app,
        log_level=app.config.log_level,
    )
