"""Perch CLI — inspect the page catalog and run the dev server.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — file-based routing for server-rendered sites.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch routes -----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List the pages in the catalog")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    # -- perch resolve ----------------------------------------------------
    resolve_parser = subparsers.add_parser("resolve", help="Show which page serves a path")
    resolve_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    resolve_parser.add_argument("path", help="Request path, e.g. /users/42")

    # -- perch run --------------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Start the server")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload even when the app runs in debug mode",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from perch.cli._routes import run_routes

        run_routes(args)
    elif args.command == "resolve":
        from perch.cli._routes import run_resolve

        run_resolve(args)
    elif args.command == "run":
        from perch.cli._run import run_server

        run_server(args)
