"""``perch routes`` and ``perch resolve`` — inspect the page catalog."""

import argparse
import sys

from perch.app import App
from perch.cli._resolve import resolve_app
from perch.errors import ConfigurationError, InvalidPath
from perch.routing.route import MatchKind


def _load(import_string: str) -> App:
    try:
        app = resolve_app(import_string)
        app._ensure_frozen()
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    return app


def run_routes(args: argparse.Namespace) -> None:
    """Print a table of KIND, PATTERN, TEMPLATE and LAYOUT for every page."""
    app = _load(args.app)
    catalog = app.catalog

    if not len(catalog):
        print("No pages found.")
        return

    rows: list[tuple[str, str, str, str]] = []
    for entry in catalog:
        kind = MatchKind.DYNAMIC if entry.is_dynamic else MatchKind.STATIC
        layout = entry.layout or app.config.default_layout
        rows.append((kind.value, entry.pattern, entry.template_id, layout))

    widths = [
        max(len(header), *(len(row[i]) for row in rows))
        for i, header in enumerate(("KIND", "PATTERN", "TEMPLATE"))
    ]
    fmt = f"{{:<{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    print(fmt.format("KIND", "PATTERN", "TEMPLATE", "LAYOUT"))
    print("-" * min(sum(widths) + 6 + max(len(r[3]) for r in rows), 80))
    for row in rows:
        print(fmt.format(*row))
    print(f"\n{len(rows)} pages (catalog v{catalog.version})")


def run_resolve(args: argparse.Namespace) -> None:
    """Print the match for ``args.path``; exit 1 when nothing matches."""
    app = _load(args.app)

    try:
        match = app.match(args.path)
    except InvalidPath as exc:
        print(f"{args.path}: invalid path ({exc.reason})")
        raise SystemExit(1) from exc

    if not match.found:
        print(f"{args.path}: not found")
        raise SystemExit(1)

    print(f"{args.path}: {match.kind.value}")
    print(f"  template: {match.template_id}")
    print(f"  layout:   {app.layout_for(match)}")
    for name, value in match.params.items():
        print(f"  [{name}] = {value!r}")
