"""``chainmux routes`` — list registered patterns.

Prints one row per pattern with the handler it dispatches to and the
source line that registered it.
"""

import argparse
import sys

from chainmux.cli._resolve import resolve_router
from chainmux.routing.mux import handler_name


def run_routes(args: argparse.Namespace) -> None:
    """Print a PATTERN / HANDLER / REGISTERED AT table for ``args.app``."""
    try:
        router = resolve_router(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if getattr(args, "middleware", False):
        print("MIDDLEWARE")
        for index, middleware in enumerate(router.middleware):
            print(f"  {index}. {handler_name(middleware)}")
        print()

    if not router.mux.routes:
        print("No routes registered.")
        return

    rows: list[tuple[str, str, str]] = []
    for pattern, handler in router.mux.routes:
        rows.append((pattern.text, handler_name(handler), pattern.location))

    max_pattern = max(max(len(r[0]) for r in rows), 7)  # "PATTERN" header
    max_handler = max(max(len(r[1]) for r in rows), 7)  # "HANDLER" header

    fmt = f"{{:<{max_pattern}}}  {{:<{max_handler}}}  {{}}"
    print(fmt.format("PATTERN", "HANDLER", "REGISTERED AT"))
    sep_len = max_pattern + max_handler + 4 + max(len(r[2]) for r in rows)
    print("-" * min(sep_len, 80))
    for row in rows:
        print(fmt.format(*row))
