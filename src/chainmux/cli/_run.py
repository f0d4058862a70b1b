"""``chainmux run`` — serve a router with pounce."""

import argparse
import sys
from typing import Any

from chainmux.cli._resolve import resolve_router
from chainmux.errors import ConfigurationError


def run_server(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and serve it. CLI flags override defaults."""
    try:
        router = resolve_router(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    overrides: dict[str, Any] = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.workers is not None:
        overrides["workers"] = args.workers
    if args.reload:
        overrides["reload"] = True
    if args.log_level is not None:
        overrides["log_level"] = args.log_level

    try:
        router.run(**overrides)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
