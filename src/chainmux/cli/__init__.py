"""Chainmux CLI — inspect and serve routers.

Entry point registered as ``chainmux`` in ``pyproject.toml``::

    [project.scripts]
    chainmux = "chainmux.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``chainmux`` command."""
    parser = argparse.ArgumentParser(
        prog="chainmux",
        description="Chainmux — pattern routing with an ordered middleware chain.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- chainmux routes --------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered patterns")
    routes_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:router)",
    )
    routes_parser.add_argument(
        "--middleware",
        action="store_true",
        help="Also list the middleware chain, outermost first",
    )

    # -- chainmux run -----------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Serve a router with pounce")
    run_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:router)",
    )
    run_parser.add_argument("--host", default=None, help="Bind host address")
    run_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    run_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker count (0=auto-detect)",
    )
    run_parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    run_parser.add_argument("--log-level", default=None, help="Server log level")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from chainmux.cli._routes import run_routes

        run_routes(args)
    elif args.command == "run":
        from chainmux.cli._run import run_server

        run_server(args)
