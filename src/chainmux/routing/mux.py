"""ServeMux — the pattern table and dispatcher a Router delegates to.

Matches a request's host, method, and path against registered patterns
and produces the standard fallback responses itself:

- no pattern matches the path: ``404 page not found``
- patterns match the path, but only for other methods: ``405`` with ``Allow``
- the path is not canonical (``//``, ``.``, ``..``): ``301`` to the clean path
- ``/tree`` when only ``/tree/`` is registered: ``301`` to ``/tree/``

Usage::

    mux = ServeMux()
    mux.handle_func("GET /users/{id}", show_user)
    handler, pattern = mux.resolve(request)
    response = await mux.dispatch(request)
"""

import html
import logging
import sys
from collections.abc import Callable
from typing import Any

from chainmux.context import bind_request
from chainmux.errors import ConfigurationError, PatternConflict
from chainmux.http.request import Request
from chainmux.http.response import Response
from chainmux.middleware.protocol import Handler, HandlerFunc, as_handler
from chainmux.routing.pattern import Pattern, clean_path, describe_conflict, parse_pattern
from chainmux.routing.tree import RoutingNode

logger = logging.getLogger("chainmux.routing")


async def not_found(request: Request) -> Response:
    """The handler for requests no pattern matches."""
    return Response.error("404 page not found", 404)


def method_not_allowed(allowed: set[str]) -> Handler:
    """A handler answering 405 and listing the *allowed* methods."""
    allow = ", ".join(sorted(allowed))

    async def handler(request: Request) -> Response:
        return Response.error("Method Not Allowed", 405).with_header("Allow", allow)

    return handler


def redirect(url: str, status: int = 301) -> Handler:
    """A handler that redirects every request to *url*."""
    location = (("Location", url),)

    async def handler(request: Request) -> Response:
        # Only GET gets a body; HEAD gets the content type it would have had.
        if request.method == "GET":
            text = "Moved Permanently" if status == 301 else "Found"
            return Response(
                body=f'<a href="{html.escape(url)}">{text}</a>.\n\n',
                status=status,
                content_type="text/html; charset=utf-8",
                headers=location,
            )
        if request.method == "HEAD":
            return Response(status=status, content_type="text/html; charset=utf-8", headers=location)
        return Response(status=status, content_type="", headers=location)

    return handler


def strip_host_port(host: str) -> str:
    """Drop a ``:port`` suffix from a Host header value."""
    if ":" not in host:
        return host
    if host.startswith("["):
        end = host.find("]:")
        return host[1:end] if end > 0 else host
    if host.count(":") > 1:
        # Bare IPv6 address without a port
        return host
    name, _, _ = host.rpartition(":")
    return name


def _caller_location() -> str:
    """``file:line`` of the first frame outside chainmux."""
    frame = sys._getframe(1)
    while frame is not None and frame.f_globals.get("__name__", "").startswith("chainmux"):
        frame = frame.f_back
    if frame is None:
        return "unknown location"
    return f"{frame.f_code.co_filename}:{frame.f_lineno}"


class ServeMux:
    """HTTP request multiplexer over method-qualified patterns.

    Registration is meant to happen during single-threaded startup; matching
    only reads the trie, so any number of requests can be dispatched
    concurrently once setup is done.
    """

    __slots__ = ("_routes", "_tree")

    def __init__(self) -> None:
        self._tree = RoutingNode()
        self._routes: list[tuple[Pattern, Handler]] = []

    # -- Registration --

    def register(self, pattern: str, handler: Handler) -> Pattern:
        """Register *handler* for *pattern*.

        Raises ``PatternError`` for a malformed pattern and
        ``PatternConflict`` if it clashes with an earlier registration.
        Nothing is registered when either is raised.
        """
        if handler is None:
            msg = f"nil handler for pattern {pattern!r}"
            raise ConfigurationError(msg)

        parsed = parse_pattern(pattern, location=_caller_location())
        for existing, _ in self._routes:
            if parsed.conflicts_with(existing):
                raise PatternConflict(parsed, existing, describe_conflict(parsed, existing))

        handler = as_handler(handler)
        self._tree.add(parsed, handler)
        self._routes.append((parsed, handler))
        logger.debug("registered %r at %s", pattern, parsed.location)
        return parsed

    def handle(self, pattern: str, handler: Handler) -> None:
        """Register a handler (any ``Handler`` or ``Servable``) for *pattern*."""
        self.register(pattern, handler)

    def handle_func(self, pattern: str, fn: HandlerFunc) -> None:
        """Register a plain or async function for *pattern*."""
        if not callable(fn):
            msg = f"handler for pattern {pattern!r} is not callable"
            raise ConfigurationError(msg)
        self.register(pattern, fn)

    @property
    def patterns(self) -> tuple[Pattern, ...]:
        """Registered patterns, in registration order."""
        return tuple(p for p, _ in self._routes)

    @property
    def routes(self) -> tuple[tuple[Pattern, Handler], ...]:
        """Registered (pattern, handler) pairs, in registration order."""
        return tuple(self._routes)

    # -- Resolution --

    def resolve(self, request: Request) -> tuple[Handler, str]:
        """Return the handler that would serve *request* and its pattern.

        The pattern is ``""`` for the not-found and method-not-allowed
        fallbacks. Nothing is invoked.
        """
        handler, pattern, _ = self._find(request)
        return handler, pattern

    def _find(self, request: Request) -> tuple[Handler, str, dict[str, str]]:
        method = request.method
        path = request.path or "/"
        if method == "CONNECT":
            # CONNECT paths are matched as sent: no cleaning, no redirects.
            host = request.host
            match = self._tree.match(host, method, path)
        else:
            host = strip_host_port(request.host)
            path = clean_path(path)
            match, redirect_to = self._match_or_redirect(host, method, path, request)
            if redirect_to is not None:
                return redirect(redirect_to), redirect_to.partition("?")[0], {}
            if path != (request.path or "/"):
                pattern = match[0].pattern.text if match is not None and match[0].pattern else ""
                return redirect(_with_query(path, request)), pattern, {}

        if match is None:
            allowed = self._tree.matching_methods(host, path)
            if allowed:
                logger.debug("405 %s %s (allowed: %s)", method, path, sorted(allowed))
                return method_not_allowed(allowed), "", {}
            logger.debug("404 %s %s", method, path)
            return not_found, "", {}

        node, values = match
        assert node.pattern is not None
        params = dict(zip(node.pattern.wildcards, values))
        return node.handler, node.pattern.text, params

    def _match_or_redirect(
        self,
        host: str,
        method: str,
        path: str,
        request: Request,
    ) -> tuple[tuple[RoutingNode, list[str]] | None, str | None]:
        match = self._tree.match(host, method, path)
        if not _exact_match(match, path) and not path.endswith("/"):
            # An exact match one trailing slash away means "redirect there".
            slashed = path + "/"
            if _exact_match(self._tree.match(host, method, slashed), slashed):
                return None, _with_query(slashed, request)
        return match, None

    # -- Dispatch --

    async def dispatch(self, request: Request) -> Response:
        """Resolve *request* and invoke the matching handler.

        The handler receives a copy of the request carrying ``pattern``
        and ``path_params``, which is also what ``get_request()`` returns
        while the handler runs.
        """
        handler, pattern, params = self._find(request)
        with bind_request(request.with_match(pattern, params)) as matched:
            return await handler(matched)

    async def serve(self, request: Request) -> Response:
        """Handler entry point; same as ``dispatch``."""
        return await self.dispatch(request)

    async def __call__(self, request: Request) -> Response:
        return await self.dispatch(request)

    def __repr__(self) -> str:
        return f"<ServeMux patterns={len(self._routes)}>"


def _exact_match(match: tuple[RoutingNode, list[str]] | None, path: str) -> bool:
    """True if *match* consumed *path* without a non-empty rest wildcard."""
    if match is None:
        return False
    pattern = match[0].pattern
    if pattern is None or not pattern.is_subtree:
        return True
    if path and not path.endswith("/"):
        return False
    # "/a/b/{$}" and "/a/b/{rest...}" match "/a/b/" exactly; "/a/" doesn't.
    return len(pattern.segments) == path.count("/")


def _with_query(path: str, request: Request) -> str:
    raw = request.query.raw
    if raw:
        return f"{path}?{raw.decode('latin-1')}"
    return path


def handler_name(handler: Callable[..., Any]) -> str:
    """Best-effort display name for a registered handler."""
    target = getattr(handler, "__wrapped__", handler)
    name = getattr(target, "__qualname__", None) or getattr(target, "__name__", None)
    if name:
        return name
    return type(target).__name__
