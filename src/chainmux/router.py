"""Router — a ServeMux with an ordered middleware chain in front of it.

Routes go to the mux exactly as written; the per-method helpers only
prefix the method so the mux's own matching answers wrong-method requests
with 405. Middleware is global: every request this router serves passes
through every middleware, in the order they were added.

Usage::

    router = Router()
    router.add_middleware(request_logger())

    @router.get("/users/{id}")
    async def show_user(request: Request) -> Response:
        return Response.json({"id": request.path_value("id")})

    app = router.asgi()
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from chainmux.http.request import Request
from chainmux.http.response import Response
from chainmux.middleware.protocol import Handler, HandlerFunc, Middleware, as_handler
from chainmux.routing.mux import ServeMux

if TYPE_CHECKING:
    from chainmux.config import ServerConfig
    from chainmux.server.asgi import ASGIApp

# Methods that get a registration helper, e.g. ``Router.get``
METHODS: tuple[str, ...] = (
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
)


class Router:
    """Pattern routing plus chronological middleware.

    Middleware added first is the outermost layer: it sees the request
    first and the response last. The chain is folded around the mux on
    every request instead of being cached, so middleware added after
    serving has started applies from the very next request.

    Thread safety:
        Serving only reads the middleware list and the route table, so
        concurrent requests need no locking. Registration and
        ``add_middleware`` are setup-time operations; do them before
        serving, from one thread.
    """

    __slots__ = ("_middleware", "_mux")

    def __init__(self, mux: ServeMux | None = None) -> None:
        self._mux: ServeMux = mux if mux is not None else ServeMux()
        self._middleware: list[Middleware] = []

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Append *middleware* to the chain. Executed in the order added."""
        self._middleware.append(middleware)

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        """The middleware chain as it stands, outermost first."""
        return tuple(self._middleware)

    @property
    def mux(self) -> ServeMux:
        """The underlying ServeMux."""
        return self._mux

    # -- Route registration --

    def handle(self, pattern: str, handler: Handler) -> None:
        """Register *handler* for *pattern*, passed to the mux unchanged."""
        self._mux.handle(pattern, handler)

    def handle_func(self, pattern: str, fn: HandlerFunc) -> None:
        """Register a function for *pattern*, passed to the mux unchanged."""
        self._mux.handle_func(pattern, fn)

    def method_handle(self, method: str, path: str, handler: Handler) -> None:
        """Register *handler* for ``"<method> <path>"``."""
        self._mux.handle(f"{method} {path}", handler)

    def method_handle_func(self, method: str, path: str, fn: HandlerFunc) -> None:
        """Register a function for ``"<method> <path>"``."""
        self._mux.handle_func(f"{method} {path}", fn)

    def _method_route(self, method: str, path: str, fn: HandlerFunc | None) -> Any:
        if fn is not None:
            self.method_handle_func(method, path, fn)
            return fn

        def decorator(func: HandlerFunc) -> HandlerFunc:
            self.method_handle_func(method, path, func)
            return func

        return decorator

    def get(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a GET route. Also usable as ``@router.get(path)``.

        GET routes answer HEAD requests too, unless a HEAD route for the
        same path is registered.
        """
        return self._method_route("GET", path, fn)

    def head(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a HEAD route."""
        return self._method_route("HEAD", path, fn)

    def post(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a POST route."""
        return self._method_route("POST", path, fn)

    def put(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a PUT route."""
        return self._method_route("PUT", path, fn)

    def patch(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a PATCH route."""
        return self._method_route("PATCH", path, fn)

    def delete(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a DELETE route."""
        return self._method_route("DELETE", path, fn)

    def connect(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a CONNECT route. CONNECT paths are matched uncleaned."""
        return self._method_route("CONNECT", path, fn)

    def options(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register an OPTIONS route."""
        return self._method_route("OPTIONS", path, fn)

    def trace(self, path: str, fn: HandlerFunc | None = None) -> Any:
        """Register a TRACE route."""
        return self._method_route("TRACE", path, fn)

    # -- Serving --

    def compose(self) -> Handler:
        """Fold the current middleware chain around the mux.

        ``[m0, m1, m2]`` becomes ``m0(m1(m2(mux.dispatch)))``.
        """
        handler: Handler = self._mux.dispatch
        for middleware in reversed(tuple(self._middleware)):
            handler = as_handler(middleware(handler))
        return handler

    async def dispatch(self, request: Request) -> Response:
        """Run *request* through a freshly composed chain."""
        return await self.compose()(request)

    async def serve(self, request: Request) -> Response:
        """Handler entry point. Lets a Router be mounted like any handler."""
        return await self.dispatch(request)

    async def __call__(self, request: Request) -> Response:
        return await self.dispatch(request)

    def resolve(self, request: Request) -> tuple[Handler, str]:
        """Ask the mux which handler and pattern would serve *request*.

        Middleware is not run.
        """
        return self._mux.resolve(request)

    # -- Host integration --

    def asgi(self) -> ASGIApp:
        """Wrap this router as an ASGI 3.0 application."""
        from chainmux.server.asgi import ASGIApp

        return ASGIApp(self)

    def run(self, config: ServerConfig | None = None, **overrides: Any) -> None:
        """Serve this router with pounce until interrupted.

        Keyword *overrides* replace fields of *config*::

            router.run(port=3000)
        """
        from chainmux.server.runner import run

        run(self.asgi(), config, **overrides)

    def __repr__(self) -> str:
        return f"<Router patterns={len(self._mux.patterns)} middleware={len(self._middleware)}>"


def chain(*middleware: Middleware) -> Callable[[Handler], Handler]:
    """Combine several middleware into one, first argument outermost.

    ``router.add_middleware(chain(a, b))`` behaves like adding ``a`` then
    ``b``.
    """

    def combined(next: Handler) -> Handler:
        handler = next
        for mw in reversed(middleware):
            handler = as_handler(mw(handler))
        return handler

    return combined
