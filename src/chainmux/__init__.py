"""Chainmux — pattern routing with an ordered middleware chain.

A ``Router`` pairs a ``ServeMux`` (method and host aware pattern matching
with built-in 404, 405, and canonical-path redirects) with a list of
middleware that wraps every request in the order it was added.

Basic usage::

    from chainmux import Request, Response, Router
    from chainmux.middleware import request_logger

    router = Router()
    router.add_middleware(request_logger())

    @router.get("/hello/{name}")
    async def hello(request: Request) -> Response:
        return Response(f"Hello, {request.path_value('name')}!")

    router.run()          # pip install chainmux[server]
    app = router.asgi()   # or hand this to any ASGI server
"""

__version__ = "0.1.0"
__all__ = [
    "ASGIApp",
    "ChainmuxError",
    "ConfigurationError",
    "Handler",
    "HandlerFunc",
    "Middleware",
    "PatternConflict",
    "PatternError",
    "Request",
    "Response",
    "Router",
    "ServeMux",
    "ServerConfig",
    "chain",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import chainmux`` fast while providing a clean top-level API.
    """
    if name in ("Router", "chain"):
        from chainmux import router as _router

        return getattr(_router, name)

    if name == "ServeMux":
        from chainmux.routing.mux import ServeMux

        return ServeMux

    if name == "Request":
        from chainmux.http.request import Request

        return Request

    if name == "Response":
        from chainmux.http.response import Response

        return Response

    if name == "ServerConfig":
        from chainmux.config import ServerConfig

        return ServerConfig

    if name == "ASGIApp":
        from chainmux.server.asgi import ASGIApp

        return ASGIApp

    if name in ("Handler", "HandlerFunc", "Middleware"):
        from chainmux.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "get_request":
        from chainmux.context import get_request

        return get_request

    if name in ("ChainmuxError", "ConfigurationError", "PatternConflict", "PatternError"):
        from chainmux import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
