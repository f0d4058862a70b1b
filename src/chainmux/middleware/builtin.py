"""Built-in middleware: request logging, panic recovery, prefix stripping.

Each one is an ordinary ``(next) -> handler`` wrapper, added with
``Router.add_middleware`` like any user middleware. None of them needs
anything from the router beyond the chain itself.
"""

import logging
import time
import traceback
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from chainmux.http.request import Request
from chainmux.http.response import Response
from chainmux.middleware.protocol import Handler, Middleware

_log = logging.getLogger("chainmux.middleware")


def request_logger(
    logger: logging.Logger | None = None,
    *,
    level: int = logging.INFO,
) -> Middleware:
    """Log one line per request once the inner chain has answered::

        GET /users/42 -> 200 (1.3 ms)

    Add it first so the time covers every other middleware.
    """
    log = logger or _log

    def middleware(next: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            start = time.perf_counter()
            response = await next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000
            log.log(
                level,
                "%s %s -> %d (%.1f ms)",
                request.method,
                request.url,
                response.status,
                elapsed_ms,
            )
            return response

        return handler

    return middleware


@dataclass(frozen=True, slots=True)
class RecovererConfig:
    """Recoverer configuration.

    ``show_traceback`` puts the formatted traceback in the 500 body.
    Development only.
    """

    show_traceback: bool = False
    message: str = "Internal Server Error"


class Recoverer:
    """Turn exceptions from inner layers into a ``500`` response.

    Without it, an exception propagates to the ASGI server. Everything
    added after the recoverer is covered; everything added before it
    still sees the exception.

    Usage::

        router.add_middleware(Recoverer())
    """

    __slots__ = ("config", "logger")

    def __init__(
        self,
        config: RecovererConfig | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config or RecovererConfig()
        self.logger = logger or _log

    def __call__(self, next: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            try:
                return await next(request)
            except Exception as exc:
                self.logger.exception("recovered from error in %s %s", request.method, request.path)
                body = self.config.message
                if self.config.show_traceback:
                    body += "\n\n" + "".join(traceback.format_exception(exc))
                return Response.error(body, 500)

        return handler


def strip_prefix(prefix: str) -> Middleware:
    """Remove *prefix* from the request path before calling ``next``.

    Requests whose path does not start with *prefix* get a 404. Use it to
    mount a router that was written for ``/`` under a subtree::

        api = Router()
        api.add_middleware(strip_prefix("/api"))
        outer.handle("/api/", api)
    """
    prefix = prefix.rstrip("/")

    def middleware(next: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            path = request.path
            if path == prefix:
                return await next(request.with_path("/"))
            if not path.startswith(prefix + "/"):
                return Response.error("404 page not found", 404)
            return await next(request.with_path(path[len(prefix) :]))

        return handler

    return middleware


def with_values(values: Mapping[str, Any] | None = None, /, **extra: Any) -> Middleware:
    """Attach fixed context values to every request.

    Handlers read them with ``request.value(key)``.
    """
    items = {**(values or {}), **extra}

    def middleware(next: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            for key, value in items.items():
                request = request.with_value(key, value)
            return await next(request)

        return handler

    return middleware
