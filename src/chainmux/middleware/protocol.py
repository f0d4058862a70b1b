"""Handler and Middleware contracts.

A handler is any async callable that turns a request into a response::

    async def hello(request: Request) -> Response: ...

A middleware takes the next handler and returns a new handler that runs
its own logic around (or instead of) a call to it::

    def timing(next: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            start = time.monotonic()
            response = await next(request)
            return response.with_header("X-Time", f"{time.monotonic() - start:.3f}")

        return handler

No base class required. ``Router`` and ``ServeMux`` are handlers too, which
is what makes nesting one router inside another work.
"""

import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeAlias

from chainmux._internal.invoke import invoke
from chainmux.http.request import Request
from chainmux.http.response import Response

# The capability every layer of the pipeline shares
Handler: TypeAlias = Callable[[Request], Awaitable[Response]]

# What callers may register: plain or async functions
HandlerFunc: TypeAlias = Callable[[Request], Response | Awaitable[Response]]

# A wrapper unit: (next handler) -> handler
Middleware: TypeAlias = Callable[[Handler], Handler]


class Servable(Protocol):
    """Objects that serve requests through a ``serve`` method."""

    async def serve(self, request: Request) -> Response: ...


def as_handler(obj: Any) -> Handler:
    """Adapt a function, callable, or ``Servable`` to a ``Handler``.

    Async functions are returned unchanged. Objects with a ``serve`` method
    are served through it. Sync callables are wrapped so they can be
    awaited like everything else.

    Raises ``TypeError`` for anything that cannot serve a request.
    """
    if inspect.iscoroutinefunction(obj):
        return obj

    target = None if inspect.isroutine(obj) else getattr(obj, "serve", None)
    if target is not None and callable(target):
        if inspect.iscoroutinefunction(target):
            return target
        fn = target
    elif callable(obj):
        fn = obj
    else:
        msg = f"{type(obj).__name__!r} object is not a handler"
        raise TypeError(msg)

    @functools.wraps(fn)
    async def handler(request: Request) -> Response:
        return await invoke(fn, request)

    return handler
