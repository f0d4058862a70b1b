"""Middleware — ``(next) -> handler`` wrappers, no inheritance required.

A middleware is any callable matching::

    def mw(next: Handler) -> Handler

Built-in middleware:
    Recoverer -- Convert exceptions from inner layers into a 500 response
    request_logger -- One log line per request with status and timing
    strip_prefix -- Remove a path prefix before routing (mount sub-routers)
    with_values -- Attach fixed context values to every request
"""

from chainmux.middleware.builtin import (
    Recoverer,
    RecovererConfig,
    request_logger,
    strip_prefix,
    with_values,
)
from chainmux.middleware.protocol import Handler, HandlerFunc, Middleware, Servable, as_handler

__all__ = [
    "Handler",
    "HandlerFunc",
    "Middleware",
    "Recoverer",
    "RecovererConfig",
    "Servable",
    "as_handler",
    "request_logger",
    "strip_prefix",
    "with_values",
]
