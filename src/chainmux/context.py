"""The request currently being served, for code with no request in reach.

``get_request()`` answers with the innermost request bound so far:

- ``ASGIApp`` binds the request it built from the scope, so outer
  middleware see the raw request.
- ``ServeMux.dispatch`` binds the matched copy it passes to the handler,
  so handlers (and anything they call) see middleware context values,
  ``pattern`` and ``path_params``.

Each binding is undone when its layer returns, and ContextVars keep
concurrent requests apart. Passing the request explicitly remains the
primary channel; ``Request.with_value`` is how middleware hand data inward.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from chainmux.http.request import Request

request_var: ContextVar[Request] = ContextVar("chainmux_request")


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` outside a request.
    """
    return request_var.get()


@contextmanager
def bind_request(request: Request) -> Iterator[Request]:
    """Make *request* the current request for the duration of the block."""
    token = request_var.set(request)
    try:
        yield request
    finally:
        request_var.reset(token)
