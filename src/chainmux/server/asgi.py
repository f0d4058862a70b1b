"""ASGI adapter — the only component that touches raw ASGI messages.

Converts the scope into a ``Request``, awaits the handler (normally a
``Router``), and sends the ``Response`` back through ``send()``.

Handler exceptions are logged and re-raised: the ASGI server owns the
500 page and connection cleanup. Add the ``Recoverer`` middleware to
answer with a response instead.
"""

import logging

from chainmux._internal.asgi import Receive, Scope, Send
from chainmux.context import bind_request
from chainmux.http.request import Request
from chainmux.http.response import Response
from chainmux.middleware.protocol import Handler, as_handler

logger = logging.getLogger("chainmux.server")


def _body_allowed(status: int, method: str) -> bool:
    """Whether a response to *method* with *status* may carry a body."""
    # RFC 9110: 1xx, 204, 304 have no body; HEAD never gets one.
    if method == "HEAD":
        return False
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send, *, method: str = "GET") -> None:
    """Translate a Response into ASGI ``send()`` calls."""
    raw_headers: list[tuple[bytes, bytes]] = []
    if response.content_type:
        raw_headers.append((b"content-type", response.content_type.encode("latin-1")))
    for name, value in response.headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    body = response.body_bytes
    if not (100 <= response.status < 200 or response.status in {204, 304}):
        # HEAD advertises the length the GET body would have had.
        raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    if not _body_allowed(response.status, method):
        body = b""

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send({"type": "http.response.body", "body": body})


class ASGIApp:
    """An ASGI 3.0 application serving one handler.

    Usage::

        app = ASGIApp(router)   # or router.asgi()
        # uvicorn/pounce/hypercorn: point them at ``app``
    """

    __slots__ = ("handler",)

    def __init__(self, handler: Handler) -> None:
        self.handler: Handler = as_handler(handler)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_asgi(scope, receive)
        with bind_request(request):
            try:
                response = await self.handler(request)
            except Exception:
                logger.exception("unhandled error serving %s %s", request.method, request.path)
                raise

        await send_response(response, send, method=request.method)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Acknowledge startup and shutdown; there is nothing to set up."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.debug("lifespan startup")
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                logger.debug("lifespan shutdown")
                await send({"type": "lifespan.shutdown.complete"})
                return
