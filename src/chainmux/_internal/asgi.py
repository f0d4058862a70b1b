"""ASGI type aliases.

The raw dict-based shapes from the ASGI 3.0 spec. Only the server adapter
and the request factory see these; handlers work with ``Request`` and
``Response``.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]


async def empty_receive() -> Message:
    """A receive channel with no body, for requests built in-process."""
    return {"type": "http.request", "body": b"", "more_body": False}


def body_receive(body: bytes) -> Receive:
    """Return a receive channel that yields *body* once, then disconnects."""
    sent = False

    async def receive() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return receive
