"""Immutable HTTP request.

Frozen metadata with async body access. Middleware that wants to hand
something new to the layers below builds a copy (``with_value``,
``with_path``) and passes the copy to ``next``; the request it received is
never changed, so concurrent requests never see each other's context.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import unquote

from chainmux._internal.asgi import Receive, Scope, body_receive, empty_receive
from chainmux.http.headers import Headers
from chainmux.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``pattern`` and ``path_params`` are empty until the request reaches the
    mux; the mux hands the matched copy to the route handler, so they are
    only meaningful inside handlers (or in middleware after ``next`` returns,
    via ``resolve``).

    ``context`` is a read-only mapping of values attached by middleware.
    Cross-cutting data (the authenticated user, a trace id) travels here.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    host: str = ""
    path_params: Mapping[str, str] = field(default_factory=dict)
    pattern: str = ""
    context: Mapping[str, Any] = field(default_factory=dict)
    http_version: str = "1.1"
    client: tuple[str, int] | None = None

    # Private: ASGI receive callable for body streaming
    _receive: Receive = field(default=empty_receive, repr=False, compare=False)

    # Private: shared body cache. Copies made with ``replace`` keep the same
    # dict, so a body read by middleware is not read twice from the wire.
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Path and context access --

    def path_value(self, name: str) -> str:
        """Return the value captured by wildcard ``{name}``, or ``""``."""
        return self.path_params.get(name, "")

    def value(self, key: str, default: Any = None) -> Any:
        """Return a context value attached by middleware."""
        return self.context.get(key, default)

    def with_value(self, key: str, value: Any) -> Request:
        """Return a copy whose context also maps *key* to *value*."""
        return replace(self, context={**self.context, key: value})

    def with_path(self, path: str) -> Request:
        """Return a copy addressed to a different path."""
        return replace(self, path=path)

    def with_match(self, pattern: str, path_params: Mapping[str, str]) -> Request:
        """Return a copy carrying the mux's routing decision."""
        return replace(self, pattern=pattern, path_params=dict(path_params))

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Path plus query string."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        The receive channel is consumed once; later calls (from this
        request or any copy of it) return the cached bytes.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as UTF-8 text."""
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        return json_module.loads(await self.body())

    # -- Factories --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI HTTP scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        host = headers.get("host", "")
        if not host and scope.get("server"):
            server_host, server_port = scope["server"][0], scope["server"][1]
            host = f"{server_host}:{server_port}" if server_port else server_host
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            host=host,
            http_version=scope.get("http_version", "1.1"),
            client=(client[0], client[1]) if client else None,
            _receive=receive,
        )

    @classmethod
    def build(
        cls,
        method: str,
        target: str,
        *,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
        host: str = "",
    ) -> Request:
        """Create a Request in-process, without a server.

        *target* is a path with an optional query string::

            request = Request.build("GET", "/users/42?full=1")
        """
        path, _, query_string = target.partition("?")
        header_map = Headers.from_pairs(headers or {})
        return cls(
            method=method,
            path=unquote(path) or "/",
            headers=header_map,
            query=QueryParams(query_string.encode("latin-1")),
            host=host or header_map.get("host", ""),
            _receive=body_receive(body) if body else empty_receive,
        )
