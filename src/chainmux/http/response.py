"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response, so a middleware can decorate
whatever the inner layers produced without affecting anyone else holding
the original.
"""

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers::

        Response("created").with_status(201).with_header("Location", "/users/7")
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def plain(cls, text: str, status: int = 200) -> "Response":
        """A ``text/plain`` response."""
        return cls(body=text, status=status, content_type="text/plain; charset=utf-8")

    @classmethod
    def json(cls, data: object, status: int = 200) -> "Response":
        """A JSON response."""
        return cls(
            body=json_module.dumps(data),
            status=status,
            content_type="application/json",
        )

    @classmethod
    def error(cls, message: str, status: int) -> "Response":
        """A plain-text error reply, newline-terminated, marked ``nosniff``.

        The body and headers match what stock HTTP servers send for
        their own 404 and 405 pages.
        """
        return cls(
            body=message + "\n",
            status=status,
            content_type="text/plain; charset=utf-8",
            headers=(("X-Content-Type-Options", "nosniff"),),
        )

    # -- Chainable transformations --

    def with_status(self, status: int) -> "Response":
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> "Response":
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> "Response":
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> "Response":
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    # -- Accessors --

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or ``None``."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body
