"""chainmux exception hierarchy.

Everything here is a setup-time failure. Requests that match no route, or
match a route under another method, are answered with ordinary 404/405
responses and never raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chainmux.routing.pattern import Pattern


class ChainmuxError(Exception):
    """Base for all chainmux-specific errors."""


class ConfigurationError(ChainmuxError):
    """Raised when routes or middleware are registered incorrectly."""


class PatternError(ConfigurationError):
    """A route pattern string could not be parsed.

    The message names the offending pattern and the reason::

        PatternError("GET /users/{id", "bad wildcard segment")
    """

    def __init__(self, pattern: str, reason: str, *, offset: int | None = None) -> None:
        self.pattern = pattern
        self.reason = reason
        self.offset = offset
        if offset is not None:
            super().__init__(f"parsing {pattern!r}: at offset {offset}: {reason}")
        else:
            super().__init__(f"parsing {pattern!r}: {reason}")


class PatternConflict(ConfigurationError):  # noqa: N818
    """Two registered patterns could both answer the same request.

    Raised by ``ServeMux.register`` when the new pattern is equivalent to,
    or overlaps with, an existing one and neither is more specific. The
    route table is left untouched.
    """

    def __init__(self, new: Pattern, existing: Pattern, explanation: str) -> None:
        self.new = new
        self.existing = existing
        self.explanation = explanation
        super().__init__(
            f"pattern {new.text!r} (registered at {new.location}) conflicts with "
            f"pattern {existing.text!r} (registered at {existing.location}):\n{explanation}"
        )
