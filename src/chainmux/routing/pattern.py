"""Route pattern parsing and the specificity relation between patterns.

Pattern grammar::

    [METHOD ][HOST]/[PATH]

    "/users/"                 any method, any host, the /users/ subtree
    "GET /users/{id}"         GET (and HEAD), one path segment captured as id
    "POST /files/{path...}"   POST, the rest of the path captured as path
    "GET /{$}"                GET, exactly "/" and nothing below it
    "example.com/"            any method, only for Host: example.com

Two patterns are compared by the set of requests they match. One is *more
specific* than another when it matches a strict subset of its requests.
Registering two patterns that match some request in common, where neither
is more specific, is a conflict; that is what keeps request matching
unambiguous without any priority rules.
"""

import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import unquote

from chainmux.errors import PatternError

# RFC 9110 token characters
_METHOD_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class Relationship(Enum):
    """How the request sets of two patterns relate."""

    EQUIVALENT = "equivalent"
    MORE_GENERAL = "more general"
    MORE_SPECIFIC = "more specific"
    OVERLAPS = "overlaps"
    DISJOINT = "disjoint"

    def inverse(self) -> "Relationship":
        if self is Relationship.MORE_GENERAL:
            return Relationship.MORE_SPECIFIC
        if self is Relationship.MORE_SPECIFIC:
            return Relationship.MORE_GENERAL
        return self


def combine(r1: Relationship, r2: Relationship) -> Relationship:
    """Combine the relationships of two independent pattern parts."""
    if r1 is Relationship.EQUIVALENT:
        return r2
    if r1 is Relationship.DISJOINT:
        return Relationship.DISJOINT
    if r1 is Relationship.OVERLAPS:
        return Relationship.DISJOINT if r2 is Relationship.DISJOINT else Relationship.OVERLAPS
    # r1 is MORE_GENERAL or MORE_SPECIFIC
    if r2 is Relationship.EQUIVALENT:
        return r1
    if r2 is r1.inverse():
        return Relationship.OVERLAPS
    return r2


@dataclass(frozen=True, slots=True)
class Segment:
    """One path segment of a pattern.

    Literal:  ``users``     (value="users")
    Wildcard: ``{id}``      (value="id", wild=True)
    Rest:     ``{p...}``    (value="p", wild=True, multi=True)
    Subtree:  trailing /    (value="", wild=True, multi=True)
    End:      ``{$}``       (value="/")
    """

    value: str
    wild: bool = False
    multi: bool = False

    @property
    def is_end(self) -> bool:
        return not self.wild and self.value == "/"


@dataclass(frozen=True, slots=True, eq=False)
class Pattern:
    """A parsed route pattern.

    Compared by identity: two registrations of the same text are two
    patterns (and a conflict).
    """

    text: str
    method: str
    host: str
    segments: tuple[Segment, ...]
    location: str = ""

    def __str__(self) -> str:
        return self.text

    @property
    def last_segment(self) -> Segment:
        return self.segments[-1]

    @property
    def is_subtree(self) -> bool:
        """True when the pattern matches a whole path prefix."""
        return self.last_segment.multi

    @property
    def wildcards(self) -> tuple[str, ...]:
        """Names captured by this pattern, in path order."""
        return tuple(s.value for s in self.segments if s.wild and s.value)

    # -- Relations --

    def compare_methods(self, other: "Pattern") -> Relationship:
        if self.method == other.method:
            return Relationship.EQUIVALENT
        if not self.method:
            return Relationship.MORE_GENERAL
        if not other.method:
            return Relationship.MORE_SPECIFIC
        # A GET route also answers HEAD requests.
        if self.method == "GET" and other.method == "HEAD":
            return Relationship.MORE_GENERAL
        if self.method == "HEAD" and other.method == "GET":
            return Relationship.MORE_SPECIFIC
        return Relationship.DISJOINT

    def compare_paths(self, other: "Pattern") -> Relationship:
        segs1, segs2 = self.segments, other.segments
        # Without a trailing multi, a pattern only matches paths with
        # exactly its number of segments.
        if len(segs1) != len(segs2) and not self.is_subtree and not other.is_subtree:
            return Relationship.DISJOINT

        rel = Relationship.EQUIVALENT
        for s1, s2 in zip(segs1, segs2):
            rel = combine(rel, _compare_segments(s1, s2))
            if rel is Relationship.DISJOINT:
                return rel

        if len(segs1) == len(segs2):
            return rel
        # Only a pattern ending in a multi can match paths longer than itself.
        if len(segs1) < len(segs2) and self.is_subtree:
            return rel
        if len(segs2) < len(segs1) and other.is_subtree:
            return rel
        return Relationship.DISJOINT

    def compare(self, other: "Pattern") -> Relationship:
        """Relationship of methods and paths combined (hosts ignored)."""
        method_rel = self.compare_methods(other)
        if method_rel is Relationship.DISJOINT:
            return Relationship.DISJOINT
        return combine(method_rel, self.compare_paths(other))

    def conflicts_with(self, other: "Pattern") -> bool:
        """True if both patterns can match a request and neither wins.

        Patterns for different hosts never conflict: either they match
        different requests, or the one naming a host takes precedence.
        """
        if self.host != other.host:
            return False
        return self.compare(other) in (Relationship.EQUIVALENT, Relationship.OVERLAPS)


def _compare_segments(s1: Segment, s2: Segment) -> Relationship:
    if s1.multi and s2.multi:
        return Relationship.EQUIVALENT
    if s1.multi:
        return Relationship.MORE_GENERAL
    if s2.multi:
        return Relationship.MORE_SPECIFIC
    if s1.wild and s2.wild:
        return Relationship.EQUIVALENT
    if s1.wild:
        # A single wildcard never matches the {$} trailing slash.
        return Relationship.DISJOINT if s2.is_end else Relationship.MORE_GENERAL
    if s2.wild:
        return Relationship.DISJOINT if s1.is_end else Relationship.MORE_SPECIFIC
    return Relationship.EQUIVALENT if s1.value == s2.value else Relationship.DISJOINT


# -- Parsing --


def parse_pattern(text: str, *, location: str = "") -> Pattern:
    """Parse *text* into a ``Pattern``.

    Raises ``PatternError`` with the offending offset on bad syntax.
    """
    if not text:
        raise PatternError(text, "empty pattern")

    method = ""
    rest = text
    offset = 0
    split = re.search(r"[ \t]", text)
    if split is not None:
        method = text[: split.start()]
        rest = text[split.start() + 1 :].lstrip(" \t")
        offset = len(text) - len(rest)
        if not _METHOD_RE.match(method):
            raise PatternError(text, f"invalid method {method!r}", offset=0)

    slash = rest.find("/")
    if slash < 0:
        raise PatternError(text, "host/path missing /", offset=offset)
    host, path = rest[:slash], rest[slash:]
    if "{" in host:
        raise PatternError(
            text, "host contains '{' (missing initial '/'?)", offset=offset + host.index("{")
        )
    offset += slash

    # Request paths are cleaned before matching, so an unclean pattern path
    # could never be reached (CONNECT paths are the exception).
    if method != "CONNECT" and path != clean_path(path):
        raise PatternError(text, "non-CONNECT pattern with unclean path can never match")

    segments: list[Segment] = []
    seen: set[str] = set()
    while path:
        # Invariant: path starts with "/"
        path = path[1:]
        offset = len(text) - len(path)
        if not path:
            segments.append(Segment("", wild=True, multi=True))
            break
        end = path.find("/")
        if end < 0:
            end = len(path)
        seg, path = path[:end], path[end:]

        brace = seg.find("{")
        if brace < 0:
            # Request paths arrive decoded, so literals are compared decoded too.
            # "%7B" is how a literal "{" is written.
            literal = unquote(seg)
            if "/" in literal:
                raise PatternError(text, "escaped '/' in segment can never match", offset=offset)
            segments.append(Segment(literal))
            continue
        if brace != 0:
            raise PatternError(text, "bad wildcard segment (must start with '{')", offset=offset)
        if not seg.endswith("}"):
            raise PatternError(text, "bad wildcard segment (must end with '}')", offset=offset)

        name = seg[1:-1]
        if name == "$":
            if path:
                raise PatternError(text, "{$} not at end", offset=offset)
            segments.append(Segment("/"))
            break
        multi = name.endswith("...")
        if multi:
            name = name[:-3]
            if path:
                raise PatternError(text, "{...} wildcard not at end", offset=offset)
        if not name:
            raise PatternError(text, "empty wildcard", offset=offset)
        if not name.isidentifier():
            raise PatternError(text, f"bad wildcard name {name!r}", offset=offset)
        if name in seen:
            raise PatternError(text, f"duplicate wildcard name {name!r}", offset=offset)
        seen.add(name)
        segments.append(Segment(name, wild=True, multi=multi))

    return Pattern(
        text=text, method=method, host=host, segments=tuple(segments), location=location
    )


def clean_path(path: str) -> str:
    """Return the canonical form of a URL path.

    Collapses repeated slashes, resolves ``.`` and ``..`` segments, and
    keeps a trailing slash when the input had one::

        clean_path("/a//b/./c/../d/") == "/a/b/d/"
    """
    if not path:
        return "/"
    if not path.startswith("/"):
        path = "/" + path

    parts: list[str] = []
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if parts:
                parts.pop()
            continue
        parts.append(part)

    cleaned = "/" + "/".join(parts)
    if path.endswith("/") and cleaned != "/":
        cleaned += "/"
    return cleaned


# -- Conflict explanations --


def describe_conflict(p1: Pattern, p2: Pattern) -> str:
    """Explain, with example paths, why two patterns conflict."""
    method_rel = p1.compare_methods(p2)
    path_rel = p1.compare_paths(p2)
    rel = combine(method_rel, path_rel)
    if rel is Relationship.EQUIVALENT:
        return f"{p1} matches the same requests as {p2}"
    if path_rel is Relationship.OVERLAPS:
        return (
            f"{p1} and {p2} both match some paths, like {_common_path(p1, p2)!r}.\n"
            "But neither is more specific than the other.\n"
            f"{p1} matches {_difference_path(p1, p2)!r}, but {p2} doesn't.\n"
            f"{p2} matches {_difference_path(p2, p1)!r}, but {p1} doesn't."
        )
    if method_rel is Relationship.MORE_GENERAL and path_rel is Relationship.MORE_SPECIFIC:
        return f"{p1} matches more methods than {p2}, but has a more specific path pattern"
    if method_rel is Relationship.MORE_SPECIFIC and path_rel is Relationship.MORE_GENERAL:
        return f"{p1} matches fewer methods than {p2}, but has a more general path pattern"
    return f"{p1} and {p2} conflict: methods {method_rel.value}, paths {path_rel.value}"


def _write_segment(parts: list[str], seg: Segment) -> None:
    parts.append("/")
    if not seg.multi and not seg.is_end:
        parts.append(seg.value)


def _common_path(p1: Pattern, p2: Pattern) -> str:
    """A path matched by both patterns (which must overlap)."""
    parts: list[str] = []
    for s1, s2 in zip(p1.segments, p2.segments):
        _write_segment(parts, s2 if s1.wild else s1)
    common = min(len(p1.segments), len(p2.segments))
    for seg in p1.segments[common:] or p2.segments[common:]:
        _write_segment(parts, seg)
    return "".join(parts)


def _difference_path(p1: Pattern, p2: Pattern) -> str:
    """A path matched by *p1* but not *p2*."""
    parts: list[str] = []
    for s1, s2 in zip(p1.segments, p2.segments):
        if s1.multi and s2.multi:
            parts.append("/")
            return "".join(parts)
        if s1.multi:
            # A trailing slash tells them apart, unless p2 ends in {$}.
            parts.append("/")
            if s2.is_end:
                parts.append(s1.value or "x")
            return "".join(parts)
        if s1.wild and not s2.wild and s1.value == s2.value:
            parts.append("/" + s2.value + "x")
        else:
            _write_segment(parts, s1)
    common = min(len(p1.segments), len(p2.segments))
    for seg in p1.segments[common:] or p2.segments[common:]:
        _write_segment(parts, seg)
    return "".join(parts)
