"""Routing trie.

Levels, from the root: host, then method, then one level per path
segment. ``""`` stands for "any host" and "any method" at the first two
levels. Single wildcards live under ``wild_child`` and rest wildcards
under ``multi_child``, so matching can try literal, then wildcard, then
rest, in that order. That is also the order of specificity, since conflicting
registrations were refused up front.
"""

from typing import Any

from chainmux.routing.pattern import Pattern, Segment


class RoutingNode:
    """A node in the routing trie. Mutated only by ``add``."""

    __slots__ = ("children", "handler", "multi_child", "pattern", "wild_child")

    def __init__(self) -> None:
        # Literal children: host name, method, or path segment -> node
        self.children: dict[str, RoutingNode] = {}
        # "{name}" at this position
        self.wild_child: RoutingNode | None = None
        # "{name...}" or a trailing slash at this position
        self.multi_child: RoutingNode | None = None
        # Set on terminal nodes only
        self.pattern: Pattern | None = None
        self.handler: Any = None

    def add(self, pattern: Pattern, handler: Any) -> None:
        """Insert *pattern* below this (root) node."""
        node = self._child(pattern.host)._child(pattern.method)
        node._add_segments(pattern.segments, pattern, handler)

    def _child(self, key: str) -> "RoutingNode":
        if key not in self.children:
            self.children[key] = RoutingNode()
        return self.children[key]

    def _add_segments(self, segments: tuple[Segment, ...], pattern: Pattern, handler: Any) -> None:
        node = self
        for seg in segments:
            if seg.multi:
                if node.multi_child is None:
                    node.multi_child = RoutingNode()
                node = node.multi_child
                break
            if seg.wild:
                if node.wild_child is None:
                    node.wild_child = RoutingNode()
                node = node.wild_child
            else:
                node = node._child(seg.value)
        node.pattern = pattern
        node.handler = handler

    # -- Matching --

    def match(self, host: str, method: str, path: str) -> tuple["RoutingNode", list[str]] | None:
        """Find the terminal node for a request, with captured values.

        Host-specific patterns are tried before host-less ones.
        """
        if host:
            hosted = self.children.get(host)
            if hosted is not None:
                result = hosted._match_method_and_path(method, path)
                if result is not None:
                    return result
        anyhost = self.children.get("")
        if anyhost is None:
            return None
        return anyhost._match_method_and_path(method, path)

    def _match_method_and_path(self, method: str, path: str) -> tuple["RoutingNode", list[str]] | None:
        for key in (method, "GET") if method == "HEAD" else (method,):
            node = self.children.get(key)
            if node is not None:
                result = node._match_path(path, [])
                if result is not None:
                    return result
        anymethod = self.children.get("")
        if anymethod is None:
            return None
        return anymethod._match_path(path, [])

    def _match_path(self, path: str, matches: list[str]) -> tuple["RoutingNode", list[str]] | None:
        if not path:
            if self.handler is None:
                return None
            return self, matches

        seg, rest = first_segment(path)

        # 1. Literal (includes the "/" of a {$} pattern)
        literal = self.children.get(seg)
        if literal is not None:
            result = literal._match_path(rest, matches)
            if result is not None:
                return result

        # 2. Single wildcard, which never matches a trailing slash
        if self.wild_child is not None and seg != "/":
            result = self.wild_child._match_path(rest, [*matches, seg])
            if result is not None:
                return result

        # 3. Rest wildcard takes whatever is left
        multi = self.multi_child
        if multi is not None and multi.pattern is not None:
            if multi.pattern.last_segment.value:
                return multi, [*matches, path[1:]]
            return multi, matches

        return None

    def matching_methods(self, host: str, path: str) -> set[str]:
        """Methods that would match *path* if the request used them."""
        methods: set[str] = set()
        for key in (host, "") if host else ("",):
            node = self.children.get(key)
            if node is None:
                continue
            for method, child in node.children.items():
                # The any-method subtree would have matched already.
                if method and child._match_path(path, []) is not None:
                    methods.add(method)
        if "GET" in methods:
            methods.add("HEAD")
        return methods


def first_segment(path: str) -> tuple[str, str]:
    """Split ``/seg/rest`` into ``("seg", "/rest")``; ``"/"`` into ``("/", "")``."""
    if path == "/":
        return "/", ""
    path = path[1:]
    end = path.find("/")
    if end < 0:
        return path, ""
    return path[:end], path[end:]
