"""Routing — method-qualified patterns, the routing trie, and ServeMux.

Patterns are checked for conflicts when registered, so matching never has
to break ties at request time.
"""

from chainmux.routing.mux import ServeMux
from chainmux.routing.pattern import Pattern, Relationship, clean_path, parse_pattern

__all__ = ["Pattern", "Relationship", "ServeMux", "clean_path", "parse_pattern"]
