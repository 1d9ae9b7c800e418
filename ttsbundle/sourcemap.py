"""
Line mapping from a combined document back to its source files.

Runtime errors report positions in the combined document, e.g.
"chunk_1:(12,4-10): attempt to call a nil value". SourceMap turns those
into the module path and line the author actually edits.
"""
import re
from typing import NamedTuple

from .grammar import get_grammar
from .markers import parse_marker
from .unbundler import DEFAULT_PATH, LEADING_MODULE, TRAILING_MODULE, unbundle

_POSITION = re.compile(r'(?:chunk_\d+:)?\((\d+),(\d+(?:-\d+)?)\)')


class SourceLocation(NamedTuple):
    path: str
    line: int

    def __str__(self):
        return f"{self.path}:{self.line}"


class _Cursor:
    def __init__(self, path):
        self.path = path
        self.line = 1

    def take(self):
        location = SourceLocation(self.path, self.line)
        self.line += 1
        return location


class SourceMap:
    """Maps 1-based combined-document lines to SourceLocations."""

    def __init__(self, locations, fallback_path=DEFAULT_PATH, error=None):
        self.locations = locations
        self.fallback_path = fallback_path
        self.error = error

    @classmethod
    def from_document(cls, text, grammar, fallback_path=DEFAULT_PATH):
        """Build the map; a malformed document maps every line onto itself."""
        grammar = get_grammar(grammar)
        result = unbundle(text, grammar, fallback_path=fallback_path)
        if result.degraded:
            return cls([], fallback_path, error=result.error)

        locations = []
        stack = []
        outside = _Cursor(LEADING_MODULE)
        for number, line in enumerate(text.split("\n"), 1):
            marker = parse_marker(line, grammar, number)
            if marker is None:
                locations.append(stack[-1].take() if stack else outside.take())
            elif marker.role == "begin":
                locations.append(stack[-1].take() if stack else SourceLocation(marker.path, 1))
                cursor = _Cursor(marker.path)
                if marker.prolog:
                    # The declaration line above is the root's first line
                    locations[-2] = SourceLocation(marker.path, 1)
                    cursor.line = 2
                stack.append(cursor)
            elif marker.role in ("ref", "raw"):
                locations.append(stack[-1].take())
            else:
                stack.pop()
                if stack:
                    # The block stands in for the parent's directive line
                    parent = stack[-1]
                    locations.append(SourceLocation(parent.path, parent.line - 1))
                else:
                    locations.append(SourceLocation(result.root_path, 1))
                    outside = _Cursor(TRAILING_MODULE)
        return cls(locations, fallback_path)

    def lookup(self, line):
        """Source location of a combined-document line, or None if out of range."""
        if line < 1:
            return None
        if self.error is not None:
            return SourceLocation(self.fallback_path, line)
        if line > len(self.locations):
            return None
        return self.locations[line - 1]

    def rewrite_error(self, message):
        """Replace "(line,col)" positions in a runtime message with source locations."""
        def replacer(match):
            location = self.lookup(int(match.group(1)))
            if location is None:
                return match.group(0)
            return f"{location.path}:({location.line},{match.group(2)})"

        return _POSITION.sub(replacer, message)
