"""
Grammar definitions for bundled documents.

A Grammar describes how one document kind spells its include directive and
how boundary markers are embedded in it as comments. The marker field syntax
shared by both grammars is defined as a Lark grammar.
"""
import os
import re
from dataclasses import dataclass
from typing import Optional


marker_grammar = r"""
    start: ROLE field*

    ROLE: "begin" | "end" | "ref" | "raw"
    field: KEY "=" value
    value: INT | ESCAPED_STRING

    KEY: /[a-z_]+/

    %import common.INT
    %import common.ESCAPED_STRING
    %import common.WS
    %ignore WS
"""


@dataclass(frozen=True)
class Grammar:
    """Include and marker syntax for one kind of document."""
    name: str
    extensions: tuple
    directive_pattern: re.Pattern
    marker_pattern: re.Pattern
    marker_open: str
    marker_close: str = ""
    dotted_names: bool = False
    escape_dashes: bool = False
    prolog_pattern: Optional[re.Pattern] = None

    def match_prolog(self, line):
        """True if the line is a declaration that has to stay on the first line."""
        return self.prolog_pattern is not None and self.prolog_pattern.match(line) is not None

    def match_directive(self, line):
        """Return the module name if the line is an include directive, else None."""
        match = self.directive_pattern.match(line)
        if not match:
            return None
        return next(group for group in match.groups() if group is not None)

    def match_marker(self, line):
        """Return (indent, field body) if the line is shaped like a marker, else None."""
        match = self.marker_pattern.match(line)
        if not match:
            return None
        return match.group(1), match.group(2)

    def owns(self, path):
        return os.path.splitext(path)[1].lower() in self.extensions

    def __str__(self):
        return self.name


# Lua: "#include name", "#include <name>" or '#include "name"' alone on a line
SCRIPT = Grammar(
    name="script",
    extensions=(".lua", ".ttslua"),
    directive_pattern=re.compile(
        r'^\s*#include\s+(?:<([^<>\s]+)>|"([^"\s]+)"|([^\s"<>]+))\s*$'
    ),
    marker_pattern=re.compile(r'^(\s*)--@bundle\s+(.*?)\s*$'),
    marker_open="--@bundle ",
    dotted_names=True,
)

# XML: <Include src="name"/> alone on a line
MARKUP = Grammar(
    name="markup",
    extensions=(".xml",),
    directive_pattern=re.compile(
        r'''^\s*<Include\s+src\s*=\s*(?:"([^"]+)"|'([^']+)')\s*/>\s*$'''
    ),
    marker_pattern=re.compile(r'^(\s*)<!--@bundle\s+(.*?)\s*-->\s*$'),
    marker_open="<!--@bundle ",
    marker_close=" -->",
    escape_dashes=True,
    prolog_pattern=re.compile(r"^<\?xml\b[^>]*\?>\s*$"),
)

GRAMMARS = {SCRIPT.name: SCRIPT, MARKUP.name: MARKUP}


def get_grammar(grammar):
    """Accept a Grammar or its name."""
    if isinstance(grammar, Grammar):
        return grammar
    try:
        return GRAMMARS[grammar]
    except KeyError:
        raise ValueError(f"Unknown grammar '{grammar}' (expected one of: {', '.join(GRAMMARS)})")


def grammar_for_path(path):
    """Pick the grammar whose extensions match the file name."""
    for grammar in GRAMMARS.values():
        if grammar.owns(path):
            return grammar
    raise ValueError(f"No grammar handles '{path}'")
