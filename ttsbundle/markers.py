"""
Boundary marker encoding.

A marker is one comment line: the grammar's comment opener, a role keyword
and key=value fields, e.g.

    --@bundle begin id=1 path="lib/util.lua" line=4 lines=10 eol=1 include="#include lib/util"
    <!--@bundle end id=1 -->

A source line that is itself shaped like a marker is carried in the text
field of a raw marker, so it is never read back as a boundary.
"""
import json

from lark import Lark, Transformer
from lark.exceptions import LarkError
from pydantic import ValidationError

from .errors import MalformedBundleError
from .grammar import marker_grammar
from .models import BoundaryMarker

FIELD_ORDER = ("id", "path", "line", "lines", "eol", "prolog", "include", "text")

_parser = Lark(marker_grammar, parser='lalr')


class MarkerTransformer(Transformer):
    """Turns a parsed marker body into a dict of field values."""

    def start(self, items):
        role, *fields = items
        values = {"role": str(role)}
        for key, value in fields:
            if key in values:
                raise ValueError(f"duplicate field '{key}'")
            values[key] = value
        return values

    def field(self, items):
        key, value = items
        return str(key), value

    def value(self, items):
        (token,) = items
        if token.type == "INT":
            return int(token)
        return json.loads(token)


def _encode_string(value, grammar):
    encoded = json.dumps(value)
    if grammar.escape_dashes:
        # "--" is not allowed inside an XML comment
        encoded = encoded.replace("-", "\\u002d")
    return encoded


def format_marker(marker, grammar, indent=""):
    """Render a marker as a single comment line in the given grammar."""
    parts = [marker.role]
    for key in FIELD_ORDER:
        value = getattr(marker, key)
        if value is None:
            continue
        if isinstance(value, bool):
            value = int(value)
        if isinstance(value, int):
            parts.append(f"{key}={value}")
        else:
            parts.append(f"{key}={_encode_string(value, grammar)}")
    return indent + grammar.marker_open + " ".join(parts) + grammar.marker_close


def parse_marker(line, grammar, line_number=None):
    """
    Parse a combined-document line as a boundary marker.

    Returns None for ordinary lines. A line that looks like a marker but whose
    fields cannot be read raises MalformedBundleError.
    """
    shape = grammar.match_marker(line)
    if shape is None:
        return None
    _indent, body = shape
    try:
        fields = MarkerTransformer().transform(_parser.parse(body))
        return BoundaryMarker(**fields)
    except (LarkError, ValueError, ValidationError) as e:
        raise MalformedBundleError(
            f"unreadable marker ({e.__class__.__name__})",
            line_number=line_number,
            context=line.strip(),
        ) from e
