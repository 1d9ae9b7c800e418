"""
Unbundler: splits a combined document back into its modules.

The runtime may hand back documents it mutated (debug output appended,
scripts never bundled at all). Anything that cannot be split along well-formed
markers comes back as one unsplit module together with a MalformedBundleError
on the result; the error is only raised in strict mode.
"""
from .bundler import join_lines
from .errors import MalformedBundleError
from .grammar import get_grammar
from .markers import parse_marker

DEFAULT_PATH = "<bundle>"
NO_MARKERS = "no boundary markers found"
LEADING_MODULE = "<leading>"
TRAILING_MODULE = "<trailing>"


class UnbundleResult:
    """Modules recovered from a combined document, keyed by relative path."""

    def __init__(self, modules, root_path, error=None):
        self.modules = modules
        self.root_path = root_path
        self.error = error

    @property
    def degraded(self):
        """True when the input was returned unsplit."""
        return self.error is not None

    @property
    def root(self):
        return self.modules[self.root_path]

    @property
    def leading(self):
        return self.modules.get(LEADING_MODULE)

    @property
    def trailing(self):
        return self.modules.get(TRAILING_MODULE)

    def sources(self):
        """Recovered modules without the synthetic leading/trailing segments."""
        return {
            path: content for path, content in self.modules.items()
            if path not in (LEADING_MODULE, TRAILING_MODULE)
        }

    def __repr__(self):
        state = "degraded" if self.degraded else "ok"
        return f"UnbundleResult({state}, modules={list(self.modules)})"


class _Block:
    def __init__(self, marker):
        self.marker = marker
        self.lines = []


def _split(content, grammar):
    stack = []
    begun = {}
    paths = set()
    blocks = {}
    leading = []
    trailing = []
    root_closed = False

    for number, line in enumerate(content.split("\n"), 1):
        marker = parse_marker(line, grammar, number)
        if marker is None:
            if stack:
                stack[-1].lines.append(line)
            elif root_closed:
                trailing.append(line)
            else:
                leading.append(line)
            continue

        context = line.strip()
        if root_closed:
            raise MalformedBundleError("marker after the root block was closed", number, context)

        if marker.role == "begin":
            if marker.id != len(begun):
                raise MalformedBundleError(
                    f"expected block id {len(begun)}, found {marker.id}", number, context)
            if marker.path is None:
                raise MalformedBundleError("begin marker without a path", number, context)
            if marker.path in paths:
                raise MalformedBundleError(f"duplicate module path '{marker.path}'", number, context)
            if stack:
                if marker.include is None:
                    raise MalformedBundleError("nested block without its include line", number, context)
                stack[-1].lines.append(marker.include)
            begun[marker.id] = marker.path
            paths.add(marker.path)
            block = _Block(marker)
            if marker.prolog:
                if stack or not leading or not grammar.match_prolog(leading[-1]):
                    raise MalformedBundleError("declaration line missing before the root block", number, context)
                block.lines.append(leading.pop())
            stack.append(block)

        elif marker.role == "ref":
            if not stack:
                raise MalformedBundleError("back-reference outside of any block", number, context)
            if marker.id not in begun:
                raise MalformedBundleError(f"back-reference to unknown block id {marker.id}", number, context)
            if marker.include is None:
                raise MalformedBundleError("back-reference without its include line", number, context)
            stack[-1].lines.append(marker.include)

        elif marker.role == "raw":
            if not stack:
                raise MalformedBundleError("raw line outside of any block", number, context)
            if marker.text is None:
                raise MalformedBundleError("raw marker without its text", number, context)
            stack[-1].lines.append(marker.text)

        else:
            if not stack or stack[-1].marker.id != marker.id:
                raise MalformedBundleError(
                    f"end marker for block {marker.id} does not close the open block", number, context)
            block = stack.pop()
            blocks[block.marker.id] = join_lines(block.lines, bool(block.marker.eol))
            if not stack:
                root_closed = True

    if stack:
        open_block = stack[-1].marker
        raise MalformedBundleError(f"block {open_block.id} ({open_block.path}) is never closed")
    if not begun:
        raise MalformedBundleError(NO_MARKERS)

    modules = {}
    if leading:
        modules[LEADING_MODULE] = join_lines(leading, True)
    for block_id in sorted(blocks):
        modules[begun[block_id]] = blocks[block_id]

    # The newline after the root's end marker is not a segment
    eol = bool(trailing) and trailing[-1] == ""
    if eol:
        trailing.pop()
    if trailing:
        modules[TRAILING_MODULE] = join_lines(trailing, eol)
    return modules, begun[0]


def unbundle(content, grammar, fallback_path=DEFAULT_PATH, strict=False):
    """
    Split a combined document into its original modules.

    Args:
        content: Document as returned by the runtime
        grammar: Grammar or grammar name the document is written in
        fallback_path: Key for the unsplit content when the document is malformed
        strict: Raise MalformedBundleError instead of degrading

    Returns:
        UnbundleResult mapping relative path to content. Text before the
        root block is kept under LEADING_MODULE, text after it under
        TRAILING_MODULE.
    """
    grammar = get_grammar(grammar)
    try:
        modules, root_path = _split(content, grammar)
    except MalformedBundleError as e:
        if strict:
            raise
        return UnbundleResult({fallback_path: content}, fallback_path, error=e)
    return UnbundleResult(modules, root_path)
