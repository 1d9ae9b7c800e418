"""
Bundler for include directives.

Replaces every include directive, in place, with the content of the module
it names, wrapped in a pair of boundary markers. A module included from
several places is inlined once, at its first inclusion; later references
become a single back-reference marker so its top-level code runs once.
"""
import os
import re

from .errors import ModuleNotFoundError
from .grammar import get_grammar, grammar_for_path
from .graph import build_graph, load_module, read_file
from .markers import format_marker
from .models import BoundaryMarker, CombinedDocument, Module
from .resolver import Resolver

_INDENT = re.compile(r'^\s*')


def split_lines(content):
    """Split content into lines, returning (lines, ends_with_newline)."""
    if not content:
        return [], False
    lines = content.split("\n")
    eol = lines[-1] == ""
    if eol:
        lines.pop()
    return lines, eol


def join_lines(lines, eol):
    """Inverse of split_lines()."""
    return "\n".join(lines) + ("\n" if eol else "")


class _Renderer:
    """Emits the combined document for one dependency graph."""

    def __init__(self, graph, grammar):
        self.graph = graph
        self.grammar = grammar
        self.lines = []
        self.ids = {}
        self.markers = {}

    def render(self):
        root = self.graph.modules[self.graph.root]
        first_line = root.content.split("\n", 1)[0]
        prolog = self.grammar.match_prolog(first_line)
        if prolog:
            # The declaration must stay the first line of the document
            self.lines.append(first_line)
        self._emit_block(root, include=None, indent="", prolog=prolog)
        return join_lines(self.lines, True)

    def _emit_block(self, module, include, indent, prolog=False):
        module_id = len(self.ids)
        self.ids[module.key] = module_id

        # Begin marker is written once the block length is known
        begin_index = len(self.lines)
        self.lines.append(None)
        start = begin_index + 2

        body, eol = split_lines(module.content)
        first = 1
        if prolog:
            body = body[1:]
            first = 2
        resolved = {
            directive.line: child_key
            for directive, child_key in zip(module.includes, self.graph.children(module.key))
        }
        for line_number, line in enumerate(body, first):
            child_key = resolved.get(line_number)
            if child_key is None:
                if self.grammar.match_marker(line) is not None:
                    raw = BoundaryMarker(role="raw", id=module_id, text=line)
                    self.lines.append(format_marker(raw, self.grammar))
                else:
                    self.lines.append(line)
                continue
            child = self.graph.modules[child_key]
            child_indent = _INDENT.match(line).group(0)
            if child_key in self.ids:
                ref = BoundaryMarker(role="ref", id=self.ids[child_key], path=child.path, include=line)
                self.lines.append(format_marker(ref, self.grammar, child_indent))
            else:
                self._emit_block(child, include=line, indent=child_indent)

        begin = BoundaryMarker(
            role="begin",
            id=module_id,
            path=module.path,
            line=start,
            lines=len(self.lines) - begin_index - 1,
            eol=eol,
            prolog=prolog or None,
            include=include,
        )
        self.lines[begin_index] = format_marker(begin, self.grammar, indent)
        self.lines.append(format_marker(BoundaryMarker(role="end", id=module_id), self.grammar, indent))
        self.markers[module_id] = begin


def load_root(root, search_paths, grammar, resolver, reader):
    """Turn a file path or a Module into a root Module with parsed includes."""
    if isinstance(root, Module):
        abs_path = root.abs_path
        if abs_path is None:
            # Same graph key as the file in a search root, if there is one
            try:
                abs_path = resolver.resolve(root.path, search_paths, grammar)
            except ModuleNotFoundError:
                pass
        return load_module(root.path, root.content, grammar, abs_path=abs_path)
    abs_path = os.path.abspath(os.path.expanduser(root))
    rel_path = resolver.relative_path(abs_path, search_paths)
    return load_module(rel_path, reader(abs_path), grammar, abs_path=abs_path)


def bundle(root, search_paths, grammar=None, resolver=None, reader=None):
    """
    Flatten a root module and everything it includes into one document.

    Args:
        root: Root Module, or the path of the root file
        search_paths: Ordered directories to resolve includes against
        grammar: Grammar or grammar name; guessed from the root's extension if None
        resolver: Resolver to reuse (its cache survives across calls)
        reader: Callable returning a file's content, called only after resolution

    Returns:
        CombinedDocument whose text carries its own boundary markers

    Raises:
        UnresolvedIncludeError: If an include names a module found in no search path
        CyclicIncludeError: If the include graph has a cycle
    """
    root_name = root.path if isinstance(root, Module) else root
    grammar = get_grammar(grammar) if grammar is not None else grammar_for_path(root_name)
    resolver = resolver or Resolver(grammar)
    reader = reader or read_file
    search_paths = list(search_paths)

    module = load_root(root, search_paths, grammar, resolver, reader)
    graph = build_graph(module, resolver, search_paths, grammar, reader)

    renderer = _Renderer(graph, grammar)
    text = renderer.render()
    return CombinedDocument(
        grammar=grammar.name,
        text=text,
        modules=[m.path for m in graph.ordered_modules()],
        markers=renderer.markers,
    )
