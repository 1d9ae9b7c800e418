"""
Dependency graph construction.

Walks include directives depth-first from a root module, reading each
dependency once, and records the post-order flattening order. Each visit
returns an explicit Ok/Err result; only build_graph() raises.
"""
from .errors import ModuleNotFoundError
from .grammar import get_grammar
from .models import DependencyGraph, Module
from .resolver import parse_includes
from .result import Err, ErrorKind, IncludeFailure, Ok

WHITE, GREY, BLACK = 0, 1, 2


def read_file(path, encoding="utf-8"):
    """Default reader: file content with line endings left as they are."""
    with open(path, 'r', encoding=encoding, newline='') as f:
        return f.read()


def load_module(path, content, grammar, abs_path=None):
    """Build a Module and parse its include directives."""
    return Module(
        path=path,
        content=content,
        includes=parse_includes(content, grammar),
        abs_path=abs_path,
    )


class GraphBuilder:
    """Single-use walker that builds one DependencyGraph."""

    def __init__(self, resolver, search_paths, grammar, reader=None):
        self.resolver = resolver
        self.search_paths = list(search_paths)
        self.grammar = get_grammar(grammar)
        self.reader = reader or read_file
        self.graph = None
        self._colour = {}
        self._stack = []

    def build(self, root):
        self.graph = DependencyGraph(root=root.key)
        return self._visit(root)

    def _visit(self, module):
        key = module.key
        self._colour[key] = GREY
        self._stack.append(module)
        self.graph.modules[key] = module

        # One entry per directive, in source order
        children = []
        for directive in module.includes:
            try:
                child_key = self.resolver.resolve(directive.name, self.search_paths, self.grammar)
            except ModuleNotFoundError as e:
                return Err(IncludeFailure(
                    kind=ErrorKind.UNRESOLVED_INCLUDE,
                    message=e.message,
                    module_name=e.module_name,
                    search_paths=e.search_paths,
                    path=module.path,
                    line=directive.line,
                    directive=directive.text,
                ))
            children.append(child_key)

            colour = self._colour.get(child_key, WHITE)
            if colour == GREY:
                return Err(self._cycle(child_key, module, directive))
            if colour == BLACK:
                continue

            child_path = self.resolver.relative_path(child_key, self.search_paths)
            child = load_module(child_path, self.reader(child_key), self.grammar, abs_path=child_key)
            result = self._visit(child)
            if result.is_err():
                return result

        self.graph.edges[key] = children
        self._stack.pop()
        self._colour[key] = BLACK
        self.graph.order.append(key)
        return Ok(self.graph)

    def _cycle(self, key, module, directive):
        start = next(i for i, m in enumerate(self._stack) if m.key == key)
        chain = [m.path for m in self._stack[start:]] + [self._stack[start].path]
        return IncludeFailure(
            kind=ErrorKind.CYCLIC_INCLUDE,
            message="Cyclic include: " + " -> ".join(chain),
            chain=chain,
            path=module.path,
            line=directive.line,
            directive=directive.text,
        )


def build_graph(root, resolver, search_paths, grammar=None, reader=None):
    """
    Build the include graph reachable from root.

    Args:
        root: Root Module
        resolver: Resolver used for every directive
        search_paths: Ordered search roots, first match wins
        grammar: Grammar or grammar name (defaults to the resolver's)
        reader: Callable returning a file's content, called only after resolution

    Returns:
        DependencyGraph with modules in flattening order

    Raises:
        UnresolvedIncludeError: If a directive names a module found in no root
        CyclicIncludeError: If the graph has a cycle
    """
    builder = GraphBuilder(resolver, search_paths, grammar or resolver.grammar, reader)
    return builder.build(root).unwrap()
