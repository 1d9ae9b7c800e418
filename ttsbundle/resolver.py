"""
Include resolution.

Parses include directives out of a module and maps each module name to a
file by searching an ordered list of roots, first match wins.
"""
import os

from .errors import ModuleNotFoundError
from .grammar import get_grammar
from .models import IncludeDirective


def parse_includes(content, grammar):
    """Return the include directives of a module, in source order."""
    grammar = get_grammar(grammar)
    directives = []
    for line_number, line in enumerate(content.split("\n"), 1):
        name = grammar.match_directive(line)
        if name is not None:
            directives.append(IncludeDirective(text=line, name=name, line=line_number))
    return directives


def candidate_names(module_name, grammar):
    """File names (relative to a search root) that may hold a module."""
    grammar = get_grammar(grammar)
    name = module_name.replace("\\", "/")
    if grammar.owns(name):
        candidates = [name]
    else:
        candidates = [name + ext for ext in grammar.extensions]
        if grammar.dotted_names and "/" not in name and "." in name:
            dotted = name.replace(".", "/")
            candidates.extend(dotted + ext for ext in grammar.extensions)
    return list(dict.fromkeys(candidates))


def expand_root(root):
    return os.path.abspath(os.path.expanduser(root))


class Resolver:
    """
    Resolves module names against search roots.

    Resolutions are cached on the instance, keyed by name, search list and
    grammar. A cached file is re-checked on every hit and dropped when it
    no longer exists or its modification time changed.
    """

    def __init__(self, grammar="script"):
        self.grammar = get_grammar(grammar)
        self._cache = {}

    def resolve(self, module_name, search_paths, grammar=None):
        """Return the absolute path of the first matching file."""
        grammar = get_grammar(grammar) if grammar is not None else self.grammar
        key = (module_name, tuple(search_paths), grammar.name)
        cached = self._cache.get(key)
        if cached is not None:
            path, mtime = cached
            if mtime is not None and _mtime(path) == mtime:
                return path
            self._cache.pop(key, None)

        names = candidate_names(module_name, grammar)
        for root in search_paths:
            base = expand_root(root)
            for name in names:
                path = os.path.normpath(os.path.join(base, name))
                if os.path.isfile(path):
                    self._cache[key] = (path, _mtime(path))
                    return path
        raise ModuleNotFoundError(module_name, search_paths)

    def relative_path(self, abs_path, search_paths):
        """Posix path of a file relative to the first search root holding it."""
        for root in search_paths:
            base = expand_root(root)
            try:
                rel = os.path.relpath(abs_path, base)
            except ValueError:
                # Different drive on Windows
                continue
            if rel != os.pardir and not rel.startswith(os.pardir + os.sep):
                return rel.replace(os.sep, "/")
        return os.path.basename(abs_path)

    def clear_cache(self):
        self._cache.clear()


def _mtime(path):
    try:
        return os.stat(path).st_mtime_ns
    except OSError:
        return None
