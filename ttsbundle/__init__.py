# tts-bundle - Flatten/unflatten engine for object scripts and UI
"""
Core modules of the bundle engine:
- errors: Bundle error taxonomy
- grammar: Include and marker syntax for script (Lua) and markup (XML)
- resolver: Include directive parsing and search-path resolution
- graph: Include graph walk, cycle detection and flattening order
- bundler: Inlines includes into one combined document
- unbundler: Splits a combined document back into modules
- sourcemap: Maps combined-document lines back to source files
- config: User settings
"""

from .errors import (
    BundleError,
    ConfigError,
    CyclicIncludeError,
    MalformedBundleError,
    ModuleNotFoundError,
    UnresolvedIncludeError,
)
from .grammar import MARKUP, SCRIPT, Grammar, get_grammar, grammar_for_path
from .models import BoundaryMarker, CombinedDocument, DependencyGraph, IncludeDirective, Module
from .resolver import Resolver, parse_includes
from .graph import build_graph
from .bundler import bundle
from .unbundler import UnbundleResult, unbundle
from .sourcemap import SourceLocation, SourceMap
from .config import Settings, load_settings

__all__ = [
    'BundleError',
    'ConfigError',
    'CyclicIncludeError',
    'MalformedBundleError',
    'ModuleNotFoundError',
    'UnresolvedIncludeError',
    'MARKUP',
    'SCRIPT',
    'Grammar',
    'get_grammar',
    'grammar_for_path',
    'BoundaryMarker',
    'CombinedDocument',
    'DependencyGraph',
    'IncludeDirective',
    'Module',
    'Resolver',
    'parse_includes',
    'build_graph',
    'bundle',
    'UnbundleResult',
    'unbundle',
    'SourceLocation',
    'SourceMap',
    'Settings',
    'load_settings',
]
