"""
Data model shared by the resolver, grapher, bundler and unbundler.

All models are built fresh for each bundle or unbundle call.
"""
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class IncludeDirective(BaseModel):
    """A reference from one module to another, by name, at a source line."""
    text: str
    name: str
    line: int


class Module(BaseModel):
    """One source file taking part in an include graph."""
    path: str
    content: str
    includes: List[IncludeDirective] = Field(default_factory=list)
    abs_path: Optional[str] = None

    @property
    def key(self):
        """Graph key: the resolved file, or the relative path for in-memory modules."""
        return self.abs_path or self.path


class BoundaryMarker(BaseModel):
    """Manifest record embedded as a comment in a combined document."""
    model_config = ConfigDict(extra="ignore")

    role: Literal["begin", "end", "ref", "raw"]
    id: int
    path: Optional[str] = None
    line: Optional[int] = None
    lines: Optional[int] = None
    eol: Optional[bool] = None
    prolog: Optional[bool] = None
    include: Optional[str] = None
    text: Optional[str] = None  # Source line of a raw marker


class DependencyGraph(BaseModel):
    """Modules reachable from a root, with their include edges."""
    root: str
    modules: Dict[str, Module] = Field(default_factory=dict)
    edges: Dict[str, List[str]] = Field(default_factory=dict)
    order: List[str] = Field(default_factory=list)

    def children(self, key):
        return self.edges.get(key, [])

    def ordered_modules(self):
        """Modules in flattening order."""
        return [self.modules[key] for key in self.order]


class CombinedDocument(BaseModel):
    """The flattened text; its manifest lives in the embedded markers."""
    grammar: str
    text: str
    modules: List[str] = Field(default_factory=list)
    markers: Dict[int, BoundaryMarker] = Field(default_factory=dict)

    @property
    def module_count(self):
        return len(self.markers)

    def __str__(self):
        return self.text
