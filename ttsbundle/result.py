# ==========================================
# ERROR HANDLING: Result<T, E> Model
# ==========================================
"""
Explicit results for the include graph walk.

Each visit returns Ok or Err instead of raising, so the walk can stop on the
first failure and the public entry points decide which exception to raise.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .errors import CyclicIncludeError, ModuleNotFoundError, UnresolvedIncludeError


class ErrorKind(str, Enum):
    """Categorizes include graph failures."""
    CYCLIC_INCLUDE = "CyclicInclude"
    UNRESOLVED_INCLUDE = "UnresolvedInclude"


class IncludeFailure(BaseModel):
    """Context for a failed include graph walk."""
    kind: ErrorKind
    message: str
    chain: List[str] = Field(default_factory=list)
    module_name: Optional[str] = None
    search_paths: List[str] = Field(default_factory=list)
    path: Optional[str] = None
    line: Optional[int] = None
    directive: Optional[str] = None

    def to_exception(self):
        """Build the exception matching this failure's kind."""
        if self.kind == ErrorKind.CYCLIC_INCLUDE:
            return CyclicIncludeError(self.chain)
        not_found = ModuleNotFoundError(self.module_name, self.search_paths)
        return UnresolvedIncludeError(not_found, self.path, self.line, self.directive)

    def __str__(self):
        result = str(self.kind.value) + ": " + self.message
        if self.path:
            result = result + "\n   In: " + self.path
            if self.line:
                result = result + ":" + str(self.line)
        return result


class Result:
    """Base class for Result<T, E> (Ok or Err)."""

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self):
        """Get value or raise the failure as its bundle exception."""
        if isinstance(self, Ok):
            return self.value
        raise self.error.to_exception()


class Ok(Result):
    """Success case: Ok<T>."""

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f"Ok({self.value})"


class Err(Result):
    """Error case: Err<IncludeFailure>."""

    def __init__(self, error):
        self.error = error

    def __repr__(self):
        return f"Err({self.error.kind.value})"

    def __str__(self):
        return str(self.error)
