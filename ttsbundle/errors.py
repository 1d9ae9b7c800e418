"""
Error types for the bundle engine.

Bundle-time errors (not found, cyclic, unresolved) abort the bundling of a
single root. MalformedBundleError is recoverable: the unbundler returns it
alongside a degraded result instead of raising it.
"""


class BundleError(Exception):
    """Base exception for bundle errors with line numbers and hints."""
    def __init__(self, message, line_number=None, context=None, suggestion=None):
        self.message = message
        self.line_number = line_number
        self.context = context  # The offending line
        self.suggestion = suggestion  # How to fix it
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with context and suggestion."""
        lines = [self.message]
        if self.line_number:
            lines.append(f" (line {self.line_number})")

        if self.context:
            lines.append(f"\n   > {self.context}")

        if self.suggestion:
            lines.append(f"\n   hint: {self.suggestion}")

        return "".join(lines)


class ModuleNotFoundError(BundleError):
    """No search root holds a file for the requested module name."""
    def __init__(self, module_name, search_paths):
        self.module_name = module_name
        self.search_paths = list(search_paths)
        searched = ", ".join(self.search_paths) or "<no search paths>"
        super().__init__(
            f"Module '{module_name}' not found in search paths: {searched}",
            suggestion="Check the include name or add its directory to include_paths",
        )


class CyclicIncludeError(BundleError):
    """The include graph loops back onto a module that is still being visited."""
    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__("Cyclic include: " + " -> ".join(self.chain))


class UnresolvedIncludeError(BundleError):
    """An include directive could not be resolved while bundling."""
    def __init__(self, cause, path, line_number, directive=None):
        self.cause = cause
        self.module_name = cause.module_name
        self.search_paths = cause.search_paths
        self.path = path
        super().__init__(
            f"{path}: cannot resolve include '{cause.module_name}'",
            line_number=line_number,
            context=directive.strip() if directive else None,
            suggestion=cause.suggestion,
        )


class MalformedBundleError(BundleError):
    """
    The combined document could not be split along its boundary markers.

    Never fatal: the unbundler reports it on the result and hands back the
    whole document as a single module.
    """
    def __init__(self, reason, line_number=None, context=None):
        self.reason = reason
        super().__init__(f"Malformed bundle: {reason}", line_number=line_number, context=context)


class ConfigError(BundleError):
    """The settings file exists but cannot be loaded."""
