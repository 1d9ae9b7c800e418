"""
Workspace adapter between object files on disk and runtime script states.

Outgoing: every "<name>.<guid>.lua" / "<name>.<guid>.xml" file in a directory
is bundled into the script/UI of the object with that guid. Incoming: each
script state is unbundled and written back as files, with the untouched
payload kept under raw/.
"""
import functools
import os
import re
import sys
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ttsbundle.bundler import bundle
from ttsbundle.errors import BundleError
from ttsbundle.grammar import MARKUP, SCRIPT
from ttsbundle.graph import read_file
from ttsbundle.models import Module
from ttsbundle.resolver import Resolver
from ttsbundle.unbundler import LEADING_MODULE, NO_MARKERS, TRAILING_MODULE, unbundle

RAW_DIR = "raw"

# Global verbose flag
_VERBOSE = False


def set_verbose(value):
    """Set the global verbose flag."""
    global _VERBOSE
    _VERBOSE = value


def debug_log(message):
    """Log a debug message to stderr if verbose mode is enabled."""
    if _VERBOSE:
        print(f"\033[94mDEBUG:\033[0m {message}", file=sys.stderr)


def info(message):
    print(f"\033[92mINFO:\033[0m {message}", file=sys.stderr)


def error(message):
    print(f"\033[91mERROR:\033[0m {message}", file=sys.stderr)


class ScriptState(BaseModel):
    """Script and UI of one object, as exchanged with the runtime."""
    model_config = ConfigDict(extra="ignore")

    guid: str
    name: str = ""
    script: str = ""
    ui: Optional[str] = None


def to_file_name(name, guid):
    """File stem for an object: its name without unsafe characters, then its guid."""
    base_name = re.sub(r'[":<>/\\|?*]', "", name)
    return f"{base_name}.{guid}"


def write_file(directory, file_name, content, encoding="utf-8"):
    path = os.path.join(directory, file_name)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding=encoding, newline="") as f:
        f.write(content)
    return path


def _unbundle_document(content, grammar, file_name, include_dir, encoding):
    """Unbundle one payload; returns the root content and the included-module files written."""
    result = unbundle(content, grammar, fallback_path=file_name)
    if result.degraded:
        if result.error.reason == NO_MARKERS:
            debug_log(f"{file_name} is not a bundle, writing it as is")
        else:
            error(f"{file_name}: {result.error}; writing it unsplit")
        return content, []

    for segment in (LEADING_MODULE, TRAILING_MODULE):
        if segment in result.modules:
            lines = len(result.modules[segment].splitlines())
            info(f"{file_name}: ignoring {lines} line(s) of {segment} output")

    written = []
    if include_dir:
        for path, module_content in result.sources().items():
            if path == result.root_path:
                continue
            if os.path.isabs(path) or os.path.normpath(path).split(os.sep)[0] == os.pardir:
                error(f"{file_name}: refusing to write module outside {include_dir}: {path}")
            else:
                written.append(write_file(include_dir, path, module_content, encoding))
    return result.root, written


def read_script_states(states, output_dir, include_dir=None, encoding="utf-8"):
    """
    Write incoming script states to the workspace.

    Args:
        states: ScriptState objects (or dicts) received from the runtime
        output_dir: Directory receiving "<name>.<guid>.lua/.xml" files
        include_dir: Where included modules are written back; skipped if None
        encoding: File encoding

    Returns:
        List of written file paths
    """
    raw_dir = os.path.join(output_dir, RAW_DIR)
    info(f"Received {len(states)} scripts")
    info(f"Writing scripts to {output_dir}")

    written = []
    for state in states:
        if not isinstance(state, ScriptState):
            state = ScriptState.model_validate(state)
        file_name = to_file_name(state.name, state.guid)

        documents = [(SCRIPT, state.script, ".lua")]
        if state.ui:
            documents.append((MARKUP, state.ui, ".xml"))
        for grammar, content, ext in documents:
            root, includes = _unbundle_document(content, grammar, file_name + ext, include_dir, encoding)
            written.append(write_file(output_dir, file_name + ext, root, encoding))
            written.append(write_file(raw_dir, file_name + ext, content, encoding))
            written.extend(includes)
    return written


def object_files(directory):
    """Group "<name>.<guid>.lua/.xml" files of a directory by guid."""
    objects = {}
    for file_name in sorted(os.listdir(directory)):
        path = os.path.join(directory, file_name)
        stem, ext = os.path.splitext(file_name)
        if not os.path.isfile(path) or "." not in stem:
            continue
        if not (SCRIPT.owns(file_name) or MARKUP.owns(file_name)):
            continue
        guid = stem.rsplit(".", 1)[1]
        objects.setdefault(guid, []).append(file_name)
    return objects


def create_scripts(directory, include_paths, resolver=None, encoding="utf-8"):
    """
    Bundle every object file of a directory into outgoing script states.

    A file that fails to bundle is reported and left out; the other objects
    are still produced.
    """
    resolver = resolver or Resolver(SCRIPT)
    reader = functools.partial(read_file, encoding=encoding)
    info(f"Using include paths {include_paths}")

    states = []
    for guid, file_names in object_files(directory).items():
        state = ScriptState(guid=guid)
        for file_name in file_names:
            path = os.path.abspath(os.path.join(directory, file_name))
            grammar = SCRIPT if SCRIPT.owns(file_name) else MARKUP
            root = Module(path=file_name, content=reader(path), abs_path=path)
            try:
                document = bundle(root, include_paths, grammar, resolver=resolver, reader=reader)
            except BundleError as e:
                error(f"{file_name}: {e}")
                continue
            debug_log(f"Bundled {file_name}: {', '.join(document.modules)}")
            if grammar is SCRIPT:
                state.script = document.text
            else:
                state.ui = document.text
        states.append(state)
    return states
