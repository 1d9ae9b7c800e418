import argparse
import json
import os
import sys

from adapter import create_scripts, read_script_states, set_verbose, write_file
from ttsbundle.bundler import bundle
from ttsbundle.config import load_settings
from ttsbundle.errors import BundleError
from ttsbundle.grammar import get_grammar, grammar_for_path
from ttsbundle.graph import read_file
from ttsbundle.sourcemap import SourceMap
from ttsbundle.unbundler import unbundle

# Message id of a "save & play" push in the runtime's external editor protocol
SAVE_AND_PLAY = 1


def log(message):
    """Log informational messages to stderr."""
    print(f"\033[92m\033[1mINFO:\033[0m {message}", file=sys.stderr)


def fail(message):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def write_output(text, output):
    if output is None or output == "-":
        sys.stdout.write(text)
    else:
        with open(output, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        log(f"Wrote {output}")


def detect_grammar(args, path):
    if args.grammar:
        return get_grammar(args.grammar)
    try:
        return grammar_for_path(path)
    except ValueError as e:
        fail(f"{e}; pass --grammar")


def cmd_bundle(args, settings):
    if not os.path.exists(args.filename):
        fail(f"File '{args.filename}' not found.")
    search_paths = args.include or settings.search_paths()
    grammar = detect_grammar(args, args.filename)
    try:
        document = bundle(args.filename, search_paths, grammar)
    except BundleError as e:
        fail(f"Bundling failed:\n{e}")
    log(f"Bundled {len(document.modules)} module(s): {', '.join(document.modules)}")
    write_output(document.text, args.output)


def cmd_unbundle(args, settings):
    if not os.path.exists(args.filename):
        fail(f"File '{args.filename}' not found.")
    grammar = detect_grammar(args, args.filename)
    content = read_file(args.filename, settings.encoding)
    result = unbundle(content, grammar, fallback_path=os.path.basename(args.filename))
    if result.degraded:
        log(f"⚠️  {result.error}")

    for segment in (result.leading, result.trailing):
        if segment:
            log(f"Ignoring extra output around the bundle:\n{segment}")

    output_dir = args.output or "."
    modules = result.sources()
    for path, module_content in modules.items():
        if os.path.isabs(path) or os.path.normpath(path).split(os.sep)[0] == os.pardir:
            fail(f"Refusing to write '{path}' outside of {output_dir}")
        write_file(output_dir, path, module_content, settings.encoding)
        log(f"  {path}")
    log(f"Unbundled {len(modules)} module(s) into {output_dir}")


def cmd_locate(args, settings):
    grammar = detect_grammar(args, args.filename)
    content = read_file(args.filename, settings.encoding)
    source_map = SourceMap.from_document(content, grammar, fallback_path=args.filename)
    location = source_map.lookup(args.line)
    if location is None:
        fail(f"Line {args.line} is outside of '{args.filename}'")
    print(location)


def cmd_push(args, settings):
    directory = args.directory or settings.output_dir
    if not os.path.isdir(directory):
        fail(f"'{directory}' is not a directory")
    search_paths = args.include or settings.search_paths()
    states = create_scripts(directory, search_paths, encoding=settings.encoding)
    payload = {
        "messageID": SAVE_AND_PLAY,
        "scriptStates": [state.model_dump(exclude_none=True) for state in states],
    }
    write_output(json.dumps(payload, indent=2) + "\n", args.output)


def cmd_pull(args, settings):
    if args.filename is None or args.filename == "-":
        payload = json.load(sys.stdin)
    else:
        with open(args.filename, "r", encoding="utf-8") as f:
            payload = json.load(f)
    states = payload["scriptStates"] if isinstance(payload, dict) else payload
    output_dir = args.output or settings.output_dir
    written = read_script_states(states, output_dir, include_dir=args.include_dir, encoding=settings.encoding)
    log(f"Wrote {len(written)} file(s)")


def main():
    parser = argparse.ArgumentParser(description="Bundle and unbundle object scripts")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    parser.add_argument("--config", help="Settings file (default: ttsbundle.json, then ~/.ttsbundle/config.json)")
    subparsers = parser.add_subparsers(dest="command")

    bundle_cmd = subparsers.add_parser("bundle", help="Flatten a file and its includes")
    bundle_cmd.add_argument("filename")
    bundle_cmd.add_argument("-I", "--include", action="append", help="Search path (repeatable, overrides settings)")
    bundle_cmd.add_argument("-o", "--output", help="Output file (default: stdout)")
    bundle_cmd.add_argument("--grammar", choices=["script", "markup"])

    unbundle_cmd = subparsers.add_parser("unbundle", help="Split a bundled file back into modules")
    unbundle_cmd.add_argument("filename")
    unbundle_cmd.add_argument("-o", "--output", help="Output directory (default: .)")
    unbundle_cmd.add_argument("--grammar", choices=["script", "markup"])

    locate = subparsers.add_parser("locate", help="Map a bundled line number back to its source file")
    locate.add_argument("filename")
    locate.add_argument("line", type=int)
    locate.add_argument("--grammar", choices=["script", "markup"])

    push = subparsers.add_parser("push", help="Print bundled script states for a workspace directory")
    push.add_argument("directory", nargs="?", help="Object files directory (default: output_dir setting)")
    push.add_argument("-I", "--include", action="append", help="Search path (repeatable, overrides settings)")
    push.add_argument("-o", "--output", help="Output file (default: stdout)")

    pull = subparsers.add_parser("pull", help="Write received script states to the workspace")
    pull.add_argument("filename", nargs="?", default="-", help="JSON payload (default: read from stdin)")
    pull.add_argument("-o", "--output", help="Output directory (default: output_dir setting)")
    pull.add_argument("--include-dir", help="Write included modules back under this directory")

    args = parser.parse_args()
    set_verbose(args.verbose)

    try:
        settings = load_settings(args.config)
    except BundleError as e:
        fail(str(e))

    if args.command == "bundle": cmd_bundle(args, settings)
    elif args.command == "unbundle": cmd_unbundle(args, settings)
    elif args.command == "locate": cmd_locate(args, settings)
    elif args.command == "push": cmd_push(args, settings)
    elif args.command == "pull": cmd_pull(args, settings)
    else: parser.print_help()


if __name__ == "__main__":
    main()
