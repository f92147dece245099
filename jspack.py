import argparse
import json
import os
import shutil
import subprocess
import sys

from builder import build_bundle, build_graph, describe_graph, set_verbose, write_bundle
from jspack_core.config import CONFIG_FILE, load_config
from jspack_core.errors import BundleError

def log(message):
    """Log informational messages to stderr."""
    print(f"\033[92m\033[1mINFO:\033[0m {message}", file=sys.stderr)

def fail(title, error):
    print(f"Error: {title}:\n{error}", file=sys.stderr)
    sys.exit(1)

def load_build_config(args):
    """Config file settings with command-line flags applied on top."""
    try:
        config = load_config(args.config)
        return config.merged(
            entry=getattr(args, "entry", None),
            output=getattr(args, "output", None),
            root=getattr(args, "root", None),
            workers=getattr(args, "workers", None),
            cache_modules=True if getattr(args, "cache_modules", False) else None,
        )
    except BundleError as e:
        fail("Invalid Configuration", e)

def build(args):
    set_verbose(args.verbose)
    config = load_build_config(args)
    if not config.entry:
        print(f"Error: No entry file given (pass one or set \"entry\" in {CONFIG_FILE}).", file=sys.stderr)
        sys.exit(1)

    try:
        content = build_bundle(config.entry, config)
    except BundleError as e:
        fail("Build Failed", e)

    target_file = write_bundle(content, config.output)
    return target_file

def cmd_build(args):
    target_file = build(args)
    log(f"📦 Bundle written to {target_file}")

def cmd_run(args):
    node = shutil.which("node")
    if node is None:
        print("Error: 'node' was not found on PATH; cannot run the bundle.", file=sys.stderr)
        sys.exit(1)
    target_file = build(args)
    sys.exit(subprocess.call([node, target_file]))

def cmd_graph(args):
    set_verbose(args.verbose)
    config = load_build_config(args)
    if not config.entry:
        print("Error: No entry file given.", file=sys.stderr)
        sys.exit(1)
    try:
        graph = build_graph(config.entry, config)
    except BundleError as e:
        fail("Resolution Failed", e)
    print(json.dumps(describe_graph(graph), indent=2))

def cmd_init(args):
    log("Initializing project...")
    os.makedirs("src", exist_ok=True)
    with open(CONFIG_FILE, "w") as f:
        json.dump({"entry": "src/index.js", "output": "dist/bundle.js"}, f, indent=2)
    with open(os.path.join("src", "index.js"), "w") as f:
        f.write('import { greeting } from "./message.js";\n\nconsole.log(greeting("jspack"));\n')
    with open(os.path.join("src", "message.js"), "w") as f:
        f.write('export function greeting(name) {\n  return "Hello " + name;\n}\n')
    log(f"Created {CONFIG_FILE}, src/index.js and src/message.js")


def _add_build_options(parser, with_output=True):
    parser.add_argument("entry", nargs="?", help="Entry module (default: \"entry\" from the config file)")
    parser.add_argument("--config", help=f"Config file (default: ./{CONFIG_FILE} or ~/.jspack/config.json)")
    parser.add_argument("--root", help="Build root that module identities are relative to (default: .)")
    parser.add_argument("--workers", type=int, help="Modules transformed in parallel (default: 1)")
    if with_output:
        parser.add_argument("-o", "--output", help="Bundle file (default: dist/bundle.js)")
        parser.add_argument("--cache-modules", action="store_true",
                            help="Cache instantiated modules by identity instead of re-executing them")


def main(argv=None):
    parser = argparse.ArgumentParser(description="jspack CLI")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    subparsers = parser.add_subparsers(dest="command")

    _add_build_options(subparsers.add_parser("build", help="Bundle an entry module into a single file"))
    _add_build_options(subparsers.add_parser("run", help="Bundle an entry module and run it with node"))
    _add_build_options(subparsers.add_parser("graph", help="Print the module graph as JSON"), with_output=False)
    subparsers.add_parser("init", help="Init project")

    args = parser.parse_args(argv)

    if args.command == "build": cmd_build(args)
    elif args.command == "run": cmd_run(args)
    elif args.command == "graph": cmd_graph(args)
    elif args.command == "init": cmd_init(args)
    else: parser.print_help()

if __name__ == "__main__":
    main()
