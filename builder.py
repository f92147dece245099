import os
import sys

from jspack_core.bundler import DependencyResolver
from jspack_core.config import BuildConfig
from jspack_core.emitter import emit_bundle
from jspack_core.resolver import NodeModulesResolver, SpecifierResolver
from jspack_core.transformer import DefaultTransformer

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

def _log_module(identity, record):
    debug_log(f"Transformed {identity} ({len(record.transformed_code)} chars)")
    for specifier, target in record.specifier_to_identity.items():
        debug_log(f"  {specifier!r} -> {target}")

def create_resolver(config=None, transformer=None):
    """Wire a DependencyResolver from the build configuration."""
    config = config or BuildConfig()
    specifiers = SpecifierResolver(
        root=config.root,
        extensions=config.extensions,
        package_resolver=NodeModulesResolver(config.modules_dir, config.package_fields),
    )
    return DependencyResolver(
        transformer=transformer or DefaultTransformer(),
        resolver=specifiers,
        workers=config.workers,
        on_module=_log_module,
    )

def build_graph(entry_path, config=None, transformer=None):
    # STEP 1: DISCOVER AND TRANSFORM EVERY REACHABLE MODULE
    config = config or BuildConfig()
    debug_log(f"Resolving {entry_path} (root: {os.path.abspath(config.root)}, workers: {config.workers})")
    graph = create_resolver(config, transformer).resolve(entry_path)
    debug_log(f"Module graph has {len(graph)} module(s), entry {graph.entry}")
    return graph

def build_bundle(entry_path, config=None, transformer=None):
    config = config or BuildConfig()
    graph = build_graph(entry_path, config, transformer)

    # STEP 2: EMIT THE BUNDLE AROUND THE RUNTIME LOADER
    content = emit_bundle(graph, cache_modules=config.cache_modules)
    debug_log(f"Emitted bundle: {len(content)} chars (module cache: {config.cache_modules})")
    return content

def write_bundle(content, output_path):
    """Write the bundle, creating parent directories as needed."""
    directory = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(directory, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(content)
    return output_path

def describe_graph(graph):
    """Summary of a module graph for display."""
    return {
        "entry": graph.entry,
        "modules": len(graph),
        "graph": {
            identity: {
                "specifiers": record.raw_import_specifiers,
                "resolved": record.specifier_to_identity,
                "size": len(record.transformed_code),
            }
            for identity, record in graph.records.items()
        },
    }
