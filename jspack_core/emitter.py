"""
Bundle emission - wraps a module graph in the Runtime Loader template.

The result is one self-invoking JavaScript program: the graph payload, the
entry identity and the caching policy are inlined as literals.
"""
import json
import re

from jspack_core.errors import EmitError
from jspack_core.runtime import get_loader_template


PLACEHOLDER = re.compile(r'__(GRAPH|ENTRY|CACHE)__')


def serialize_graph(graph):
    """Serializable payload of the graph, keyed by identity."""
    return graph.to_payload()


def emit_bundle(graph, entry_identity=None, cache_modules=False, template=None):
    """
    Render the bundle artifact for `graph`.

    Args:
        graph: A closed ModuleGraph
        entry_identity: Module to instantiate at startup (default: graph.entry)
        cache_modules: Cache instantiated modules by identity in the bundle
        template: Loader template override (default: the packaged loader.js)

    Returns:
        The bundle source text

    Raises:
        EmitError: If the entry is not in the graph or the payload cannot be serialized
    """
    entry = entry_identity if entry_identity is not None else graph.entry
    if entry not in graph:
        raise EmitError(f"Entry module '{entry}' is not in the module graph", module=entry)

    try:
        payload = json.dumps(serialize_graph(graph), indent=2)
    except (TypeError, ValueError) as e:
        raise EmitError(f"Cannot serialize module graph: {e}")

    values = {
        "GRAPH": payload,
        "ENTRY": json.dumps(entry),
        "CACHE": "true" if cache_modules else "false",
    }
    source = template if template is not None else get_loader_template()
    # One pass over the template, so module code is never rescanned
    return PLACEHOLDER.sub(lambda m: values[m.group(1)], source)
