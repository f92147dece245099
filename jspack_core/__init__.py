# jspack - Core Bundler Components
"""
Core modules for the jspack bundler:
- errors: Build error taxonomy
- grammar: Lark grammar for JavaScript module syntax
- transformer: Per-module source transformation (ES modules, CSS, JSON)
- resolver: Import specifier to module identity resolution
- graph: ModuleRecord and ModuleGraph
- bundler: Dependency resolution over the module graph
- emitter: Bundle emission around the runtime loader
- runtime: Runtime loader template and its Python rendition
- config: Build configuration
"""

from .errors import BundleError, EmitError, ModuleNotFoundError, TransformError
from .graph import ModuleGraph, ModuleRecord
from .transformer import DefaultTransformer, ModuleTransformer, TransformResult
from .resolver import NodeModulesResolver, PackageResolver, SpecifierResolver
from .bundler import DependencyResolver, resolve_graph
from .emitter import emit_bundle, serialize_graph
from .config import BuildConfig, load_config

__all__ = [
    'BundleError',
    'EmitError',
    'ModuleNotFoundError',
    'TransformError',
    'ModuleGraph',
    'ModuleRecord',
    'DefaultTransformer',
    'ModuleTransformer',
    'TransformResult',
    'NodeModulesResolver',
    'PackageResolver',
    'SpecifierResolver',
    'DependencyResolver',
    'resolve_graph',
    'emit_bundle',
    'serialize_graph',
    'BuildConfig',
    'load_config',
]
