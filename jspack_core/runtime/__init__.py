# jspack Runtime Components
"""
Runtime loader shipped inside every bundle.

loader.js is the JavaScript template the emitter fills in with the module
graph. loader.py implements the same loading rules in Python so they can be
exercised without a JavaScript engine.
"""

import os

from .loader import (
    Evaluator,
    ModuleInstance,
    ModuleLoader,
    ModuleState,
    PythonEvaluator,
    UnknownModuleError,
    UnknownSpecifierError,
    resolve_specifier,
)

LOADER_TEMPLATE = 'loader.js'


def get_loader_template():
    """Read the Runtime Loader template that wraps the serialized graph."""
    path = os.path.join(os.path.dirname(__file__), LOADER_TEMPLATE)
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


__all__ = [
    'Evaluator',
    'ModuleInstance',
    'ModuleLoader',
    'ModuleState',
    'PythonEvaluator',
    'UnknownModuleError',
    'UnknownSpecifierError',
    'get_loader_template',
    'resolve_specifier',
]
