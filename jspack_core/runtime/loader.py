"""
Python rendition of the bundle's Runtime Loader.

Implements the same synchronous require/exports rules as loader.js over the
serialized graph payload ({identity: {"deps": {...}, "code": "..."}}). How a
module body is executed is delegated to an Evaluator, so the loading rules
can be tested without any particular JavaScript engine.
"""
from abc import ABC, abstractmethod
from collections import Counter
from enum import Enum
from typing import Any, Dict


class UnknownModuleError(LookupError):
    """The payload has no record for an identity."""
    def __init__(self, identity):
        self.identity = identity
        super().__init__(f"Cannot find module '{identity}'")


class UnknownSpecifierError(LookupError):
    """A module required a specifier that is not in its dependency map."""
    def __init__(self, specifier, importer):
        self.specifier = specifier
        self.importer = importer
        super().__init__(f"Cannot find module '{specifier}' from '{importer}'")


class ModuleState(str, Enum):
    UNINSTANTIATED = "uninstantiated"
    INSTANTIATING = "instantiating"
    INSTANTIATED = "instantiated"


class ModuleInstance:
    """One execution of a module body; doubles as the `module` binding."""

    def __init__(self, identity):
        self.id = identity
        self.state = ModuleState.UNINSTANTIATED
        self.exports: Dict[str, Any] = {}

    def __repr__(self):
        return f"ModuleInstance({self.id!r}, {self.state.value})"


class Evaluator(ABC):
    """Executes module code with the injected require/exports/module bindings."""

    @abstractmethod
    def evaluate(self, identity: str, code: str, bindings: Dict[str, Any]) -> None:
        pass


class PythonEvaluator(Evaluator):
    """Runs module bodies written in Python, each in a fresh namespace."""

    def evaluate(self, identity, code, bindings):
        namespace = {"__name__": identity}
        namespace.update(bindings)
        exec(compile(code, identity, "exec"), namespace)


def resolve_specifier(payload, identity, specifier):
    """Identity that `specifier`, as written in module `identity`, refers to."""
    if identity not in payload:
        raise UnknownModuleError(identity)
    deps = payload[identity].get("deps", {})
    if specifier not in deps:
        raise UnknownSpecifierError(specifier, identity)
    return deps[specifier]


class ModuleLoader:
    """
    Minimal synchronous module system over a graph payload.

    By default nothing is cached: every require() re-executes the module and
    returns a new exports object, exactly like the emitted bundle. A module
    that requires itself, directly or through a cycle, while it is executing
    therefore recurses until the interpreter gives up. With `cache_modules`
    an instance is cached by identity before its body runs, so cycles see
    the partially filled exports (CommonJS semantics).
    """

    def __init__(self, payload, evaluator=None, cache_modules=False):
        self.payload = payload
        self.evaluator = evaluator or PythonEvaluator()
        self.cache_modules = cache_modules
        self.instances = {}
        self.executions = Counter()

    @classmethod
    def from_graph(cls, graph, evaluator=None, cache_modules=False):
        return cls(graph.to_payload(), evaluator=evaluator, cache_modules=cache_modules)

    def require(self, identity):
        if self.cache_modules and identity in self.instances:
            return self.instances[identity].exports
        if identity not in self.payload:
            raise UnknownModuleError(identity)

        def local_require(specifier):
            return self.require(resolve_specifier(self.payload, identity, specifier))

        instance = ModuleInstance(identity)
        if self.cache_modules:
            self.instances[identity] = instance
        instance.state = ModuleState.INSTANTIATING
        self.executions[identity] += 1
        try:
            self.evaluator.evaluate(identity, self.payload[identity]["code"], {
                "require": local_require,
                "exports": instance.exports,
                "module": instance,
            })
        except BaseException:
            if self.cache_modules:
                self.instances.pop(identity, None)
            raise
        instance.state = ModuleState.INSTANTIATED
        return instance.exports

    def run(self, entry):
        """Instantiate the entry module and return its exports."""
        return self.require(entry)
