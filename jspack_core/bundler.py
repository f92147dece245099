"""
Dependency resolution for jspack.

Starting from an entry file, transforms every reachable module exactly once
and records how each of its import specifiers maps to a module identity.
"""
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait

from jspack_core.graph import ModuleGraph, ModuleRecord
from jspack_core.resolver import SpecifierResolver
from jspack_core.transformer import DefaultTransformer


class VisitedSet:
    """Identities already claimed by a build. Check-and-mark is atomic."""

    def __init__(self):
        self._seen = set()
        self._lock = threading.Lock()

    def claim(self, identity):
        """Mark `identity` visited; False if another caller got there first."""
        with self._lock:
            if identity in self._seen:
                return False
            self._seen.add(identity)
            return True

    def __contains__(self, identity):
        with self._lock:
            return identity in self._seen

    def __len__(self):
        with self._lock:
            return len(self._seen)


class DependencyResolver:
    """
    Builds a ModuleGraph from an entry module.

    Each call to resolve() owns its visited set, so one resolver can serve
    several builds, even concurrently. Circular and shared imports are
    transformed once; the first failure aborts the whole traversal.

    Args:
        transformer: ModuleTransformer used for every module
        resolver: SpecifierResolver mapping specifiers to identities
        workers: Maximum number of modules transformed in parallel
        on_module: Optional callback(identity, record) for progress logging
    """

    def __init__(self, transformer=None, resolver=None, workers=1, on_module=None):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.transformer = transformer or DefaultTransformer()
        self.resolver = resolver or SpecifierResolver()
        self.workers = workers
        self.on_module = on_module

    def resolve(self, entry_path):
        """
        Discover and transform every module reachable from `entry_path`.

        Returns:
            A closed ModuleGraph keyed by identity

        Raises:
            ModuleNotFoundError: If the entry or any specifier cannot be found
            TransformError: If the transformer rejects a reachable module
        """
        entry = self.resolver.entry(entry_path)
        visited = VisitedSet()
        visited.claim(entry)
        records = []

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            pending = {pool.submit(self._process, entry, visited)}
            try:
                while pending:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        record, discovered = future.result()
                        records.append(record)
                        for identity in discovered:
                            pending.add(pool.submit(self._process, identity, visited))
            except BaseException:
                for future in pending:
                    future.cancel()
                raise

        return ModuleGraph.from_records(entry, records)

    def _process(self, identity, visited):
        """Transform one module and claim the dependencies it discovers."""
        result = self.transformer.transform(self.resolver.path_of(identity))
        mapping = {}
        for specifier in result.import_specifiers:
            if specifier not in mapping:
                mapping[specifier] = self.resolver.resolve(specifier, identity)

        record = ModuleRecord(
            identity=identity,
            raw_import_specifiers=list(result.import_specifiers),
            specifier_to_identity=mapping,
            transformed_code=result.code,
        )
        if self.on_module is not None:
            self.on_module(identity, record)

        # Only identities this worker claimed are handed back for scheduling
        discovered = [target for target in record.dependencies() if visited.claim(target)]
        return record, discovered


def resolve_graph(entry_path, transformer=None, resolver=None, workers=1):
    """Convenience wrapper: build the module graph for one entry file."""
    return DependencyResolver(transformer, resolver, workers).resolve(entry_path)
