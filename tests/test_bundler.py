"""
Unit tests for the jspack dependency resolver.
"""
import os
import tempfile
import threading
from collections import Counter

import pytest

from jspack_core.bundler import DependencyResolver, VisitedSet, resolve_graph
from jspack_core.errors import ModuleNotFoundError, TransformError
from jspack_core.resolver import SpecifierResolver
from jspack_core.transformer import DefaultTransformer, ModuleTransformer


def write_files(root, files):
    for name, content in files.items():
        path = os.path.join(root, *name.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w') as f:
            f.write(content)
    return root


class CountingTransformer(ModuleTransformer):
    """Wraps the default transformer and counts how often each file is transformed."""

    def __init__(self):
        self.inner = DefaultTransformer()
        self.calls = Counter()
        self._lock = threading.Lock()

    def transform(self, file_path):
        with self._lock:
            self.calls[os.path.basename(file_path)] += 1
        return self.inner.transform(file_path)


def resolver_for(root, workers=1, transformer=None):
    return DependencyResolver(
        transformer=transformer or DefaultTransformer(),
        resolver=SpecifierResolver(root=root),
        workers=workers,
    )


class TestResolve:
    """Tests for DependencyResolver.resolve()."""

    def test_single_module(self):
        """A module without imports yields a one-record graph."""
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {"index.js": "console.log(1);\n"})

            graph = resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

            assert graph.entry == "./index.js"
            assert graph.identities() == ["./index.js"]
            assert graph["./index.js"].raw_import_specifiers == []
            assert graph["./index.js"].specifier_to_identity == {}

    def test_single_import(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "index.js": 'import a from "./a.js";\nconsole.log(a);\n',
                "a.js": "export default 1;\n",
            })

            graph = resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

            assert graph.identities() == ["./a.js", "./index.js"]
            assert graph["./index.js"].specifier_to_identity == {"./a.js": "./a.js"}
            assert 'exports["default"] = 1;' in graph["./a.js"].transformed_code

    def test_nested_imports(self):
        """Imports inside imported modules are followed too."""
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "index.js": 'import "./lib/lib.js";\n',
                "lib/lib.js": 'import { id } from "../base/base";\n',
                "base/base.js": "export const id = 1;\n",
            })

            graph = resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

            assert set(graph.identities()) == {"./index.js", "./lib/lib.js", "./base/base.js"}
            assert graph["./lib/lib.js"].specifier_to_identity == {"../base/base": "./base/base.js"}

    def test_raw_specifiers_are_kept(self):
        """Specifiers are stored exactly as written, next to their identities."""
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "src/index.js": 'import a from "./a";\nimport b from "../src/a.js";\n',
                "src/a.js": "export default 1;\n",
            })

            graph = resolver_for(tmpdir).resolve(os.path.join(tmpdir, "src", "index.js"))
            record = graph["./src/index.js"]

            assert record.raw_import_specifiers == ["./a", "../src/a.js"]
            assert record.specifier_to_identity == {"./a": "./src/a.js", "../src/a.js": "./src/a.js"}
            assert record.dependencies() == ["./src/a.js"]
            assert len(graph) == 2

    def test_shared_dependency_transformed_once(self):
        """index -> a, b and b -> a: a must be transformed exactly once."""
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "index.js": 'import a from "./a.js";\nimport b from "./b.js";\n',
                "a.js": "export default 1;\n",
                "b.js": 'import a from "./a.js";\nexport default a + 1;\n',
            })
            transformer = CountingTransformer()

            graph = resolver_for(tmpdir, transformer=transformer).resolve(os.path.join(tmpdir, "index.js"))

            assert len(graph) == 3
            assert transformer.calls == Counter({"index.js": 1, "a.js": 1, "b.js": 1})

    def test_circular_imports(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "a.js": 'import { b } from "./b.js";\nexport const a = 1;\n',
                "b.js": 'import { a } from "./a.js";\nexport const b = 2;\n',
            })
            transformer = CountingTransformer()

            graph = resolver_for(tmpdir, transformer=transformer).resolve(os.path.join(tmpdir, "a.js"))

            assert graph.identities() == ["./a.js", "./b.js"]
            assert graph.dependencies_of("./a.js") == ["./b.js"]
            assert graph.dependencies_of("./b.js") == ["./a.js"]
            assert transformer.calls == Counter({"a.js": 1, "b.js": 1})

    def test_self_import(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {"self.js": 'import * as me from "./self.js";\nexport const x = 1;\n'})

            graph = resolver_for(tmpdir).resolve(os.path.join(tmpdir, "self.js"))

            assert graph.identities() == ["./self.js"]
            assert graph.dependencies_of("./self.js") == ["./self.js"]

    def test_commonjs_and_assets(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "index.js": 'const data = require("./data.json");\nimport "./style.css";\n',
                "data.json": '{"a": 1}',
                "style.css": "body { margin: 0; }",
            })

            graph = resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

            assert graph["./data.json"].transformed_code == 'module.exports = {"a": 1};\n'
            assert "var css" in graph["./style.css"].transformed_code

    def test_graph_is_closed(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "index.js": 'import "./a.js";\nimport "./b.js";\n',
                "a.js": 'import "./c.js";\n',
                "b.js": 'import "./c.js";\nimport "./a.js";\n',
                "c.js": "",
            })

            graph = resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

            for identity in graph.identities():
                for target in graph.dependencies_of(identity):
                    assert target in graph


class TestFailures:
    """The first failure aborts the build; no graph is returned."""

    def test_missing_dependency(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {"index.js": 'import x from "./missing.js";\n'})

            with pytest.raises(ModuleNotFoundError) as excinfo:
                resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

            assert excinfo.value.specifier == "./missing.js"
            assert excinfo.value.importer == "./index.js"

    def test_missing_nested_dependency(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "index.js": 'import "./a.js";\n',
                "a.js": 'import "./gone";\n',
            })

            with pytest.raises(ModuleNotFoundError) as excinfo:
                resolver_for(tmpdir, workers=3).resolve(os.path.join(tmpdir, "index.js"))

            assert excinfo.value.importer == "./a.js"

    def test_missing_entry(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(ModuleNotFoundError):
                resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

    def test_transform_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, {
                "index.js": 'import "./broken.js";\n',
                "broken.js": 'const s = "unterminated;\n',
            })

            with pytest.raises(TransformError) as excinfo:
                resolver_for(tmpdir).resolve(os.path.join(tmpdir, "index.js"))

            assert excinfo.value.file_path.endswith("broken.js")
            assert excinfo.value.line_number == 1

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            DependencyResolver(workers=0)


class TestDeterminism:
    """Graphs do not depend on scheduling."""

    FILES = {
        "index.js": 'import "./d.js";\nimport "./b.js";\nimport "./c.js";\n',
        "b.js": 'import "./e.js";\nimport "./c.js";\n',
        "c.js": 'import "./e.js";\nimport "./index.js";\n',
        "d.js": 'import "./b.js";\n',
        "e.js": "export default 5;\n",
    }

    def test_parallel_matches_sequential(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, self.FILES)
            entry = os.path.join(tmpdir, "index.js")
            transformer = CountingTransformer()

            sequential = resolver_for(tmpdir, workers=1).resolve(entry)
            parallel = resolver_for(tmpdir, workers=4, transformer=transformer).resolve(entry)

            assert parallel == sequential
            assert parallel.identities() == ["./b.js", "./c.js", "./d.js", "./e.js", "./index.js"]
            assert set(transformer.calls.values()) == {1}

    def test_resolver_is_reusable(self):
        """Each resolve() call has its own visited set."""
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, self.FILES)
            entry = os.path.join(tmpdir, "index.js")
            transformer = CountingTransformer()
            resolver = resolver_for(tmpdir, workers=2, transformer=transformer)

            first = resolver.resolve(entry)
            second = resolver.resolve(entry)

            assert first == second
            assert set(transformer.calls.values()) == {2}

    def test_resolve_graph_helper(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, self.FILES)
            graph = resolve_graph(os.path.join(tmpdir, "index.js"), resolver=SpecifierResolver(root=tmpdir))
            assert len(graph) == 5

    def test_progress_callback(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            write_files(tmpdir, self.FILES)
            seen = []
            resolver = DependencyResolver(
                resolver=SpecifierResolver(root=tmpdir),
                on_module=lambda identity, record: seen.append(identity),
            )

            resolver.resolve(os.path.join(tmpdir, "index.js"))

            assert sorted(seen) == ["./b.js", "./c.js", "./d.js", "./e.js", "./index.js"]


class TestVisitedSet:
    """Tests for the atomic visited set."""

    def test_claim_once(self):
        visited = VisitedSet()
        assert visited.claim("./a.js") is True
        assert visited.claim("./a.js") is False
        assert "./a.js" in visited
        assert len(visited) == 1

    def test_concurrent_claims(self):
        visited = VisitedSet()
        winners = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            if visited.claim("./shared.js"):
                winners.append(threading.current_thread().name)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
