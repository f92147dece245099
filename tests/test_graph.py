"""
Unit tests for ModuleRecord and ModuleGraph.
"""
import pytest
from pydantic import ValidationError

from jspack_core.graph import ModuleGraph, ModuleRecord


def record(identity, deps=None, code=""):
    deps = deps or {}
    return ModuleRecord(
        identity=identity,
        raw_import_specifiers=list(deps),
        specifier_to_identity=deps,
        transformed_code=code,
    )


class TestModuleRecord:

    def test_unresolved_specifier_rejected(self):
        with pytest.raises(ValidationError):
            ModuleRecord(identity="./a.js", raw_import_specifiers=["./b"], specifier_to_identity={})

    def test_dependencies_are_distinct(self):
        r = record("./a.js", {"./b": "./b.js", "./b.js": "./b.js", "./c": "./c.js"})
        assert r.dependencies() == ["./b.js", "./c.js"]

    def test_frozen(self):
        r = record("./a.js")
        with pytest.raises(ValidationError):
            r.transformed_code = "changed"


class TestModuleGraph:

    def test_from_records_orders_by_identity(self):
        graph = ModuleGraph.from_records("./index.js", [
            record("./index.js", {"./z": "./z.js", "./a": "./a.js"}),
            record("./z.js"),
            record("./a.js"),
        ])
        assert graph.identities() == ["./a.js", "./index.js", "./z.js"]

    def test_cycles_allowed(self):
        graph = ModuleGraph.from_records("./a.js", [
            record("./a.js", {"./b.js": "./b.js"}),
            record("./b.js", {"./a.js": "./a.js"}),
        ])
        assert len(graph) == 2

    def test_dangling_target_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            ModuleGraph.from_records("./a.js", [record("./a.js", {"./b.js": "./b.js"})])
        assert "not in the graph" in str(excinfo.value)

    def test_missing_entry_rejected(self):
        with pytest.raises(ValidationError):
            ModuleGraph.from_records("./index.js", [record("./a.js")])

    def test_mismatched_key_rejected(self):
        with pytest.raises(ValidationError):
            ModuleGraph(entry="./a.js", records={"./a.js": record("./b.js")})

    def test_lookup(self):
        graph = ModuleGraph.from_records("./a.js", [record("./a.js", code="x")])
        assert "./a.js" in graph
        assert "./b.js" not in graph
        assert graph["./a.js"].transformed_code == "x"

    def test_to_payload(self):
        graph = ModuleGraph.from_records("./index.js", [
            record("./index.js", {"./a": "./a.js"}, code='require("./a");'),
            record("./a.js", code="exports.x = 1;"),
        ])
        assert graph.to_payload() == {
            "./a.js": {"deps": {}, "code": "exports.x = 1;"},
            "./index.js": {"deps": {"./a": "./a.js"}, "code": 'require("./a");'},
        }
        assert list(graph.to_payload()) == ["./a.js", "./index.js"]
