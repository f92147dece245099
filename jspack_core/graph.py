"""
Module graph data structures.

A ModuleGraph holds exactly one ModuleRecord per identity. It is validated
when constructed: the entry must be present and every resolved specifier must
point at a record in the graph. Cycles are allowed.
"""
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ModuleRecord(BaseModel):
    """One physical module, after transformation and specifier resolution."""
    model_config = ConfigDict(frozen=True)

    identity: str
    raw_import_specifiers: List[str] = Field(default_factory=list)
    specifier_to_identity: Dict[str, str] = Field(default_factory=dict)
    transformed_code: str = ""

    @model_validator(mode='after')
    def check_specifiers_resolved(self):
        missing = [s for s in self.raw_import_specifiers if s not in self.specifier_to_identity]
        if missing:
            raise ValueError(f"Unresolved specifiers in {self.identity}: {missing}")
        return self

    def dependencies(self):
        """Distinct identities this module requires, in specifier order."""
        seen = []
        for identity in self.specifier_to_identity.values():
            if identity not in seen:
                seen.append(identity)
        return seen


class ModuleGraph(BaseModel):
    """Closed mapping from identity to ModuleRecord, built once per build."""
    model_config = ConfigDict(frozen=True)

    entry: str
    records: Dict[str, ModuleRecord]

    @model_validator(mode='after')
    def check_closed(self):
        for identity, record in self.records.items():
            if record.identity != identity:
                raise ValueError(f"Record for {record.identity} stored under {identity}")
        if self.entry not in self.records:
            raise ValueError(f"Entry module {self.entry} is not in the graph")
        for record in self.records.values():
            for specifier, target in record.specifier_to_identity.items():
                if target not in self.records:
                    raise ValueError(
                        f"{record.identity} maps '{specifier}' to {target}, which is not in the graph"
                    )
        return self

    @classmethod
    def from_records(cls, entry, records):
        """Build a graph from records, ordered by identity."""
        ordered = sorted(records, key=lambda r: r.identity)
        return cls(entry=entry, records={r.identity: r for r in ordered})

    def __contains__(self, identity):
        return identity in self.records

    def __getitem__(self, identity):
        return self.records[identity]

    def __len__(self):
        return len(self.records)

    def identities(self):
        return list(self.records)

    def dependencies_of(self, identity):
        return self.records[identity].dependencies()

    def to_payload(self):
        """The data literal a bundle embeds: {identity: {"deps", "code"}}."""
        return {
            identity: {
                "deps": dict(record.specifier_to_identity),
                "code": record.transformed_code,
            }
            for identity, record in self.records.items()
        }
