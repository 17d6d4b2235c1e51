"""
Patch Report

Machine-readable summary of a patch run: which leveled lists were merged,
from which plugins, which were split into sublists and which failed.

Schema version: leveledresolver.patch.v1
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from leveledresolver.records import EntityKey, RecordVersion
from leveledresolver.resolver.graph import MergedRecord


SCHEMA_VERSION = "leveledresolver.patch.v1"


@dataclass
class RecordFailure:
    """A record that could not be resolved."""
    entity_key: EntityKey
    error_type: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_key": str(self.entity_key),
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass
class PatchReport:
    """Everything a patch run produced."""
    sink: str
    schema: str = SCHEMA_VERSION
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    merged: Dict[EntityKey, MergedRecord] = field(default_factory=dict)
    skipped: List[EntityKey] = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)
    traces: Dict[EntityKey, List[str]] = field(default_factory=dict)

    @property
    def merged_count(self) -> int:
        return len(self.merged)

    @property
    def sublist_count(self) -> int:
        return sum(len(m.sublists) for m in self.merged.values())

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def get_merged(self, entity_key: EntityKey) -> Optional[MergedRecord]:
        return self.merged.get(entity_key)

    def records_to_write(self) -> List[RecordVersion]:
        """Every record the patch plugin should contain, in run order."""
        records: List[RecordVersion] = []
        for merged in self.merged.values():
            records.extend(merged.records)
        return records

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema,
            "generated_at": self.generated_at,
            "sink": self.sink,
            "summary": {
                "merged": self.merged_count,
                "sublists": self.sublist_count,
                "skipped": len(self.skipped),
                "failures": self.failure_count,
            },
            "merged": [
                {
                    "record": merged.record.to_dict(),
                    "extent_sources": [str(s) for s in merged.extent_sources],
                    "sublists": [s.to_dict() for s in merged.sublists],
                    "trace": self.traces.get(key, []),
                }
                for key, merged in self.merged.items()
            ],
            "skipped": [str(key) for key in self.skipped],
            "failures": [f.to_dict() for f in self.failures],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __repr__(self):
        return (f"PatchReport({self.sink}: {self.merged_count} merged, "
                f"{self.sublist_count} sublists, {self.failure_count} failures)")
