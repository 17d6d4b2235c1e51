"""
Source Collaborators

Contracts for the data the resolver consumes but does not own: the active
load order with each plugin's master list, and the index that maps a record
identity to every version of it.

Loading plugin files is somebody else's job. The in-memory implementations
here are what tests and embedding applications feed the resolver with.
"""

import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from leveledresolver.records import EntityKey, RecordVersion, SourceId

logger = logging.getLogger(__name__)


# =============================================================================
# CONTRACTS
# =============================================================================

class LoadOrder(Protocol):
    """Active plugins in priority order, lowest priority first."""

    def active_sources(self) -> List[SourceId]:
        ...

    def declared_masters(self, source: SourceId) -> List[SourceId]:
        ...


class RecordIndex(Protocol):
    """Resolves a record identity to its per-source versions."""

    def resolve_all_versions(self, entity_key: EntityKey) -> List[RecordVersion]:
        """All versions of the record, lowest priority (origin) first."""
        ...

    def resolve_winner(self, entity_key: EntityKey) -> Optional[RecordVersion]:
        """The highest priority version, or None if the key is unknown."""
        ...

    def entity_keys(self) -> List[EntityKey]:
        ...


# =============================================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================================

def _as_source(value: Union[SourceId, str]) -> SourceId:
    return value if isinstance(value, SourceId) else SourceId(value)


class InMemoryLoadOrder:
    """
    Load order built from (plugin, masters) pairs.

    Usage:
        load_order = InMemoryLoadOrder([
            ("Skyrim.esm", []),
            ("Update.esm", ["Skyrim.esm"]),
            ("MyMod.esp", ["Skyrim.esm", "Update.esm"]),
        ])
    """

    def __init__(self, plugins: Iterable[Tuple[Union[SourceId, str], Sequence[Union[SourceId, str]]]] = ()):
        self._masters: "OrderedDict[SourceId, List[SourceId]]" = OrderedDict()
        for plugin, masters in plugins:
            self.add(plugin, masters)

    def add(self, plugin: Union[SourceId, str], masters: Sequence[Union[SourceId, str]] = ()) -> "InMemoryLoadOrder":
        """Append a plugin at the highest priority. Returns self for chaining."""
        source = _as_source(plugin)
        if source in self._masters:
            raise ValueError(f"{source} is already in the load order")
        self._masters[source] = [_as_source(m) for m in masters]
        return self

    def active_sources(self) -> List[SourceId]:
        return list(self._masters.keys())

    def declared_masters(self, source: SourceId) -> List[SourceId]:
        return list(self._masters.get(source, []))

    def priority(self, source: SourceId) -> int:
        """Position in the load order, or -1 if the plugin is not active."""
        for index, active in enumerate(self._masters):
            if active == source:
                return index
        return -1

    def __contains__(self, source) -> bool:
        return _as_source(source) in self._masters

    def __len__(self) -> int:
        return len(self._masters)


class InMemoryRecordIndex:
    """
    Record versions grouped by EntityKey and ordered by load order.

    Versions authored by plugins that are not in the load order are ignored,
    the same way a disabled plugin contributes nothing.
    """

    def __init__(self, load_order: InMemoryLoadOrder, records: Iterable[RecordVersion] = ()):
        self._load_order = load_order
        self._versions: Dict[EntityKey, List[RecordVersion]] = {}
        for record in records:
            self.add(record)

    def add(self, record: RecordVersion) -> "InMemoryRecordIndex":
        if record.source not in self._load_order:
            logger.debug(f"Ignoring {record!r}: {record.source} is not active")
            return self

        versions = self._versions.setdefault(record.entity_key, [])
        if any(v.source == record.source for v in versions):
            raise ValueError(f"{record.source} already provides a version of {record.entity_key}")
        versions.append(record)
        versions.sort(key=lambda v: self._load_order.priority(v.source))
        return self

    def resolve_all_versions(self, entity_key: EntityKey) -> List[RecordVersion]:
        return list(self._versions.get(entity_key, []))

    def resolve_winner(self, entity_key: EntityKey) -> Optional[RecordVersion]:
        versions = self._versions.get(entity_key)
        return versions[-1] if versions else None

    def entity_keys(self) -> List[EntityKey]:
        return list(self._versions.keys())

    def __len__(self) -> int:
        return len(self._versions)
