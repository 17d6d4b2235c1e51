"""
Leveled Item Graph

Per-record resolution: builds the dependency graph of the plugins that touch
one leveled item, selects the extent versions and merges them into the record
the patch plugin should carry.

Usage:
    graph = LeveledItemGraph.from_index(index, load_order, key, SourceId("Patch.esp"))
    if graph.needs_merge:
        merged = graph.merge()
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from leveledresolver.errors import RecordNotFoundError
from leveledresolver.records import (
    NULL_SOURCE,
    EntityKey,
    LeveledEntry,
    LeveledItemFlag,
    RecordVersion,
    SourceId,
)
from leveledresolver.resolver.entries import EntryListMerger, SublistLookup
from leveledresolver.resolver.extents import ExtentSelector
from leveledresolver.resolver.fields import FieldMerger
from leveledresolver.resolver.paths import PathFinder, PathObserver, SourcePath, format_path
from leveledresolver.resolver.source_graph import SourceGraph
from leveledresolver.resolver.sublists import KeyAllocator, SublistSplitter
from leveledresolver.sources import LoadOrder, RecordIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergedRecord:
    """The merged leveled item and any sublists split off from it."""
    record: RecordVersion
    sublists: Tuple[RecordVersion, ...]
    extent_sources: Tuple[SourceId, ...]

    @property
    def records(self) -> Tuple[RecordVersion, ...]:
        """Every record the patch must write: the merged one first."""
        return (self.record,) + self.sublists

    def __repr__(self):
        return (f"MergedRecord({self.record.editor_id}: {len(self.record.entry_list)} entries, "
                f"{len(self.sublists)} sublists, from {len(self.extent_sources)} extents)")


class LeveledItemGraph:
    """
    Dependency graph and merge for one leveled item.

    Args:
        entity_key: Identity of the leveled item
        versions: Every version of it, lowest priority (origin) first
        load_order: Active plugins and their masters
        sink: The patch plugin being built
        lookup: Resolves references to leveled lists for the empty sublist
                filter; entries are never filtered when omitted

    Raises:
        RecordNotFoundError: if ``versions`` is empty
        InvariantViolationError: if the masters involved form a cycle
    """

    def __init__(
        self,
        entity_key: EntityKey,
        versions: Sequence[RecordVersion],
        load_order: LoadOrder,
        sink: SourceId,
        lookup: Optional[SublistLookup] = None,
    ):
        if not versions:
            raise RecordNotFoundError(entity_key)

        records: "OrderedDict[SourceId, RecordVersion]" = OrderedDict()
        for version in versions:
            if version.source in records:
                raise ValueError(f"{version.source} provides {entity_key} more than once")
            records[version.source] = version

        self.entity_key = entity_key
        self.sink = sink
        self.base: RecordVersion = versions[0]
        self.records: Mapping[SourceId, RecordVersion] = records
        self.graph = SourceGraph.build(list(records.keys()), load_order)
        self.extent_records: Tuple[RecordVersion, ...] = tuple(
            ExtentSelector(self.graph, sink).select(list(records.values()))
        )
        self._lookup = lookup
        self._editor_id: Optional[str] = None

    @classmethod
    def from_index(
        cls,
        index: RecordIndex,
        load_order: LoadOrder,
        entity_key: EntityKey,
        sink: SourceId,
    ) -> "LeveledItemGraph":
        """Build the graph from the record index collaborator."""
        return cls(
            entity_key,
            index.resolve_all_versions(entity_key),
            load_order,
            sink,
            lookup=index.resolve_winner,
        )

    # -------------------------------------------------------------------------
    # Graph queries
    # -------------------------------------------------------------------------

    @property
    def sources(self) -> Tuple[SourceId, ...]:
        return self.graph.sources

    @property
    def extent_sources(self) -> Tuple[SourceId, ...]:
        return tuple(record.source for record in self.extent_records)

    @property
    def needs_merge(self) -> bool:
        """True when more than one version is in effect."""
        return len(self.extent_records) > 1

    def traverse(self, start: SourceId = NULL_SOURCE, observer: Optional[PathObserver] = None) -> List[SourcePath]:
        return PathFinder(self.graph).traverse(start, observer)

    def trace(self, start: SourceId = NULL_SOURCE) -> List[str]:
        """
        Human-readable path trace, headed by the merged editor id.

        Each line is also logged at debug level.
        """
        lines = [self.editor_id()]
        self.traverse(start, observer=lambda path: lines.append(f"Found Path: {format_path(path)}"))
        for line in lines:
            logger.debug(line)
        return lines

    # -------------------------------------------------------------------------
    # Field merges
    # -------------------------------------------------------------------------

    def _fields(self) -> FieldMerger:
        return FieldMerger(self.base, self.extent_records)

    def editor_id(self) -> str:
        """Merged editor id; generated once and then stable for this graph."""
        if self._editor_id is None:
            self._editor_id = self._fields().editor_id()
        return self._editor_id

    def chance_none(self) -> int:
        return self._fields().chance_none()

    def global_link(self) -> EntityKey:
        return self._fields().global_link()

    def flags(self) -> LeveledItemFlag:
        return self._fields().flags()

    def entries(self) -> List[LeveledEntry]:
        """Merged entries before any split."""
        return EntryListMerger(self.base, self.extent_records, self._lookup).merge()

    def merged_record(self) -> RecordVersion:
        """Every field merged into one record authored by the sink, unsplit."""
        fields = self._fields().merge_all()
        fields["editor_id"] = self.editor_id()
        return RecordVersion(
            entity_key=self.entity_key,
            source=self.sink,
            entries=tuple(self.entries()),
            **fields,
        )

    def merge(self, splitter: Optional[SublistSplitter] = None) -> MergedRecord:
        """
        Merge every field and split the result if it is oversized.

        Args:
            splitter: Splits oversized entry lists. If omitted, a 255-entry
                      splitter backed by the sink's shared KeyAllocator is used,
                      so separate graphs never hand out the same sublist key
        """
        if splitter is None:
            splitter = SublistSplitter(KeyAllocator.for_sink(self.sink))

        merged = self.merged_record()
        result = splitter.split(merged, editor_id=merged.editor_id)
        return MergedRecord(
            record=result.record,
            sublists=result.sublists,
            extent_sources=self.extent_sources,
        )

    def __repr__(self):
        return (f"LeveledItemGraph({self.entity_key}: {len(self.records)} versions, "
                f"{len(self.extent_records)} extents)")
