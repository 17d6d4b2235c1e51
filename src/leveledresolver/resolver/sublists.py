"""
Oversized Entry List Split

A leveled item holds at most 255 entries. When a merge produces more, the
excess moves into synthetic sublists authored by the patch plugin:

    parent:    first (cap - 1) entries + reference to Sublist0
    Sublist0:  next (cap - 1) entries + reference to Sublist1 (if needed)
    ...

Sublist editor ids are derived from the parent's editor id and the depth,
``Mir_{editor_id}Sublist{depth}`` by default.
"""

import logging
import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from leveledresolver.config import MAX_LEVELED_ENTRIES
from leveledresolver.records import EntityKey, LeveledEntry, LeveledItemFlag, RecordVersion, SourceId

logger = logging.getLogger(__name__)

DEFAULT_SUBLIST_NAME_FORMAT = "Mir_{editor_id}Sublist{depth}"


class KeyAllocator:
    """
    Hands out EntityKeys for records created in the patch plugin.

    Keys are assigned per (parent record, depth), so the same sublist slot of
    the same leveled item always gets the same key, and two leveled items never
    share one even when their editor ids collide. Safe to share between worker
    threads.
    """

    # One allocator per sink for callers that do not bring their own
    _shared: Dict[SourceId, "KeyAllocator"] = {}
    _shared_lock = threading.Lock()

    def __init__(self, sink: SourceId, first_form_id: int = 0x800):
        self.sink = sink
        self._next_id = first_form_id
        self._assigned: Dict[Tuple[EntityKey, int], EntityKey] = {}
        self._lock = threading.Lock()

    @classmethod
    def for_sink(cls, sink: SourceId) -> "KeyAllocator":
        """The process-wide allocator for ``sink``, created on first use."""
        with cls._shared_lock:
            allocator = cls._shared.get(sink)
            if allocator is None:
                allocator = cls._shared[sink] = cls(sink)
            return allocator

    def allocate(self, parent: EntityKey, depth: int) -> EntityKey:
        """Key for sublist ``depth`` of the leveled item ``parent``."""
        slot = (parent, depth)
        with self._lock:
            key = self._assigned.get(slot)
            if key is None:
                key = EntityKey(self.sink, self._next_id)
                self._next_id += 1
                self._assigned[slot] = key
            return key

    @property
    def allocated(self) -> int:
        return len(self._assigned)


@dataclass(frozen=True)
class SplitResult:
    """A record whose entries fit the cap, plus the sublists it now links to."""
    record: RecordVersion
    sublists: Tuple[RecordVersion, ...] = ()

    @property
    def was_split(self) -> bool:
        return bool(self.sublists)


class SublistSplitter:
    """
    Splits records whose entry list exceeds ``max_entries``.

    Usage:
        splitter = SublistSplitter(KeyAllocator(SourceId("Patch.esp")))
        result = splitter.split(merged_record)
    """

    def __init__(
        self,
        allocator: KeyAllocator,
        max_entries: int = MAX_LEVELED_ENTRIES,
        name_format: str = DEFAULT_SUBLIST_NAME_FORMAT,
        entry_level: int = 1,
        entry_count: int = 1,
    ):
        if max_entries < 2:
            raise ValueError("max_entries must leave room for a sublist reference")
        self.allocator = allocator
        self.max_entries = max_entries
        self.name_format = name_format
        self.entry_level = entry_level
        self.entry_count = entry_count

    def sublist_name(self, editor_id: str, depth: int) -> str:
        return self.name_format.format(editor_id=editor_id, depth=depth)

    def split(self, record: RecordVersion, editor_id: Optional[str] = None) -> SplitResult:
        """
        Split ``record`` until every list fits.

        Args:
            record: Merged record, possibly oversized
            editor_id: Name sublists are derived from (defaults to the record's)
        """
        root_name = editor_id or record.editor_id or str(record.entity_key)
        sublists: List[RecordVersion] = []
        head = self._split(record, record.entity_key, root_name, 0, sublists)
        if sublists:
            logger.info(
                f"{root_name} had {len(record.entry_list)} entries, "
                f"split into {len(sublists)} sublist(s)"
            )
        return SplitResult(record=head, sublists=tuple(sublists))

    def _split(
        self,
        record: RecordVersion,
        root_key: EntityKey,
        root_name: str,
        depth: int,
        sublists: List[RecordVersion],
    ) -> RecordVersion:
        entries = record.entry_list
        if len(entries) <= self.max_entries:
            return record

        keep = entries[:self.max_entries - 1]
        excess = entries[self.max_entries - 1:]

        name = self.sublist_name(root_name, depth)
        sublist = RecordVersion(
            entity_key=self.allocator.allocate(root_key, depth),
            source=self.allocator.sink,
            editor_id=name,
            chance_none=0,
            flags=LeveledItemFlag(record.flags),
            entries=tuple(excess),
        )
        # Slot reserved before recursing so sublists come out in chain order
        slot = len(sublists)
        sublists.append(sublist)
        sublists[slot] = self._split(sublist, root_key, root_name, depth + 1, sublists)

        reference = LeveledEntry(level=self.entry_level, count=self.entry_count, reference=sublist.entity_key)
        return replace(record, entries=tuple(keep) + (reference,))
