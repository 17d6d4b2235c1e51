"""
Entry List Merge

Merges the entry lists of the extent versions (ENTRY_UNION policy):

- added: entries some extent introduced on top of the base, first-seen order,
  never collected twice
- retained: base entries that every extent still carries, base order

Result is added ++ retained, minus entries pointing at nothing or at an
empty leveled list. Entries are compared by value and with multiplicity, so
an entry repeated to weight a list keeps its repeats.
"""

import logging
from collections import Counter
from typing import Callable, List, Optional, Sequence

from leveledresolver.records import EntityKey, LeveledEntry, RecordVersion, is_null_or_empty_sublist

logger = logging.getLogger(__name__)

SublistLookup = Callable[[EntityKey], Optional[RecordVersion]]


def multiset_difference(items: Sequence[LeveledEntry], *others: Sequence[LeveledEntry]) -> List[LeveledEntry]:
    """Items in order, each occurrence cancelled by one matching occurrence in ``others``."""
    budget = Counter()
    for other in others:
        budget.update(other)
    result = []
    for item in items:
        if budget[item] > 0:
            budget[item] -= 1
        else:
            result.append(item)
    return result


def multiset_intersection(items: Sequence[LeveledEntry], other: Sequence[LeveledEntry]) -> List[LeveledEntry]:
    """Items in order, kept only while ``other`` still has a matching occurrence."""
    budget = Counter(other)
    result = []
    for item in items:
        if budget[item] > 0:
            budget[item] -= 1
            result.append(item)
    return result


class EntryListMerger:
    """
    Merges entry lists across extent versions.

    Args:
        base: The origin version of the record
        extents: Extent versions in priority order
        lookup: Resolves a reference to the winning leveled list version,
                None for references that are not leveled lists
    """

    def __init__(self, base: RecordVersion, extents: Sequence[RecordVersion], lookup: Optional[SublistLookup] = None):
        self.base = base
        self.extents = list(extents)
        self.lookup = lookup if lookup is not None else (lambda key: None)

    def added(self) -> List[LeveledEntry]:
        collected: List[LeveledEntry] = []
        base_entries = self.base.entry_list
        for version in self.extents:
            collected.extend(multiset_difference(version.entry_list, base_entries, collected))
        return collected

    def retained(self) -> List[LeveledEntry]:
        retained = list(self.base.entry_list)
        for version in self.extents:
            retained = multiset_intersection(retained, version.entry_list)
        return retained

    def merge(self) -> List[LeveledEntry]:
        if len(self.extents) == 1:
            return list(self.extents[0].entry_list)

        merged = self.added() + self.retained()
        kept = [entry for entry in merged if not is_null_or_empty_sublist(entry, self.lookup)]
        if len(kept) != len(merged):
            logger.debug(f"Dropped {len(merged) - len(kept)} empty sublist entries from {self.base!r}")
        return kept
