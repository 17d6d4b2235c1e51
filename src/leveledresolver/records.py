"""
Record Data Model

Immutable views of leveled item records as authored by individual sources.

A leveled list is identified across sources by its EntityKey. Every source
that touches the list contributes one RecordVersion; the resolver never
mutates these, it only derives new ones.
"""

from dataclasses import dataclass, field, replace
from enum import IntFlag
from typing import Any, Dict, Iterable, Optional, Tuple


# =============================================================================
# IDENTITIES
# =============================================================================

@dataclass(frozen=True)
class SourceId:
    """
    Identifier of a data source (a plugin file like ``Skyrim.esm``).

    Plugin names are case-insensitive, so equality and hashing use the
    lowercased name while ``name`` keeps the original spelling for display.
    """
    name: str = field(compare=False)
    _key: str = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "_key", self.name.lower())

    @property
    def is_null(self) -> bool:
        return self._key == ""

    def __str__(self) -> str:
        return self.name if self.name else "Null"


# Synthetic root of every dependency graph
NULL_SOURCE = SourceId("")


@dataclass(frozen=True)
class EntityKey:
    """Stable cross-source identity of a record: (origin source, local id)."""
    origin: SourceId
    local_id: int

    @property
    def is_null(self) -> bool:
        return self.origin.is_null and self.local_id == 0

    def __str__(self) -> str:
        if self.is_null:
            return "Null"
        return f"{self.local_id:06X}:{self.origin}"


EntityKey.NULL = EntityKey(NULL_SOURCE, 0)


# =============================================================================
# RECORD CONTENT
# =============================================================================

class LeveledItemFlag(IntFlag):
    """Bit flags stored on a leveled item record."""
    NONE = 0
    CALCULATE_FROM_ALL_LEVELS_LE_PC_LEVEL = 1
    CALCULATE_FOR_EACH_ITEM_IN_COUNT = 2
    USE_ALL = 4
    SPECIAL_LOOT = 8


@dataclass(frozen=True)
class LeveledEntry:
    """
    One stackable entry of a leveled list.

    Entries are values: two entries with the same level, count and
    reference are interchangeable, which is what the entry merge relies on.
    """
    level: int
    count: int
    reference: EntityKey = EntityKey.NULL

    def __str__(self) -> str:
        return f"{self.reference} (lvl {self.level} x{self.count})"


@dataclass(frozen=True)
class RecordVersion:
    """A leveled item record as authored by one source."""
    entity_key: EntityKey
    source: SourceId
    editor_id: Optional[str] = None
    chance_none: int = 0
    global_link: EntityKey = EntityKey.NULL
    flags: LeveledItemFlag = LeveledItemFlag.NONE
    entries: Optional[Tuple[LeveledEntry, ...]] = None

    def __post_init__(self):
        if not 0 <= self.chance_none <= 255:
            raise ValueError(f"chance_none must fit in a byte, got {self.chance_none}")
        if self.global_link is None:
            object.__setattr__(self, "global_link", EntityKey.NULL)
        if self.entries is not None and not isinstance(self.entries, tuple):
            object.__setattr__(self, "entries", tuple(self.entries))

    @property
    def entry_list(self) -> Tuple[LeveledEntry, ...]:
        """Entries, or an empty tuple when the record has none."""
        return self.entries if self.entries is not None else ()

    def with_entries(self, entries: Iterable[LeveledEntry]) -> "RecordVersion":
        return replace(self, entries=tuple(entries))

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view for reports."""
        return {
            "entity_key": str(self.entity_key),
            "source": str(self.source),
            "editor_id": self.editor_id,
            "chance_none": self.chance_none,
            "global": None if self.global_link.is_null else str(self.global_link),
            "flags": int(self.flags),
            "entries": [
                {"level": e.level, "count": e.count, "reference": str(e.reference)}
                for e in self.entry_list
            ],
        }

    def __repr__(self):
        return f"RecordVersion({self.editor_id or self.entity_key} from {self.source})"


def is_null_or_empty_sublist(entry: LeveledEntry, lookup) -> bool:
    """
    True if the entry points nowhere or at a leveled list with no entries.

    Args:
        entry: The entry to check
        lookup: Callable mapping an EntityKey to the winning RecordVersion
                of that leveled list, or None if the key is not a leveled list

    Entries referencing anything other than a leveled list are kept.
    """
    if entry.reference.is_null:
        return True
    sublist = lookup(entry.reference)
    if sublist is None:
        return False
    return not sublist.entry_list
