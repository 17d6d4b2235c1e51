"""
leveledresolver - Leveled List Conflict Resolver

Merges the leveled item lists of every plugin in a load order into one patch,
keeping each plugin's additions and removals instead of letting the last
plugin win.
"""

__version__ = "0.1.0"
__author__ = "leveledresolver contributors"

from leveledresolver.records import (
    NULL_SOURCE,
    EntityKey,
    LeveledEntry,
    LeveledItemFlag,
    RecordVersion,
    SourceId,
)
from leveledresolver.errors import InvariantViolationError, RecordNotFoundError, ResolverError
from leveledresolver.sources import InMemoryLoadOrder, InMemoryRecordIndex, LoadOrder, RecordIndex
from leveledresolver.config import ResolverConfig, get_config
from leveledresolver.resolver import LeveledItemGraph, MergedRecord
from leveledresolver.patcher import LeveledListPatcher
from leveledresolver.report import PatchReport
