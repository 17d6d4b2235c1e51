"""
leveledresolver.resolver - Leveled List Conflict Resolution

Builds the dependency graph of the plugins touching a leveled item, picks the
versions still in effect and merges them field by field.

Pipeline:
- SourceGraph: master -> dependent graph, transitively reduced
- ExtentSelector: versions nothing overrides (except the patch itself)
- FieldMerger / EntryListMerger: per-field merge policies
- SublistSplitter: keeps merged lists within the 255-entry cap
- LeveledItemGraph: ties the above together for one record
"""

from leveledresolver.resolver.policies import (
    MergePolicy,
    FieldPolicyConfig,
    FIELD_POLICIES,
    get_field_policy,
)
from leveledresolver.resolver.source_graph import SourceGraph
from leveledresolver.resolver.paths import PathFinder, SourcePath, format_path
from leveledresolver.resolver.extents import ExtentSelector
from leveledresolver.resolver.fields import FieldMerger, last_dissenting
from leveledresolver.resolver.entries import EntryListMerger
from leveledresolver.resolver.sublists import (
    KeyAllocator,
    SplitResult,
    SublistSplitter,
    DEFAULT_SUBLIST_NAME_FORMAT,
)
from leveledresolver.resolver.graph import LeveledItemGraph, MergedRecord

__all__ = [
    # Policies
    "MergePolicy",
    "FieldPolicyConfig",
    "FIELD_POLICIES",
    "get_field_policy",
    # Graph
    "SourceGraph",
    "PathFinder",
    "SourcePath",
    "format_path",
    "ExtentSelector",
    # Merging
    "FieldMerger",
    "last_dissenting",
    "EntryListMerger",
    "KeyAllocator",
    "SplitResult",
    "SublistSplitter",
    "DEFAULT_SUBLIST_NAME_FORMAT",
    # Per-record facade
    "LeveledItemGraph",
    "MergedRecord",
]
