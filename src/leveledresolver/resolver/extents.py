"""
Extent Version Selection

An extent version is a record version that no other active plugin
overrides, apart from the patch being built. Only extent versions take part
in the merge; everything upstream of them is already folded into them.
"""

import logging
from typing import List, Optional, Sequence

from leveledresolver.errors import InvariantViolationError
from leveledresolver.records import RecordVersion, SourceId
from leveledresolver.resolver.paths import PathFinder, format_path
from leveledresolver.resolver.source_graph import SourceGraph

logger = logging.getLogger(__name__)


class ExtentSelector:
    """Picks the versions still in effect from a reduced SourceGraph."""

    def __init__(self, graph: SourceGraph, sink: Optional[SourceId] = None):
        self.graph = graph
        self.sink = sink
        self._paths = PathFinder(graph)

    def is_extent(self, source: SourceId) -> bool:
        """
        True if nothing overrides ``source`` except possibly the sink.

        A version only overridden by the sink is still the effective
        upstream state: the sink has not introduced a conflicting edit.
        """
        dependents = self.graph.dependents(source)
        if not dependents:
            return True
        return self.sink is not None and dependents == (self.sink,)

    def select(self, versions: Sequence[RecordVersion]) -> List[RecordVersion]:
        """
        Extent versions in the priority order of ``versions``.

        Raises:
            InvariantViolationError: if no version qualifies, which a valid
                acyclic graph cannot produce
        """
        extents = [v for v in versions if v.source in self.graph and self.is_extent(v.source)]
        if not extents:
            raise InvariantViolationError(f"No extent version among {len(versions)} versions")

        if logger.isEnabledFor(logging.DEBUG):
            for version in extents:
                for path in self._paths.traverse(version.source):
                    logger.debug(f"Extent {version.source}: {format_path(path)}")

        return extents
