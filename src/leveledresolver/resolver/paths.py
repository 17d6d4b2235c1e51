"""
Dependency Path Enumeration

Lists every path through a SourceGraph from a starting plugin down to the
plugins nothing depends on. Used for audit traces and for explaining why a
version is, or is not, part of the merge.
"""

from typing import Callable, Iterable, List, Optional, Tuple

from leveledresolver.records import NULL_SOURCE, SourceId
from leveledresolver.resolver.source_graph import SourceGraph

SourcePath = Tuple[SourceId, ...]
PathObserver = Callable[[SourcePath], None]


def format_path(path: Iterable[SourceId]) -> str:
    """Render a path as ``Skyrim.esm -> ModA.esp -> ModB.esp``."""
    return " -> ".join(str(source) for source in path)


class PathFinder:
    """
    Depth-first path enumeration over a SourceGraph.

    Stateless between calls: every traverse() walks the graph again.
    """

    def __init__(self, graph: SourceGraph):
        self.graph = graph

    def traverse(self, start: SourceId = NULL_SOURCE, observer: Optional[PathObserver] = None) -> List[SourcePath]:
        """
        Enumerate all paths from ``start`` to every zero out-degree node.

        Args:
            start: Node to start from (the synthetic root by default)
            observer: Optional callback invoked with each path as it is found

        Returns:
            Paths in depth-first order, dependents visited in graph order.
            A leaf ``start`` yields the single-element path; an unknown
            ``start`` yields no paths.
        """
        if start not in self.graph:
            return []

        paths: List[SourcePath] = []
        stack: List[SourcePath] = [(start,)]
        while stack:
            path = stack.pop()
            children = self.graph.dependents(path[-1])
            if not children:
                paths.append(path)
                if observer is not None:
                    observer(path)
                continue
            # Reversed so the first dependent is explored first
            for child in reversed(children):
                stack.append(path + (child,))

        return paths

    def trace_lines(self, start: SourceId = NULL_SOURCE) -> List[str]:
        """Human-readable ``Found Path:`` lines for every path from ``start``."""
        return [f"Found Path: {format_path(path)}" for path in self.traverse(start)]
