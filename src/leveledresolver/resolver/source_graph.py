"""
Source Dependency Graph

Builds the master -> dependent graph over the plugins that touch one record.

Edges go from a master to every plugin that declares it as a master,
restricted to plugins that provide a version of the record. Plugins with no
such master hang off NULL_SOURCE. Edges implied by transitivity are removed,
so each dependency chain is represented exactly once.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Sequence, Set, Tuple

from leveledresolver.errors import InvariantViolationError
from leveledresolver.records import NULL_SOURCE, SourceId
from leveledresolver.sources import LoadOrder

logger = logging.getLogger(__name__)


class SourceGraph:
    """
    Immutable, transitively reduced dependency graph for one record.

    Usage:
        graph = SourceGraph.build([v.source for v in versions], load_order)
        graph.dependents(SourceId("Skyrim.esm"))
    """

    def __init__(self, sources: Sequence[SourceId], edges: Mapping[SourceId, Tuple[SourceId, ...]]):
        self._sources: Tuple[SourceId, ...] = tuple(sources)
        self._edges: Mapping[SourceId, Tuple[SourceId, ...]] = MappingProxyType(dict(edges))

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(cls, sources: Sequence[SourceId], load_order: LoadOrder) -> "SourceGraph":
        """
        Build the reduced graph for the plugins in ``sources``.

        Args:
            sources: Plugins providing a version of the record, priority order
            load_order: Active plugins and their declared masters

        Raises:
            InvariantViolationError: if the masters among ``sources`` form a cycle
        """
        source_set: List[SourceId] = []
        members: Set[SourceId] = set()
        for source in sources:
            if source not in members:
                members.add(source)
                source_set.append(source)

        adjacency: Dict[SourceId, List[SourceId]] = {NULL_SOURCE: []}
        for source in source_set:
            adjacency[source] = []

        active = [s for s in load_order.active_sources() if s in members]
        active_set = set(active)
        inactive = [s for s in source_set if s not in active_set]
        for source in inactive:
            logger.debug(f"{source} is not in the active load order, treating it as masterless")

        for source in active + inactive:
            declared = load_order.declared_masters(source) if source in active_set else []
            masters: List[SourceId] = []
            for master in declared:
                if master in members and master not in masters:
                    masters.append(master)
            if not masters:
                masters = [NULL_SOURCE]

            for master in masters:
                if source not in adjacency[master]:
                    adjacency[master].append(source)

        order = _topological_order(adjacency)
        reduced = _transitive_reduction(adjacency, order)

        for master, dependents in reduced.items():
            for dependent in dependents:
                logger.debug(f"Edge {master} -> {dependent}")

        return cls(source_set, {node: tuple(children) for node, children in reduced.items()})

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def sources(self) -> Tuple[SourceId, ...]:
        """Plugins providing the record, priority order, without NULL."""
        return self._sources

    @property
    def nodes(self) -> Tuple[SourceId, ...]:
        return tuple(self._edges.keys())

    @property
    def adjacency(self) -> Mapping[SourceId, Tuple[SourceId, ...]]:
        return self._edges

    def dependents(self, source: SourceId) -> Tuple[SourceId, ...]:
        """Direct dependents of a node, empty for unknown nodes."""
        return self._edges.get(source, ())

    def out_degree(self, source: SourceId) -> int:
        return len(self.dependents(source))

    def leaves(self) -> List[SourceId]:
        """Plugins nothing else in the graph depends on."""
        return [s for s in self._sources if not self._edges[s]]

    def edges(self) -> Iterator[Tuple[SourceId, SourceId]]:
        for master, dependents in self._edges.items():
            for dependent in dependents:
                yield master, dependent

    def __contains__(self, source) -> bool:
        return source in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def __repr__(self):
        edge_count = sum(len(d) for d in self._edges.values())
        return f"SourceGraph({len(self._sources)} sources, {edge_count} edges)"


# =============================================================================
# GRAPH ALGORITHMS
# =============================================================================

def _topological_order(adjacency: Dict[SourceId, List[SourceId]]) -> List[SourceId]:
    """Kahn's algorithm, stable with respect to insertion order."""
    in_degree: Dict[SourceId, int] = {node: 0 for node in adjacency}
    for children in adjacency.values():
        for child in children:
            in_degree[child] += 1

    ready = [node for node, degree in in_degree.items() if degree == 0]
    order: List[SourceId] = []
    while ready:
        node = ready.pop(0)
        order.append(node)
        for child in adjacency[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                ready.append(child)

    if len(order) != len(adjacency):
        remaining = {node for node, degree in in_degree.items() if degree > 0}
        raise InvariantViolationError("Master declarations form a cycle", _find_cycle(adjacency, remaining))

    return order


def _find_cycle(adjacency: Dict[SourceId, List[SourceId]], remaining: Set[SourceId]) -> List[SourceId]:
    """
    Extract one cycle from the nodes Kahn's algorithm could not order.

    Every such node has a predecessor that is also left over, so walking
    predecessors must eventually revisit a node.
    """
    predecessors: Dict[SourceId, List[SourceId]] = {node: [] for node in remaining}
    for node, children in adjacency.items():
        if node not in remaining:
            continue
        for child in children:
            if child in remaining:
                predecessors[child].append(node)

    node = next(n for n in adjacency if n in remaining)
    walk: List[SourceId] = []
    while node not in walk:
        walk.append(node)
        node = predecessors[node][0]

    cycle = walk[walk.index(node):]
    cycle.reverse()
    return cycle + [cycle[0]]


def _transitive_reduction(
    adjacency: Dict[SourceId, List[SourceId]],
    order: List[SourceId],
) -> Dict[SourceId, List[SourceId]]:
    """
    Drop every edge V -> D where D is also reachable through another
    dependent of V. Works on copies; ``adjacency`` is left untouched.
    """
    descendants: Dict[SourceId, Set[SourceId]] = {}
    for node in reversed(order):
        reachable: Set[SourceId] = set()
        for child in adjacency[node]:
            reachable.add(child)
            reachable |= descendants[child]
        descendants[node] = reachable

    reduced: Dict[SourceId, List[SourceId]] = {}
    for node in adjacency:
        children = adjacency[node]
        reduced[node] = [
            child for child in children
            if not any(child in descendants[other] for other in children if other != child)
        ]
        dropped = len(children) - len(reduced[node])
        if dropped:
            logger.debug(f"Removed {dropped} transitive edge(s) from {node}")

    return reduced
