"""
Tests for dependency graph construction and transitive reduction.
"""

import random

import pytest

from leveledresolver.errors import InvariantViolationError
from leveledresolver.records import NULL_SOURCE, SourceId
from leveledresolver.resolver.source_graph import SourceGraph

from conftest import MOD_A, MOD_B, MOD_C, PATCH, SKYRIM, make_load_order


def reachable(graph: SourceGraph, start: SourceId) -> set:
    """Every node reachable from start through one or more edges."""
    seen = set()
    stack = list(graph.dependents(start))
    while stack:
        node = stack.pop()
        if node not in seen:
            seen.add(node)
            stack.extend(graph.dependents(node))
    return seen


class TestGraphConstruction:
    """Test edges built from master declarations."""

    def test_single_source_hangs_off_null(self):
        """A lone origin plugin depends on the synthetic root."""
        graph = SourceGraph.build([SKYRIM], make_load_order((SKYRIM, [])))
        assert graph.dependents(NULL_SOURCE) == (SKYRIM,)
        assert graph.dependents(SKYRIM) == ()
        assert graph.nodes == (NULL_SOURCE, SKYRIM)

    def test_chain(self, linear_load_order):
        """Each plugin depends on the plugin directly below it."""
        graph = SourceGraph.build([SKYRIM, MOD_A, MOD_B], linear_load_order)
        assert graph.dependents(NULL_SOURCE) == (SKYRIM,)
        assert graph.dependents(SKYRIM) == (MOD_A,)
        assert graph.dependents(MOD_A) == (MOD_B,)
        assert graph.dependents(MOD_B) == ()

    def test_masters_outside_record_are_ignored(self, linear_load_order):
        """Masters that do not touch the record contribute no edges."""
        graph = SourceGraph.build([SKYRIM, MOD_B], linear_load_order)
        assert graph.dependents(SKYRIM) == (MOD_B,)
        assert MOD_A not in graph

    def test_no_master_in_record_depends_on_null(self):
        """A plugin whose masters all skip the record depends on NULL."""
        load_order = make_load_order((SKYRIM, []), (MOD_A, [SKYRIM]), (MOD_B, [MOD_A]))
        graph = SourceGraph.build([SKYRIM, MOD_B], load_order)
        assert graph.dependents(NULL_SOURCE) == (SKYRIM, MOD_B)

    def test_inactive_source_is_masterless(self):
        """A source missing from the load order is treated as masterless."""
        graph = SourceGraph.build([SKYRIM, MOD_C], make_load_order((SKYRIM, [])))
        assert set(graph.dependents(NULL_SOURCE)) == {SKYRIM, MOD_C}

    def test_duplicate_sources_collapse(self, linear_load_order):
        """Repeated sources produce one node."""
        graph = SourceGraph.build([SKYRIM, SKYRIM, MOD_A], linear_load_order)
        assert graph.sources == (SKYRIM, MOD_A)

    def test_source_names_are_case_insensitive(self):
        """Plugin names compare case-insensitively like the game does."""
        load_order = make_load_order((SKYRIM, []), (MOD_A, [SourceId("SKYRIM.ESM")]))
        graph = SourceGraph.build([SKYRIM, MOD_A], load_order)
        assert graph.dependents(SKYRIM) == (MOD_A,)

    def test_adjacency_is_read_only(self, linear_load_order):
        """The published mapping cannot be modified."""
        graph = SourceGraph.build([SKYRIM, MOD_A], linear_load_order)
        with pytest.raises(TypeError):
            graph.adjacency[MOD_A] = ()


class TestTransitiveReduction:
    """Test removal of edges implied by other edges."""

    def test_direct_and_indirect_master(self, linear_load_order):
        """ModB declares Skyrim and ModA; the Skyrim -> ModB edge is implied."""
        graph = SourceGraph.build([SKYRIM, MOD_A, MOD_B], linear_load_order)
        assert MOD_B not in graph.dependents(SKYRIM)

    def test_diamond_keeps_both_branches(self, diamond_load_order):
        """Both branches of a diamond survive; only the shortcut is removed."""
        graph = SourceGraph.build([SKYRIM, MOD_A, MOD_B, MOD_C], diamond_load_order)
        assert graph.dependents(SKYRIM) == (MOD_A, MOD_B)
        assert graph.dependents(MOD_A) == (MOD_C,)
        assert graph.dependents(MOD_B) == (MOD_C,)

    def test_long_shortcut_removed(self):
        """An edge implied by a path of length three is removed too."""
        mods = [SourceId(f"Mod{i}.esp") for i in range(4)]
        load_order = make_load_order(
            (mods[0], []),
            (mods[1], [mods[0]]),
            (mods[2], [mods[1]]),
            (mods[3], [mods[0], mods[2]]),
        )
        graph = SourceGraph.build(mods, load_order)
        assert graph.dependents(mods[0]) == (mods[1],)
        assert graph.dependents(mods[2]) == (mods[3],)

    def test_generated_graphs_are_reduced_and_acyclic(self):
        """No stored edge is derivable from other edges, and nothing loops."""
        rng = random.Random(1234)
        for _ in range(25):
            mods = [SourceId(f"Plugin{i:02d}.esp") for i in range(10)]
            plugins = []
            for i, mod in enumerate(mods):
                masters = [m for m in mods[:i] if rng.random() < 0.4]
                plugins.append((mod, masters))
            touching = [m for m in mods if rng.random() < 0.8] or mods[:1]

            graph = SourceGraph.build(touching, make_load_order(*plugins))

            for master, dependent in graph.edges():
                assert master not in reachable(graph, master)
                others = [d for d in graph.dependents(master) if d != dependent]
                assert all(dependent not in reachable(graph, o) for o in others)
            assert NULL_SOURCE not in reachable(graph, NULL_SOURCE)


class TestCycles:
    """Test rejection of cyclic master declarations."""

    def test_two_plugin_cycle(self):
        """Mutually dependent plugins fail instead of looping."""
        load_order = make_load_order((MOD_A, [MOD_B]), (MOD_B, [MOD_A]))
        with pytest.raises(InvariantViolationError) as exc:
            SourceGraph.build([MOD_A, MOD_B], load_order)
        assert set(exc.value.cycle) == {MOD_A, MOD_B}
        assert exc.value.cycle[0] == exc.value.cycle[-1]

    def test_self_master(self):
        """A plugin listing itself as master is a cycle."""
        load_order = make_load_order((SKYRIM, []), (MOD_A, [MOD_A]))
        with pytest.raises(InvariantViolationError):
            SourceGraph.build([SKYRIM, MOD_A], load_order)

    def test_cycle_outside_record_is_harmless(self):
        """Cycles among plugins that skip the record do not matter."""
        load_order = make_load_order(
            (SKYRIM, []), (MOD_A, [MOD_B]), (MOD_B, [MOD_A]), (PATCH, [SKYRIM])
        )
        graph = SourceGraph.build([SKYRIM, PATCH], load_order)
        assert graph.dependents(SKYRIM) == (PATCH,)
