"""Tests for layout.cleanup: vertical flags and removal of boundary dummies."""

from __future__ import annotations

import random

from clusterlayout.config import LayoutConfig
from clusterlayout.ir.cluster_graph import ClusterGraph
from clusterlayout.layout.cleanup import compute_vertical, remove_top_bottom_edges
from clusterlayout.layout.crossings import reduce_crossings
from clusterlayout.layout.sugiyama import ClusterSugiyamaLayout
from clusterlayout.types import NodeType

# ─── Helpers ──────────────────────────────────────────────────────────────────


def reduced(cg: ClusterGraph):
    """Run everything up to, but not including, cleanup."""
    eng, layers = ClusterSugiyamaLayout(LayoutConfig()).prepare(cg)
    reduce_crossings(layers, eng.pos, rng=random.Random(0), visited=eng.scratch.visited)
    return eng, layers


def snapshot(eng, layers):
    return (
        dict(eng.vertical or {}),
        [layer.leaves() for layer in layers],
        dict(eng.pos),
        sorted(eng.graph.nodes),
        dict(eng.span_edge),
    )


def sibling_clusters() -> ClusterGraph:
    cg = ClusterGraph()
    c1 = cg.add_cluster("C1")
    c2 = cg.add_cluster("C2")
    cg.add_node("a", cluster=c1)
    cg.add_node("b", cluster=c2)
    cg.add_edge("a", "b")
    return cg


def bypass_graph() -> ClusterGraph:
    cg = ClusterGraph()
    c = cg.add_cluster("C")
    cg.add_node("p")
    cg.add_node("q")
    cg.add_node("m", cluster=c)
    cg.add_edge("p", "m")
    cg.add_edge("m", "q")
    cg.add_edge("p", "q")
    return cg


# ─── Vertical Flag Tests ──────────────────────────────────────────────────────


class TestComputeVertical:
    def test_sibling_boundary_segment_vertical(self):
        """d1 sits on bottom(C1)'s layer, d2 on top(C2)'s: the segment between them is vertical."""
        eng, _ = reduced(sibling_clusters())
        vertical = compute_vertical(eng)
        assert [vertical[eid] for eid in eng.chains[0]] == [False, True, False]

    def test_same_cluster_dummies_vertical(self):
        eng, _ = reduced(bypass_graph())
        vertical = compute_vertical(eng)
        i = [(s, t) for s, t, _ in eng.orig_edges].index(("p", "q"))
        assert [vertical[eid] for eid in eng.chains[i]] == [False, True, True, False]

    def test_only_adjacency_segments_flagged(self):
        eng, _ = reduced(bypass_graph())
        vertical = compute_vertical(eng)
        assert set(vertical) == {eid for eid, orig in eng.orig_edge.items() if orig is not None}


# ─── Removal Tests ────────────────────────────────────────────────────────────


class TestRemoveTopBottomEdges:
    def test_boundary_dummies_removed(self):
        eng, layers = reduced(sibling_clusters())
        remove_top_bottom_edges(eng, layers)
        assert NodeType.ClusterTopBottom not in set(eng.node_type.values())
        assert eng.span_edge == {}
        for layer in layers:
            assert all(v in eng.graph for v in layer.leaves())

    def test_markers_kept(self):
        eng, layers = reduced(sibling_clusters())
        remove_top_bottom_edges(eng, layers)
        for c in (1, 2):
            assert eng.top[c] in eng.graph
            assert eng.bottom[c] in eng.graph

    def test_positions_dense(self):
        eng, layers = reduced(bypass_graph())
        remove_top_bottom_edges(eng, layers)
        for layer in layers:
            leaves = layer.leaves()
            assert [eng.pos[v] for v in leaves] == list(range(len(leaves)))

    def test_vertical_stored(self):
        eng, layers = reduced(sibling_clusters())
        assert eng.vertical is None
        remove_top_bottom_edges(eng, layers)
        assert eng.vertical is not None
        assert eng.vertical[eng.chains[0][1]] is True

    def test_second_call_changes_nothing(self):
        eng, layers = reduced(bypass_graph())
        remove_top_bottom_edges(eng, layers)
        before = snapshot(eng, layers)
        remove_top_bottom_edges(eng, layers)
        assert snapshot(eng, layers) == before
