"""Tests for layout.acyclic (LevelMap) and layout.scratch (MarkBuffer)."""

from __future__ import annotations

import networkx as nx
import pytest

from clusterlayout.layout.acyclic import LevelMap
from clusterlayout.layout.scratch import MarkBuffer, ScratchPool

# ─── Helpers ──────────────────────────────────────────────────────────────────


def chain_map(*nodes: str) -> LevelMap:
    """LevelMap over a DiGraph holding the chain nodes[0] -> nodes[1] -> ..."""
    g: nx.DiGraph = nx.DiGraph()
    g.add_nodes_from(nodes)
    lm = LevelMap(g)
    for src, tgt in zip(nodes, nodes[1:]):
        assert lm.try_add(src, tgt)
    return lm


def assert_levels_consistent(lm: LevelMap) -> None:
    for src, tgt in lm.graph.edges():
        assert lm.level(src) < lm.level(tgt), f"level[{src}] >= level[{tgt}]"


# ─── MarkBuffer Tests ─────────────────────────────────────────────────────────


class TestMarkBuffer:
    def test_mark_and_get(self):
        marks = MarkBuffer()
        marks.mark("a", 3)
        assert "a" in marks
        assert marks.get("a") == 3
        assert marks.get("b") is None

    def test_default_mark_value(self):
        marks = MarkBuffer()
        marks.mark(7)
        assert marks.get(7) is True

    def test_clear_resets_only_touched(self):
        marks = MarkBuffer()
        marks.mark("a")
        marks.mark("b")
        marks.mark("a", "again")
        assert len(marks) == 2
        assert marks.touched() == ["a", "b"]
        marks.clear()
        assert len(marks) == 0
        assert "a" not in marks
        assert "b" not in marks

    def test_reusable_after_clear(self):
        marks = MarkBuffer()
        marks.mark("x", 1)
        marks.clear()
        marks.mark("y", 2)
        assert marks.touched() == ["y"]
        assert marks.get("y") == 2

    def test_scratch_pool_buffers_are_independent(self):
        pool = ScratchPool()
        pool.cluster_marks.mark(1)
        assert 1 not in pool.tree_marks
        assert 1 not in pool.visited


# ─── LevelMap Tests ───────────────────────────────────────────────────────────


class TestTryAdd:
    def test_forward_edge_added(self):
        lm = LevelMap(nx.DiGraph(), {"a": 0, "b": 1})
        assert lm.try_add("a", "b")
        assert lm.graph.has_edge("a", "b")

    def test_chain_keeps_levels_consistent(self):
        lm = chain_map("a", "b", "c", "d")
        assert_levels_consistent(lm)
        assert lm.level("a") < lm.level("d")

    def test_cycle_rejected(self):
        """a -> b -> c; adding c -> a would close a cycle."""
        lm = chain_map("a", "b", "c")
        assert not lm.try_add("c", "a")
        assert not lm.graph.has_edge("c", "a")
        assert nx.is_directed_acyclic_graph(lm.graph)

    def test_two_cycle_rejected(self):
        lm = chain_map("a", "b")
        assert not lm.try_add("b", "a")

    def test_self_loop_rejected(self):
        lm = chain_map("a", "b")
        assert not lm.try_add("a", "a")
        assert lm.graph.number_of_edges() == 1

    def test_backward_edge_relevels_reachable_nodes(self):
        """z sits at a high level; z -> a must push a, b and c below it."""
        lm = chain_map("a", "b", "c")
        lm.graph.add_node("z")
        lm.levels["z"] = 10
        assert lm.try_add("z", "a")
        assert lm.level("a") > 10
        assert lm.level("b") > lm.level("a")
        assert lm.level("c") > lm.level("b")
        assert_levels_consistent(lm)

    def test_relevel_leaves_unrelated_nodes_alone(self):
        lm = chain_map("a", "b")
        lm.graph.add_edge("x", "y")
        lm.levels.update({"x": 0, "y": 1})
        lm.levels["z"] = 5
        lm.graph.add_node("z")
        assert lm.try_add("z", "a")
        assert lm.level("x") == 0
        assert lm.level("y") == 1

    def test_diamond_relevel(self):
        """Releveling must respect every predecessor inside the affected set."""
        g: nx.DiGraph = nx.DiGraph()
        g.add_nodes_from("abcde")
        lm = LevelMap(g)
        for src, tgt in [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"), ("c", "e")]:
            assert lm.try_add(src, tgt)
        g.add_node("s")
        lm.levels["s"] = 4
        assert lm.try_add("s", "a")
        assert_levels_consistent(lm)

    def test_multigraph_key_used(self):
        g: nx.MultiDiGraph = nx.MultiDiGraph()
        g.add_nodes_from("ab")
        lm = LevelMap(g)
        assert lm.try_add("a", "b", key=7)
        assert lm.try_add("a", "b", key=8)
        assert sorted(k for _, _, k in g.edges(keys=True)) == [7, 8]

    def test_visited_buffer_left_clean(self):
        visited = MarkBuffer()
        g: nx.DiGraph = nx.DiGraph()
        g.add_nodes_from("abc")
        lm = LevelMap(g, visited=visited)
        for src, tgt in [("a", "b"), ("b", "c")]:
            lm.try_add(src, tgt)
        lm.try_add("c", "a")
        assert len(visited) == 0


class TestTryInsert:
    def test_accepted_direction(self):
        lm = chain_map("a", "b", "c")
        assert lm.try_insert("a", "c") == ("a", "c")

    def test_reversed_when_cyclic(self):
        lm = chain_map("a", "b", "c")
        assert lm.try_insert("c", "a") == ("a", "c")
        assert lm.graph.has_edge("a", "c")
        assert nx.is_directed_acyclic_graph(lm.graph)
        assert_levels_consistent(lm)

    def test_self_loop_raises(self):
        lm = chain_map("a", "b")
        with pytest.raises(ValueError):
            lm.try_insert("a", "a")


class TestReaches:
    def test_reachable(self):
        lm = chain_map("a", "b", "c")
        found, affected = lm.reaches("a", "c")
        assert found
        assert affected == []

    def test_unreachable_reports_affected_set(self):
        lm = chain_map("a", "b", "c")
        found, affected = lm.reaches("b", "a")
        assert not found
        assert affected == ["b", "c"]

    def test_same_node_is_reachable(self):
        lm = chain_map("a")
        assert lm.reaches("a", "a")[0]
