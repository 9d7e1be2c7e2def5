"""Tests for layout.crossings: tournament resolution and crossing counting."""

from __future__ import annotations

import itertools

import networkx as nx
import pytest

from clusterlayout.layout.crossings import count_crossings, resolve_tournament
from clusterlayout.layout.types import Crossings

# ─── Helpers ──────────────────────────────────────────────────────────────────


def edge_matrix(n: int, costs: dict[tuple[int, int], int]) -> list[list[Crossings]]:
    """n x n matrix of edge-only crossing counts; missing entries are zero."""
    return [[Crossings(0, costs.get((j, k), 0)) for k in range(n)] for j in range(n)]


def order_cost(matrix: list[list[Crossings]], order: list[int]) -> Crossings:
    total = Crossings()
    for a, b in itertools.combinations(order, 2):
        total += matrix[a][b]
    return total


# ─── Crossings Value Tests ────────────────────────────────────────────────────


class TestCrossingsValue:
    def test_cluster_component_dominates(self):
        assert Crossings(0, 1000) < Crossings(1, 0)

    def test_arithmetic(self):
        assert Crossings(1, 2) + Crossings(3, 4) == Crossings(4, 6)
        assert Crossings(3, 4) - Crossings(1, 2) == Crossings(2, 2)

    def test_zero(self):
        assert Crossings().is_zero()
        assert not Crossings(0, 1).is_zero()

    def test_infinity_exceeds_everything_finite(self):
        assert Crossings(10**9, 10**9) < Crossings.infinity()

    def test_str(self):
        assert str(Crossings(2, 5)) == "(2,5)"


# ─── Tournament Tests ─────────────────────────────────────────────────────────


class TestResolveTournament:
    def test_empty(self):
        assert resolve_tournament([]) == ([], Crossings())

    def test_single(self):
        assert resolve_tournament([[Crossings()]]) == ([0], Crossings())

    def test_prefers_cheaper_direction(self):
        matrix = edge_matrix(2, {(0, 1): 4, (1, 0): 1})
        order, total = resolve_tournament(matrix)
        assert order == [1, 0]
        assert total == Crossings(0, 1)

    def test_cyclic_preferences(self):
        """0<1, 1<2 and 2<0 are all preferred; the order has to give one up."""
        matrix = edge_matrix(3, {(1, 0): 5, (2, 1): 3, (0, 2): 1})
        order, total = resolve_tournament(matrix)
        assert order == [1, 2, 0]
        assert total == Crossings(0, 5)

    def test_total_matches_returned_order(self):
        matrix = edge_matrix(4, {(0, 1): 2, (1, 0): 1, (2, 3): 7, (3, 0): 4, (0, 3): 1, (2, 1): 3})
        order, total = resolve_tournament(matrix)
        assert sorted(order) == [0, 1, 2, 3]
        assert total == order_cost(matrix, order)

    def test_constraint_overrides_preference(self):
        matrix = edge_matrix(2, {(0, 1): 3})
        order, total = resolve_tournament(matrix, constraints=[0, 1])
        assert order == [0, 1]
        assert total == Crossings(0, 3)

    def test_constraint_chain_respected(self):
        matrix = edge_matrix(4, {(0, 3): 9, (1, 2): 9, (0, 1): 9})
        order, _ = resolve_tournament(matrix, constraints=[0, 1, 2, 3])
        assert order == [0, 1, 2, 3]

    def test_contradictory_constraints_raise(self):
        matrix = edge_matrix(2, {})
        with pytest.raises(ValueError):
            resolve_tournament(matrix, constraints=[0, 1, 0])

    def test_cluster_crossings_dominate(self):
        """One boundary crossing costs more than five edge crossings."""
        matrix = [[Crossings(), Crossings(1, 0)], [Crossings(0, 5), Crossings()]]
        order, total = resolve_tournament(matrix)
        assert order == [1, 0]
        assert total == Crossings(0, 5)

    def test_tie_keeps_index_order(self):
        matrix = edge_matrix(2, {(0, 1): 2, (1, 0): 2})
        order, total = resolve_tournament(matrix)
        assert order == [0, 1]
        assert total == Crossings(0, 2)


# ─── count_crossings Tests ────────────────────────────────────────────────────


class TestCountCrossings:
    def test_no_crossings(self):
        g = nx.DiGraph([("a", "c"), ("b", "d")])
        assert count_crossings([["a", "b"], ["c", "d"]], g) == 0

    def test_single_crossing(self):
        g = nx.DiGraph([("a", "d"), ("b", "c")])
        assert count_crossings([["a", "b"], ["c", "d"]], g) == 1

    def test_complete_bipartite(self):
        g = nx.DiGraph([("a", "c"), ("a", "d"), ("b", "c"), ("b", "d")])
        assert count_crossings([["a", "b"], ["c", "d"]], g) == 1

    def test_parallel_edges_counted(self):
        g = nx.MultiDiGraph([("a", "d"), ("a", "d"), ("b", "c")])
        assert count_crossings([["a", "b"], ["c", "d"]], g) == 2

    def test_only_consecutive_layers(self):
        g = nx.DiGraph([("a", "f"), ("b", "e")])
        assert count_crossings([["a", "b"], ["x"], ["e", "f"]], g) == 0

    def test_unknown_nodes_ignored(self):
        g = nx.DiGraph([("a", "b")])
        assert count_crossings([["a", "zz"], ["b", "yy"]], g) == 0
