"""Crossing reduction by sibling reordering in the layer hierarchy trees.

Each compound node reorders its children independently: pairwise crossing
counts between sibling subtrees form a weighted tournament, which is resolved
greedily into a total order. Layers are swept top-down and bottom-up until the
count stops improving, then all sibling orders are shuffled and the search
restarts. The best order seen is restored at the end.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Hashable, Sequence

import networkx as nx

from clusterlayout.layout.acyclic import LevelMap
from clusterlayout.layout.hierarchy import Adjacency, Layer, TreeNode, assign_positions
from clusterlayout.layout.scratch import MarkBuffer
from clusterlayout.layout.types import Crossings

logger = logging.getLogger(__name__)


# ─── Tournament resolution ───────────────────────────────────────────────────


def resolve_tournament(
    matrix: Sequence[Sequence[Crossings]],
    constraints: Sequence[int] = (),
    visited: MarkBuffer | None = None,
) -> tuple[list[int], Crossings]:
    """Turn pairwise placement costs into a total order of 0..n-1.

    `matrix[j][k]` is the cost of placing j left of k. `constraints` is a
    chain of indices that must appear in that relative order. Every pair is
    decided in its cheaper direction, smallest margin first, unless an earlier
    decision already implies the opposite; the cost of the direction actually
    taken is added to the returned total.
    """
    n = len(matrix)
    order_graph: nx.DiGraph = nx.DiGraph()
    order_graph.add_nodes_from(range(n))
    levels = LevelMap(order_graph, visited=visited)

    for src, tgt in zip(constraints, constraints[1:]):
        if not levels.try_add(src, tgt):
            raise ValueError(f"ordering constraints {list(constraints)} are not a chain of distinct indices")

    preferences: list[tuple[int, int, Crossings, Crossings]] = []
    for j in range(n):
        for k in range(j + 1, n):
            if matrix[j][k] <= matrix[k][j]:
                preferences.append((j, k, matrix[j][k], matrix[k][j]))
            else:
                preferences.append((k, j, matrix[k][j], matrix[j][k]))
    preferences.sort(key=lambda p: p[3] - p[2])

    total = Crossings()
    for src, tgt, cost, reverse_cost in preferences:
        if levels.try_insert(src, tgt) == (src, tgt):
            total += cost
        else:
            total += reverse_cost

    return list(nx.topological_sort(order_graph)), total


# ─── Per-node and per-layer reduction ────────────────────────────────────────


def crossing_matrix(node: TreeNode, top_down: bool, pos: dict[int, int]) -> list[list[Crossings]]:
    """Pairwise crossing counts between the children of `node` against the neighbouring layer."""
    n = len(node.children)
    edge_cn = [[0] * n for _ in range(n)]
    cluster_cn = [[0] * n for _ in range(n)]

    adj: list[list[Adjacency]] = [[] for _ in range(n)]
    for a in node.upper_adj if top_down else node.lower_adj:
        adj[a.child.pos].append(a)

    for j in range(n):
        for adj_j in adj[j]:
            pos_j = pos[adj_j.far]
            for k in range(j + 1, n):
                for adj_k in adj[k]:
                    pos_k = pos[adj_k.far]
                    weight = adj_j.weight * adj_k.weight
                    if pos_j > pos_k:
                        edge_cn[j][k] += weight
                    if pos_k > pos_j:
                        edge_cn[k][j] += weight

    for cc in node.upper_crossings if top_down else node.lower_crossings:
        j = cc.boundary_child.pos
        k = cc.edge_child.pos
        assert j != k
        if pos[cc.boundary_far] > pos[cc.edge_far]:
            cluster_cn[j][k] += 1
        else:
            cluster_cn[k][j] += 1

    return [[Crossings(cluster_cn[j][k], edge_cn[j][k]) for k in range(n)] for j in range(n)]


def reduce_tree_node(
    node: TreeNode,
    top_down: bool,
    pos: dict[int, int],
    visited: MarkBuffer | None = None,
) -> Crossings:
    """Reorder the children of one compound node; returns the crossings of the chosen order."""
    n = len(node.children)
    if n < 2:
        return Crossings()
    node.set_pos()
    matrix = crossing_matrix(node, top_down, pos)

    constraints: list[int] = []
    neighbour = node.up if top_down else node.down
    if neighbour is not None:
        for child in neighbour.children:
            mate = child.down if top_down else child.up
            if mate is not None:
                constraints.append(mate.pos)

    order, total = resolve_tournament(matrix, constraints, visited)
    node.children = [node.children[j] for j in order]
    return total


def reduce_layer(layer: Layer, top_down: bool, pos: dict[int, int], visited: MarkBuffer | None = None) -> Crossings:
    total = Crossings()
    stack = [layer.root]
    while stack:
        node = stack.pop()
        total += reduce_tree_node(node, top_down, pos, visited)
        stack.extend(child for child in node.children if child.is_compound())
    assign_positions(layer.root, pos)
    return total


def _sweep(layers: list[Layer], top_down: bool, pos: dict[int, int], visited: MarkBuffer | None) -> Crossings:
    total = Crossings()
    indices = range(1, len(layers)) if top_down else range(len(layers) - 2, -1, -1)
    for i in indices:
        total += reduce_layer(layers[i], top_down, pos, visited)
    return total


# ─── Sweep control ───────────────────────────────────────────────────────────


def reduce_crossings(
    layers: list[Layer],
    pos: dict[int, int],
    fails: int = 4,
    runs: int = 15,
    rng: random.Random | None = None,
    visited: MarkBuffer | None = None,
) -> tuple[Crossings, list[Crossings]]:
    """Alternate top-down and bottom-up sweeps with random restarts.

    A round ends after `fails` + 1 consecutive sweeps without improvement;
    at most `runs` rounds are made and the search stops early at zero
    crossings. Leaves the best order found in `layers` and `pos` and returns
    (best, history) where history lists every new best in order.
    """
    rng = rng if rng is not None else random.Random()
    best = Crossings.infinity()
    history: list[Crossings] = []

    round_no = 0
    while True:
        round_no += 1
        old = Crossings.infinity()
        n_fails = fails + 1
        while n_fails > 0 and not best.is_zero():
            for top_down in (True, False):
                new = _sweep(layers, top_down, pos, visited)
                if new < old:
                    if new < best:
                        for layer in layers:
                            layer.store()
                        best = new
                        history.append(new)
                        logger.debug(f"round {round_no}: crossings improved to {new}")
                        if best.is_zero():
                            break
                    old = new
                    n_fails = fails + 1
                else:
                    n_fails -= 1

        if best.is_zero() or round_no >= runs:
            break
        for layer in layers:
            layer.permute(rng)
        if layers:
            assign_positions(layers[0].root, pos)
        logger.debug(f"round {round_no}: restarting from a random permutation")

    for layer in layers:
        layer.restore()
        assign_positions(layer.root, pos)
    return best, history


# ─── Actual crossings of a final ordering ────────────────────────────────────


def count_crossings(ordering: list[list[Hashable]], graph: nx.DiGraph | nx.MultiDiGraph) -> int:
    """Count pairwise crossings of the edges between consecutive layers of `ordering`."""
    total = 0
    for l_idx in range(len(ordering) - 1):
        tgt_pos: dict[Hashable, int] = {nid: i for i, nid in enumerate(ordering[l_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[l_idx]):
            if src_id in graph:
                for _, nb in graph.out_edges(src_id):
                    if nb in tgt_pos:
                        edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total
