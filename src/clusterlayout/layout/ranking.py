"""Layer assignment of the nesting graph and dummy insertion.

Phases:
  1. Optimal ranking (min cost-weighted edge length, network simplex)
  2. Cluster band tightening
  3. Scaffolding removal and layer compaction
  4. Long-edge dummies with host-cluster refinement
  5. Cluster-boundary dummies on top->bottom span edges
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Hashable, Iterable

import networkx as nx

from clusterlayout.errors import RankingError
from clusterlayout.layout.nesting import ExtendedNestingGraph
from clusterlayout.layout.types import BOUNDARY_PREFIX, DUMMY_PREFIX
from clusterlayout.types import NodeType

logger = logging.getLogger(__name__)

_VIRTUAL_SOURCE = ("__source__",)


# ─── Ranking primitive ───────────────────────────────────────────────────────


def optimal_ranking(
    nodes: Iterable[Hashable],
    edges: Iterable[tuple[Hashable, Hashable, int, int]],
) -> dict[Hashable, int]:
    """Integer ranks with rank[t] - rank[s] >= length for every (s, t, length, cost).

    Among feasible rankings, one minimising sum(cost * (rank[t] - rank[s])) is
    returned, normalised so the smallest rank is 0. The dual min-cost flow is
    solved with network simplex; complementary slackness then pins the tight
    edges and Bellman-Ford recovers the ranks from the resulting difference
    constraints. Raises RankingError if the edges contain a cycle.
    """
    flow: nx.DiGraph = nx.DiGraph()
    for v in nodes:
        flow.add_node(v, demand=0)

    for s, t, length, cost in edges:
        if length < 1:
            raise ValueError(f"edge {s!r} -> {t!r} has length {length}; lengths must be >= 1")
        if cost < 0:
            raise ValueError(f"edge {s!r} -> {t!r} has negative cost {cost}")
        if s == t:
            raise RankingError(f"self-loop on {s!r} cannot be ranked")
        for v in (s, t):
            if v not in flow:
                flow.add_node(v, demand=0)
        # parallel edges: the longest length binds, costs add up
        if flow.has_edge(s, t):
            data = flow[s][t]
            data["length"] = max(data["length"], length)
            data["cost"] += cost
        else:
            flow.add_edge(s, t, length=length, cost=cost)
        flow.nodes[t]["demand"] += cost
        flow.nodes[s]["demand"] -= cost

    for _, _, data in flow.edges(data=True):
        data["weight"] = -data["length"]

    ranks: dict[Hashable, int] = {}
    for component in nx.weakly_connected_components(flow):
        sub = flow.subgraph(component)
        if sub.number_of_edges() == 0:
            ranks.update(dict.fromkeys(component, 0))
        else:
            ranks.update(_rank_component(sub))
    return ranks


def _rank_component(flow: nx.DiGraph) -> dict[Hashable, int]:
    try:
        _, flow_dict = nx.network_simplex(flow)
    except nx.NetworkXUnbounded as e:
        raise RankingError("edges contain a cycle; no ranking satisfies all minimum lengths") from e

    # rank[t] - rank[s] >= length everywhere, with equality where flow is positive
    constraints: nx.DiGraph = nx.DiGraph()
    constraints.add_nodes_from(flow.nodes)

    def bound(a: Hashable, b: Hashable, weight: int) -> None:
        if constraints.has_edge(a, b):
            weight = min(weight, constraints[a][b]["weight"])
        constraints.add_edge(a, b, weight=weight)

    for s, t, data in flow.edges(data=True):
        bound(s, t, -data["length"])
        if flow_dict[s][t] > 0:
            bound(t, s, data["length"])

    for v in flow.nodes:
        constraints.add_edge(_VIRTUAL_SOURCE, v, weight=0)
    dist = nx.single_source_bellman_ford_path_length(constraints, _VIRTUAL_SOURCE)
    del dist[_VIRTUAL_SOURCE]

    shift = max(dist.values())
    return {v: shift - d for v, d in dist.items()}


# ─── Ranking the nesting graph ───────────────────────────────────────────────


def _edge_length(eng: ExtendedNestingGraph, u: int, v: int) -> int:
    # node-node and marker-marker edges keep one free layer in between
    u_real = eng.node_type[u] is NodeType.Node
    v_real = eng.node_type[v] is NodeType.Node
    return 2 if u_real == v_real else 1


def compute_ranking(eng: ExtendedNestingGraph) -> None:
    """Rank every node, then reduce the graph to adjacency and span edges on dense layers."""
    edges = []
    for eid, (u, v) in eng.edge_ends.items():
        cost = 2 if eng.orig_edge[eid] is not None else 1
        edges.append((u, v, _edge_length(eng, u, v), cost))
    eng.rank = optimal_ranking(list(eng.graph.nodes), edges)
    rank = eng.rank

    clusters = eng.clusters
    for c in clusters.postorder():
        t = sys.maxsize
        b = -sys.maxsize
        for v in clusters.nodes(c):
            if eng.node_type[v] is not NodeType.Node:
                continue
            t = min(t, rank[v] - 1)
            b = max(b, rank[v] + 1)
        for child in clusters.children[c]:
            orig_child = clusters.original(child)
            t = min(t, rank[eng.top[orig_child]] - 2)
            b = max(b, rank[eng.bottom[orig_child]] + 2)

        orig = clusters.original(c)
        assert rank[eng.top[orig]] <= t and b <= rank[eng.bottom[orig]]
        if t < sys.maxsize:
            rank[eng.top[orig]] = t
            rank[eng.bottom[orig]] = b

    for eid in list(eng.edge_ends):
        if eng.orig_edge[eid] is not None:
            continue
        u, v = eng.edge_ends[eid]
        is_span = eng.node_type[u] is NodeType.ClusterTop and v == eng.bottom[eng.marker_cluster[u]]
        if not is_span:
            eng.delete_edge(eid)

    root = eng.cg.root
    low = rank[eng.top[root]]
    high = rank[eng.bottom[root]]
    eng.delete_node(eng.top[root])
    eng.delete_node(eng.bottom[root])
    eng.top[root] = None
    eng.bottom[root] = None

    levels: dict[int, list[int]] = {}
    for v in eng.graph.nodes:
        levels.setdefault(rank[v], []).append(v)
    current = 0
    for r in range(low + 1, high):
        if r not in levels:
            continue
        for v in levels[r]:
            rank[v] = current
        current += 1
    eng.num_layers = current

    logger.debug(f"ranking: {eng.num_layers} layers for {eng.graph.number_of_nodes()} nodes")


# ─── Dummy insertion ─────────────────────────────────────────────────────────


def create_dummy_nodes(eng: ExtendedNestingGraph) -> None:
    """Split long adjacency edges and cluster span edges so every segment spans one layer."""
    cg = eng.cg
    rank = eng.rank
    clusters = eng.clusters
    dummies = 0

    for i, chain in enumerate(eng.chains):
        if not chain:
            continue
        eid = chain[0]
        u_h, v_h = eng.edge_ends[eid]
        span = rank[v_h] - rank[u_h]
        assert span >= 1
        if span < 2:
            continue

        c_top, _, _ = eng.lca(cg.cluster_of(eng.orig_node[u_h]), cg.cluster_of(eng.orig_node[v_h]))
        host = clusters.copy(c_top)
        for r in range(rank[u_h] + 1, rank[v_h]):
            eid = eng.split(eid, NodeType.Dummy, f"{DUMMY_PREFIX}{i}_{r - rank[u_h] - 1}")
            chain.append(eid)
            w = eng.source(eid)
            rank[w] = r
            clusters.set_parent(w, host)
            dummies += 1

        _refine_hosts(eng, chain, u_h, v_h)

    for c in cg.clusters:
        if c.parent is None:
            continue
        top, bottom = eng.top[c.id], eng.bottom[c.id]
        span = rank[bottom] - rank[top]
        assert span >= 1
        host = clusters.copy(c.id)
        eid = eng.span_edge[c.id]
        for r in range(rank[top] + 1, rank[bottom]):
            eid = eng.split(eid, NodeType.ClusterTopBottom, f"{BOUNDARY_PREFIX}{c.name}_{r - rank[top] - 1}")
            w = eng.source(eid)
            rank[w] = r
            clusters.set_parent(w, host)

    logger.debug(f"dummy insertion: {dummies} long-edge dummies")


def _refine_hosts(eng: ExtendedNestingGraph, chain: list[int], u_h: int, v_h: int) -> None:
    """Move the dummies of one chain from the LCA into the endpoint clusters where their ranks fit.

    The upper endpoint's side is assigned first, then the lower endpoint's
    side; a dummy both sides could claim ends up with the lower side.
    """
    cg = eng.cg
    rank = eng.rank
    clusters = eng.clusters
    root = cg.root
    cu = cg.cluster_of(eng.orig_node[u_h])
    cv = cg.cluster_of(eng.orig_node[v_h])
    c_1: int | None = cu
    c_2: int | None = cv

    if c_1 == root or c_2 == root or rank[eng.bottom[c_1]] >= rank[eng.top[c_2]]:
        if c_2 != root and rank[u_h] < rank[eng.top[c_2]]:
            c_1 = None
            while cg.parent(c_2) != root and rank[u_h] < rank[eng.top[cg.parent(c_2)]]:
                c_2 = cg.parent(c_2)
        elif c_1 != root and rank[v_h] > rank[eng.bottom[c_1]]:
            c_2 = None
            while cg.parent(c_1) != root and rank[v_h] > rank[eng.bottom[cg.parent(c_1)]]:
                c_1 = cg.parent(c_1)
        else:
            return
    else:
        climbing = True
        while climbing:
            climbing = False
            parent = cg.parent(c_1)
            if parent != root and rank[eng.bottom[parent]] < rank[eng.top[c_2]]:
                c_1 = parent
                climbing = True
            parent = cg.parent(c_2)
            if parent != root and rank[eng.bottom[c_1]] < rank[eng.top[parent]]:
                c_2 = parent
                climbing = True

    if c_1 is not None:
        idx = 0
        stop = cg.parent(c_1)
        c = cu
        while c != stop:
            while idx < len(chain) - 1 and rank[eng.target(chain[idx])] <= rank[eng.bottom[c]]:
                clusters.set_parent(eng.target(chain[idx]), clusters.copy(c))
                idx += 1
            c = cg.parent(c)

    if c_2 is not None:
        idx = len(chain) - 1
        stop = cg.parent(c_2)
        c = cv
        while c != stop:
            while idx > 0 and rank[eng.source(chain[idx])] >= rank[eng.top[c]]:
                clusters.set_parent(eng.source(chain[idx]), clusters.copy(c))
                idx -= 1
            c = cg.parent(c)
