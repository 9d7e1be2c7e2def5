"""Extended nesting graph: adjacency and cluster containment in one DAG.

Every input vertex becomes a node; every cluster gets a top and a bottom
marker. Containment edges (top(c) -> member -> bottom(c), top(parent) ->
top(child), bottom(child) -> bottom(parent), top(c) -> bottom(c)) form the
skeleton. Input edges are added on top of it with LevelMap, and an edge
between different clusters is mirrored as an edge between the two clusters
below their lowest common ancestor, so sibling clusters are stacked rather
than interleaved.

Later phases (ranking, dummy insertion, layer trees, cleanup) operate on the
same object.
"""

from __future__ import annotations

import logging

import networkx as nx

from clusterlayout.ir.cluster_graph import ClusterGraph
from clusterlayout.layout.acyclic import LevelMap
from clusterlayout.layout.cluster_copy import ClusterGraphCopy
from clusterlayout.layout.scratch import ScratchPool
from clusterlayout.layout.types import BOTTOM_PREFIX, TOP_PREFIX
from clusterlayout.types import NodeType

logger = logging.getLogger(__name__)


class ExtendedNestingGraph:
    """The nesting graph H of a clustered graph.

    Nodes are integer handles in `graph` (a MultiDiGraph whose edge keys are
    edge ids). `orig_edge[eid]` is the index of the input edge a segment
    belongs to, or None for containment scaffolding. `chains[i]` lists the
    segments of input edge i from its upper to its lower end.
    """

    def __init__(self, cg: ClusterGraph, scratch: ScratchPool | None = None) -> None:
        cg.validate()
        self.cg = cg
        self.scratch = scratch if scratch is not None else ScratchPool()
        self.graph: nx.MultiDiGraph = nx.MultiDiGraph()

        self.node_type: dict[int, NodeType] = {}
        self.rank: dict[int, int] = {}
        self.pos: dict[int, int] = {}
        self.orig_node: dict[int, str] = {}
        self.marker_cluster: dict[int, int] = {}
        self.labels: dict[int, str] = {}
        self.copy_node: dict[str, int] = {}
        self.top: dict[int, int | None] = {}
        self.bottom: dict[int, int | None] = {}
        self.span_edge: dict[int, int] = {}

        self.orig_edges: list[tuple[str, str, int]] = cg.edge_list()
        self.orig_edge: dict[int, int | None] = {}
        self.edge_ends: dict[int, tuple[int, int]] = {}
        self.chains: list[list[int]] = [[] for _ in self.orig_edges]

        self.num_layers = 0
        self.vertical: dict[int, bool] | None = None
        self._next_node = 0
        self._next_edge = 0

        self.clusters = ClusterGraphCopy(cg)
        self._create_nodes()
        self._create_skeleton()

        self._levels: LevelMap | None = LevelMap(self.graph, self._initial_levels(), self.scratch.visited)
        self._add_adjacency_edges()
        self._add_cluster_relations()
        self._levels = None

        logger.debug(
            f"nesting graph built: {self.graph.number_of_nodes()} nodes, {self.graph.number_of_edges()} edges, "
            f"{cg.cluster_count()} clusters"
        )

    # ─── Nodes and edges ─────────────────────────────────────────────────

    def new_node(self, node_type: NodeType, label: str = "") -> int:
        v = self._next_node
        self._next_node += 1
        self.graph.add_node(v)
        self.node_type[v] = node_type
        self.labels[v] = label
        return v

    def new_edge(self, u: int, v: int, orig: int | None = None) -> int:
        """Add u -> v without an acyclicity check."""
        eid = self._next_edge
        self._next_edge += 1
        self.graph.add_edge(u, v, key=eid)
        self.edge_ends[eid] = (u, v)
        self.orig_edge[eid] = orig
        return eid

    def add_edge(self, u: int, v: int, orig: int | None = None, always: bool = False) -> int | None:
        """Add u -> v if the graph stays acyclic.

        With `always`, v -> u is added instead when u -> v would close a
        cycle. Returns the edge id, or None if nothing was added.
        """
        assert self._levels is not None, "acyclic insertion is only available while building"
        eid = self._next_edge
        if always:
            src, tgt = self._levels.try_insert(u, v, key=eid)
        elif self._levels.try_add(u, v, key=eid):
            src, tgt = u, v
        else:
            return None
        self._next_edge += 1
        self.edge_ends[eid] = (src, tgt)
        self.orig_edge[eid] = orig
        return eid

    def delete_edge(self, eid: int) -> None:
        u, v = self.edge_ends.pop(eid)
        del self.orig_edge[eid]
        self.graph.remove_edge(u, v, key=eid)

    def delete_node(self, v: int) -> None:
        for _, _, eid in list(self.graph.in_edges(v, keys=True)) + list(self.graph.out_edges(v, keys=True)):
            if eid in self.edge_ends:
                self.delete_edge(eid)
        self.graph.remove_node(v)
        for table in (self.node_type, self.rank, self.pos, self.orig_node, self.marker_cluster, self.labels):
            table.pop(v, None)
        self.clusters.remove_node(v)

    def split(self, eid: int, node_type: NodeType = NodeType.Dummy, label: str = "") -> int:
        """Split u -> v into u -> w -> v with a new node w.

        `eid` keeps the upper segment u -> w; the id of w -> v is returned.
        """
        u, v = self.edge_ends[eid]
        orig = self.orig_edge[eid]
        w = self.new_node(node_type, label)
        self.graph.remove_edge(u, v, key=eid)
        self.graph.add_edge(u, w, key=eid)
        self.edge_ends[eid] = (u, w)
        return self.new_edge(w, v, orig)

    def source(self, eid: int) -> int:
        return self.edge_ends[eid][0]

    def target(self, eid: int) -> int:
        return self.edge_ends[eid][1]

    def out_edges(self, v: int) -> list[int]:
        return [eid for _, _, eid in self.graph.out_edges(v, keys=True)]

    def in_edges(self, v: int) -> list[int]:
        return [eid for _, _, eid in self.graph.in_edges(v, keys=True)]

    def is_long_edge_dummy(self, v: int) -> bool:
        return self.node_type[v] is NodeType.Dummy

    def is_reversed(self, edge_index: int) -> bool:
        chain = self.chains[edge_index]
        if not chain:
            return False
        return self.source(chain[0]) != self.copy_node[self.orig_edges[edge_index][0]]

    def parent(self, v: int) -> int:
        """Working-copy cluster that owns node `v`."""
        return self.clusters.cluster_of(v)

    def layer_nodes(self) -> list[list[int]]:
        layers: list[list[int]] = [[] for _ in range(self.num_layers)]
        for v in self.graph.nodes:
            layers[self.rank[v]].append(v)
        return layers

    # ─── Cluster tree ────────────────────────────────────────────────────

    def lca(self, cu: int, cv: int) -> tuple[int, int, int]:
        """Lowest common ancestor of two clusters of the input tree.

        Returns (lca, u_entry, v_entry) where u_entry is the child of lca on
        the path up from cu (lca itself when cu == lca), likewise v_entry.
        Both walks advance in lockstep, so the cost follows the depth of the
        answer rather than the depth of the tree.
        """
        marks = self.scratch.cluster_marks
        marks.clear()
        c1: int | None = cu
        c2: int | None = cv
        pred1, pred2 = cu, cv
        while True:
            if c1 is not None:
                if c1 in marks:
                    return c1, pred1, marks.get(c1)
                marks.mark(c1, pred1)
                pred1 = c1
                c1 = self.cg.parent(c1)
            if c2 is not None:
                if c2 in marks:
                    return c2, marks.get(c2), pred2
                marks.mark(c2, pred2)
                pred2 = c2
                c2 = self.cg.parent(c2)

    # ─── Construction ────────────────────────────────────────────────────

    def _create_nodes(self) -> None:
        cg = self.cg
        for node_id in cg.digraph.nodes:
            v = self.new_node(NodeType.Node, node_id)
            self.copy_node[node_id] = v
            self.orig_node[v] = node_id
            self.clusters.set_parent(v, self.clusters.copy(cg.cluster_of(node_id)))

        for c in cg.clusters:
            name = c.name
            t = self.new_node(NodeType.ClusterTop, f"{TOP_PREFIX}{name}")
            b = self.new_node(NodeType.ClusterBottom, f"{BOTTOM_PREFIX}{name}")
            self.top[c.id] = t
            self.bottom[c.id] = b
            self.marker_cluster[t] = c.id
            self.marker_cluster[b] = c.id
            self.clusters.set_parent(t, self.clusters.copy(c.id))
            self.clusters.set_parent(b, self.clusters.copy(c.id))

    def _create_skeleton(self) -> None:
        cg = self.cg
        for node_id in cg.digraph.nodes:
            v = self.copy_node[node_id]
            c = cg.cluster_of(node_id)
            self.new_edge(self.top[c], v)
            self.new_edge(v, self.bottom[c])

        for c in cg.clusters:
            if c.parent is None:
                continue
            self.new_edge(self.top[c.parent], self.top[c.id])
            self.new_edge(self.bottom[c.id], self.bottom[c.parent])
            self.span_edge[c.id] = self.new_edge(self.top[c.id], self.bottom[c.id])

    def _initial_levels(self) -> dict[int, int]:
        """Pre-order numbering top(c), members of c, child subtrees, bottom(c); valid for the skeleton."""
        levels: dict[int, int] = {}

        def visit(c: int) -> None:
            levels[self.top[c]] = len(levels)
            for node_id in self.cg.clusters[c].nodes:
                levels[self.copy_node[node_id]] = len(levels)
            for child in self.cg.clusters[c].children:
                visit(child)
            levels[self.bottom[c]] = len(levels)

        visit(self.cg.root)
        return levels

    def _add_adjacency_edges(self) -> None:
        for i, (src, tgt, _) in enumerate(self.orig_edges):
            if src == tgt:
                logger.debug(f"self-loop on {src!r} is not layered")
                continue
            eid = self.add_edge(self.copy_node[src], self.copy_node[tgt], orig=i, always=True)
            assert eid is not None
            self.chains[i].append(eid)
            if self.is_reversed(i):
                logger.debug(f"edge {src!r} -> {tgt!r} reversed to keep the nesting graph acyclic")

    def _add_cluster_relations(self) -> None:
        """Stack the clusters below the LCA of every inter-cluster edge."""
        cg = self.cg
        for i, (u, v, _) in enumerate(self.orig_edges):
            if not self.chains[i]:
                continue
            if self.is_reversed(i):
                u, v = v, u
            cu, cv = cg.cluster_of(u), cg.cluster_of(v)
            if cu == cv:
                continue

            c, c_from, c_to = self.lca(cu, cv)
            eid = None
            if c_from != c and c_to != c:
                eid = self.add_edge(self.bottom[c_from], self.top[c_to])
            if eid is None:
                # relax to node/cluster relations; either may be refused
                self.add_edge(self.copy_node[u], self.top[c_to])
                self.add_edge(self.bottom[c_from], self.copy_node[v])
