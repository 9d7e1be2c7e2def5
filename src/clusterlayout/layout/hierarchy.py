"""Layer hierarchy trees.

One tree per layer: compound nodes are the clusters active on that layer,
leaves are the nesting-graph nodes of that rank. The order of each compound
node's children is the only thing crossing reduction changes; the left-to-right
order of a layer is the pre-order sequence of its leaves.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field

from clusterlayout.layout.nesting import ExtendedNestingGraph
from clusterlayout.layout.scratch import MarkBuffer
from clusterlayout.types import NodeType, TreeNodeType

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Adjacency:
    """An adjacency segment seen from a compound node.

    `far` is the segment's end on the neighbouring layer, `child` the child
    subtree holding the near end, `weight` the number of segments folded in.
    """

    far: int
    child: TreeNode
    weight: int = 1


@dataclass(eq=False)
class ClusterCrossing:
    """A boundary segment of a cluster that an unrelated adjacency segment may cross."""

    boundary_far: int
    boundary_child: TreeNode
    edge_far: int
    edge_child: TreeNode
    edge: int


@dataclass(eq=False)
class TreeNode:
    type: TreeNodeType
    cluster: int | None = None
    node: int | None = None
    parent: TreeNode | None = None
    children: list[TreeNode] = field(default_factory=list)
    pos: int = 0
    up: TreeNode | None = None
    down: TreeNode | None = None
    upper_adj: list[Adjacency] = field(default_factory=list)
    lower_adj: list[Adjacency] = field(default_factory=list)
    upper_crossings: list[ClusterCrossing] = field(default_factory=list)
    lower_crossings: list[ClusterCrossing] = field(default_factory=list)
    stored: list[TreeNode] = field(default_factory=list)

    def is_compound(self) -> bool:
        return self.type is TreeNodeType.Compound

    def set_pos(self) -> None:
        for i, child in enumerate(self.children):
            child.pos = i

    def store(self) -> None:
        self.stored = list(self.children)

    def restore(self) -> None:
        self.children = list(self.stored)

    def permute(self, rng: random.Random) -> None:
        rng.shuffle(self.children)

    def remove_aux_children(self) -> None:
        self.children = [child for child in self.children if child.type is not TreeNodeType.AuxNode]

    def __repr__(self) -> str:
        if self.is_compound():
            return f"C{self.cluster}[{' '.join(repr(child) for child in self.children)}]"
        return f"N{self.node}"


class Layer:
    """The hierarchy tree of one layer."""

    def __init__(self, root: TreeNode) -> None:
        self.root = root

    def compounds(self) -> Iterator[TreeNode]:
        """Compound nodes in breadth-first order."""
        queue: deque[TreeNode] = deque([self.root])
        while queue:
            node = queue.popleft()
            yield node
            queue.extend(child for child in node.children if child.is_compound())

    def leaves(self) -> list[int]:
        """Nesting-graph nodes of the layer, left to right."""
        order: list[int] = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_compound():
                stack.extend(reversed(node.children))
            else:
                order.append(node.node)
        return order

    def store(self) -> None:
        for node in self.compounds():
            node.store()

    def restore(self) -> None:
        for node in self.compounds():
            node.restore()

    def permute(self, rng: random.Random) -> None:
        for node in self.compounds():
            node.permute(rng)

    def remove_aux_nodes(self) -> None:
        for node in self.compounds():
            node.remove_aux_children()

    def simplify_adjacencies(self) -> None:
        for node in self.compounds():
            node.upper_adj = _coalesce(node.upper_adj)
            node.lower_adj = _coalesce(node.lower_adj)


def _coalesce(adjs: list[Adjacency]) -> list[Adjacency]:
    merged: dict[tuple[int, TreeNode], Adjacency] = {}
    for adj in adjs:
        key = (adj.far, adj.child)
        if key in merged:
            merged[key].weight += adj.weight
        else:
            merged[key] = Adjacency(adj.far, adj.child, adj.weight)
    return list(merged.values())


def assign_positions(root: TreeNode, pos: dict[int, int]) -> None:
    """Number the leaves under `root` 0, 1, ... in pre-order."""
    count = 0
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_compound():
            stack.extend(reversed(node.children))
        else:
            pos[node.node] = count
            count += 1


def tree_lca(u_node: TreeNode, v_node: TreeNode, marks: MarkBuffer) -> tuple[TreeNode, TreeNode, TreeNode]:
    """Lowest common compound ancestor of two leaves.

    Ancestors are matched by cluster, so the leaves may sit on different
    layers; the ancestor returned then belongs to whichever tree the match
    was found in. Returns (ancestor, u_child, v_child) with u_child and
    v_child the children on the paths down to u_node and v_node.
    """
    marks.clear()
    cu, cv = u_node.parent, v_node.parent
    u_pred, v_pred = u_node, v_node
    while cu is not None or cv is not None:
        if cu is not None:
            if cu.cluster in marks:
                return cu, u_pred, marks.get(cu.cluster)
            marks.mark(cu.cluster, u_pred)
            u_pred = cu
            cu = cu.parent
        if cv is not None:
            if cv.cluster in marks:
                return cv, marks.get(cv.cluster), v_pred
            marks.mark(cv.cluster, v_pred)
            v_pred = cv
            cv = cv.parent
    raise AssertionError("leaves have no common cluster")


# ─── Construction ────────────────────────────────────────────────────────────


def build_layers(eng: ExtendedNestingGraph) -> list[Layer]:
    """Build the hierarchy tree of every layer with adjacencies and crossing obligations."""
    clusters = eng.clusters
    num_layers = eng.num_layers
    by_rank = eng.layer_nodes()

    top_rank = [num_layers] * len(clusters)
    bottom_rank = [-1] * len(clusters)
    for c in clusters.postorder():
        for v in clusters.nodes(c):
            top_rank[c] = min(top_rank[c], eng.rank[v])
            bottom_rank[c] = max(bottom_rank[c], eng.rank[v])
        for child in clusters.children[c]:
            top_rank[c] = min(top_rank[c], top_rank[child])
            bottom_rank[c] = max(bottom_rank[c], bottom_rank[child])

    begins: list[list[int]] = [[] for _ in range(num_layers)]
    ends: list[list[int]] = [[] for _ in range(num_layers)]
    for c in range(len(clusters)):
        if top_rank[c] > bottom_rank[c]:
            continue
        begins[top_rank[c]].append(c)
        ends[bottom_rank[c]].append(c)

    active: dict[int, None] = {clusters.root: None}
    cluster_node: dict[int, TreeNode] = {}
    leaf: dict[int, TreeNode] = {}
    layers: list[Layer] = []

    for i in range(num_layers):
        for c in begins[i]:
            active[c] = None

        for c in active:
            node = TreeNode(TreeNodeType.Compound, cluster=c, up=cluster_node.get(c))
            if node.up is not None:
                node.up.down = node
            cluster_node[c] = node

        slots: dict[int, list[TreeNode]] = {c: [] for c in active}
        for c in active:
            if c == clusters.root:
                continue
            parent = clusters.parent[c]
            cluster_node[c].parent = cluster_node[parent]
            slots[parent].append(cluster_node[c])

        for v in by_rank[i]:
            c = eng.parent(v)
            kind = TreeNodeType.AuxNode if eng.node_type[v] is NodeType.ClusterTopBottom else TreeNodeType.Node
            vnode = TreeNode(kind, node=v, parent=cluster_node[c])
            leaf[v] = vnode
            slots[c].append(vnode)

        for c in active:
            cluster_node[c].children = slots[c][::-1]
        layers.append(Layer(cluster_node[clusters.root]))

        for c in ends[i]:
            active.pop(c, None)

    _add_adjacencies(eng, leaf)
    for layer in layers:
        layer.simplify_adjacencies()
    _add_cluster_crossings(eng, by_rank, leaf)

    logger.debug(f"layer trees: {len(layers)} layers, {len(clusters)} working clusters")
    return layers


def _add_adjacencies(eng: ExtendedNestingGraph, leaf: dict[int, TreeNode]) -> None:
    for eid, (u, v) in eng.edge_ends.items():
        if eng.orig_edge[eid] is None:
            continue

        near = leaf[v]
        parent = near.parent
        while parent is not None:
            parent.upper_adj.append(Adjacency(u, near))
            near = parent
            parent = parent.parent

        near = leaf[u]
        parent = near.parent
        while parent is not None:
            parent.lower_adj.append(Adjacency(v, near))
            near = parent
            parent = parent.parent


def _add_cluster_crossings(eng: ExtendedNestingGraph, by_rank: list[list[int]], leaf: dict[int, TreeNode]) -> None:
    """Record, for every boundary segment between layers i and i+1, the adjacency segments it could cross.

    Only adjacency segments whose tree LCA lies strictly above the boundary's
    cluster are candidates; an obligation is stored on the LCA of the two
    segments' near ends, where the order of two children decides it.
    """
    marks = eng.scratch.tree_marks
    for i in range(eng.num_layers - 1):
        edges_at: dict[int, list[int]] = {}
        for u in by_rank[i]:
            for eid in eng.out_edges(u):
                if eng.orig_edge[eid] is None:
                    continue
                ancestor, _, _ = tree_lca(leaf[u], leaf[eng.target(eid)], marks)
                edges_at.setdefault(ancestor.cluster, []).append(eid)

        for u in by_rank[i]:
            for eid in eng.out_edges(u):
                if eng.orig_edge[eid] is not None:
                    continue

                a_node = leaf[eng.target(eid)]
                ca = a_node.parent.cluster
                a_parent = a_node.parent.parent
                while a_parent is not None:
                    for other in edges_at.get(a_parent.cluster, ()):
                        ancestor, a_child, v_child = tree_lca(a_node, leaf[eng.target(other)], marks)
                        if ancestor is a_node.parent:
                            continue
                        if tree_lca(a_node, leaf[eng.source(other)], marks)[0].cluster != ca:
                            ancestor.upper_crossings.append(
                                ClusterCrossing(u, a_child, eng.source(other), v_child, other)
                            )
                    a_parent = a_parent.parent

                a_node = leaf[u]
                ca = a_node.parent.cluster
                a_parent = a_node.parent.parent
                while a_parent is not None:
                    for other in edges_at.get(a_parent.cluster, ()):
                        ancestor, a_child, v_child = tree_lca(a_node, leaf[eng.source(other)], marks)
                        if ancestor is a_node.parent:
                            continue
                        if tree_lca(a_node, leaf[eng.target(other)], marks)[0].cluster != ca:
                            ancestor.lower_crossings.append(
                                ClusterCrossing(eng.target(eid), a_child, eng.target(other), v_child, other)
                            )
                    a_parent = a_parent.parent
