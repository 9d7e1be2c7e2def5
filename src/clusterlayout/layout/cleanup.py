"""Cleanup after crossing reduction.

Decides which adjacency segments may be drawn as straight vertical lines,
then removes the cluster-boundary dummies from the layer trees and from the
nesting graph and renumbers the remaining leaves densely.
"""

from __future__ import annotations

import logging

from clusterlayout.layout.hierarchy import Layer, assign_positions
from clusterlayout.layout.nesting import ExtendedNestingGraph
from clusterlayout.types import NodeType

logger = logging.getLogger(__name__)


def _real_cluster(eng: ExtendedNestingGraph, v: int) -> int:
    """Input cluster owning `v`, skipping virtual clusters."""
    clusters = eng.clusters
    c = eng.parent(v)
    while clusters.is_virtual(c):
        c = clusters.parent[c]
    return clusters.original(c)


def compute_vertical(eng: ExtendedNestingGraph) -> dict[int, bool]:
    """A segment is vertical when both ends are long-edge dummies of the same cluster or of directly nested or sibling clusters meeting at their boundary ranks."""
    cg = eng.cg
    rank = eng.rank
    vertical: dict[int, bool] = {}
    for eid, orig in eng.orig_edge.items():
        if orig is None:
            continue
        u, v = eng.edge_ends[eid]
        vert = False
        if eng.is_long_edge_dummy(u) and eng.is_long_edge_dummy(v):
            cu = _real_cluster(eng, u)
            cv = _real_cluster(eng, v)
            if cu == cv:
                vert = True
            else:
                cu_parent = cg.parent(cu)
                cv_parent = cg.parent(cv)
                if (
                    (cv == cu_parent and rank[u] == rank[eng.bottom[cu]])
                    or (cu == cv_parent and rank[v] == rank[eng.top[cv]])
                    or (
                        cu_parent == cv_parent
                        and rank[u] == rank[eng.bottom[cu]]
                        and rank[v] == rank[eng.top[cv]]
                    )
                ):
                    vert = True
        vertical[eid] = vert
    return vertical


def remove_top_bottom_edges(eng: ExtendedNestingGraph, layers: list[Layer]) -> None:
    """Finalise the layering; a second call changes nothing."""
    if eng.vertical is not None:
        return

    vertical = compute_vertical(eng)
    pos = eng.pos
    for layer in layers[1:]:
        for node in layer.compounds():
            node.set_pos()
            for cc in node.upper_crossings:
                j = cc.boundary_child.pos
                k = cc.edge_child.pos
                pos_j = pos[cc.boundary_far]
                pos_k = pos[cc.edge_far]
                if (j < k and pos_j > pos_k) or (j > k and pos_j < pos_k):
                    vertical[cc.edge] = False
    eng.vertical = vertical

    for layer in layers:
        layer.remove_aux_nodes()

    boundary = [v for v in eng.graph.nodes if eng.node_type[v] is NodeType.ClusterTopBottom]
    for v in boundary:
        eng.delete_node(v)
    for c, eid in list(eng.span_edge.items()):
        if eid not in eng.edge_ends:
            del eng.span_edge[c]

    for layer in layers:
        assign_positions(layer.root, pos)

    logger.debug(f"cleanup: removed {len(boundary)} boundary dummies")
