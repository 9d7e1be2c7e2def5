"""Sugiyama-style layering for clustered graphs.

Phases:
  1. Extended nesting graph (containment + adjacency, acyclic by construction)
  2. Ranking with cluster bands, layer compaction
  3. Dummy insertion (long edges, cluster boundaries)
  4. Virtual clusters (optional)
  5. Layer hierarchy trees
  6. Crossing reduction (sibling reordering, sweeps with restarts)
  7. Cleanup and final positions
"""

from __future__ import annotations

import logging
import random

from clusterlayout.config import LayoutConfig
from clusterlayout.ir.cluster_graph import ClusterGraph
from clusterlayout.layout.cleanup import remove_top_bottom_edges
from clusterlayout.layout.crossings import reduce_crossings
from clusterlayout.layout.hierarchy import Layer, assign_positions, build_layers
from clusterlayout.layout.nesting import ExtendedNestingGraph
from clusterlayout.layout.ranking import compute_ranking, create_dummy_nodes
from clusterlayout.layout.scratch import ScratchPool
from clusterlayout.layout.types import ClusterBand, Crossings, EdgeChain, LayoutResult, PlacedNode
from clusterlayout.layout.virtual import create_virtual_clusters
from clusterlayout.types import NodeType

logger = logging.getLogger(__name__)


# ─── Result extraction ───────────────────────────────────────────────────────


def extract_result(
    eng: ExtendedNestingGraph,
    layers: list[Layer],
    crossings: Crossings,
    history: list[Crossings],
) -> LayoutResult:
    cg = eng.cg
    rank, pos = eng.rank, eng.pos

    nodes: list[PlacedNode] = []
    for node_id in cg.digraph.nodes:
        v = eng.copy_node[node_id]
        nodes.append(
            PlacedNode(
                id=node_id,
                layer=rank[v],
                position=pos[v],
                cluster=cg.clusters[cg.cluster_of(node_id)].name,
            )
        )

    edges: list[EdgeChain] = []
    for i, (src, tgt, _) in enumerate(eng.orig_edges):
        chain = eng.chains[i]
        dummies = [(rank[eng.target(eid)], pos[eng.target(eid)]) for eid in chain[:-1]]
        vertical = [eng.vertical[eid] for eid in chain] if eng.vertical is not None else []
        edges.append(EdgeChain(source=src, target=tgt, reversed=eng.is_reversed(i), dummies=dummies, vertical=vertical))

    bands: list[ClusterBand] = []
    for c in cg.clusters:
        if c.parent is None:
            continue
        bands.append(
            ClusterBand(
                name=c.name,
                top_layer=rank[eng.top[c.id]],
                bottom_layer=rank[eng.bottom[c.id]],
                parent=cg.clusters[c.parent].name,
            )
        )

    content = [[eng.labels[v] for v in layer.leaves()] for layer in layers]
    return LayoutResult(
        nodes=nodes,
        edges=edges,
        clusters=bands,
        layers=content,
        crossings=crossings,
        crossing_history=list(history),
    )


# ─── ClusterSugiyamaLayout Engine ────────────────────────────────────────────


class ClusterSugiyamaLayout:
    """Layer assignment and crossing reduction for clustered graphs."""

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config if config is not None else LayoutConfig()

    def prepare(self, cg: ClusterGraph) -> tuple[ExtendedNestingGraph, list[Layer]]:
        """Run phases 1 to 5; the returned layers carry initial positions for layer 0."""
        self.config.validate()
        eng = ExtendedNestingGraph(cg, ScratchPool())
        compute_ranking(eng)
        create_dummy_nodes(eng)
        if self.config.virtual_clusters:
            create_virtual_clusters(eng)
        layers = build_layers(eng)
        if layers:
            assign_positions(layers[0].root, eng.pos)
        return eng, layers

    def layout(self, cg: ClusterGraph) -> LayoutResult:
        eng, layers = self.prepare(cg)
        rng = random.Random(self.config.seed)
        best, history = reduce_crossings(
            layers,
            eng.pos,
            fails=self.config.fails,
            runs=self.config.runs,
            rng=rng,
            visited=eng.scratch.visited,
        )
        remove_top_bottom_edges(eng, layers)
        dummies = sum(1 for v in eng.graph.nodes if eng.node_type[v] is NodeType.Dummy)
        logger.debug(f"layout done: {eng.num_layers} layers, {dummies} dummies, crossings {best}")
        return extract_result(eng, layers, best, history)
