"""Layout engine public API."""

from __future__ import annotations

from clusterlayout.layout.acyclic import LevelMap
from clusterlayout.layout.cluster_copy import ClusterGraphCopy
from clusterlayout.layout.crossings import count_crossings, reduce_crossings, resolve_tournament
from clusterlayout.layout.engine import full_layout, layout_dsl
from clusterlayout.layout.hierarchy import Layer, TreeNode, build_layers
from clusterlayout.layout.nesting import ExtendedNestingGraph
from clusterlayout.layout.ranking import compute_ranking, create_dummy_nodes, optimal_ranking
from clusterlayout.layout.sugiyama import ClusterSugiyamaLayout
from clusterlayout.layout.types import (
    BOTTOM_PREFIX,
    DUMMY_PREFIX,
    TOP_PREFIX,
    ClusterBand,
    Crossings,
    EdgeChain,
    LayoutResult,
    PlacedNode,
)

__all__ = [
    "BOTTOM_PREFIX",
    "DUMMY_PREFIX",
    "TOP_PREFIX",
    "ClusterBand",
    "ClusterGraphCopy",
    "ClusterSugiyamaLayout",
    "Crossings",
    "EdgeChain",
    "ExtendedNestingGraph",
    "Layer",
    "LayoutResult",
    "LevelMap",
    "PlacedNode",
    "TreeNode",
    "build_layers",
    "compute_ranking",
    "count_crossings",
    "create_dummy_nodes",
    "full_layout",
    "layout_dsl",
    "optimal_ranking",
    "reduce_crossings",
    "resolve_tournament",
]
