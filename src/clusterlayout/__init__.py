"""clusterlayout: layer assignment and crossing reduction for clustered graphs."""

from clusterlayout.config import LayoutConfig
from clusterlayout.errors import ClusterTreeError, ParseError, RankingError
from clusterlayout.ir.cluster_graph import Cluster, ClusterGraph
from clusterlayout.layout.engine import full_layout, layout_dsl
from clusterlayout.layout.sugiyama import ClusterSugiyamaLayout
from clusterlayout.layout.types import ClusterBand, Crossings, EdgeChain, LayoutResult, PlacedNode

__all__ = [
    "Cluster",
    "ClusterBand",
    "ClusterGraph",
    "ClusterSugiyamaLayout",
    "ClusterTreeError",
    "Crossings",
    "EdgeChain",
    "LayoutConfig",
    "LayoutResult",
    "ParseError",
    "PlacedNode",
    "RankingError",
    "full_layout",
    "layout_dsl",
]
