"""Layout engine convenience functions."""

from __future__ import annotations

from clusterlayout.config import LayoutConfig
from clusterlayout.ir.cluster_graph import ClusterGraph
from clusterlayout.layout.sugiyama import ClusterSugiyamaLayout
from clusterlayout.layout.types import LayoutResult
from clusterlayout.parsers import parse


def full_layout(cg: ClusterGraph, config: LayoutConfig | None = None) -> LayoutResult:
    """Run the full layering pipeline on a clustered graph."""
    engine = ClusterSugiyamaLayout(config)
    return engine.layout(cg)


def layout_dsl(src: str, config: LayoutConfig | None = None) -> LayoutResult:
    """Parse a Mermaid flowchart (subgraphs become clusters) and lay it out."""
    ast_graph = parse(src)
    return full_layout(ClusterGraph.from_ast(ast_graph), config)
