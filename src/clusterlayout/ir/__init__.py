"""Intermediate representation: AST and the clustered base graph."""

from clusterlayout.ir.ast import Edge, Graph, Node, Subgraph
from clusterlayout.ir.cluster_graph import Cluster, ClusterGraph

__all__ = [
    "Cluster",
    "ClusterGraph",
    "Edge",
    "Graph",
    "Node",
    "Subgraph",
]
