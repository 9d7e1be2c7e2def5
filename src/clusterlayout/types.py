"""Shared type definitions for clusterlayout.

Enums used across the nesting graph, the layer hierarchy trees and the
result model.
"""

from __future__ import annotations

from enum import Enum, auto


class NodeType(Enum):
    Node = auto()  # vertex of the input graph
    ClusterTop = auto()  # upper boundary marker of a cluster
    ClusterBottom = auto()  # lower boundary marker of a cluster
    Dummy = auto()  # split point of a long adjacency edge
    ClusterTopBottom = auto()  # split point of a cluster's top->bottom span edge

    def is_marker(self) -> bool:
        return self in (NodeType.ClusterTop, NodeType.ClusterBottom)


class TreeNodeType(Enum):
    Compound = auto()  # active cluster
    Node = auto()  # real node, marker or long-edge dummy
    AuxNode = auto()  # cluster-boundary dummy, dropped at cleanup
