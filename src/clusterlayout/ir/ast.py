"""AST data structures for the Mermaid flowchart subset we accept.

Only what matters for layering survives parsing: node ids and labels, edge
endpoints, and the subgraph nesting that becomes the cluster tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Node:
    id: str
    label: str

    @classmethod
    def bare(cls, id: str) -> Node:
        """Create a node whose label is its id."""
        return cls(id=id, label=id)


@dataclass
class Edge:
    from_id: str
    to_id: str
    label: str | None = None


@dataclass
class Subgraph:
    name: str
    label: str | None = None
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    subgraphs: list[Subgraph] = field(default_factory=list)


@dataclass
class Graph:
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    subgraphs: list[Subgraph] = field(default_factory=list)
