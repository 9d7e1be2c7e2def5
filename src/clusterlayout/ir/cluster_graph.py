"""Clustered base graph: a networkx MultiDiGraph plus a tree of clusters.

This is the read-only input of the layering core. Every vertex belongs to
exactly one cluster, clusters form a tree under the root cluster (id 0), and
edges are kept as a MultiDiGraph so parallel edges survive until the layer
trees fold them into weighted adjacencies.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

import networkx as nx

from clusterlayout.errors import ClusterTreeError
from clusterlayout.ir import ast

logger = logging.getLogger(__name__)

ROOT: int = 0


@dataclass
class Cluster:
    id: int
    name: str
    parent: int | None
    children: list[int] = field(default_factory=list)
    nodes: list[str] = field(default_factory=list)
    label: str | None = None


class ClusterGraph:
    """A directed multigraph whose vertices are organised in nested clusters.

    Build it either from parsed text (`from_ast`) or with the builder methods
    (`add_node`, `add_edge`, `add_cluster`). A prebuilt cluster table can also
    be handed to the constructor; `validate` then checks it before layout.
    """

    def __init__(self, digraph: nx.MultiDiGraph | None = None, clusters: list[Cluster] | None = None) -> None:
        self.digraph: nx.MultiDiGraph = digraph if digraph is not None else nx.MultiDiGraph()
        self.clusters: list[Cluster] = clusters if clusters is not None else [Cluster(id=ROOT, name="", parent=None)]
        self._membership: dict[str, int] = {}
        for c in self.clusters:
            for node_id in c.nodes:
                self._membership[node_id] = c.id

    # ─── Builder ─────────────────────────────────────────────────────────

    @property
    def root(self) -> int:
        return ROOT

    def add_cluster(self, name: str, parent: int = ROOT, label: str | None = None) -> int:
        if not 0 <= parent < len(self.clusters):
            raise ClusterTreeError(f"unknown parent cluster {parent} for cluster '{name}'")
        cid = len(self.clusters)
        self.clusters.append(Cluster(id=cid, name=name, parent=parent, label=label))
        self.clusters[parent].children.append(cid)
        return cid

    def add_node(self, node_id: str, label: str | None = None, cluster: int = ROOT) -> None:
        """Add a vertex to `cluster`; an existing vertex keeps its label and cluster."""
        if node_id in self.digraph:
            return
        if not 0 <= cluster < len(self.clusters):
            raise ClusterTreeError(f"unknown cluster {cluster} for node '{node_id}'")
        self.digraph.add_node(node_id, label=label if label is not None else node_id)
        self.clusters[cluster].nodes.append(node_id)
        self._membership[node_id] = cluster

    def add_edge(self, src: str, tgt: str) -> int:
        """Add an edge; unknown endpoints are created in the root cluster. Returns the edge key."""
        self.add_node(src)
        self.add_node(tgt)
        return self.digraph.add_edge(src, tgt)

    def move_node(self, node_id: str, cluster: int) -> None:
        old = self._membership[node_id]
        self.clusters[old].nodes.remove(node_id)
        self.clusters[cluster].nodes.append(node_id)
        self._membership[node_id] = cluster

    # ─── Queries ─────────────────────────────────────────────────────────

    def cluster_of(self, node_id: str) -> int:
        return self._membership[node_id]

    def parent(self, cluster: int) -> int | None:
        return self.clusters[cluster].parent

    def label(self, node_id: str) -> str:
        return self.digraph.nodes[node_id].get("label", node_id)

    def node_count(self) -> int:
        return self.digraph.number_of_nodes()

    def edge_count(self) -> int:
        return self.digraph.number_of_edges()

    def cluster_count(self) -> int:
        return len(self.clusters)

    def edge_list(self) -> list[tuple[str, str, int]]:
        """All edges as (source, target, key); the list index is the edge's index in layout results."""
        return list(self.digraph.edges(keys=True))

    def ancestors(self, cluster: int) -> Iterator[int]:
        """Yield `cluster` and every cluster above it, ending with the root."""
        c: int | None = cluster
        while c is not None:
            yield c
            c = self.clusters[c].parent

    def postorder(self) -> list[int]:
        order: list[int] = []
        stack: list[tuple[int, bool]] = [(ROOT, False)]
        while stack:
            c, expanded = stack.pop()
            if expanded:
                order.append(c)
                continue
            stack.append((c, True))
            for child in reversed(self.clusters[c].children):
                stack.append((child, False))
        return order

    # ─── Validation ──────────────────────────────────────────────────────

    def validate(self) -> None:
        """Check the tree and membership invariants; raise ClusterTreeError on the first violation."""
        if not self.clusters:
            raise ClusterTreeError("cluster table is empty; a root cluster is required")
        for idx, c in enumerate(self.clusters):
            if c.id != idx:
                raise ClusterTreeError(f"cluster '{c.name}' has id {c.id} but sits at index {idx}")
        roots = [c for c in self.clusters if c.parent is None]
        if len(roots) != 1 or roots[0].id != ROOT:
            names = ", ".join(repr(c.name) for c in roots) or "none"
            raise ClusterTreeError(f"expected exactly one root cluster with id {ROOT}, found: {names}")

        for c in self.clusters:
            if c.parent is None:
                continue
            if not 0 <= c.parent < len(self.clusters):
                raise ClusterTreeError(f"cluster '{c.name}' has unknown parent {c.parent}")
            if c.id not in self.clusters[c.parent].children:
                raise ClusterTreeError(f"cluster '{c.name}' is missing from its parent's child list")
            for child in c.children:
                if not 0 <= child < len(self.clusters) or self.clusters[child].parent != c.id:
                    raise ClusterTreeError(f"cluster '{c.name}' lists child {child} that does not point back")

        for c in self.clusters:
            steps = 0
            for _ in self.ancestors(c.id):
                steps += 1
                if steps > len(self.clusters):
                    raise ClusterTreeError(f"cluster '{c.name}' lies on a parent cycle")

        owner: dict[str, int] = {}
        for c in self.clusters:
            for node_id in c.nodes:
                if node_id not in self.digraph:
                    raise ClusterTreeError(f"cluster '{c.name}' lists unknown node '{node_id}'")
                if node_id in owner:
                    first = self.clusters[owner[node_id]].name
                    raise ClusterTreeError(f"node '{node_id}' belongs to both '{first}' and '{c.name}'")
                owner[node_id] = c.id
        for node_id in self.digraph.nodes:
            if node_id not in owner:
                raise ClusterTreeError(f"node '{node_id}' belongs to no cluster")
        self._membership = owner

    # ─── Construction from AST ───────────────────────────────────────────

    @classmethod
    def from_ast(cls, ast_graph: ast.Graph) -> ClusterGraph:
        """Build a ClusterGraph from a parsed flowchart.

        Subgraphs become clusters. A node belongs to the first subgraph, in
        pre-order, that mentions it and to the root cluster otherwise.
        Edges touching a subgraph by name are dropped.
        """
        cg = cls()
        sg_names: set[str] = set()
        _collect_names(ast_graph.subgraphs, sg_names)

        owner: dict[str, int] = {}
        labels: dict[str, str] = {}
        order: list[str] = []

        def note(node: ast.Node, cluster: int) -> None:
            if node.id in sg_names:
                return
            if node.id not in owner:
                owner[node.id] = cluster
                order.append(node.id)
            if node.label != node.id:
                labels.setdefault(node.id, node.label)

        def collect(sg: ast.Subgraph, parent: int) -> None:
            cid = cg.add_cluster(sg.name, parent, sg.label)
            for node in sg.nodes:
                note(node, cid)
            for nested in sg.subgraphs:
                collect(nested, cid)

        for sg in ast_graph.subgraphs:
            collect(sg, ROOT)
        for node in ast_graph.nodes:
            note(node, ROOT)

        for node_id in order:
            cg.add_node(node_id, labels.get(node_id, node_id), owner[node_id])

        for edge in _iter_edges(ast_graph):
            if edge.from_id in sg_names or edge.to_id in sg_names:
                logger.warning(f"dropping edge {edge.from_id} -> {edge.to_id}: subgraph endpoints are not supported")
                continue
            cg.add_edge(edge.from_id, edge.to_id)
        return cg


def _collect_names(subgraphs: list[ast.Subgraph], names: set[str]) -> None:
    for sg in subgraphs:
        names.add(sg.name)
        _collect_names(sg.subgraphs, names)


def _iter_edges(ast_graph: ast.Graph) -> Iterator[ast.Edge]:
    yield from ast_graph.edges
    stack = list(reversed(ast_graph.subgraphs))
    while stack:
        sg = stack.pop()
        yield from sg.edges
        stack.extend(reversed(sg.subgraphs))
