"""Layout result types shared by the engine, the CLI and downstream consumers."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field


@dataclass(frozen=True, order=True)
class Crossings:
    """A crossing count as (cluster crossings, edge crossings).

    Ordering is lexicographic: one cluster-boundary crossing outweighs any
    number of edge-edge crossings.
    """

    clusters: int = 0
    edges: int = 0

    def __add__(self, other: Crossings) -> Crossings:
        return Crossings(self.clusters + other.clusters, self.edges + other.edges)

    def __sub__(self, other: Crossings) -> Crossings:
        return Crossings(self.clusters - other.clusters, self.edges - other.edges)

    def is_zero(self) -> bool:
        return self.clusters == 0 and self.edges == 0

    @classmethod
    def infinity(cls) -> Crossings:
        return cls(sys.maxsize, sys.maxsize)

    def __str__(self) -> str:
        return f"({self.clusters},{self.edges})"


@dataclass
class PlacedNode:
    """A vertex of the input graph with its final layer and position in that layer."""

    id: str
    layer: int
    position: int
    cluster: str = ""


@dataclass
class EdgeChain:
    """The route of one input edge through the layers.

    `dummies` holds (layer, position) of every split point from the upper end
    to the lower end. `reversed` is set when the edge had to point upwards to
    keep the nesting graph acyclic, so `upper`/`lower` are swapped with respect
    to `source`/`target`. `vertical[i]` tells whether segment i may be drawn
    as a straight vertical line.
    """

    source: str
    target: str
    reversed: bool = False
    dummies: list[tuple[int, int]] = field(default_factory=list)
    vertical: list[bool] = field(default_factory=list)

    @property
    def upper(self) -> str:
        return self.target if self.reversed else self.source

    @property
    def lower(self) -> str:
        return self.source if self.reversed else self.target


@dataclass
class ClusterBand:
    """Layer range [top_layer, bottom_layer] of a non-root cluster's boundary markers."""

    name: str
    top_layer: int
    bottom_layer: int
    parent: str = ""


@dataclass
class LayoutResult:
    """Self-contained layout output; everything a coordinate stage needs."""

    nodes: list[PlacedNode] = field(default_factory=list)
    edges: list[EdgeChain] = field(default_factory=list)
    clusters: list[ClusterBand] = field(default_factory=list)
    layers: list[list[str]] = field(default_factory=list)
    crossings: Crossings = field(default_factory=Crossings)
    crossing_history: list[Crossings] = field(default_factory=list)

    @property
    def layer_count(self) -> int:
        return len(self.layers)

    def node(self, node_id: str) -> PlacedNode:
        for placed in self.nodes:
            if placed.id == node_id:
                return placed
        raise KeyError(node_id)

    def cluster(self, name: str) -> ClusterBand:
        for band in self.clusters:
            if band.name == name:
                return band
        raise KeyError(name)


# Prefix constants for auxiliary entries in `LayoutResult.layers`
TOP_PREFIX = "__top_"
BOTTOM_PREFIX = "__bottom_"
DUMMY_PREFIX = "__dummy_"
BOUNDARY_PREFIX = "__boundary_"
