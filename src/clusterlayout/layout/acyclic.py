"""Incremental acyclic edge insertion over a networkx digraph.

A LevelMap keeps an integer level per node such that level[x] < level[y] for
every edge x -> y. Inserting u -> v is free when level[u] < level[v] already.
Otherwise a forward search from v decides whether u is reachable (the edge
would close a cycle); if it is not, only the nodes reachable from v are
relevelled, so the cost follows the affected subgraph instead of the whole
graph.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Hashable, Iterable

import networkx as nx

from clusterlayout.layout.scratch import MarkBuffer


class LevelMap:
    """Level bookkeeping for one directed graph that must stay acyclic.

    `levels` must already satisfy the invariant for the edges present in
    `graph`; nodes missing from it start at level 0, which is only valid for
    nodes without incident edges.
    """

    def __init__(
        self,
        graph: nx.DiGraph | nx.MultiDiGraph,
        levels: dict[Hashable, int] | None = None,
        visited: MarkBuffer | None = None,
    ) -> None:
        self.graph = graph
        self.levels: dict[Hashable, int] = dict(levels) if levels is not None else {}
        self._visited = visited if visited is not None else MarkBuffer()

    def level(self, node: Hashable) -> int:
        return self.levels.setdefault(node, 0)

    def reaches(self, src: Hashable, dst: Hashable) -> tuple[bool, list[Hashable]]:
        """Breadth-first search from `src`.

        Returns (found, affected): whether `dst` is reachable, and, when it is
        not, every node reachable from `src` (src included) in search order.
        """
        if src == dst:
            return True, []
        visited = self._visited
        visited.clear()
        visited.mark(src)
        queue: deque[Hashable] = deque([src])
        order: list[Hashable] = []
        try:
            while queue:
                w = queue.popleft()
                order.append(w)
                for t in self.graph.successors(w):
                    if t == dst:
                        return True, []
                    if t not in visited:
                        visited.mark(t)
                        queue.append(t)
            return False, order
        finally:
            visited.clear()

    def repair_levels(self, start: Hashable, affected: Iterable[Hashable]) -> None:
        """Relevel `affected` (everything reachable from `start`) in topological order.

        `start` keeps the level the caller assigned; every other affected node
        gets one more than the highest level among its predecessors.
        """
        inside = set(affected)
        pending: dict[Hashable, int] = {}
        for w in inside:
            pending[w] = sum(1 for s in self.graph.predecessors(w) if s in inside and s != w)

        queue: deque[Hashable] = deque([start])
        while queue:
            w = queue.popleft()
            if w != start:
                self.levels[w] = max(self.level(s) for s in self.graph.predecessors(w)) + 1
            for t in self.graph.successors(w):
                if t in inside:
                    pending[t] -= 1
                    if pending[t] == 0:
                        queue.append(t)

    def try_add(self, u: Hashable, v: Hashable, key: Hashable | None = None) -> bool:
        """Add u -> v unless it would close a cycle. Returns whether the edge was added."""
        if u == v:
            return False
        if self.level(u) < self.level(v):
            self._add(u, v, key)
            return True
        found, affected = self.reaches(v, u)
        if found:
            return False
        self.levels[v] = self.level(u) + 1
        self.repair_levels(v, affected)
        self._add(u, v, key)
        return True

    def try_insert(self, u: Hashable, v: Hashable, key: Hashable | None = None) -> tuple[Hashable, Hashable]:
        """Add u -> v, or v -> u when u -> v would close a cycle. Returns the direction added."""
        if u == v:
            raise ValueError(f"self-loop on {u!r} cannot be made acyclic")
        if self.try_add(u, v, key):
            return u, v
        # v already reaches u, so the reversed edge agrees with the levels
        self._add(v, u, key)
        return v, u

    def _add(self, u: Hashable, v: Hashable, key: Hashable | None) -> None:
        if key is not None and self.graph.is_multigraph():
            self.graph.add_edge(u, v, key=key)
        else:
            self.graph.add_edge(u, v)
