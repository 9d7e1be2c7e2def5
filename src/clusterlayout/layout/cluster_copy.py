"""Working copy of the cluster tree, owned by one layout run.

The copy is an index arena: clusters are integer handles with parent,
children and member tables. It maps both ways to the input tree so the core
can reparent nesting-graph nodes and add virtual clusters without touching
the caller's ClusterGraph.
"""

from __future__ import annotations

from clusterlayout.ir.cluster_graph import ClusterGraph


class ClusterGraphCopy:
    def __init__(self, cg: ClusterGraph) -> None:
        self.parent: list[int | None] = []
        self.children: list[list[int]] = []
        self.members: list[dict[int, None]] = []
        self._original: list[int | None] = []
        self._copy: dict[int, int] = {}
        self._cluster_of: dict[int, int] = {}

        self.root = self.new_cluster(None, cg.root)
        stack = [cg.root]
        while stack:
            orig = stack.pop()
            for child in cg.clusters[orig].children:
                self.new_cluster(self._copy[orig], child)
                stack.append(child)

    # ─── Mapping ─────────────────────────────────────────────────────────

    def copy(self, orig: int) -> int:
        return self._copy[orig]

    def original(self, c: int) -> int | None:
        """Original cluster of `c`, or None for a virtual cluster."""
        return self._original[c]

    def is_virtual(self, c: int) -> bool:
        return self._original[c] is None

    # ─── Structure ───────────────────────────────────────────────────────

    def new_cluster(self, parent: int | None, original: int | None = None) -> int:
        c = len(self.parent)
        self.parent.append(parent)
        self.children.append([])
        self.members.append({})
        self._original.append(original)
        if original is not None:
            self._copy[original] = c
        if parent is not None:
            self.children[parent].append(c)
        return c

    def create_cluster(self, nodes: list[int], parent: int) -> int:
        """Create a virtual cluster under `parent` holding `nodes`."""
        c = self.new_cluster(parent)
        for v in nodes:
            self.set_parent(v, c)
        return c

    def move_cluster(self, c: int, new_parent: int) -> None:
        old = self.parent[c]
        assert old is not None, "the root cluster cannot move"
        self.children[old].remove(c)
        self.children[new_parent].append(c)
        self.parent[c] = new_parent

    def set_parent(self, v: int, c: int) -> None:
        """(Re)assign nesting-graph node `v` to cluster `c`."""
        old = self._cluster_of.get(v)
        if old is not None:
            del self.members[old][v]
        self.members[c][v] = None
        self._cluster_of[v] = c

    def remove_node(self, v: int) -> None:
        c = self._cluster_of.pop(v)
        del self.members[c][v]

    # ─── Queries ─────────────────────────────────────────────────────────

    def cluster_of(self, v: int) -> int:
        return self._cluster_of[v]

    def nodes(self, c: int) -> list[int]:
        return list(self.members[c])

    def __len__(self) -> int:
        return len(self.parent)

    def postorder(self) -> list[int]:
        order: list[int] = []
        stack: list[tuple[int, bool]] = [(self.root, False)]
        while stack:
            c, expanded = stack.pop()
            if expanded:
                order.append(c)
                continue
            stack.append((c, True))
            for child in reversed(self.children[c]):
                stack.append((child, False))
        return order
