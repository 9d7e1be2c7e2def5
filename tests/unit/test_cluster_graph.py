"""Tests for ir.cluster_graph: builder, validation and AST conversion."""

from __future__ import annotations

import pytest

from clusterlayout.errors import ClusterTreeError
from clusterlayout.ir.cluster_graph import ROOT, Cluster, ClusterGraph
from clusterlayout.parsers import parse

# ─── Helpers ──────────────────────────────────────────────────────────────────


def nested_graph() -> ClusterGraph:
    """root{r} > A{a} > B{b}, root > C{c}; edges a->b, b->c, r->a."""
    cg = ClusterGraph()
    a = cg.add_cluster("A")
    b = cg.add_cluster("B", parent=a)
    c = cg.add_cluster("C")
    cg.add_node("r")
    cg.add_node("a", cluster=a)
    cg.add_node("b", cluster=b)
    cg.add_node("c", cluster=c)
    cg.add_edge("a", "b")
    cg.add_edge("b", "c")
    cg.add_edge("r", "a")
    return cg


# ─── Builder Tests ────────────────────────────────────────────────────────────


class TestBuilder:
    def test_fresh_graph_has_root_only(self):
        cg = ClusterGraph()
        assert cg.root == ROOT
        assert cg.cluster_count() == 1
        assert cg.clusters[ROOT].parent is None

    def test_counts(self):
        cg = nested_graph()
        assert cg.node_count() == 4
        assert cg.edge_count() == 3
        assert cg.cluster_count() == 4

    def test_membership(self):
        cg = nested_graph()
        assert cg.cluster_of("r") == ROOT
        assert cg.clusters[cg.cluster_of("b")].name == "B"

    def test_edge_creates_endpoints_in_root(self):
        cg = ClusterGraph()
        cg.add_edge("x", "y")
        assert cg.cluster_of("x") == ROOT
        assert cg.cluster_of("y") == ROOT

    def test_parallel_edges_kept(self):
        cg = ClusterGraph()
        k1 = cg.add_edge("x", "y")
        k2 = cg.add_edge("x", "y")
        assert k1 != k2
        assert cg.edge_count() == 2
        assert len(cg.edge_list()) == 2

    def test_existing_node_not_moved_by_add_node(self):
        cg = ClusterGraph()
        a = cg.add_cluster("A")
        cg.add_node("x", cluster=a)
        cg.add_node("x")
        assert cg.cluster_of("x") == a

    def test_move_node(self):
        cg = nested_graph()
        cg.move_node("r", 1)
        assert cg.cluster_of("r") == 1
        assert "r" not in cg.clusters[ROOT].nodes
        cg.validate()

    def test_label_defaults_to_id(self):
        cg = ClusterGraph()
        cg.add_node("x")
        cg.add_node("y", label="Why")
        assert cg.label("x") == "x"
        assert cg.label("y") == "Why"

    def test_unknown_parent_rejected(self):
        cg = ClusterGraph()
        with pytest.raises(ClusterTreeError):
            cg.add_cluster("A", parent=5)

    def test_unknown_cluster_for_node_rejected(self):
        cg = ClusterGraph()
        with pytest.raises(ClusterTreeError):
            cg.add_node("x", cluster=3)


# ─── Tree Query Tests ─────────────────────────────────────────────────────────


class TestTreeQueries:
    def test_ancestors_end_at_root(self):
        cg = nested_graph()
        assert list(cg.ancestors(2)) == [2, 1, ROOT]

    def test_postorder_children_before_parents(self):
        cg = nested_graph()
        order = cg.postorder()
        assert order == [2, 1, 3, ROOT]

    def test_parent(self):
        cg = nested_graph()
        assert cg.parent(2) == 1
        assert cg.parent(ROOT) is None


# ─── Validation Tests ─────────────────────────────────────────────────────────


class TestValidate:
    def test_valid_graph_passes(self):
        nested_graph().validate()

    def test_two_roots(self):
        cg = ClusterGraph(clusters=[Cluster(0, "", None), Cluster(1, "X", None)])
        with pytest.raises(ClusterTreeError, match="root"):
            cg.validate()

    def test_parent_cycle(self):
        clusters = [
            Cluster(0, "", None),
            Cluster(1, "X", 2, children=[2]),
            Cluster(2, "Y", 1, children=[1]),
        ]
        cg = ClusterGraph(clusters=clusters)
        with pytest.raises(ClusterTreeError):
            cg.validate()

    def test_child_list_mismatch(self):
        clusters = [Cluster(0, "", None), Cluster(1, "X", 0)]
        cg = ClusterGraph(clusters=clusters)
        with pytest.raises(ClusterTreeError, match="child list"):
            cg.validate()

    def test_node_in_two_clusters(self):
        cg = ClusterGraph()
        a = cg.add_cluster("A")
        cg.add_node("x", cluster=a)
        cg.clusters[ROOT].nodes.append("x")
        with pytest.raises(ClusterTreeError, match="both"):
            cg.validate()

    def test_node_without_cluster(self):
        cg = ClusterGraph()
        cg.digraph.add_node("orphan")
        with pytest.raises(ClusterTreeError, match="no cluster"):
            cg.validate()

    def test_unknown_member(self):
        cg = ClusterGraph()
        cg.clusters[ROOT].nodes.append("ghost")
        with pytest.raises(ClusterTreeError, match="unknown node"):
            cg.validate()

    def test_misnumbered_cluster(self):
        cg = ClusterGraph(clusters=[Cluster(3, "", None)])
        with pytest.raises(ClusterTreeError):
            cg.validate()


# ─── AST Conversion Tests ─────────────────────────────────────────────────────


class TestFromAst:
    def test_subgraphs_become_clusters(self):
        cg = ClusterGraph.from_ast(parse("graph TD\n  subgraph C1\n    a --> b\n  end\n  b --> c"))
        assert cg.cluster_count() == 2
        c1 = cg.clusters[1]
        assert c1.name == "C1"
        assert c1.nodes == ["a", "b"]
        assert cg.cluster_of("c") == ROOT
        assert cg.edge_count() == 2

    def test_first_subgraph_wins(self):
        src = "graph TD\n  subgraph S1\n    x\n  end\n  subgraph S2\n    x --> y\n  end"
        cg = ClusterGraph.from_ast(parse(src))
        assert cg.clusters[cg.cluster_of("x")].name == "S1"
        assert cg.clusters[cg.cluster_of("y")].name == "S2"

    def test_nested_clusters(self):
        src = "graph TD\n  subgraph Outer\n    x\n    subgraph Inner\n      y\n    end\n  end"
        cg = ClusterGraph.from_ast(parse(src))
        inner = cg.cluster_of("y")
        assert cg.clusters[inner].name == "Inner"
        assert cg.clusters[cg.parent(inner)].name == "Outer"

    def test_labels_carried(self):
        cg = ClusterGraph.from_ast(parse("graph TD\n  subgraph S[Shown]\n    a[Alpha]\n  end"))
        assert cg.label("a") == "Alpha"
        assert cg.clusters[1].label == "Shown"

    def test_edges_to_subgraph_names_dropped(self):
        src = "graph TD\n  subgraph S\n    a\n  end\n  x --> S\n  x --> a"
        cg = ClusterGraph.from_ast(parse(src))
        assert "S" not in cg.digraph
        assert cg.edge_list() == [("x", "a", 0)]

    def test_result_validates(self):
        src = "graph TD\n  subgraph A\n    a1 --> a2\n    subgraph B\n      b1\n    end\n  end\n  a2 --> b1 --> z"
        ClusterGraph.from_ast(parse(src)).validate()
