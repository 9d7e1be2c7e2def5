"""Virtual clusters: synthetic groupings that keep related siblings together.

Inside every cluster that owns both nodes and child clusters, the nodes and
children are split into connected components of the "joined by an adjacency
segment" relation (a child counts only where the segment meets it at one of
its boundary ranks). Each component with more than one member becomes a
virtual cluster, so the crossing reduction moves it as one block. Afterwards
consecutive dummies of a long edge that share a host cluster are grouped the
same way.
"""

from __future__ import annotations

import logging

import networkx as nx

from clusterlayout.layout.nesting import ExtendedNestingGraph

logger = logging.getLogger(__name__)


def create_virtual_clusters(eng: ExtendedNestingGraph) -> None:
    before = len(eng.clusters)
    _group_components(eng, eng.clusters.root)

    for chain in eng.chains:
        if len(chain) < 3:
            continue
        run = [eng.source(chain[1])]
        c = eng.parent(run[0])
        for eid in chain[2:]:
            w = eng.source(eid)
            cw = eng.parent(w)
            if cw != c:
                if len(run) > 1:
                    eng.clusters.create_cluster(run, c)
                run = []
                c = cw
            run.append(w)
        if len(run) > 1:
            eng.clusters.create_cluster(run, c)

    logger.debug(f"virtual clusters: {len(eng.clusters) - before} created")


def _group_components(eng: ExtendedNestingGraph, c: int) -> None:
    clusters = eng.clusters
    members = clusters.nodes(c)
    children = list(clusters.children[c])

    if members and children:
        aux: nx.Graph = nx.Graph()
        aux.add_nodes_from(("node", v) for v in members)
        aux.add_nodes_from(("cluster", child) for child in children)

        for v in members:
            for eid in eng.in_edges(v) + eng.out_edges(v):
                if eng.orig_edge[eid] is None:
                    continue
                u, t = eng.edge_ends[eid]
                w = t if u == v else u
                cw = eng.parent(w)
                if cw == c:
                    aux.add_edge(("node", v), ("node", w))
                elif clusters.parent[cw] == c:
                    orig = clusters.original(cw)
                    if orig is None:
                        continue
                    if eng.rank[w] in (eng.rank[eng.top[orig]], eng.rank[eng.bottom[orig]]):
                        aux.add_edge(("node", v), ("cluster", cw))

        components = list(nx.connected_components(aux))
        if len(components) > 1:
            for component in components:
                if len(component) < 2:
                    continue
                nodes = [v for v in members if ("node", v) in component]
                virtual = clusters.create_cluster(nodes, c)
                for child in children:
                    if ("cluster", child) in component:
                        clusters.move_cluster(child, virtual)

    for child in list(clusters.children[c]):
        _group_components(eng, child)
