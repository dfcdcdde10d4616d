"""
Graph filters on the complete distance/similarity graph.

- MST: minimum spanning tree on distance (p - 1 edges)
- PMFG: Planar Maximally Filtered Graph on similarity (3(p - 2) edges)
- TMFG: Triangulated Maximally Filtered Graph on similarity (3(p - 2) edges)

Every returned graph carries both ``distance`` and ``similarity`` edge
attributes and contains all p nodes.
"""

from typing import List, Sequence, Tuple
import itertools
import logging

import numpy as np
import networkx as nx

logger = logging.getLogger(__name__)

# K3,3 has 9 edges; every graph with fewer is planar
MIN_NONPLANAR_EDGES = 9


def _empty_graph(names: Sequence[str]) -> nx.Graph:
    G = nx.Graph()
    G.add_nodes_from(names)
    return G


def _add_edge(G: nx.Graph, names, dist: np.ndarray, sim: np.ndarray, i: int, j: int) -> None:
    G.add_edge(names[i], names[j], distance=float(dist[i, j]), similarity=float(sim[i, j]))


def complete_graph(dist: np.ndarray, sim: np.ndarray, names: Sequence[str]) -> nx.Graph:
    """Complete graph with distance and similarity edge weights."""
    G = _empty_graph(names)
    for i, j in itertools.combinations(range(len(names)), 2):
        _add_edge(G, names, dist, sim, i, j)
    return G


def ranked_pairs(sim: np.ndarray) -> List[Tuple[int, int]]:
    """Node pairs (i < j) sorted by descending similarity (stable on ties)."""
    iu, ju = np.triu_indices(sim.shape[0], k=1)
    order = np.argsort(-sim[iu, ju], kind='stable')
    return [(int(iu[k]), int(ju[k])) for k in order]


def build_mst(dist: np.ndarray, sim: np.ndarray, names: Sequence[str]) -> nx.Graph:
    """
    Build the Minimum Spanning Tree on the distance matrix.

    Args:
        dist: (p x p) distance matrix
        sim: (p x p) similarity matrix (stored as edge attribute)
        names: Node labels

    Returns:
        NetworkX Graph with p - 1 edges
    """
    G = complete_graph(dist, sim, names)
    return nx.minimum_spanning_tree(G, weight='distance')


def build_pmfg(dist: np.ndarray, sim: np.ndarray, names: Sequence[str]) -> nx.Graph:
    """
    Build the Planar Maximally Filtered Graph.

    Edges are offered in descending similarity order and kept whenever the
    graph stays planar, until 3(p - 2) edges are present.

    A candidate only needs a planarity test when it closes a cycle inside
    a component that is below the Euler bound 3n - 6, and then only that
    component is tested. Bridges between components are always kept;
    components at the bound always reject. The worst case remains one
    planarity test per node pair, O(p^3) overall.

    Args:
        dist: (p x p) distance matrix (stored as edge attribute)
        sim: (p x p) similarity matrix
        names: Node labels

    Returns:
        Planar NetworkX Graph
    """
    p = len(names)
    G = _empty_graph(names)
    target = 3 * (p - 2) if p >= 3 else p - 1

    # Union-find over node indices with per-component node and edge counts
    parent = list(range(p))
    n_nodes = [1] * p
    n_edges = [0] * p

    def root(k):
        while parent[k] != k:
            parent[k] = parent[parent[k]]
            k = parent[k]
        return k

    tests = 0
    for i, j in ranked_pairs(sim):
        if G.number_of_edges() >= target:
            break
        ri, rj = root(i), root(j)
        if ri != rj:
            _add_edge(G, names, dist, sim, i, j)
            parent[rj] = ri
            n_nodes[ri] += n_nodes[rj]
            n_edges[ri] += n_edges[rj] + 1
            continue

        if n_nodes[ri] >= 3 and n_edges[ri] + 1 > 3 * n_nodes[ri] - 6:
            continue

        _add_edge(G, names, dist, sim, i, j)
        if n_edges[ri] + 1 >= MIN_NONPLANAR_EDGES:
            tests += 1
            component = G.subgraph(nx.node_connected_component(G, names[i]))
            is_planar, _ = nx.check_planarity(component)
            if not is_planar:
                G.remove_edge(names[i], names[j])
                continue
        n_edges[ri] += 1

    logger.debug(f"PMFG: {G.number_of_edges()} edges on {p} nodes ({tests} planarity tests)")
    return G


def _seed_clique(sim: np.ndarray) -> List[int]:
    # Largest similarity row sum first, then greedy strength to the chosen set
    strength = sim.copy()
    np.fill_diagonal(strength, 0.0)
    chosen = [int(np.argmax(strength.sum(axis=1)))]
    while len(chosen) < 4:
        gains = strength[:, chosen].sum(axis=1)
        gains[chosen] = -np.inf
        chosen.append(int(np.argmax(gains)))
    return chosen


def build_tmfg(dist: np.ndarray, sim: np.ndarray, names: Sequence[str]) -> nx.Graph:
    """
    Build the Triangulated Maximally Filtered Graph.

    Starts from a 4-clique and repeatedly inserts the (vertex, face) pair
    with the largest similarity gain, splitting that triangular face into
    three. The result is a maximal planar graph made of 4-cliques.

    Args:
        dist: (p x p) distance matrix (stored as edge attribute)
        sim: (p x p) similarity matrix
        names: Node labels

    Returns:
        Planar NetworkX Graph with 3(p - 2) edges for p >= 3
    """
    p = len(names)
    if p < 4:
        return complete_graph(dist, sim, names)

    G = _empty_graph(names)
    seed = _seed_clique(sim)
    for i, j in itertools.combinations(seed, 2):
        _add_edge(G, names, dist, sim, i, j)

    faces = [tuple(f) for f in itertools.combinations(seed, 3)]
    remaining = [v for v in range(p) if v not in seed]

    while remaining:
        best = None
        best_gain = -np.inf
        for v in remaining:
            for k, (a, b, c) in enumerate(faces):
                gain = sim[v, a] + sim[v, b] + sim[v, c]
                if gain > best_gain:
                    best_gain = gain
                    best = (v, k)

        v, k = best
        a, b, c = faces.pop(k)
        for u in (a, b, c):
            _add_edge(G, names, dist, sim, v, u)
        faces.extend([(v, a, b), (v, b, c), (v, a, c)])
        remaining.remove(v)

    logger.debug(f"TMFG: {G.number_of_edges()} edges on {p} nodes")
    return G
