"""
Direct Bubble Hierarchical Tree (DBHT) clustering.

Song, Di Matteo and Aste (2012), "Hierarchical information clustering by
means of topologically embedded graphs". The planar filtered graph (PMFG or
TMFG) is cut along its separating triangles into bubbles (maximal planar
subgraphs without separating triangles). The bubble tree is directed
towards the side each separating triangle is more strongly attached to;
sink bubbles (converging bubbles) seed the clusters. The linkage tree is
built bottom-up by complete linkage on shortest-path distances: vertices
within a bubble, bubbles within a cluster, then clusters.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Protocol, Tuple, runtime_checkable
import itertools
import logging

import numpy as np
import networkx as nx

from ..core.constants import LINKAGE_DBHT_PMFG, LINKAGE_DBHT_TMFG, FILTER_PMFG, FILTER_TMFG
from ..core.exceptions import ComputationError
from ..core.validation import check_dbht_linkage, check_square
from .planar import build_pmfg, build_tmfg

logger = logging.getLogger(__name__)

Bubble = FrozenSet[int]
Triangle = Tuple[int, int, int]

BASE_FILTERS = {
    LINKAGE_DBHT_PMFG: FILTER_PMFG,
    LINKAGE_DBHT_TMFG: FILTER_TMFG,
}


@dataclass
class DBHTResult:
    """
    Output of a DBHT run.

    Attributes:
        labels: Direct flat partition (T8), cluster IDs 1..K
        linkage: (p - 1) x 4 linkage matrix in scipy format
        graph: Planar filtered graph on integer nodes 0..p-1
        shortest_paths: (p x p) shortest-path distances on the graph (Dpm)
        bubbles: Vertex sets of the bubbles
        bubble_tree: Directed bubble tree (nodes are bubble indices)
        converging: Indices of converging bubbles
        vertex_bubble: Bubble index each vertex is assigned to
        base: Base filter used ('PMFG' or 'TMFG')
    """
    labels: np.ndarray
    linkage: np.ndarray
    graph: nx.Graph
    shortest_paths: np.ndarray
    bubbles: List[Bubble]
    bubble_tree: nx.DiGraph
    converging: List[int]
    vertex_bubble: np.ndarray
    base: str = FILTER_PMFG

    @property
    def n_clusters(self) -> int:
        return int(len(np.unique(self.labels)))


@runtime_checkable
class DBHTOracle(Protocol):
    """
    Anything that turns a distance/similarity pair into a DBHT result.

    ``linkage`` is 'DBHT_PMFG' or 'DBHT_TMFG' and selects the base graph.
    """

    def run(self, distance: np.ndarray, similarity: np.ndarray, linkage: str) -> DBHTResult:
        ...


# =============================================================================
# Bubble decomposition
# =============================================================================

def _triangles(H: nx.Graph) -> List[Triangle]:
    """All 3-cliques of H in sorted vertex order."""
    tris = []
    for u in sorted(H.nodes):
        higher = sorted(v for v in H[u] if v > u)
        for v, w in itertools.combinations(higher, 2):
            if H.has_edge(v, w):
                tris.append((u, v, w))
    return tris


def _separating_split(G: nx.Graph, vertices: FrozenSet[int]):
    """First separating triangle of G[vertices] and the component it cuts off."""
    H = G.subgraph(vertices)
    for tri in _triangles(H):
        rest = H.subgraph(vertices.difference(tri))
        components = sorted(nx.connected_components(rest), key=min)
        if len(components) > 1:
            return tri, frozenset(components[0])
    return None, None


@dataclass
class _Decomposition:
    bubbles: List[Bubble] = field(default_factory=list)
    # (bubble index, bubble index, separating triangle)
    links: List[Tuple[int, int, Triangle]] = field(default_factory=list)


def _bubble_containing(decomp: _Decomposition, candidates: List[int], tri: Triangle) -> int:
    for idx in candidates:
        if set(tri) <= decomp.bubbles[idx]:
            return idx
    raise ComputationError("bubble tree", f"triangle {tri} not found in any bubble")


def decompose_bubbles(G: nx.Graph) -> Tuple[List[Bubble], List[Tuple[int, int, Triangle]]]:
    """
    Split a maximal planar graph into bubbles along separating triangles.

    Returns:
        (bubbles, links): bubble vertex sets and undirected bubble tree
        edges annotated with the separating triangle they share
    """
    decomp = _Decomposition()

    def split(vertices: FrozenSet[int]) -> List[int]:
        if len(vertices) <= 4:
            decomp.bubbles.append(vertices)
            return [len(decomp.bubbles) - 1]

        tri, inner = _separating_split(G, vertices)
        if tri is None:
            decomp.bubbles.append(vertices)
            return [len(decomp.bubbles) - 1]

        side_a = split(inner.union(tri))
        side_b = split(vertices.difference(inner))
        decomp.links.append((
            _bubble_containing(decomp, side_a, tri),
            _bubble_containing(decomp, side_b, tri),
            tri,
        ))
        return side_a + side_b

    split(frozenset(G.nodes))
    return decomp.bubbles, decomp.links


def _attachment(G: nx.Graph, S: np.ndarray, tri: Triangle, side: set) -> float:
    """Total similarity of edges from a triangle into one side of the graph."""
    total = 0.0
    for t in tri:
        for u in G[t]:
            if u in side:
                total += S[t, u]
    return total


def direct_bubble_tree(
    G: nx.Graph,
    S: np.ndarray,
    bubbles: List[Bubble],
    links: List[Tuple[int, int, Triangle]],
) -> nx.DiGraph:
    """
    Orient every bubble tree edge towards the side its separating triangle
    is more strongly connected to.
    """
    tree = nx.DiGraph()
    tree.add_nodes_from(range(len(bubbles)))

    for a, b, tri in links:
        rest = G.subgraph(set(G.nodes).difference(tri))
        side = {}
        for comp in nx.connected_components(rest):
            for key in (a, b):
                if comp & bubbles[key]:
                    side.setdefault(key, set()).update(comp)

        weight_a = _attachment(G, S, tri, side.get(a, set()))
        weight_b = _attachment(G, S, tri, side.get(b, set()))
        if weight_b > weight_a:
            tree.add_edge(a, b, triangle=tri)
        else:
            tree.add_edge(b, a, triangle=tri)
    return tree


def bubble_strength(G: nx.Graph, S: np.ndarray, vertex: int, bubble: Bubble) -> float:
    """Similarity of a vertex to its bubble, per bubble edge (chi)."""
    n_edges = 3 * (len(bubble) - 2) if len(bubble) >= 3 else max(len(bubble) - 1, 1)
    total = sum(S[vertex, u] for u in G[vertex] if u in bubble)
    return total / n_edges


# =============================================================================
# Hierarchy
# =============================================================================

class _Agglomerator:
    """Complete-linkage merger that writes scipy linkage rows."""

    def __init__(self, dist: np.ndarray):
        self.dist = dist
        self.n = dist.shape[0]
        self.rows: List[List[float]] = []
        self.members: Dict[int, List[int]] = {i: [i] for i in range(self.n)}

    def _height(self, a: int, b: int) -> float:
        return float(self.dist[np.ix_(self.members[a], self.members[b])].max())

    def merge_all(self, nodes: List[int]) -> int:
        active = list(nodes)
        while len(active) > 1:
            best = None
            for a, b in itertools.combinations(active, 2):
                h = self._height(a, b)
                if best is None or h < best[0]:
                    best = (h, a, b)
            h, a, b = best
            new_id = self.n + len(self.rows)
            self.members[new_id] = self.members[a] + self.members[b]
            self.rows.append([float(min(a, b)), float(max(a, b)), h, float(len(self.members[new_id]))])
            active.remove(a)
            active.remove(b)
            active.append(new_id)
        return active[0]

    def linkage(self) -> np.ndarray:
        return np.array(self.rows, dtype=float).reshape(-1, 4)


class DirectBubbleHierarchy:
    """Default DBHT implementation on networkx planar graphs."""

    def run(self, distance: np.ndarray, similarity: np.ndarray, linkage: str = LINKAGE_DBHT_PMFG) -> DBHTResult:
        """
        Run DBHT clustering.

        Args:
            distance: (p x p) distance matrix
            similarity: (p x p) similarity matrix
            linkage: 'DBHT_PMFG' or 'DBHT_TMFG'

        Returns:
            DBHTResult
        """
        check_dbht_linkage(linkage)
        D = check_square(distance, "distance")
        S = check_square(similarity, "similarity", size=D.shape[0])
        p = D.shape[0]
        base = BASE_FILTERS[linkage]
        nodes = list(range(p))

        builder = build_tmfg if base == FILTER_TMFG else build_pmfg
        G = builder(D, S, nodes)
        Dpm = nx.floyd_warshall_numpy(G, nodelist=nodes, weight='distance')

        bubbles, links = decompose_bubbles(G)
        tree = direct_bubble_tree(G, S, bubbles, links)
        converging = [b for b in tree.nodes if tree.out_degree(b) == 0]
        logger.debug(
            f"DBHT ({base}): {len(bubbles)} bubbles, {len(converging)} converging"
        )

        cluster_of = self._assign_clusters(G, S, Dpm, bubbles, tree, converging)
        labels = self._relabel(cluster_of, p)
        vertex_bubble = self._assign_bubbles(G, S, bubbles, tree, cluster_of)

        Z = self._hierarchy(Dpm, labels, vertex_bubble)

        return DBHTResult(
            labels=labels,
            linkage=Z,
            graph=G,
            shortest_paths=Dpm,
            bubbles=bubbles,
            bubble_tree=tree,
            converging=converging,
            vertex_bubble=vertex_bubble,
            base=base,
        )

    @staticmethod
    def _assign_clusters(G, S, Dpm, bubbles, tree, converging) -> np.ndarray:
        """Map every vertex to a converging bubble index."""
        p = Dpm.shape[0]
        cluster_of = np.full(p, -1, dtype=int)

        # Vertices inside converging bubbles: strongest attachment
        for v in range(p):
            owners = [c for c in converging if v in bubbles[c]]
            if owners:
                cluster_of[v] = max(owners, key=lambda c: bubble_strength(G, S, v, bubbles[c]))

        # Remaining vertices: closest reachable converging bubble
        for v in np.where(cluster_of < 0)[0]:
            reachable = set()
            for b, bubble in enumerate(bubbles):
                if v in bubble:
                    reachable.update(c for c in converging if c == b or nx.has_path(tree, b, c))
            candidates = sorted(reachable) or list(converging)

            def mean_distance(c):
                core = np.where(cluster_of == c)[0]
                core = core if core.size else np.array(sorted(bubbles[c]))
                return float(Dpm[v, core].mean())

            cluster_of[v] = min(candidates, key=mean_distance)
        return cluster_of

    @staticmethod
    def _relabel(cluster_of: np.ndarray, p: int) -> np.ndarray:
        """Converging bubble indices -> 1..K by first appearance."""
        mapping: Dict[int, int] = {}
        labels = np.empty(p, dtype=int)
        for v in range(p):
            key = int(cluster_of[v])
            if key not in mapping:
                mapping[key] = len(mapping) + 1
            labels[v] = mapping[key]
        return labels

    @staticmethod
    def _assign_bubbles(G, S, bubbles, tree, cluster_of) -> np.ndarray:
        """Bubble of every vertex within its cluster (strongest attachment)."""
        p = len(cluster_of)
        vertex_bubble = np.empty(p, dtype=int)
        for v in range(p):
            c = int(cluster_of[v])
            own = [b for b, bubble in enumerate(bubbles) if v in bubble]
            towards = [b for b in own if b == c or nx.has_path(tree, b, c)]
            candidates = towards or own
            vertex_bubble[v] = max(candidates, key=lambda b: bubble_strength(G, S, v, bubbles[b]))
        return vertex_bubble

    @staticmethod
    def _hierarchy(Dpm: np.ndarray, labels: np.ndarray, vertex_bubble: np.ndarray) -> np.ndarray:
        """Three-level complete linkage: bubble, cluster, whole graph."""
        agg = _Agglomerator(Dpm)
        cluster_roots = []
        for c in np.unique(labels):
            in_cluster = np.where(labels == c)[0]
            bubble_roots = []
            for b in np.unique(vertex_bubble[in_cluster]):
                group = [int(v) for v in in_cluster if vertex_bubble[v] == b]
                bubble_roots.append(agg.merge_all(group))
            cluster_roots.append(agg.merge_all(bubble_roots))
        agg.merge_all(cluster_roots)
        return agg.linkage()
