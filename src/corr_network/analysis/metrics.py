"""
Network topology metrics.

Unweighted and weighted centralities on a filtered network, tree length,
and the hybrid centrality of Pozzi, Di Matteo and Aste (2013), "Spread of
risk across financial markets: better to invest in the peripheries".

Distance-weighted views feed path-based measures (closeness, betweenness,
shortest paths, eccentricity); similarity-weighted views feed
importance-based measures (degree, PageRank, eigenvector).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

import numpy as np
import pandas as pd
import networkx as nx

from ..core.constants import WEIGHT_DISTANCE, PAGERANK_DAMPING
from ..core.validation import check_weight_type
from ..estimation.distance import distance_to_similarity, similarity_to_distance

logger = logging.getLogger(__name__)

NODE_METRICS: List[str] = [
    'degree',
    'degree_centrality',
    'closeness',
    'betweenness',
    'pagerank',
    'eigenvector',
    'eccentricity',
]

# Hybrid centrality inputs: (view, metric)
HYBRID_X = [('uw', 'degree'), ('wtd', 'degree'), ('uw', 'betweenness'), ('wtd', 'betweenness')]
HYBRID_Y = [
    ('uw', 'eccentricity'), ('wtd', 'eccentricity'),
    ('uw', 'closeness'), ('wtd', 'closeness'),
    ('uw', 'eigenvector'), ('wtd', 'eigenvector'),
]


@dataclass
class NetworkMetrics:
    """Per-node and aggregate metrics for one filtered network."""
    unweighted: pd.DataFrame
    weighted: pd.DataFrame
    shortest_paths_uw: pd.DataFrame
    shortest_paths_wtd: pd.DataFrame
    averages: pd.DataFrame
    hybrid: pd.DataFrame
    edges: pd.DataFrame
    tree_length: float
    tree_length_norm: float

    @property
    def xpy(self) -> pd.Series:
        """Hybrid X + Y per node (low = central hub)."""
        return self.hybrid['XpY']

    @property
    def xmy(self) -> pd.Series:
        """Hybrid X - Y per node (positive = few links yet close to the core)."""
        return self.hybrid['XmY']


def _edge_table(graph: nx.Graph, attr: str, weight_type: str) -> pd.DataFrame:
    """
    Distance and similarity of every edge.

    Edges built by the network filters carry both ``distance`` and
    ``similarity``; those stored values are used as they are, so generic
    pdist distances keep S = 1 / (1 + D). Otherwise the missing side is
    derived from ``attr`` with the Mantegna relation.
    """
    rows = []
    for u, v, data in graph.edges(data=True):
        w = float(data[attr])
        if weight_type == WEIGHT_DISTANCE:
            d = w
            s = data.get('similarity')
            if s is None or attr != 'distance':
                s = distance_to_similarity(d)
        else:
            s = w
            d = data.get('distance')
            if d is None or attr != 'similarity':
                d = similarity_to_distance(s)
        rows.append({'source': u, 'target': v, 'distance': float(d), 'similarity': float(s)})
    return pd.DataFrame(rows, columns=['source', 'target', 'distance', 'similarity'])


def _weighted_view(nodes, edges: pd.DataFrame, column: str) -> nx.Graph:
    G = nx.Graph()
    G.add_nodes_from(nodes)
    for row in edges.itertuples(index=False):
        G.add_edge(row.source, row.target, weight=getattr(row, column))
    return G


def _eigenvector(G: nx.Graph, nodes, weight: Optional[str]) -> np.ndarray:
    """Leading eigenvector of the (weighted) adjacency matrix, summing to 1."""
    A = nx.to_numpy_array(G, nodelist=nodes, weight=weight)
    if not A.any():
        return np.full(len(nodes), 1.0 / len(nodes))
    _, vecs = np.linalg.eigh(A)
    v = np.abs(vecs[:, -1])
    return v / v.sum()


def _view_metrics(
    G_dist: nx.Graph,
    G_sim: nx.Graph,
    nodes: list,
    weighted: bool,
) -> Dict[str, object]:
    """Node metrics for one view (unweighted topology or weighted)."""
    weight = 'weight' if weighted else None
    n_edges = G_sim.number_of_edges()

    paths = nx.floyd_warshall_numpy(G_dist, nodelist=nodes, weight=weight)
    with np.errstate(divide='ignore'):
        closeness = 1.0 / paths.sum(axis=1)
        eccentricity = 1.0 / paths.max(axis=1)

    degree_map = dict(G_sim.degree(weight=weight))
    degree = np.array([degree_map[n] for n in nodes], dtype=float)
    if weighted:
        degree_centrality = degree / n_edges
    else:
        degree_centrality = degree / (n_edges - 1) if n_edges > 1 else np.full(len(nodes), np.nan)

    betweenness = nx.betweenness_centrality(G_dist, normalized=False, weight=weight)
    pagerank = nx.pagerank(G_sim, alpha=PAGERANK_DAMPING, weight=weight)

    table = pd.DataFrame({
        'degree': degree,
        'degree_centrality': degree_centrality,
        'closeness': closeness,
        'betweenness': [betweenness[n] for n in nodes],
        'pagerank': [pagerank[n] for n in nodes],
        'eigenvector': _eigenvector(G_sim, nodes, weight),
        'eccentricity': eccentricity,
    }, index=pd.Index(nodes, name='node'))

    return {
        'table': table[NODE_METRICS],
        'paths': pd.DataFrame(paths, index=nodes, columns=nodes),
    }


def hybrid_centrality(unweighted: pd.DataFrame, weighted: pd.DataFrame) -> pd.DataFrame:
    """
    Hybrid centrality from tied ranks of the node metrics.

    Ranks are descending (largest value gets rank 1, ties share the average
    rank). X combines degree and betweenness, Y combines eccentricity,
    closeness and eigenvector centrality; both are scaled to [0, 1].

    Args:
        unweighted: Unweighted node metric table
        weighted: Weighted node metric table

    Returns:
        DataFrame with columns X, Y, XpY, XmY
    """
    views = {'uw': unweighted, 'wtd': weighted}
    n = len(unweighted)

    def rank_sum(columns):
        total = pd.Series(0.0, index=unweighted.index)
        for view, metric in columns:
            total += views[view][metric].rank(ascending=False, method='average')
        return total

    denom = n - 1 if n > 1 else np.nan
    X = (rank_sum(HYBRID_X) - len(HYBRID_X)) / (len(HYBRID_X) * denom)
    Y = (rank_sum(HYBRID_Y) - len(HYBRID_Y)) / (len(HYBRID_Y) * denom)
    return pd.DataFrame({'X': X, 'Y': Y, 'XpY': X + Y, 'XmY': X - Y})


def _upper_mean(paths: pd.DataFrame) -> float:
    values = paths.values
    iu = np.triu_indices(values.shape[0], k=1)
    return float(values[iu].mean()) if iu[0].size else np.nan


def compute_network_metrics(
    graph: nx.Graph,
    weight_type: str = WEIGHT_DISTANCE,
    attr: Optional[str] = None,
) -> NetworkMetrics:
    """
    Compute centrality and topology metrics of a filtered network.

    A disconnected graph is not an error: unreachable pairs get infinite
    shortest paths, which drive closeness and eccentricity to zero.

    Args:
        graph: Filtered network
        weight_type: 'distance' or 'similarity' (Mantegna, S = 2 - 0.5 D^2)
        attr: Edge attribute holding the weights (default: weight_type)

    Returns:
        NetworkMetrics
    """
    check_weight_type(weight_type)
    attr = attr or weight_type
    nodes = list(graph.nodes)

    edges = _edge_table(graph, attr, weight_type)
    G_dist = _weighted_view(nodes, edges, 'distance')
    G_sim = _weighted_view(nodes, edges, 'similarity')

    if not nx.is_connected(G_dist):
        logger.warning(
            f"Network with {len(nodes)} nodes is disconnected; "
            "unreachable paths are infinite"
        )

    uw = _view_metrics(G_dist, G_sim, nodes, weighted=False)
    wtd = _view_metrics(G_dist, G_sim, nodes, weighted=True)

    averages = pd.DataFrame({
        'uw': uw['table'].mean(),
        'wtd': wtd['table'].mean(),
    })
    averages.loc['shortest_paths'] = [_upper_mean(uw['paths']), _upper_mean(wtd['paths'])]

    tree_length = float(edges['distance'].sum())
    n_edges = len(edges)
    tree_length_norm = tree_length / (n_edges - 1) if n_edges > 1 else np.nan

    return NetworkMetrics(
        unweighted=uw['table'],
        weighted=wtd['table'],
        shortest_paths_uw=uw['paths'],
        shortest_paths_wtd=wtd['paths'],
        averages=averages,
        hybrid=hybrid_centrality(uw['table'], wtd['table']),
        edges=edges,
        tree_length=tree_length,
        tree_length_norm=tree_length_norm,
    )
