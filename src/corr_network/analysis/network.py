"""
Filtered network analysis module.

Provides the network filter (MST / PMFG / TMFG), the filtered adjacency and
distance/similarity matrices, and the full returns -> network -> metrics
pipeline.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence
import logging

import pandas as pd
import numpy as np
import networkx as nx

from ..core.config import Config
from ..core.constants import FILTER_MST, FILTER_PMFG, FILTER_TMFG, WEIGHT_DISTANCE
from ..core.exceptions import NetworkConstructionError
from ..core.provenance import Provenance
from ..core.validation import as_return_frame, check_weights, check_filter, check_distance_method, check_square
from ..estimation.weights import observation_weights
from ..estimation.preprocess import PreprocessResult, preprocess_returns
from ..estimation.distance import DistancePair, build_distance_pair
from .planar import build_mst, build_pmfg, build_tmfg
from .metrics import NetworkMetrics, compute_network_metrics

logger = logging.getLogger(__name__)

GraphBuilder = Callable[[np.ndarray, np.ndarray, Sequence[str]], nx.Graph]

DEFAULT_BUILDERS: Dict[str, GraphBuilder] = {
    FILTER_MST: build_mst,
    FILTER_PMFG: build_pmfg,
    FILTER_TMFG: build_tmfg,
}


@dataclass
class FilteredNetwork:
    """Container for a filtered network and its matrices."""
    graph: nx.Graph
    filter_name: str
    distance: pd.DataFrame
    similarity: pd.DataFrame
    adjacency: pd.DataFrame
    filtered_distance: pd.DataFrame
    filtered_similarity: pd.DataFrame

    @property
    def n_edges(self) -> int:
        return self.graph.number_of_edges()

    def edge_table(self) -> pd.DataFrame:
        """Edge list with distance and similarity weights."""
        rows = [
            {'source': u, 'target': v, 'distance': d['distance'], 'similarity': d['similarity']}
            for u, v, d in self.graph.edges(data=True)
        ]
        return pd.DataFrame(rows, columns=['source', 'target', 'distance', 'similarity'])

    def edge_set(self) -> set:
        """Undirected edges as frozensets of node labels."""
        return {frozenset((u, v)) for u, v in self.graph.edges()}


@dataclass
class NetworkResult:
    """Container for one run of the network pipeline."""
    network: FilteredNetwork
    metrics: NetworkMetrics
    pair: DistancePair
    preprocess: PreprocessResult
    returns: pd.DataFrame
    provenance: Provenance

    @property
    def corr(self) -> pd.DataFrame:
        return self.pair.corr

    @property
    def processed(self) -> pd.DataFrame:
        return self.preprocess.returns


class NetworkFilter:
    """
    Reduces the complete distance/similarity graph to a sparse network.

    MST ranks edges on distance; PMFG and TMFG rank on similarity. Builders
    can be swapped per filter name, e.g. for a different planarity routine.
    """

    def __init__(self, builders: Optional[Dict[str, GraphBuilder]] = None):
        self.builders = dict(DEFAULT_BUILDERS)
        if builders:
            self.builders.update(builders)

    def filter(
        self,
        distance: pd.DataFrame,
        similarity: pd.DataFrame,
        filter_type: str = FILTER_PMFG,
    ) -> FilteredNetwork:
        """
        Filter the complete graph.

        Args:
            distance: (p x p) distance matrix (DataFrame with asset labels)
            similarity: (p x p) similarity matrix
            filter_type: 'MST', 'PMFG' or 'TMFG'

        Returns:
            FilteredNetwork with zeroed-out non-edge entries in the filtered
            distance and similarity matrices
        """
        check_filter(filter_type)
        names = [str(c) for c in distance.columns]
        D = check_square(distance.values, "distance")
        S = check_square(similarity.values, "similarity", size=D.shape[0])

        G = self.builders[filter_type](D, S, names)
        if G.number_of_nodes() != len(names):
            raise NetworkConstructionError(
                f"{filter_type} dropped nodes ({G.number_of_nodes()} of {len(names)})",
                len(names),
            )

        # Weighted adjacency on the matrix the filter ranks by
        rank_attr = 'distance' if filter_type == FILTER_MST else 'similarity'
        adjacency = nx.to_numpy_array(G, nodelist=names, weight=rank_attr)
        mask = nx.to_numpy_array(G, nodelist=names, weight=None) > 0

        def frame(m):
            return pd.DataFrame(m, index=names, columns=names)

        logger.debug(f"{filter_type} filter: {G.number_of_edges()} edges on {len(names)} nodes")

        return FilteredNetwork(
            graph=G,
            filter_name=filter_type,
            distance=frame(D),
            similarity=frame(S),
            adjacency=frame(adjacency),
            filtered_distance=frame(np.where(mask, D, 0.0)),
            filtered_similarity=frame(np.where(mask, S, 0.0)),
        )


class NetworkAnalyzer:
    """
    Returns -> preprocessing -> distance -> filtered network -> metrics.

    Resolved settings fall back to the configuration when not passed
    explicitly.
    """

    def __init__(self, config: Optional[Config] = None, network_filter: Optional[NetworkFilter] = None):
        """
        Initialize network analyzer.

        Args:
            config: Configuration object (default configuration if None)
            network_filter: Filter strategy (default MST/PMFG/TMFG builders)
        """
        self.config = config or Config()
        self.network_filter = network_filter or NetworkFilter()

    def compute(
        self,
        returns,
        weights: Optional[np.ndarray] = None,
        names: Optional[Sequence[str]] = None,
        filter_type: Optional[str] = None,
        distance_method: Optional[str] = None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
        weight_type: str = WEIGHT_DISTANCE,
    ) -> NetworkResult:
        """
        Build the filtered network of a return block.

        Args:
            returns: (n x p) return matrix or DataFrame
            weights: Observation weights (default: EWMA from configuration)
            names: Asset names
            filter_type: 'MST', 'PMFG' or 'TMFG'
            distance_method: Distance method name
            standardize: Standardize before/after market mode removal
            remove_market_mode: Remove the first weighted principal component
            weight_type: Weight view used for the metrics

        Returns:
            NetworkResult
        """
        cfg = self.config
        filter_type = check_filter(filter_type or cfg.network.filter)
        distance_method = check_distance_method(distance_method or cfg.network.distance_method)
        if standardize is None:
            standardize = cfg.preprocessing.standardize
        if remove_market_mode is None:
            remove_market_mode = cfg.preprocessing.remove_market_mode

        frame = as_return_frame(returns, names)
        w = observation_weights(
            len(frame), check_weights(weights, len(frame)), cfg.preprocessing.ewma_alpha
        )

        prep = preprocess_returns(frame, w, standardize, remove_market_mode)
        pair = build_distance_pair(prep.returns, w, distance_method)
        network = self.network_filter.filter(pair.distance, pair.similarity, filter_type)
        metrics = compute_network_metrics(network.graph, weight_type)

        provenance = Provenance.build(
            'network',
            frame,
            weights=w,
            names=list(frame.columns),
            filter_type=filter_type,
            distance_method=distance_method,
            standardize=bool(standardize),
            remove_market_mode=bool(remove_market_mode),
            weight_type=weight_type,
        )

        return NetworkResult(
            network=network,
            metrics=metrics,
            pair=pair,
            preprocess=prep,
            returns=frame,
            provenance=provenance,
        )
