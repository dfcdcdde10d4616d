"""
Hierarchical clustering of assets.

Standard agglomerative linkage (scipy) or DBHT on a distance/similarity
pair, optimal leaf ordering, flat cuts at every cluster count from 2 to
max_clusters with IDs renumbered along the leaf order, and Adjusted Rand
Index agreement with comparison partitions.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence
import logging

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import linkage as scipy_linkage, fcluster, optimal_leaf_ordering, leaves_list
from scipy.spatial.distance import squareform
from sklearn.metrics import adjusted_rand_score

from ..core.config import Config
from ..core.constants import DBHT_LINKAGES, SINGLE_CLUSTER_THRESHOLD_OFFSET
from ..core.exceptions import DimensionMismatchError
from ..core.provenance import Provenance
from ..core.validation import (
    as_return_frame,
    check_weights,
    check_linkage,
    check_distance_method,
    check_cluster_counts,
    check_partitions,
    check_square,
)
from ..estimation.weights import observation_weights
from ..estimation.preprocess import PreprocessResult, preprocess_returns
from ..estimation.distance import DistancePair, build_distance_pair
from .dbht import DBHTOracle, DBHTResult, DirectBubbleHierarchy

logger = logging.getLogger(__name__)


@dataclass
class ClusterResult:
    """Container for hierarchical clustering results."""
    linkage: np.ndarray
    leaf_order: np.ndarray
    names: List[str]
    cluster_ids: pd.Series
    cluster_ids_ordered: pd.Series
    n_clusters: int
    max_clusters: int
    all_cluster_ids: pd.DataFrame
    all_cluster_ids_ordered: pd.DataFrame
    threshold: float
    method: str
    ari: Optional[pd.DataFrame] = None
    dbht: Optional[DBHTResult] = None
    # Set by the returns pipeline
    pair: Optional[DistancePair] = None
    preprocess: Optional[PreprocessResult] = None
    returns: Optional[pd.DataFrame] = None
    provenance: Optional[Provenance] = None

    @property
    def labels_ordered(self) -> List[str]:
        """Asset names in dendrogram leaf order."""
        return [self.names[i] for i in self.leaf_order]

    @property
    def corr(self) -> Optional[pd.DataFrame]:
        return self.pair.corr if self.pair is not None else None


def order_cluster_ids(cluster_ids: np.ndarray, leaf_order: np.ndarray) -> np.ndarray:
    """
    Renumber cluster IDs by position along the leaf order.

    Walking the leaves left to right, the new ID starts at 1 and increments
    each time the old ID changes.

    Args:
        cluster_ids: (p,) flat cluster IDs in original asset order
        leaf_order: (p,) leaf permutation

    Returns:
        (p,) renumbered IDs in original asset order
    """
    ids = np.asarray(cluster_ids)
    order = np.asarray(leaf_order, dtype=int)
    along = ids[order]
    steps = np.concatenate([[1], (along[1:] != along[:-1]).astype(int)])
    renumbered = np.cumsum(steps)

    out = np.empty(len(ids), dtype=int)
    out[order] = renumbered
    return out


def dendrogram_threshold(Z: np.ndarray, n_clusters: int) -> float:
    """
    Merge height separating the tree into n_clusters groups.

    For n_clusters > 1 this is the (p - n_clusters)-th smallest merge
    height (0-based); a single group sits just above the top merge.
    """
    heights = np.sort(Z[:, 2])
    if n_clusters > 1:
        return float(heights[Z.shape[0] + 1 - n_clusters])
    return float(heights[-1] + SINGLE_CLUSTER_THRESHOLD_OFFSET)


class ClusterEngine:
    """
    Builds the dendrogram and multi-resolution cluster assignments.

    Example:
        engine = ClusterEngine()
        result = engine.cluster(D, S, linkage='ward', max_clusters=6)
        print(result.all_cluster_ids_ordered)
    """

    def __init__(self, dbht: Optional[DBHTOracle] = None):
        self.dbht = dbht or DirectBubbleHierarchy()

    def cluster(
        self,
        distance,
        similarity,
        linkage: str = 'ward',
        max_clusters: Optional[int] = None,
        n_clusters: Optional[int] = None,
        partitions=None,
        names: Optional[Sequence[str]] = None,
    ) -> ClusterResult:
        """
        Cluster assets from a distance/similarity pair.

        Args:
            distance: (p x p) distance matrix (array or DataFrame)
            similarity: (p x p) similarity matrix
            linkage: scipy linkage method or 'DBHT_PMFG' / 'DBHT_TMFG'
            max_clusters: Largest cluster count in the sweep (default p)
            n_clusters: Reference cluster count (default max_clusters;
                replaced by the DBHT cluster count for DBHT linkages)
            partitions: Comparison partitions, one row per grouping
            names: Asset names (default DataFrame columns or A1..Ap)

        Returns:
            ClusterResult
        """
        check_linkage(linkage)
        D = check_square(distance, "distance")
        S = check_square(similarity, "similarity", size=D.shape[0])
        p = D.shape[0]

        if names is None:
            names = list(distance.columns) if isinstance(distance, pd.DataFrame) else [f"A{i + 1}" for i in range(p)]
        names = [str(n) for n in names]
        if len(names) != p:
            raise DimensionMismatchError("names", p, len(names))

        max_clusters, n_clusters = check_cluster_counts(max_clusters, n_clusters, p)
        comparison = check_partitions(partitions, p)

        condensed = squareform(D, checks=False)
        dbht_result = None
        if linkage in DBHT_LINKAGES:
            dbht_result = self.dbht.run(D, S, linkage)
            Z = dbht_result.linkage
            n_clusters = dbht_result.n_clusters
            logger.debug(f"{linkage}: {n_clusters} clusters determined by DBHT")
        else:
            Z = scipy_linkage(condensed, method=linkage)

        Z = optimal_leaf_ordering(Z, condensed)
        leaf_order = leaves_list(Z)

        counts = list(range(2, max_clusters + 1))
        all_ids = np.empty((p, len(counts)), dtype=int)
        all_ordered = np.empty((p, len(counts)), dtype=int)
        for col, k in enumerate(counts):
            all_ids[:, col] = fcluster(Z, k, criterion='maxclust')
            all_ordered[:, col] = order_cluster_ids(all_ids[:, col], leaf_order)

        ids = fcluster(Z, n_clusters, criterion='maxclust')
        ordered = order_cluster_ids(ids, leaf_order)

        ari = None
        if comparison is not None:
            ari = pd.DataFrame(
                [[adjusted_rand_score(row, all_ordered[:, col]) for col in range(len(counts))]
                 for row in comparison],
                index=[f"Partition_{i + 1}" for i in range(len(comparison))],
                columns=counts,
                dtype=float,
            )

        return ClusterResult(
            linkage=Z,
            leaf_order=leaf_order,
            names=names,
            cluster_ids=pd.Series(ids, index=names, name='cluster'),
            cluster_ids_ordered=pd.Series(ordered, index=names, name='cluster'),
            n_clusters=int(n_clusters),
            max_clusters=max_clusters,
            all_cluster_ids=pd.DataFrame(all_ids, index=names, columns=counts),
            all_cluster_ids_ordered=pd.DataFrame(all_ordered, index=names, columns=counts),
            threshold=dendrogram_threshold(Z, n_clusters),
            method=linkage,
            ari=ari,
            dbht=dbht_result,
        )


class ClusterAnalyzer:
    """Returns -> preprocessing -> distance -> clusters."""

    def __init__(self, config: Optional[Config] = None, engine: Optional[ClusterEngine] = None):
        self.config = config or Config()
        self.engine = engine or ClusterEngine()

    def compute(
        self,
        returns,
        weights: Optional[np.ndarray] = None,
        names: Optional[Sequence[str]] = None,
        linkage: Optional[str] = None,
        distance_method: Optional[str] = None,
        max_clusters: Optional[int] = None,
        n_clusters: Optional[int] = None,
        partitions=None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
    ) -> ClusterResult:
        """
        Cluster a return block.

        Unset arguments fall back to the clustering and preprocessing
        configuration. All names, shapes and counts are validated before any
        estimation runs.

        Returns:
            ClusterResult with the processed returns, distance pair and a
            provenance record attached
        """
        cfg = self.config
        linkage = check_linkage(linkage or cfg.clustering.linkage)
        distance_method = check_distance_method(distance_method or cfg.clustering.distance_method)
        if max_clusters is None:
            max_clusters = cfg.clustering.max_clusters
        if n_clusters is None:
            n_clusters = cfg.clustering.n_clusters
        if standardize is None:
            standardize = cfg.preprocessing.standardize
        if remove_market_mode is None:
            remove_market_mode = cfg.preprocessing.remove_market_mode

        frame = as_return_frame(returns, names)
        p = frame.shape[1]
        check_cluster_counts(max_clusters, n_clusters, p)
        check_partitions(partitions, p)
        w = observation_weights(
            len(frame), check_weights(weights, len(frame)), cfg.preprocessing.ewma_alpha
        )

        prep = preprocess_returns(frame, w, standardize, remove_market_mode)
        pair = build_distance_pair(prep.returns, w, distance_method)
        result = self.engine.cluster(
            pair.distance,
            pair.similarity,
            linkage=linkage,
            max_clusters=max_clusters,
            n_clusters=n_clusters,
            partitions=partitions,
        )

        provenance = Provenance.build(
            'clusters',
            frame,
            weights=w,
            names=list(frame.columns),
            linkage=linkage,
            distance_method=distance_method,
            max_clusters=result.max_clusters,
            n_clusters=result.n_clusters,
            standardize=bool(standardize),
            remove_market_mode=bool(remove_market_mode),
        )
        return replace(result, pair=pair, preprocess=prep, returns=frame, provenance=provenance)
