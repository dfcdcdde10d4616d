"""
Distance and similarity matrices.

Correlation-based distances follow Mantegna (1999) and Gower & Ross (1969):

    D = sqrt(2 * (1 - rho)),    S = 2 - 0.5 * D^2  (= 1 + rho)

Generic pairwise distances over the processed asset series use
S = 1 / (1 + D).
"""

from dataclasses import dataclass
from typing import Optional
import logging

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from ..core.constants import DIST_CORRELATION, DIST_QIS_CORRELATION
from ..core.validation import check_distance_method
from .covariance import weighted_covariance, cov_to_corr, symmetrize
from .shrinkage import qis_shrink

logger = logging.getLogger(__name__)


@dataclass
class DistancePair:
    """Paired distance/similarity matrices with the correlation behind them."""
    distance: pd.DataFrame
    similarity: pd.DataFrame
    corr: pd.DataFrame
    cov: pd.DataFrame
    method: str

    @property
    def names(self):
        return list(self.distance.columns)


def corr_to_distance(corr) -> np.ndarray:
    """
    Convert a correlation matrix to the Mantegna distance matrix.

    Distance = sqrt(2 * (1 - correlation)), zero diagonal, range [0, 2].
    """
    c = np.asarray(corr, dtype=float)
    dist = np.sqrt(np.maximum(2.0 * (1.0 - c), 0.0))
    np.fill_diagonal(dist, 0.0)
    return symmetrize(dist)


def distance_to_similarity(dist) -> np.ndarray:
    """Mantegna similarity S = 2 - 0.5 * D^2, i.e. 1 + rho."""
    d = np.asarray(dist, dtype=float)
    return symmetrize(2.0 - 0.5 * d ** 2)


def similarity_to_distance(sim) -> np.ndarray:
    """Inverse of distance_to_similarity: D = sqrt(4 - 2S)."""
    s = np.asarray(sim, dtype=float)
    return symmetrize(np.sqrt(np.maximum(4.0 - 2.0 * s, 0.0)))


def pairwise_distance(processed: np.ndarray, metric: str) -> np.ndarray:
    """
    Pairwise distances between asset series (columns).

    Args:
        processed: (n x p) processed return matrix
        metric: Any scipy.spatial.distance.pdist metric name

    Returns:
        (p x p) symmetric distance matrix
    """
    values = np.asarray(processed, dtype=float)
    return symmetrize(squareform(pdist(values.T, metric=metric)))


def build_distance_pair(
    processed: pd.DataFrame,
    weights: Optional[np.ndarray] = None,
    method: str = DIST_QIS_CORRELATION,
) -> DistancePair:
    """
    Determine the distance (D) and similarity (S) matrices for a return block.

    Args:
        processed: (n x p) processed return DataFrame
        weights: Observation weights (default: equal)
        method: 'correlation', 'qis_correlation' or a pdist metric

    Returns:
        DistancePair with D, S and the weighted (or shrunk) correlation
    """
    check_distance_method(method)
    names = processed.columns
    values = processed.values

    cov, n_eff = weighted_covariance(values, weights)
    if method == DIST_QIS_CORRELATION:
        cov = qis_shrink(cov, n_eff)
    corr = cov_to_corr(cov)

    if method in (DIST_CORRELATION, DIST_QIS_CORRELATION):
        dist = corr_to_distance(corr)
        sim = distance_to_similarity(dist)
    else:
        dist = pairwise_distance(values, method)
        sim = symmetrize(1.0 / (1.0 + dist))

    def frame(m):
        return pd.DataFrame(m, index=names, columns=names)

    return DistancePair(
        distance=frame(dist),
        similarity=frame(sim),
        corr=frame(corr),
        cov=frame(cov),
        method=method,
    )
