"""
Weighted covariance and correlation matrices.

Based on the weighted estimator of Pozzi, Di Matteo and Aste (2012). Every
derived matrix is forced exactly symmetric by averaging with its transpose.
"""

from typing import Optional, Tuple

import numpy as np

from .weights import resolve_weights


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    """Return 0.5 * (M + M^T)."""
    m = np.asarray(matrix, dtype=float)
    return 0.5 * (m + m.T)


def weighted_covariance(
    returns: np.ndarray,
    weights: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, float]:
    """
    Calculate a weighted covariance matrix.

    Args:
        returns: (n x p) return matrix
        weights: (n,) observation weights (default: equal)

    Returns:
        (cov, effective_obs): symmetric (p x p) covariance and the effective
        number of observations 1 / sum(w^2)
    """
    values = np.asarray(returns, dtype=float)
    w = resolve_weights(weights, values.shape[0])

    demeaned = values - w @ values
    cov = demeaned.T @ (demeaned * w[:, None])
    return symmetrize(cov), float(1.0 / np.sum(w ** 2))


def cov_to_corr(cov: np.ndarray) -> np.ndarray:
    """
    Convert a covariance matrix to a correlation matrix.

    The diagonal is set to exactly one and entries are clipped to [-1, 1].
    """
    c = np.asarray(cov, dtype=float)
    sd = np.sqrt(np.diag(c))
    corr = c / np.outer(sd, sd)
    corr = np.clip(symmetrize(corr), -1.0, 1.0)
    np.fill_diagonal(corr, 1.0)
    return corr
