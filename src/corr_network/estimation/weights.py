"""
Observation weights.

Exponentially decaying (EWMA) time weights following Pozzi, Di Matteo and
Aste (2012), "Exponential Smoothing Weighted Correlations":

    w_t = w_0 * exp(alpha * (t - T))

and the design-effect effective sample size n_eff = (sum w)^2 / sum w^2.
"""

from typing import Optional, Tuple

import numpy as np


def ewma_weights(n_obs: int, alpha: float = 0.0) -> Tuple[np.ndarray, float]:
    """
    Calculate normalized observation weights.

    Args:
        n_obs: Number of observations
        alpha: Exponential decay factor. 0 gives equal weights; alpha > 0
            puts more weight on recent observations.

    Returns:
        (weights, effective_obs): weights of length n_obs summing to 1 and
        the effective number of observations
    """
    if alpha == 0:
        w = np.full(n_obs, 1.0 / n_obs)
    else:
        t = np.arange(1, n_obs + 1, dtype=float)
        w = np.exp(alpha * (t - n_obs))  # most recent observation gets 1

    w = w / w.sum()
    return w, effective_obs(w)


def equal_weights(n_obs: int) -> np.ndarray:
    """Equal weights 1/n."""
    return np.full(n_obs, 1.0 / n_obs)


def effective_obs(weights: np.ndarray) -> float:
    """Effective sample size of normalized weights: 1 / sum(w^2)."""
    w = np.asarray(weights, dtype=float)
    w = w / w.sum()
    return float(1.0 / np.sum(w ** 2))


def resolve_weights(weights: Optional[np.ndarray], n_obs: int) -> np.ndarray:
    """
    Return normalized weights, defaulting to equal weights.

    Args:
        weights: Optional raw weights (None or empty means equal weights)
        n_obs: Number of observations

    Returns:
        New weight array summing to 1
    """
    if weights is None:
        return equal_weights(n_obs)
    w = np.asarray(weights, dtype=float).ravel()
    if w.size == 0:
        return equal_weights(n_obs)
    return w / w.sum()


def observation_weights(
    n_obs: int,
    weights: Optional[np.ndarray] = None,
    alpha: float = 0.0,
) -> np.ndarray:
    """
    Weights for one estimation window.

    Explicit weights win; otherwise EWMA weights with decay ``alpha``
    (equal weights when alpha is 0).
    """
    if weights is not None and np.asarray(weights).size > 0:
        return resolve_weights(weights, n_obs)
    w, _ = ewma_weights(n_obs, alpha)
    return w
