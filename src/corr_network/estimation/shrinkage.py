"""
Quadratic-Inverse Shrinkage (QIS) of a weighted covariance matrix.

Ledoit and Wolf (2022), "Quadratic shrinkage for large covariance
matrices", applied to the weighted covariance with the effective number of
observations in place of the sample size.
"""

from typing import Optional
import logging

import numpy as np

from .covariance import weighted_covariance, symmetrize

logger = logging.getLogger(__name__)


def qis_shrink(sample_cov: np.ndarray, effective_obs: float) -> np.ndarray:
    """
    Shrink the eigenvalues of a sample covariance matrix.

    Args:
        sample_cov: (p x p) symmetric sample covariance
        effective_obs: Effective number of observations behind sample_cov

    Returns:
        (p x p) symmetric shrunk covariance with the same trace
    """
    sample = symmetrize(sample_cov)
    p = sample.shape[0]

    n = effective_obs - 1.0  # one degree of freedom used by demeaning
    c = p / n

    lam, u = np.linalg.eigh(sample)
    order = np.argsort(lam, kind='stable')
    lam = lam[order]
    u = u[:, order]

    h = min(c ** 2, 1.0 / c ** 2) ** 0.35 / p ** 0.35

    n_nonnull = min(p, int(np.floor(n)))
    inv_lam = 1.0 / lam[p - n_nonnull:]

    # Row i: eigenvalue being shrunk; column j: the rest of the spectrum
    lj = np.tile(inv_lam, (n_nonnull, 1))
    lj_i = lj - lj.T
    denom = lj_i ** 2 + h ** 2 * lj ** 2
    theta = np.mean(lj * lj_i / denom, axis=1)
    htheta = np.mean(lj * (h * lj) / denom, axis=1)
    atheta2 = theta ** 2 + htheta ** 2

    if p <= n:
        delta = 1.0 / (
            (1 - c) ** 2 * inv_lam
            + 2 * c * (1 - c) * inv_lam * theta
            + c ** 2 * inv_lam * atheta2
        )
    else:
        logger.debug(f"Singular sample covariance: p={p} > N={n:.1f}")
        delta0 = 1.0 / ((c - 1) * np.mean(inv_lam))
        delta = np.concatenate([
            np.full(p - n_nonnull, delta0),
            1.0 / (inv_lam * atheta2),
        ])

    delta_qis = delta * (lam.sum() / delta.sum())  # preserve trace
    shrunk = u @ np.diag(delta_qis) @ u.T
    return symmetrize(shrunk)


def qis_covariance(
    returns: np.ndarray,
    weights: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Weighted covariance of a return matrix followed by QIS shrinkage."""
    cov, n_eff = weighted_covariance(returns, weights)
    return qis_shrink(cov, n_eff)
