"""
Return preprocessing.

Weighted standardization and removal of the market mode (first weighted
principal component) by per-asset weighted least squares.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import logging

import numpy as np
import pandas as pd

from .weights import resolve_weights

logger = logging.getLogger(__name__)


@dataclass
class PreprocessResult:
    """Container for processed returns and market-mode diagnostics."""
    returns: pd.DataFrame
    market_mode: Optional[pd.Series] = None
    sign_check: Optional[float] = None
    variance_explained: Optional[float] = None
    betas: Optional[pd.DataFrame] = None


def weighted_mean(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Column-wise weighted mean (weights normalized to 1)."""
    return weights @ values


def weighted_std(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Column-wise weighted standard deviation.

    Uses the population form sqrt(sum w (x - mu_w)^2) with weights that sum
    to one.
    """
    mu = weights @ values
    return np.sqrt(weights @ (values - mu) ** 2)


def weighted_zscore(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Subtract the weighted mean and divide by the weighted std."""
    return (values - weighted_mean(values, weights)) / weighted_std(values, weights)


def weighted_pca(
    values: np.ndarray,
    weights: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Weighted principal component analysis.

    Args:
        values: (n x p) data matrix
        weights: (n,) observation weights summing to 1

    Returns:
        (coeff, scores, explained): loadings (p x k) with each column's
        largest-magnitude entry positive, factor scores (n x k) and the
        percentage of variance explained by each component
    """
    centered = values - weights @ values
    scaled = np.sqrt(weights)[:, None] * centered
    _, s, vt = np.linalg.svd(scaled, full_matrices=False)
    coeff = vt.T

    # Deterministic sign convention
    idx = np.argmax(np.abs(coeff), axis=0)
    signs = np.sign(coeff[idx, np.arange(coeff.shape[1])])
    signs[signs == 0] = 1.0
    coeff = coeff * signs

    scores = centered @ coeff
    latent = s ** 2
    total = latent.sum()
    explained = 100.0 * latent / total if total > 0 else np.zeros_like(latent)
    return coeff, scores, explained


def weighted_ols(y: np.ndarray, X: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Weighted least squares via sqrt(w) rescaling of regressand and regressors.

    Args:
        y: (n,) regressand
        X: (n x k) regressors
        weights: (n,) observation weights

    Returns:
        (k,) coefficient vector
    """
    sw = np.sqrt(weights)
    beta, *_ = np.linalg.lstsq(sw[:, None] * X, sw * y, rcond=None)
    return beta


def remove_market_mode(
    values: np.ndarray,
    weights: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, float, float, np.ndarray]:
    """
    Regress every asset on [1, market mode] and keep the residuals.

    The market mode is the first weighted principal component, negated when
    fewer than half of the assets load positively on it.

    Returns:
        (residuals, market_mode, sign_check, variance_explained, betas)
    """
    n_obs, n_assets = values.shape
    coeff, scores, explained = weighted_pca(values, weights)

    sign_check = float(np.sum(coeff[:, 0] > 0) / n_assets)
    market_mode = scores[:, 0].copy()
    if sign_check < 0.5:
        market_mode = -market_mode

    X = np.column_stack([np.ones(n_obs), market_mode])
    residuals = np.empty_like(values)
    betas = np.empty((n_assets, 2))
    for j in range(n_assets):
        beta = weighted_ols(values[:, j], X, weights)
        betas[j] = beta
        residuals[:, j] = values[:, j] - (beta[0] + beta[1] * market_mode)

    return residuals, market_mode, sign_check, float(explained[0]), betas


def preprocess_returns(
    returns: pd.DataFrame,
    weights: Optional[np.ndarray] = None,
    standardize: bool = False,
    remove_mode: bool = False,
) -> PreprocessResult:
    """
    Standardize returns and optionally remove the market mode.

    Args:
        returns: (n x p) return DataFrame (not modified)
        weights: Observation weights (default: equal)
        standardize: Weighted z-score before and after market-mode removal
        remove_mode: Remove the first weighted principal component

    Returns:
        PreprocessResult with the processed matrix and diagnostics
    """
    w = resolve_weights(weights, len(returns))
    values = returns.values.astype(float)

    stage1 = weighted_zscore(values, w) if standardize else values.copy()

    market_mode = sign_check = explained = betas = None
    if remove_mode:
        stage2, mode, sign_check, explained, beta_arr = remove_market_mode(stage1, w)
        market_mode = pd.Series(mode, index=returns.index, name='market_mode')
        betas = pd.DataFrame(beta_arr, index=returns.columns, columns=['alpha', 'beta'])
        logger.debug(
            f"Market mode removed: {explained:.1f}% variance explained, "
            f"sign check {sign_check:.2f}"
        )
    else:
        stage2 = stage1

    final = weighted_zscore(stage2, w) if standardize else stage2

    return PreprocessResult(
        returns=pd.DataFrame(final, index=returns.index, columns=returns.columns),
        market_mode=market_mode,
        sign_check=sign_check,
        variance_explained=explained,
        betas=betas,
    )
