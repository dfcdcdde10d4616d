"""
Correlation distribution analysis.

Summarizes the off-diagonal entries of a (weighted, optionally shrunk)
correlation matrix: kernel density, five-number summary and mean.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import logging

import numpy as np
import pandas as pd
from scipy.stats import gaussian_kde

from ..core.config import Config
from ..core.constants import CORR_METHOD_QIS, DEFAULT_DENSITY_POINTS, SUMMARY_PERCENTILES, ROLLING_HIST_BIN_WIDTH
from ..core.provenance import Provenance
from ..core.validation import as_return_frame, check_weights, check_correlation_method
from ..estimation.weights import observation_weights
from ..estimation.preprocess import PreprocessResult, preprocess_returns
from ..estimation.covariance import weighted_covariance, cov_to_corr
from ..estimation.shrinkage import qis_shrink

logger = logging.getLogger(__name__)


@dataclass
class CorrelationResult:
    """Container for correlation distribution results."""
    cov: pd.DataFrame
    corr: pd.DataFrame
    values: np.ndarray
    density: pd.Series
    summary: pd.Series
    mean: float
    method: str
    preprocess: PreprocessResult
    provenance: Provenance

    @property
    def processed(self) -> pd.DataFrame:
        return self.preprocess.returns


def lower_triangle(matrix) -> np.ndarray:
    """Strictly lower-triangular entries, column by column."""
    m = np.asarray(matrix, dtype=float)
    rows, cols = np.tril_indices(m.shape[0], k=-1)
    order = np.lexsort((rows, cols))
    return m[rows[order], cols[order]]


def correlation_density(values: np.ndarray, points: Optional[Sequence[float]] = None) -> pd.Series:
    """
    Gaussian kernel density of correlation values.

    Args:
        values: Correlation values
        points: Evaluation points (default: 100 points over the value range)

    Returns:
        Density indexed by evaluation point (NaN when the values are
        degenerate)
    """
    values = np.asarray(values, dtype=float)
    if points is None:
        xi = np.linspace(values.min(), values.max(), DEFAULT_DENSITY_POINTS)
    else:
        xi = np.asarray(points, dtype=float)

    if values.size < 2 or np.ptp(values) == 0:
        logger.warning(f"Density undefined for {values.size} correlation value(s) without spread")
        fi = np.full(xi.shape, np.nan)
    else:
        fi = gaussian_kde(values)(xi)
    return pd.Series(fi, index=pd.Index(xi, name='correlation'), name='density')


def correlation_summary(values: np.ndarray) -> pd.Series:
    """Five-number summary (0/25/50/75/100 percentiles)."""
    return pd.Series(
        np.percentile(values, SUMMARY_PERCENTILES),
        index=[f"p{int(q)}" for q in SUMMARY_PERCENTILES],
        name='summary',
    )


def correlation_histogram(values: np.ndarray) -> pd.Series:
    """Share of correlation values in each 0.1-wide bin over [-1, 1]."""
    n_bins = int(round(2.0 / ROLLING_HIST_BIN_WIDTH))
    edges = np.linspace(-1.0, 1.0, n_bins + 1)
    counts, _ = np.histogram(values, bins=edges)
    share = counts / max(len(values), 1)
    labels = [f"{lo:.1f}" for lo in edges[:-1]]
    return pd.Series(share, index=labels, name='probability')


class CorrelationAnalyzer:
    """Weighted (or QIS) correlation matrix and the distribution of its entries."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()

    def analyze(
        self,
        returns,
        weights: Optional[np.ndarray] = None,
        names: Optional[Sequence[str]] = None,
        method: Optional[str] = None,
        points: Optional[Sequence[float]] = None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
    ) -> CorrelationResult:
        """
        Analyze the correlation distribution of a return block.

        Args:
            returns: (n x p) return matrix or DataFrame
            weights: Observation weights (default: EWMA from configuration)
            names: Asset names
            method: 'QIS' or 'normal'
            points: Density evaluation points
            standardize: Standardize before/after market mode removal
            remove_market_mode: Remove the first weighted principal component

        Returns:
            CorrelationResult
        """
        cfg = self.config
        method = check_correlation_method(method or cfg.correlation.method)
        if points is None:
            points = cfg.correlation.density_points
        if standardize is None:
            standardize = cfg.preprocessing.standardize
        if remove_market_mode is None:
            remove_market_mode = cfg.preprocessing.remove_market_mode

        frame = as_return_frame(returns, names)
        w = observation_weights(
            len(frame), check_weights(weights, len(frame)), cfg.preprocessing.ewma_alpha
        )

        prep = preprocess_returns(frame, w, standardize, remove_market_mode)
        cov, n_eff = weighted_covariance(prep.returns.values, w)
        if method == CORR_METHOD_QIS:
            cov = qis_shrink(cov, n_eff)
        corr = cov_to_corr(cov)

        values = lower_triangle(corr)
        cols = frame.columns

        return CorrelationResult(
            cov=pd.DataFrame(cov, index=cols, columns=cols),
            corr=pd.DataFrame(corr, index=cols, columns=cols),
            values=values,
            density=correlation_density(values, points),
            summary=correlation_summary(values),
            mean=float(values.mean()),
            method=method,
            preprocess=prep,
            provenance=Provenance.build(
                'correlation',
                frame,
                weights=w,
                names=list(cols),
                method=method,
                points=points,
                standardize=bool(standardize),
                remove_market_mode=bool(remove_market_mode),
            ),
        )
