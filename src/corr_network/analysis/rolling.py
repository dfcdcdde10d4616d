"""
Rolling window (dynamic) analysis.

Window end points are stepped backwards from the last observation by a
fixed stride while the window still fits, then put in chronological order.
Each window is an independent pipeline run over the trailing block; the
runs are mapped over the window index set and merged into date-indexed
tables.
"""

from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence
import logging

import numpy as np
import pandas as pd
from sklearn.metrics import adjusted_rand_score

from ..core.config import Config
from ..core.constants import ROLLING_DENSITY_STEP
from ..core.exceptions import InvalidConfigurationError, DimensionMismatchError
from ..core.provenance import Provenance
from ..core.validation import (
    as_return_frame,
    check_weights,
    check_filter,
    check_distance_method,
    check_linkage,
    check_correlation_method,
    check_cluster_counts,
    check_partitions,
)
from ..estimation.weights import observation_weights
from ..utils.logging import LogContext, ProgressLogger
from .network import NetworkAnalyzer
from .clustering import ClusterAnalyzer
from .correlation import CorrelationAnalyzer, lower_triangle, correlation_histogram

logger = logging.getLogger(__name__)

Mapper = Callable


def window_end_indices(n_obs: int, window: int, step: int) -> List[int]:
    """
    Chronological window end points (exclusive slice ends).

    Example:
        window_end_indices(300, 150, 50) -> [150, 200, 250, 300]
    """
    if window <= 0 or step <= 0:
        raise InvalidConfigurationError("rolling window/step", (window, step), ["positive integers"])
    ends = []
    k = 0
    while n_obs - k * step >= window:
        ends.append(n_obs - k * step)
        k += 1
    return ends[::-1]


def rolling_density_points() -> np.ndarray:
    """Density grid -1:0.05:1 used by the rolling correlation analysis."""
    n = int(round(2.0 / ROLLING_DENSITY_STEP)) + 1
    return np.linspace(-1.0, 1.0, n)


@dataclass
class RollingNetworkResult:
    """Date-indexed network outputs."""
    dates: pd.Index
    end_indices: List[int]
    xpy: pd.DataFrame
    tree_length_norm: pd.Series
    mean_similarity: pd.Series
    corr_hist: pd.DataFrame
    returns: Dict = field(default_factory=dict)
    processed: Dict = field(default_factory=dict)
    provenance: Optional[Provenance] = None

    @property
    def n_windows(self) -> int:
        return len(self.end_indices)


@dataclass
class RollingClusterResult:
    """Date-indexed cluster outputs."""
    dates: pd.Index
    end_indices: List[int]
    cluster_ids: pd.DataFrame
    cluster_ids_ordered: pd.DataFrame
    n_clusters: pd.Series
    corr_hist: pd.DataFrame
    ari: Optional[pd.DataFrame] = None
    returns: Dict = field(default_factory=dict)
    processed: Dict = field(default_factory=dict)
    provenance: Optional[Provenance] = None

    @property
    def n_windows(self) -> int:
        return len(self.end_indices)


@dataclass
class RollingCorrelationResult:
    """Date-indexed correlation distribution outputs."""
    dates: pd.Index
    end_indices: List[int]
    values: pd.DataFrame
    density: pd.DataFrame
    mean: pd.Series
    summary: pd.DataFrame
    returns: Dict = field(default_factory=dict)
    processed: Dict = field(default_factory=dict)
    provenance: Optional[Provenance] = None

    @property
    def n_windows(self) -> int:
        return len(self.end_indices)


class RollingDriver:
    """
    Re-runs a pipeline over sliding windows.

    ``mapper`` has the signature of the builtin ``map`` and may be swapped
    for a parallel map (e.g. ``concurrent.futures.Executor.map``); windows
    are independent and share only the read-only return matrix.

    Example:
        driver = RollingDriver(config)
        result = driver.run_network(returns, window=150, step=50)
        print(result.tree_length_norm)
    """

    def __init__(self, config: Optional[Config] = None, mapper: Optional[Mapper] = None):
        self.config = config or Config()
        self.mapper = mapper or map

    # ------------------------------------------------------------------
    # Shared setup
    # ------------------------------------------------------------------

    def _prepare(self, returns, dates, names, window, step, weights):
        cfg = self.config
        window = int(window if window is not None else cfg.rolling.window)
        step = int(step if step is not None else cfg.rolling.step)

        frame = as_return_frame(returns, names)
        if dates is None:
            dates = returns.index if isinstance(returns, pd.DataFrame) else pd.RangeIndex(len(frame))
        dates = pd.Index(dates)
        if len(dates) != len(frame):
            raise DimensionMismatchError("dates", len(frame), len(dates))
        frame.index = dates

        ends = window_end_indices(len(frame), window, step)
        if not ends:
            logger.warning(
                f"Rolling window {window} longer than history ({len(frame)} observations): no windows"
            )
        w = observation_weights(window, check_weights(weights, window), cfg.preprocessing.ewma_alpha)
        return frame, ends, w, window, step

    def _map(self, func, ends: List[int], description: str) -> list:
        progress = ProgressLogger(logger, total=len(ends), description=description)
        out = []
        for i, item in enumerate(self.mapper(func, ends), start=1):
            out.append(item)
            progress.update(i)
        return out

    @staticmethod
    def _block(frame: pd.DataFrame, end: int, window: int) -> pd.DataFrame:
        return frame.iloc[end - window:end]

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def _network_window(self, end, frame, window, weights, options):
        block = self._block(frame, end, window)
        res = NetworkAnalyzer(self.config).compute(block, weights, **options)
        S = res.pair.similarity.values
        return {
            'date': frame.index[end - 1],
            'xpy': res.metrics.xpy,
            'ntl': res.metrics.tree_length_norm,
            'ave_s': float(lower_triangle(S).mean()),
            'hist': correlation_histogram(lower_triangle(res.corr.values)),
            'returns': block,
            'processed': res.processed,
        }

    def run_network(
        self,
        returns,
        dates=None,
        names: Optional[Sequence[str]] = None,
        window: Optional[int] = None,
        step: Optional[int] = None,
        weights: Optional[np.ndarray] = None,
        filter_type: Optional[str] = None,
        distance_method: Optional[str] = None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
    ) -> RollingNetworkResult:
        """
        Filtered network through time.

        Args:
            returns: (n x p) return history
            dates: Observation dates (default: DataFrame index)
            names: Asset names
            window: Window length (default: configuration)
            step: Stride between window ends (default: configuration)
            weights: Per-window observation weights of length ``window``
            filter_type, distance_method, standardize, remove_market_mode:
                Network pipeline settings (default: configuration)

        Returns:
            RollingNetworkResult with per-node hybrid XpY, normalized tree
            length, mean similarity and correlation histograms per window
        """
        cfg = self.config
        filter_type = check_filter(filter_type or cfg.network.filter)
        distance_method = check_distance_method(distance_method or cfg.network.distance_method)
        frame, ends, w, window, step = self._prepare(returns, dates, names, window, step, weights)

        options = dict(
            filter_type=filter_type,
            distance_method=distance_method,
            standardize=standardize,
            remove_market_mode=remove_market_mode,
        )
        func = partial(self._network_window, frame=frame, window=window, weights=w, options=options)
        with LogContext(logger, f"Rolling {filter_type} network ({len(ends)} windows)"):
            rows = self._map(func, ends, "Rolling network")

        dates_out = pd.Index([r['date'] for r in rows], name='date')
        cols = frame.columns
        return RollingNetworkResult(
            dates=dates_out,
            end_indices=ends,
            xpy=pd.DataFrame({r['date']: r['xpy'] for r in rows}, index=cols, columns=dates_out),
            tree_length_norm=pd.Series([r['ntl'] for r in rows], index=dates_out, name='tree_length_norm', dtype=float),
            mean_similarity=pd.Series([r['ave_s'] for r in rows], index=dates_out, name='mean_similarity', dtype=float),
            corr_hist=self._hist_frame(rows, dates_out),
            returns={r['date']: r['returns'] for r in rows},
            processed={r['date']: r['processed'] for r in rows},
            provenance=Provenance.build(
                'rolling_network', frame, window=window, step=step, weights=w, **options
            ),
        )

    # ------------------------------------------------------------------
    # Clusters
    # ------------------------------------------------------------------

    def _cluster_window(self, end, frame, window, weights, options):
        block = self._block(frame, end, window)
        res = ClusterAnalyzer(self.config).compute(block, weights, **options)
        ari = None
        if options.get('partitions') is not None:
            parts = check_partitions(options['partitions'], frame.shape[1])
            ari = [adjusted_rand_score(row, res.cluster_ids_ordered.values) for row in parts]
        return {
            'date': frame.index[end - 1],
            'ids': res.cluster_ids,
            'ordered': res.cluster_ids_ordered,
            'n_clusters': int(res.cluster_ids.max()),
            'hist': correlation_histogram(lower_triangle(res.corr.values)),
            'ari': ari,
            'returns': block,
            'processed': res.preprocess.returns,
        }

    def run_clusters(
        self,
        returns,
        dates=None,
        names: Optional[Sequence[str]] = None,
        window: Optional[int] = None,
        step: Optional[int] = None,
        weights: Optional[np.ndarray] = None,
        linkage: Optional[str] = None,
        distance_method: Optional[str] = None,
        max_clusters: Optional[int] = None,
        n_clusters: Optional[int] = None,
        partitions=None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
    ) -> RollingClusterResult:
        """
        Hierarchical clusters through time.

        Returns:
            RollingClusterResult with cluster IDs at the reference count,
            the number of clusters (largest ID), ordered IDs, correlation
            histograms and ARI against comparison partitions per window
        """
        cfg = self.config
        linkage = check_linkage(linkage or cfg.clustering.linkage)
        distance_method = check_distance_method(distance_method or cfg.clustering.distance_method)
        if max_clusters is None:
            max_clusters = cfg.clustering.max_clusters
        if n_clusters is None:
            n_clusters = cfg.clustering.n_clusters
        frame, ends, w, window, step = self._prepare(returns, dates, names, window, step, weights)
        check_cluster_counts(max_clusters, n_clusters, frame.shape[1])
        parts = check_partitions(partitions, frame.shape[1])

        options = dict(
            linkage=linkage,
            distance_method=distance_method,
            max_clusters=max_clusters,
            n_clusters=n_clusters,
            partitions=parts,
            standardize=standardize,
            remove_market_mode=remove_market_mode,
        )
        func = partial(self._cluster_window, frame=frame, window=window, weights=w, options=options)
        with LogContext(logger, f"Rolling {linkage} clusters ({len(ends)} windows)"):
            rows = self._map(func, ends, "Rolling clusters")

        dates_out = pd.Index([r['date'] for r in rows], name='date')
        cols = frame.columns
        ari = None
        if parts is not None:
            ari = pd.DataFrame(
                {r['date']: r['ari'] for r in rows},
                index=[f"Partition_{i + 1}" for i in range(len(parts))],
                columns=dates_out,
                dtype=float,
            )

        return RollingClusterResult(
            dates=dates_out,
            end_indices=ends,
            cluster_ids=pd.DataFrame({r['date']: r['ids'] for r in rows}, index=cols, columns=dates_out),
            cluster_ids_ordered=pd.DataFrame({r['date']: r['ordered'] for r in rows}, index=cols, columns=dates_out),
            n_clusters=pd.Series([r['n_clusters'] for r in rows], index=dates_out, name='n_clusters', dtype=float),
            corr_hist=self._hist_frame(rows, dates_out),
            ari=ari,
            returns={r['date']: r['returns'] for r in rows},
            processed={r['date']: r['processed'] for r in rows},
            provenance=Provenance.build(
                'rolling_clusters', frame, window=window, step=step, weights=w, **options
            ),
        )

    # ------------------------------------------------------------------
    # Correlation distribution
    # ------------------------------------------------------------------

    def _correlation_window(self, end, frame, window, weights, options):
        block = self._block(frame, end, window)
        res = CorrelationAnalyzer(self.config).analyze(block, weights, points=rolling_density_points(), **options)
        return {
            'date': frame.index[end - 1],
            'values': res.values,
            'density': res.density,
            'mean': res.mean,
            'summary': res.summary,
            'returns': block,
            'processed': res.processed,
        }

    def run_correlation(
        self,
        returns,
        dates=None,
        names: Optional[Sequence[str]] = None,
        window: Optional[int] = None,
        step: Optional[int] = None,
        weights: Optional[np.ndarray] = None,
        method: Optional[str] = None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
    ) -> RollingCorrelationResult:
        """
        Correlation distribution through time, with the density evaluated
        on the fixed grid -1:0.05:1.
        """
        method = check_correlation_method(method or self.config.correlation.method)
        frame, ends, w, window, step = self._prepare(returns, dates, names, window, step, weights)

        options = dict(method=method, standardize=standardize, remove_market_mode=remove_market_mode)
        func = partial(self._correlation_window, frame=frame, window=window, weights=w, options=options)
        with LogContext(logger, f"Rolling {method} correlation ({len(ends)} windows)"):
            rows = self._map(func, ends, "Rolling correlation")

        dates_out = pd.Index([r['date'] for r in rows], name='date')
        grid = pd.Index(rolling_density_points(), name='correlation')
        return RollingCorrelationResult(
            dates=dates_out,
            end_indices=ends,
            values=pd.DataFrame({r['date']: r['values'] for r in rows}, columns=dates_out),
            density=pd.DataFrame({r['date']: r['density'].values for r in rows}, index=grid, columns=dates_out),
            mean=pd.Series([r['mean'] for r in rows], index=dates_out, name='mean', dtype=float),
            summary=pd.DataFrame({r['date']: r['summary'] for r in rows}, columns=dates_out),
            returns={r['date']: r['returns'] for r in rows},
            processed={r['date']: r['processed'] for r in rows},
            provenance=Provenance.build(
                'rolling_correlation', frame, window=window, step=step, weights=w, **options
            ),
        )

    @staticmethod
    def _hist_frame(rows: list, dates_out: pd.Index) -> pd.DataFrame:
        if not rows:
            return pd.DataFrame(columns=dates_out, dtype=float)
        return pd.DataFrame({r['date']: r['hist'] for r in rows}, columns=dates_out)
