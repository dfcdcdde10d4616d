"""
Bootstrap reliability of networks and DBHT cluster counts.

Observations are resampled with replacement; the pipeline runs once on the
full period and once per resample, always with equal weights. Network
bootstrap reports edge reliability (share of resamples that contain each
full-period edge) and the distribution of hybrid centrality; DBHT
bootstrap reports the distribution of the number of clusters.
"""

from dataclasses import dataclass
from functools import partial
from typing import Callable, Optional, Sequence
import logging

import numpy as np
import pandas as pd

from ..core.config import Config
from ..core.constants import WEIGHT_DISTANCE, LINKAGE_DBHT_PMFG
from ..core.exceptions import InvalidConfigurationError
from ..core.provenance import Provenance
from ..core.validation import (
    as_return_frame,
    check_filter,
    check_distance_method,
    check_dbht_linkage,
    check_cluster_counts,
)
from ..estimation.weights import equal_weights
from ..utils.logging import LogContext, ProgressLogger
from .network import NetworkAnalyzer, NetworkResult
from .clustering import ClusterAnalyzer, ClusterResult

logger = logging.getLogger(__name__)


def bootstrap_indices(n_obs: int, n_sim: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Resampled row indices.

    Returns:
        (n_obs x n_sim) integer matrix; column j is one with-replacement
        resample of range(n_obs)
    """
    rng = rng if rng is not None else np.random.default_rng()
    return rng.integers(0, n_obs, size=(n_obs, n_sim))


def _check_n_sim(n_sim: int) -> int:
    if n_sim < 0:
        raise InvalidConfigurationError("n_sim", n_sim, ["non-negative integer"])
    if n_sim == 0:
        logger.warning("Bootstrap with n_sim=0: empty distributions")
    return int(n_sim)


def _sample_std(values: np.ndarray, axis=None):
    """Sample standard deviation (ddof=1); NaN with fewer than two samples."""
    values = np.asarray(values, dtype=float)
    n = values.size if axis is None else values.shape[axis]
    if n < 2:
        if axis is None:
            return np.nan
        return np.full(values.shape[:axis] + values.shape[axis + 1:], np.nan)
    return values.std(axis=axis, ddof=1)


@dataclass
class BootstrapNetworkResult:
    """Network bootstrap outputs."""
    full_period: NetworkResult
    samples: np.ndarray
    edges: pd.DataFrame
    overlap: pd.DataFrame
    edge_reliability: pd.Series
    xpy: pd.DataFrame
    xpy_mean: pd.Series
    xpy_std: pd.Series
    provenance: Provenance

    @property
    def n_sim(self) -> int:
        return self.samples.shape[1]


@dataclass
class BootstrapDBHTResult:
    """DBHT bootstrap outputs."""
    full_period: ClusterResult
    samples: np.ndarray
    n_clusters: pd.Series
    n_clusters_mean: float
    n_clusters_std: float
    provenance: Provenance

    @property
    def n_sim(self) -> int:
        return self.samples.shape[1]


class BootstrapDriver:
    """
    Resampling driver for the network and DBHT pipelines.

    ``mapper`` has the signature of the builtin ``map`` and may be replaced
    by a parallel map; resamples are independent.
    """

    def __init__(self, config: Optional[Config] = None, mapper: Optional[Callable] = None):
        self.config = config or Config()
        self.mapper = mapper or map

    def _resample(self, frame: pd.DataFrame, n_sim: int, seed: Optional[int]) -> np.ndarray:
        rng = np.random.default_rng(seed)
        return bootstrap_indices(len(frame), n_sim, rng)

    def _map(self, func, samples: np.ndarray, description: str) -> list:
        n_sim = samples.shape[1]
        progress = ProgressLogger(logger, total=n_sim, description=description)
        out = []
        for i, item in enumerate(self.mapper(func, [samples[:, j] for j in range(n_sim)]), start=1):
            out.append(item)
            progress.update(i)
        return out

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def _network_sample(self, rows, frame, options):
        block = frame.iloc[rows]
        res = NetworkAnalyzer(self.config).compute(
            block, equal_weights(len(block)), weight_type=WEIGHT_DISTANCE, **options
        )
        return res.network.edge_set(), res.metrics.xpy

    def run_network(
        self,
        returns,
        names: Optional[Sequence[str]] = None,
        n_sim: Optional[int] = None,
        seed: Optional[int] = None,
        filter_type: Optional[str] = None,
        distance_method: Optional[str] = None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
    ) -> BootstrapNetworkResult:
        """
        Bootstrap edge reliability and hybrid centrality.

        Args:
            returns: (n x p) return matrix
            names: Asset names
            n_sim: Number of resamples (default: configuration)
            seed: Random seed (default: configuration)
            filter_type, distance_method, standardize, remove_market_mode:
                Network pipeline settings (default: configuration)

        Returns:
            BootstrapNetworkResult
        """
        cfg = self.config
        n_sim = _check_n_sim(cfg.bootstrap.n_sim if n_sim is None else n_sim)
        seed = cfg.bootstrap.seed if seed is None else seed
        options = dict(
            filter_type=check_filter(filter_type or cfg.network.filter),
            distance_method=check_distance_method(distance_method or cfg.network.distance_method),
            standardize=standardize,
            remove_market_mode=remove_market_mode,
        )
        frame = as_return_frame(returns, names)

        full = NetworkAnalyzer(self.config).compute(frame, equal_weights(len(frame)), **options)
        edges = full.network.edge_table()[['source', 'target']]
        full_edges = [frozenset((u, v)) for u, v in edges.itertuples(index=False)]

        samples = self._resample(frame, n_sim, seed)
        func = partial(self._network_sample, frame=frame, options=options)
        with LogContext(logger, f"Network bootstrap ({n_sim} samples)"):
            results = self._map(func, samples, "Network bootstrap")

        overlap = np.array(
            [[edge in sample_edges for sample_edges, _ in results] for edge in full_edges],
            dtype=bool,
        ).reshape(len(full_edges), n_sim)
        reliability = overlap.sum(axis=1) / n_sim if n_sim else np.full(len(full_edges), np.nan)

        xpy = pd.DataFrame(
            {j: xs for j, (_, xs) in enumerate(results)},
            index=frame.columns,
            columns=range(n_sim),
            dtype=float,
        )
        xpy_mean = xpy.mean(axis=1)

        edge_index = pd.MultiIndex.from_frame(edges)
        return BootstrapNetworkResult(
            full_period=full,
            samples=samples,
            edges=edges,
            overlap=pd.DataFrame(overlap, index=edge_index, columns=range(n_sim)),
            edge_reliability=pd.Series(reliability, index=edge_index, name='reliability', dtype=float),
            xpy=xpy,
            xpy_mean=xpy_mean.rename('XpY_mean'),
            xpy_std=pd.Series(_sample_std(xpy.values, axis=1), index=frame.columns, name='XpY_std'),
            provenance=Provenance.build('bootstrap_network', frame, n_sim=n_sim, seed=seed, **options),
        )

    # ------------------------------------------------------------------
    # DBHT
    # ------------------------------------------------------------------

    def _dbht_sample(self, rows, frame, options):
        block = frame.iloc[rows]
        res = ClusterAnalyzer(self.config).compute(
            block, equal_weights(len(block)), max_clusters=block.shape[1], **options
        )
        return res.n_clusters

    def run_dbht(
        self,
        returns,
        names: Optional[Sequence[str]] = None,
        n_sim: Optional[int] = None,
        seed: Optional[int] = None,
        linkage: Optional[str] = None,
        distance_method: Optional[str] = None,
        max_clusters: Optional[int] = None,
        standardize: Optional[bool] = None,
        remove_market_mode: Optional[bool] = None,
    ) -> BootstrapDBHTResult:
        """
        Bootstrap the number of DBHT clusters.

        Without an explicit linkage the configured one is used when it is a
        DBHT linkage, DBHT_PMFG otherwise. An explicit non-DBHT linkage raises
        InvalidConfigurationError before any computation.

        Returns:
            BootstrapDBHTResult with the per-sample cluster counts and their
            mean and sample standard deviation
        """
        cfg = self.config
        if linkage is None:
            linkage = cfg.clustering.linkage if cfg.uses_dbht else LINKAGE_DBHT_PMFG
        linkage = check_dbht_linkage(linkage)
        n_sim = _check_n_sim(cfg.bootstrap.n_sim if n_sim is None else n_sim)
        seed = cfg.bootstrap.seed if seed is None else seed
        if max_clusters is None:
            max_clusters = cfg.clustering.max_clusters
        options = dict(
            linkage=linkage,
            distance_method=check_distance_method(distance_method or cfg.clustering.distance_method),
            standardize=standardize,
            remove_market_mode=remove_market_mode,
        )
        frame = as_return_frame(returns, names)
        check_cluster_counts(max_clusters, None, frame.shape[1])

        full = ClusterAnalyzer(self.config).compute(
            frame, equal_weights(len(frame)), max_clusters=max_clusters, **options
        )

        samples = self._resample(frame, n_sim, seed)
        func = partial(self._dbht_sample, frame=frame, options=options)
        with LogContext(logger, f"DBHT bootstrap ({n_sim} samples)"):
            counts = self._map(func, samples, "DBHT bootstrap")

        n_clusters = pd.Series(counts, index=range(n_sim), name='n_clusters', dtype=float)
        return BootstrapDBHTResult(
            full_period=full,
            samples=samples,
            n_clusters=n_clusters,
            n_clusters_mean=float(n_clusters.mean()) if n_sim else np.nan,
            n_clusters_std=float(_sample_std(n_clusters.values)),
            provenance=Provenance.build(
                'bootstrap_dbht', frame, n_sim=n_sim, seed=seed, max_clusters=max_clusters, **options
            ),
        )
