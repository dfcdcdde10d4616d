"""
Input validation run at pipeline entry.

Every check here happens before any heavy computation so a bad call fails
fast with a descriptive error.
"""

from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np
import pandas as pd

from .constants import (
    MIN_OBSERVATIONS,
    MIN_ASSETS,
    DISTANCE_METHODS,
    NETWORK_FILTERS,
    LINKAGE_METHODS,
    DBHT_LINKAGES,
    WEIGHT_TYPES,
    CORRELATION_METHODS,
)
from .exceptions import (
    DimensionMismatchError,
    InsufficientDataError,
    InvalidConfigurationError,
)

logger = logging.getLogger(__name__)


def as_return_frame(returns, names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Coerce a return matrix into a float DataFrame with asset columns.

    Args:
        returns: (n x p) array or DataFrame
        names: Optional asset names (overrides DataFrame columns)

    Returns:
        New DataFrame (the input is never modified)
    """
    if isinstance(returns, pd.DataFrame):
        frame = returns.astype(float).copy()
    else:
        arr = np.asarray(returns, dtype=float)
        if arr.ndim != 2:
            raise DimensionMismatchError("returns", 2, arr.ndim, axis="ndim")
        frame = pd.DataFrame(arr)

    n_obs, n_assets = frame.shape
    if names is not None:
        names = [str(x) for x in names]
        if len(names) != n_assets:
            raise DimensionMismatchError("names", n_assets, len(names))
        frame.columns = names
    elif not isinstance(returns, pd.DataFrame):
        frame.columns = [f"A{i + 1}" for i in range(n_assets)]
    else:
        frame.columns = [str(c) for c in frame.columns]

    if frame.columns.duplicated().any():
        dupes = frame.columns[frame.columns.duplicated()].tolist()
        raise InvalidConfigurationError("names", dupes)

    if n_obs < MIN_OBSERVATIONS:
        raise InsufficientDataError(MIN_OBSERVATIONS, n_obs, "observations")
    if n_assets < MIN_ASSETS:
        raise InsufficientDataError(MIN_ASSETS, n_assets, "assets")
    if not np.isfinite(frame.values).all():
        raise InvalidConfigurationError("returns", "non-finite values")

    return frame


def check_weights(weights, n_obs: int) -> Optional[np.ndarray]:
    """Validate an optional observation weight vector."""
    if weights is None:
        return None
    w = np.asarray(weights, dtype=float).ravel()
    if w.size == 0:
        return None
    if w.size != n_obs:
        raise DimensionMismatchError("weights", n_obs, w.size)
    if (w < 0).any() or not np.isfinite(w).all():
        raise InvalidConfigurationError("weights", "negative or non-finite entries")
    if w.sum() <= 0:
        raise InvalidConfigurationError("weights", "all zero")
    return w


def check_partitions(partitions, n_assets: int) -> Optional[np.ndarray]:
    """Validate comparison partitions (one row per alternative grouping)."""
    if partitions is None:
        return None
    arr = np.asarray(partitions)
    if arr.size == 0:
        return None
    if arr.ndim == 1:
        arr = arr.reshape(1, -1)
    if arr.shape[1] != n_assets:
        raise DimensionMismatchError("comparison partitions", n_assets, arr.shape[1], axis="width")
    return arr


def check_choice(option: str, value: str, allowed: Sequence[str]) -> str:
    """Validate a method name against its allowed values."""
    if value not in allowed:
        raise InvalidConfigurationError(option, value, allowed)
    return value


def check_distance_method(method: str) -> str:
    return check_choice("distance_method", method, DISTANCE_METHODS)


def check_filter(filter_type: str) -> str:
    return check_choice("filter", filter_type, NETWORK_FILTERS)


def check_linkage(method: str) -> str:
    return check_choice("linkage", method, LINKAGE_METHODS)


def check_dbht_linkage(method: str) -> str:
    return check_choice("linkage", method, DBHT_LINKAGES)


def check_weight_type(weight_type: str) -> str:
    return check_choice("weight_type", weight_type, WEIGHT_TYPES)


def check_correlation_method(method: str) -> str:
    return check_choice("method", method, CORRELATION_METHODS)


def check_cluster_counts(
    max_clusters: Optional[int],
    n_clusters: Optional[int],
    n_assets: int,
) -> Tuple[int, int]:
    """
    Resolve cluster count defaults.

    max_clusters defaults to the number of assets; n_clusters defaults to
    max_clusters.
    """
    if max_clusters is None:
        max_clusters = n_assets
    if n_clusters is None:
        n_clusters = max_clusters

    errors: List[str] = []
    if not 1 <= max_clusters <= n_assets:
        errors.append(f"max_clusters={max_clusters}")
    if not 1 <= n_clusters <= n_assets:
        errors.append(f"n_clusters={n_clusters}")
    if errors:
        raise InvalidConfigurationError(
            "cluster counts", ", ".join(errors), [f"1..{n_assets}"]
        )
    return int(max_clusters), int(n_clusters)


def check_square(matrix, name: str, size: Optional[int] = None) -> np.ndarray:
    """Validate a square matrix, optionally of a given size."""
    arr = np.asarray(matrix, dtype=float)
    if arr.ndim != 2:
        raise DimensionMismatchError(name, 2, arr.ndim, axis="ndim")
    if arr.shape[0] != arr.shape[1]:
        raise DimensionMismatchError(name, arr.shape[0], arr.shape[1], axis="columns")
    if size is not None and arr.shape[0] != size:
        raise DimensionMismatchError(name, size, arr.shape[0])
    return arr
