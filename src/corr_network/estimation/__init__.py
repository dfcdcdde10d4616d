"""Estimation module - Weights, Preprocessing, Covariance, Shrinkage and Distances"""

from .weights import ewma_weights, equal_weights, effective_obs, resolve_weights, observation_weights
from .preprocess import PreprocessResult, preprocess_returns, weighted_pca, weighted_ols
from .covariance import weighted_covariance, cov_to_corr, symmetrize
from .shrinkage import qis_shrink, qis_covariance
from .distance import (
    DistancePair,
    build_distance_pair,
    corr_to_distance,
    distance_to_similarity,
    similarity_to_distance,
    pairwise_distance,
)

__all__ = [
    "ewma_weights",
    "equal_weights",
    "effective_obs",
    "resolve_weights",
    "observation_weights",
    "PreprocessResult",
    "preprocess_returns",
    "weighted_pca",
    "weighted_ols",
    "weighted_covariance",
    "cov_to_corr",
    "symmetrize",
    "qis_shrink",
    "qis_covariance",
    "DistancePair",
    "build_distance_pair",
    "corr_to_distance",
    "distance_to_similarity",
    "similarity_to_distance",
    "pairwise_distance",
]
