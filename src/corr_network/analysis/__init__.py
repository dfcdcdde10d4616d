"""Analysis module - Network filters, Metrics, Clustering, DBHT, Rolling and Bootstrap analysis"""

from .planar import build_mst, build_pmfg, build_tmfg
from .metrics import NetworkMetrics, compute_network_metrics, hybrid_centrality
from .network import NetworkFilter, FilteredNetwork, NetworkAnalyzer, NetworkResult
from .dbht import DBHTOracle, DBHTResult, DirectBubbleHierarchy
from .clustering import ClusterEngine, ClusterAnalyzer, ClusterResult, order_cluster_ids, dendrogram_threshold
from .correlation import CorrelationAnalyzer, CorrelationResult
from .rolling import (
    RollingDriver,
    RollingNetworkResult,
    RollingClusterResult,
    RollingCorrelationResult,
    window_end_indices,
)
from .bootstrap import BootstrapDriver, BootstrapNetworkResult, BootstrapDBHTResult, bootstrap_indices

__all__ = [
    "build_mst",
    "build_pmfg",
    "build_tmfg",
    "NetworkMetrics",
    "compute_network_metrics",
    "hybrid_centrality",
    "NetworkFilter",
    "FilteredNetwork",
    "NetworkAnalyzer",
    "NetworkResult",
    "DBHTOracle",
    "DBHTResult",
    "DirectBubbleHierarchy",
    "ClusterEngine",
    "ClusterAnalyzer",
    "ClusterResult",
    "order_cluster_ids",
    "dendrogram_threshold",
    "CorrelationAnalyzer",
    "CorrelationResult",
    "RollingDriver",
    "RollingNetworkResult",
    "RollingClusterResult",
    "RollingCorrelationResult",
    "window_end_indices",
    "BootstrapDriver",
    "BootstrapNetworkResult",
    "BootstrapDBHTResult",
    "bootstrap_indices",
]
