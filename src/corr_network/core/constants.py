"""
Constants for Correlation Network.

All magic numbers and default parameter values are defined here so the
configuration layer and the analysis modules agree on them.
"""

from typing import Dict, List

# =============================================================================
# Version Info
# =============================================================================

VERSION = "1.0.0"
VERSION_NAME = "Correlation Network Analyzer"

# =============================================================================
# Preprocessing Constants
# =============================================================================

DEFAULT_STANDARDIZE = False
DEFAULT_REMOVE_MARKET_MODE = False
DEFAULT_EWMA_ALPHA = 0.0  # 0 == equal weights

# =============================================================================
# Correlation / Distance Constants
# =============================================================================

CORR_METHOD_QIS = "QIS"
CORR_METHOD_NORMAL = "normal"
CORRELATION_METHODS: List[str] = [CORR_METHOD_QIS, CORR_METHOD_NORMAL]

DIST_CORRELATION = "correlation"
DIST_QIS_CORRELATION = "qis_correlation"
CORRELATION_DISTANCES: List[str] = [DIST_CORRELATION, DIST_QIS_CORRELATION]

# Generic metrics accepted by scipy.spatial.distance.pdist
PDIST_METRICS: List[str] = [
    "braycurtis", "canberra", "chebyshev", "cityblock", "cosine",
    "euclidean", "minkowski", "seuclidean", "sqeuclidean",
]

DISTANCE_METHODS: List[str] = CORRELATION_DISTANCES + PDIST_METRICS

DEFAULT_DISTANCE_METHOD = DIST_QIS_CORRELATION
DEFAULT_CORR_METHOD = CORR_METHOD_QIS

# Automatic density grid size (matches ksdensity default)
DEFAULT_DENSITY_POINTS = 100

# Rolling correlation density grid and histogram bins
ROLLING_DENSITY_STEP = 0.05
ROLLING_HIST_BIN_WIDTH = 0.1

# Five-number summary percentiles
SUMMARY_PERCENTILES: List[float] = [0, 25, 50, 75, 100]

# =============================================================================
# Network Constants
# =============================================================================

FILTER_MST = "MST"
FILTER_PMFG = "PMFG"
FILTER_TMFG = "TMFG"
NETWORK_FILTERS: List[str] = [FILTER_MST, FILTER_PMFG, FILTER_TMFG]
DEFAULT_NETWORK_FILTER = FILTER_PMFG

WEIGHT_DISTANCE = "distance"
WEIGHT_SIMILARITY = "similarity"
WEIGHT_TYPES: List[str] = [WEIGHT_DISTANCE, WEIGHT_SIMILARITY]

PAGERANK_DAMPING = 0.85

# =============================================================================
# Clustering Constants
# =============================================================================

LINKAGE_DBHT_PMFG = "DBHT_PMFG"
LINKAGE_DBHT_TMFG = "DBHT_TMFG"
DBHT_LINKAGES: List[str] = [LINKAGE_DBHT_PMFG, LINKAGE_DBHT_TMFG]

SCIPY_LINKAGES: List[str] = [
    "single", "complete", "average", "weighted", "centroid", "median", "ward",
]
LINKAGE_METHODS: List[str] = DBHT_LINKAGES + SCIPY_LINKAGES
DEFAULT_LINKAGE = "ward"

# Offset above the top merge height when a single group is requested
SINGLE_CLUSTER_THRESHOLD_OFFSET = 0.001

# =============================================================================
# Rolling / Bootstrap Constants
# =============================================================================

DEFAULT_ROLL_WINDOW = 250
DEFAULT_ROLL_STEP = 20

DEFAULT_BOOTSTRAP_SIMS = 100
DEFAULT_BOOTSTRAP_SEED = 42

MIN_OBSERVATIONS = 2
MIN_ASSETS = 2

# =============================================================================
# File Output Constants
# =============================================================================

DEFAULT_OUTPUT_DIR = "./output"
DEFAULT_REPORT_PREFIX = "corr_network_report"

OUTPUT_FILES: Dict[str, str] = {
    "correlation": "correlation.csv",
    "network_edges": "network_edges.csv",
    "network_metrics": "network_metrics.csv",
    "clusters": "clusters.csv",
    "ari": "adjusted_rand_index.csv",
    "rolling": "rolling.csv",
    "bootstrap": "bootstrap.csv",
}
