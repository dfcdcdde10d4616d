"""
Correlation Network - Filtered correlation networks and hierarchical clusters

Weighted (optionally shrunk) correlation estimation, MST / PMFG / TMFG
network filtering with centrality and hybrid centrality metrics,
hierarchical and DBHT clustering, and rolling-window and bootstrap
stability analysis for multivariate return series.

Usage:
    from corr_network import Config, NetworkAnalyzer

    result = NetworkAnalyzer(Config()).compute(returns)
    print(result.metrics.xpy.sort_values().head())

CLI:
    python -m corr_network network -d returns.csv
"""

from .core.constants import VERSION
from .core.config import Config, ConfigLoader
from .core.exceptions import CorrNetworkError
from .analysis.correlation import CorrelationAnalyzer
from .analysis.network import NetworkAnalyzer
from .analysis.clustering import ClusterAnalyzer
from .analysis.rolling import RollingDriver
from .analysis.bootstrap import BootstrapDriver

__version__ = VERSION

__all__ = [
    "Config",
    "ConfigLoader",
    "CorrNetworkError",
    "CorrelationAnalyzer",
    "NetworkAnalyzer",
    "ClusterAnalyzer",
    "RollingDriver",
    "BootstrapDriver",
    "__version__",
]
