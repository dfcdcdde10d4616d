"""Core module - Configuration, Constants, Exceptions and Provenance"""

from .config import (
    Config,
    ConfigLoader,
    PreprocessConfig,
    CorrelationConfig,
    NetworkConfig,
    ClusteringConfig,
    RollingConfig,
    BootstrapConfig,
)
from .constants import *
from .exceptions import (
    CorrNetworkError,
    ConfigError,
    DataLoadError,
    AnalysisError,
    InvalidConfigurationError,
    DimensionMismatchError,
    InsufficientDataError,
)
from .provenance import Provenance

__all__ = [
    "Config",
    "ConfigLoader",
    "PreprocessConfig",
    "CorrelationConfig",
    "NetworkConfig",
    "ClusteringConfig",
    "RollingConfig",
    "BootstrapConfig",
    "CorrNetworkError",
    "ConfigError",
    "DataLoadError",
    "AnalysisError",
    "InvalidConfigurationError",
    "DimensionMismatchError",
    "InsufficientDataError",
    "Provenance",
]
