"""
Configuration management for Correlation Network.

One dataclass per pipeline stage, read from a YAML file whose top-level keys
are the stage names. Missing keys take the defaults in ``constants``.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any
from pathlib import Path
import yaml
import logging

from .exceptions import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
)
from .constants import (
    DEFAULT_STANDARDIZE,
    DEFAULT_REMOVE_MARKET_MODE,
    DEFAULT_EWMA_ALPHA,
    DEFAULT_CORR_METHOD,
    DEFAULT_DENSITY_POINTS,
    DEFAULT_DISTANCE_METHOD,
    DEFAULT_NETWORK_FILTER,
    DEFAULT_LINKAGE,
    DEFAULT_ROLL_WINDOW,
    DEFAULT_ROLL_STEP,
    DEFAULT_BOOTSTRAP_SIMS,
    DEFAULT_BOOTSTRAP_SEED,
    CORRELATION_METHODS,
    DISTANCE_METHODS,
    NETWORK_FILTERS,
    LINKAGE_METHODS,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Config Dataclasses
# =============================================================================

@dataclass
class PreprocessConfig:
    """Return preprocessing configuration."""
    standardize: bool = DEFAULT_STANDARDIZE
    remove_market_mode: bool = DEFAULT_REMOVE_MARKET_MODE
    ewma_alpha: float = DEFAULT_EWMA_ALPHA


@dataclass
class CorrelationConfig:
    """Correlation distribution analysis configuration."""
    method: str = DEFAULT_CORR_METHOD
    density_points: Optional[List[float]] = None


@dataclass
class NetworkConfig:
    """Network filter configuration."""
    distance_method: str = DEFAULT_DISTANCE_METHOD
    filter: str = DEFAULT_NETWORK_FILTER


@dataclass
class ClusteringConfig:
    """Hierarchical clustering configuration."""
    distance_method: str = DEFAULT_DISTANCE_METHOD
    linkage: str = DEFAULT_LINKAGE
    max_clusters: Optional[int] = None
    n_clusters: Optional[int] = None


@dataclass
class RollingConfig:
    """Rolling window configuration."""
    window: int = DEFAULT_ROLL_WINDOW
    step: int = DEFAULT_ROLL_STEP


@dataclass
class BootstrapConfig:
    """Bootstrap resampling configuration."""
    n_sim: int = DEFAULT_BOOTSTRAP_SIMS
    seed: Optional[int] = DEFAULT_BOOTSTRAP_SEED


@dataclass
class Config:
    """Main configuration container."""

    preprocessing: PreprocessConfig = field(default_factory=PreprocessConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    rolling: RollingConfig = field(default_factory=RollingConfig)
    bootstrap: BootstrapConfig = field(default_factory=BootstrapConfig)

    @property
    def is_time_weighted(self) -> bool:
        """Check if observations are exponentially weighted."""
        return self.preprocessing.ewma_alpha != 0

    @property
    def uses_dbht(self) -> bool:
        """Check if clustering uses the DBHT linkage."""
        return self.clustering.linkage.startswith("DBHT")

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary view (used for provenance records)."""
        return asdict(self)


# =============================================================================
# Config Loader
# =============================================================================

class ConfigLoader:
    """Reads, checks and writes ``corr_network`` YAML configuration."""

    SECTIONS = ['preprocessing', 'correlation', 'network', 'clustering', 'rolling', 'bootstrap']

    @classmethod
    def load(cls, path: Path) -> Config:
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML config file

        Returns:
            Config object

        Raises:
            ConfigNotFoundError: If file doesn't exist
            ConfigValidationError: If validation fails
        """
        path = Path(path)
        if not path.exists():
            raise ConfigNotFoundError(str(path))

        logger.info(f"Loading configuration from {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"{path.name} is not valid YAML", str(e)) from e

        if raw_config is None:
            raw_config = {}

        cls.validate(raw_config)
        return cls._build_config(raw_config)

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> Config:
        """
        Load ``path`` if given, else the first of corr_network.yaml or
        config/corr_network.yaml in the working directory, else defaults.

        Args:
            path: Optional path to config file

        Returns:
            Config
        """
        if path:
            try:
                return cls.load(path)
            except ConfigNotFoundError:
                logger.warning(f"{path} does not exist, looking for a default file")

        default_paths = [
            Path('corr_network.yaml'),
            Path('config/corr_network.yaml'),
        ]

        for p in default_paths:
            if p.exists():
                logger.info(f"Using {p}")
                return cls.load(p)

        logger.info("No configuration file, using built-in defaults")
        return cls.get_default()

    @classmethod
    def validate(cls, raw_config: dict) -> None:
        """
        Check section types and option values of a parsed YAML mapping.

        Args:
            raw_config: Parsed YAML

        Raises:
            ConfigValidationError: If validation fails
        """
        errors = []

        if not isinstance(raw_config, dict):
            raise ConfigValidationError(["Top level of config must be a dictionary"])

        for section in cls.SECTIONS:
            if section in raw_config and not isinstance(raw_config[section], dict):
                errors.append(f"'{section}' must be a dictionary")

        unknown = [k for k in raw_config if k not in cls.SECTIONS]
        for key in unknown:
            errors.append(f"Unknown section: '{key}'")

        if errors:
            raise ConfigValidationError(errors)

        corr = raw_config.get('correlation', {})
        if 'method' in corr and corr['method'] not in CORRELATION_METHODS:
            errors.append(f"correlation.method must be one of {CORRELATION_METHODS}")

        network = raw_config.get('network', {})
        if 'filter' in network and network['filter'] not in NETWORK_FILTERS:
            errors.append(f"network.filter must be one of {NETWORK_FILTERS}")
        if 'distance_method' in network and network['distance_method'] not in DISTANCE_METHODS:
            errors.append(f"network.distance_method '{network['distance_method']}' is not supported")

        clustering = raw_config.get('clustering', {})
        if 'linkage' in clustering and clustering['linkage'] not in LINKAGE_METHODS:
            errors.append(f"clustering.linkage must be one of {LINKAGE_METHODS}")
        if 'distance_method' in clustering and clustering['distance_method'] not in DISTANCE_METHODS:
            errors.append(f"clustering.distance_method '{clustering['distance_method']}' is not supported")
        for key in ('max_clusters', 'n_clusters'):
            value = clustering.get(key)
            if value is not None and (not isinstance(value, int) or value < 1):
                errors.append(f"clustering.{key} must be a positive integer")

        rolling = raw_config.get('rolling', {})
        for key in ('window', 'step'):
            value = rolling.get(key)
            if value is not None and (not isinstance(value, int) or value < 1):
                errors.append(f"rolling.{key} must be a positive integer")

        bootstrap = raw_config.get('bootstrap', {})
        n_sim = bootstrap.get('n_sim')
        if n_sim is not None and (not isinstance(n_sim, int) or n_sim < 0):
            errors.append("bootstrap.n_sim must be a non-negative integer")

        if errors:
            raise ConfigValidationError(errors)

    @classmethod
    def _build_config(cls, raw: dict) -> Config:
        """Assemble a Config from a validated mapping."""
        return Config(
            preprocessing=cls._build_preprocess_config(raw.get('preprocessing', {})),
            correlation=cls._build_correlation_config(raw.get('correlation', {})),
            network=cls._build_network_config(raw.get('network', {})),
            clustering=cls._build_clustering_config(raw.get('clustering', {})),
            rolling=cls._build_rolling_config(raw.get('rolling', {})),
            bootstrap=cls._build_bootstrap_config(raw.get('bootstrap', {})),
        )

    @classmethod
    def _build_preprocess_config(cls, raw: dict) -> PreprocessConfig:
        """Build PreprocessConfig from raw dict."""
        return PreprocessConfig(
            standardize=bool(raw.get('standardize', DEFAULT_STANDARDIZE)),
            remove_market_mode=bool(raw.get('remove_market_mode', DEFAULT_REMOVE_MARKET_MODE)),
            ewma_alpha=float(raw.get('ewma_alpha', DEFAULT_EWMA_ALPHA)),
        )

    @classmethod
    def _build_correlation_config(cls, raw: dict) -> CorrelationConfig:
        """Build CorrelationConfig from raw dict."""
        return CorrelationConfig(
            method=raw.get('method', DEFAULT_CORR_METHOD),
            density_points=raw.get('density_points'),
        )

    @classmethod
    def _build_network_config(cls, raw: dict) -> NetworkConfig:
        """Build NetworkConfig from raw dict."""
        return NetworkConfig(
            distance_method=raw.get('distance_method', DEFAULT_DISTANCE_METHOD),
            filter=raw.get('filter', DEFAULT_NETWORK_FILTER),
        )

    @classmethod
    def _build_clustering_config(cls, raw: dict) -> ClusteringConfig:
        """Build ClusteringConfig from raw dict."""
        return ClusteringConfig(
            distance_method=raw.get('distance_method', DEFAULT_DISTANCE_METHOD),
            linkage=raw.get('linkage', DEFAULT_LINKAGE),
            max_clusters=raw.get('max_clusters'),
            n_clusters=raw.get('n_clusters'),
        )

    @classmethod
    def _build_rolling_config(cls, raw: dict) -> RollingConfig:
        """Build RollingConfig from raw dict."""
        return RollingConfig(
            window=raw.get('window', DEFAULT_ROLL_WINDOW),
            step=raw.get('step', DEFAULT_ROLL_STEP),
        )

    @classmethod
    def _build_bootstrap_config(cls, raw: dict) -> BootstrapConfig:
        """Build BootstrapConfig from raw dict."""
        return BootstrapConfig(
            n_sim=raw.get('n_sim', DEFAULT_BOOTSTRAP_SIMS),
            seed=raw.get('seed', DEFAULT_BOOTSTRAP_SEED),
        )

    @classmethod
    def get_default(cls) -> Config:
        """Built-in defaults."""
        return Config()
