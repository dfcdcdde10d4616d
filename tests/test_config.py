"""Tests for configuration module."""

import pytest
import yaml

from corr_network.core.config import Config, ConfigLoader
from corr_network.core.constants import (
    DEFAULT_NETWORK_FILTER,
    DEFAULT_DISTANCE_METHOD,
    DEFAULT_ROLL_WINDOW,
    DEFAULT_BOOTSTRAP_SIMS,
)
from corr_network.core.exceptions import ConfigError, ConfigNotFoundError, ConfigValidationError


def _write(tmp_path, raw):
    path = tmp_path / "config.yaml"
    with open(path, "w") as f:
        yaml.dump(raw, f)
    return path


class TestConfigLoader:
    """Tests for ConfigLoader class."""

    def test_load_valid_config(self, temp_config_file):
        """Test loading a valid configuration file."""
        config = ConfigLoader.load(temp_config_file)

        assert isinstance(config, Config)
        assert config.preprocessing.standardize is True
        assert config.preprocessing.ewma_alpha == pytest.approx(0.01)
        assert config.network.filter == "MST"
        assert config.clustering.linkage == "average"
        assert config.clustering.max_clusters == 5
        assert config.rolling.window == 120
        assert config.bootstrap.n_sim == 10

    def test_load_nonexistent_file(self, tmp_path):
        """Test loading non-existent file raises error."""
        with pytest.raises(ConfigNotFoundError):
            ConfigLoader.load(tmp_path / "nonexistent.yaml")

    def test_load_or_default(self, tmp_path):
        """Test load_or_default returns default config when file missing."""
        config = ConfigLoader.load_or_default(tmp_path / "missing.yaml")

        assert isinstance(config, Config)
        assert config.network.filter == DEFAULT_NETWORK_FILTER

    def test_missing_keys_take_defaults(self, tmp_path):
        """Test absent sections and keys fall back to the named defaults."""
        config = ConfigLoader.load(_write(tmp_path, {"network": {"filter": "TMFG"}}))

        assert config.network.filter == "TMFG"
        assert config.network.distance_method == DEFAULT_DISTANCE_METHOD
        assert config.rolling.window == DEFAULT_ROLL_WINDOW
        assert config.bootstrap.n_sim == DEFAULT_BOOTSTRAP_SIMS

    def test_empty_file(self, tmp_path):
        """Test an empty YAML file gives the default configuration."""
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert ConfigLoader.load(path) == Config()

    def test_unparsable_yaml(self, tmp_path):
        """Test broken YAML raises ConfigError."""
        path = tmp_path / "broken.yaml"
        path.write_text("network: [unclosed\n")

        with pytest.raises(ConfigError):
            ConfigLoader.load(path)

    def test_validation_collects_every_error(self, tmp_path):
        """Test validation lists every problem at once."""
        raw = {
            "network": {"filter": "KRUSKAL"},
            "clustering": {"linkage": "median-ish"},
            "rolling": {"window": 0},
            "bootstrap": {"n_sim": -1},
        }
        with pytest.raises(ConfigValidationError) as exc:
            ConfigLoader.load(_write(tmp_path, raw))

        assert len(exc.value.errors) == 4

    def test_unknown_section(self, tmp_path):
        """Test an unknown top-level section is rejected."""
        with pytest.raises(ConfigValidationError):
            ConfigLoader.load(_write(tmp_path, {"dashboard": {}}))

    def test_section_must_be_dict(self, tmp_path):
        """Test a scalar section is rejected."""
        with pytest.raises(ConfigValidationError):
            ConfigLoader.load(_write(tmp_path, {"rolling": 250}))

    def test_pdist_metric_accepted(self, tmp_path):
        """Test pdist metric names are valid distance methods."""
        config = ConfigLoader.load(_write(tmp_path, {"clustering": {"distance_method": "cityblock"}}))

        assert config.clustering.distance_method == "cityblock"


class TestConfig:
    """Tests for Config dataclass."""

    def test_is_time_weighted(self, temp_config_file):
        """Test is_time_weighted follows the EWMA decay."""
        assert ConfigLoader.load(temp_config_file).is_time_weighted
        assert not Config().is_time_weighted

    def test_uses_dbht(self):
        """Test uses_dbht for DBHT linkages."""
        config = Config()
        assert not config.uses_dbht

        config.clustering.linkage = "DBHT_TMFG"
        assert config.uses_dbht

    def test_to_dict(self):
        """Test to_dict exposes every section."""
        raw = Config().to_dict()

        assert set(raw) == set(ConfigLoader.SECTIONS)
        assert raw["bootstrap"]["seed"] == Config().bootstrap.seed
