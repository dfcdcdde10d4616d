"""Tests for rolling window analysis."""

import pytest
import numpy as np
import pandas as pd

from corr_network.analysis.rolling import (
    RollingDriver,
    window_end_indices,
    rolling_density_points,
)
from corr_network.core.config import Config
from corr_network.core.exceptions import InvalidConfigurationError, DimensionMismatchError


class TestWindowEndIndices:
    """Tests for window_end_indices."""

    def test_documented_example(self):
        """Test 300 observations, window 150, step 50."""
        assert window_end_indices(300, 150, 50) == [150, 200, 250, 300]

    def test_anchored_at_last_observation(self):
        """Test windows step back from the end of the history."""
        assert window_end_indices(310, 150, 50) == [160, 210, 260, 310]

    def test_window_longer_than_history(self):
        """Test no windows when the window does not fit."""
        assert window_end_indices(100, 150, 50) == []

    def test_exact_fit(self):
        """Test a window equal to the history gives one window."""
        assert window_end_indices(150, 150, 7) == [150]

    def test_invalid_arguments(self):
        """Test non-positive window or step is rejected."""
        with pytest.raises(InvalidConfigurationError):
            window_end_indices(100, 0, 10)
        with pytest.raises(InvalidConfigurationError):
            window_end_indices(100, 10, 0)

    def test_density_grid(self):
        """Test the rolling density grid -1:0.05:1."""
        grid = rolling_density_points()

        assert len(grid) == 41
        assert grid[0] == -1.0
        assert grid[-1] == 1.0


class TestRollingNetwork:
    """Tests for RollingDriver.run_network."""

    def test_run_network(self, sample_returns):
        """Test per-window outputs are indexed by window end date."""
        result = RollingDriver(Config()).run_network(sample_returns, window=100, step=50, filter_type="MST")

        assert result.end_indices == [102, 152, 202, 252]
        assert result.n_windows == 4
        assert list(result.dates) == [sample_returns.index[e - 1] for e in result.end_indices]
        assert result.xpy.shape == (sample_returns.shape[1], 4)
        assert result.tree_length_norm.notna().all()
        assert np.allclose(result.corr_hist.sum(axis=0), 1.0)
        assert len(result.corr_hist) == 20
        assert result.returns[result.dates[-1]].shape == (100, sample_returns.shape[1])

    def test_window_matches_single_run(self, sample_returns):
        """Test the last window equals a direct run on the trailing block."""
        from corr_network.analysis.network import NetworkAnalyzer

        result = RollingDriver().run_network(sample_returns, window=100, step=50, filter_type="MST")
        direct = NetworkAnalyzer().compute(sample_returns.iloc[-100:], filter_type="MST")

        assert result.tree_length_norm.iloc[-1] == pytest.approx(direct.metrics.tree_length_norm)

    def test_custom_mapper(self, sample_returns):
        """Test windows can be dispatched through a replacement map."""
        seen = []

        def recording_map(func, items):
            items = list(items)
            seen.extend(items)
            return [func(i) for i in items]

        driver = RollingDriver(mapper=recording_map)
        result = driver.run_network(sample_returns, window=150, step=100, filter_type="MST")

        assert seen == result.end_indices

    def test_no_windows(self, sample_returns):
        """Test a window longer than the history gives empty results."""
        result = RollingDriver().run_network(sample_returns, window=500, step=10, filter_type="MST")

        assert result.n_windows == 0
        assert result.xpy.shape[1] == 0

    def test_weights_must_match_window(self, sample_returns):
        """Test weights are per window, not per history."""
        with pytest.raises(DimensionMismatchError):
            RollingDriver().run_network(
                sample_returns, window=100, step=50, weights=np.ones(len(sample_returns))
            )

    def test_dates_length_mismatch(self, sample_returns):
        """Test a wrong-length date vector is rejected."""
        with pytest.raises(DimensionMismatchError):
            RollingDriver().run_network(sample_returns.values, dates=range(10), window=100, step=50)

    def test_array_input(self, sample_returns):
        """Test arrays are dated by observation index."""
        result = RollingDriver().run_network(sample_returns.values, window=200, step=52, filter_type="MST")

        assert list(result.dates) == [199, 251]


class TestRollingClusters:
    """Tests for RollingDriver.run_clusters."""

    def test_run_clusters(self, block_returns, block_labels):
        """Test cluster IDs, counts and ARI per window."""
        result = RollingDriver().run_clusters(
            block_returns, window=200, step=100, linkage="average",
            n_clusters=3, partitions=block_labels,
        )

        assert result.n_windows == 3
        assert result.cluster_ids.shape == (len(block_labels), 3)
        assert (result.n_clusters == 3).all()
        assert list(result.ari.index) == ["Partition_1"]
        assert np.allclose(result.ari.values, 1.0)

    def test_without_partitions(self, block_returns):
        """Test ARI is absent without comparison partitions."""
        result = RollingDriver().run_clusters(block_returns, window=300, step=100)

        assert result.ari is None
        assert isinstance(result.cluster_ids_ordered, pd.DataFrame)


class TestRollingCorrelation:
    """Tests for RollingDriver.run_correlation."""

    def test_run_correlation(self, block_returns):
        """Test densities on the fixed grid and per-window means."""
        result = RollingDriver().run_correlation(block_returns, window=200, step=100, method="normal")

        assert result.density.shape == (41, 3)
        assert list(result.summary.index) == ["p0", "p25", "p50", "p75", "p100"]
        assert result.values.shape == (36, 3)
        assert np.allclose(result.mean.values, result.values.mean(axis=0).values)
