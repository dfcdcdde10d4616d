"""Pytest configuration and fixtures."""

import pytest
import pandas as pd
import numpy as np


@pytest.fixture
def sample_returns():
    """Generate sample returns data for testing."""
    np.random.seed(42)
    dates = pd.date_range("2024-01-01", periods=252, freq="B")
    assets = ["SPX", "NKY", "USDJPY", "USDKRW", "VIX", "GOLD", "WTI"]

    data = np.random.randn(len(dates), len(assets)) * 0.01
    returns = pd.DataFrame(data, index=dates, columns=assets)

    # Add some correlations
    returns["VIX"] = -returns["SPX"] * 0.5 + np.random.randn(len(dates)) * 0.01
    returns["NKY"] = returns["SPX"] * 0.6 + np.random.randn(len(dates)) * 0.008

    return returns


@pytest.fixture
def block_labels():
    """True group of each asset in block_returns."""
    return np.array([1, 1, 1, 2, 2, 2, 3, 3, 3])


@pytest.fixture
def block_returns(block_labels):
    """Three groups of three assets driven by independent group factors."""
    rng = np.random.default_rng(7)
    n_obs = 400
    dates = pd.date_range("2022-01-03", periods=n_obs, freq="B")
    factors = rng.standard_normal((n_obs, 3))
    noise = rng.standard_normal((n_obs, len(block_labels))) * 0.3

    data = factors[:, block_labels - 1] + noise
    names = [f"G{g}_{i % 3 + 1}" for i, g in enumerate(block_labels)]
    return pd.DataFrame(data * 0.01, index=dates, columns=names)


@pytest.fixture
def iid_returns():
    """Five independent assets, 100 observations."""
    rng = np.random.default_rng(12345)
    dates = pd.date_range("2023-01-02", periods=100, freq="B")
    return pd.DataFrame(
        rng.standard_normal((100, 5)) * 0.01,
        index=dates,
        columns=["A", "B", "C", "D", "E"],
    )


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary."""
    return {
        "preprocessing": {
            "standardize": True,
            "remove_market_mode": False,
            "ewma_alpha": 0.01,
        },
        "correlation": {
            "method": "normal",
        },
        "network": {
            "distance_method": "correlation",
            "filter": "MST",
        },
        "clustering": {
            "distance_method": "qis_correlation",
            "linkage": "average",
            "max_clusters": 5,
        },
        "rolling": {
            "window": 120,
            "step": 30,
        },
        "bootstrap": {
            "n_sim": 10,
            "seed": 3,
        },
    }


@pytest.fixture
def temp_config_file(tmp_path, sample_config_dict):
    """Create temporary config file."""
    import yaml

    config_path = tmp_path / "config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config_dict, f)
    return config_path


@pytest.fixture
def returns_csv(tmp_path, block_returns):
    """Block returns written as a CSV file (first column dates)."""
    path = tmp_path / "returns.csv"
    block_returns.to_csv(path, index_label="Date")
    return path
