"""Tests for input validation and provenance records."""

import pytest
import numpy as np
import pandas as pd

from corr_network.core.validation import as_return_frame, check_weights, check_cluster_counts
from corr_network.core.provenance import Provenance
from corr_network.core.exceptions import (
    InvalidConfigurationError,
    DimensionMismatchError,
    InsufficientDataError,
)


class TestAsReturnFrame:
    """Tests for as_return_frame."""

    def test_copy(self, sample_returns):
        """Test the result is a new frame."""
        frame = as_return_frame(sample_returns)
        frame.iloc[0, 0] = 99.0

        assert sample_returns.iloc[0, 0] != 99.0

    def test_names_override(self, sample_returns):
        """Test explicit names replace the columns."""
        names = list("abcdefg")

        assert list(as_return_frame(sample_returns, names).columns) == names

    def test_duplicate_names(self):
        """Test duplicate asset names are rejected."""
        with pytest.raises(InvalidConfigurationError):
            as_return_frame(np.zeros((5, 2)), ["x", "x"])

    def test_single_asset(self):
        """Test one asset is not enough."""
        with pytest.raises(InsufficientDataError):
            as_return_frame(np.zeros((5, 1)))

    def test_non_finite(self):
        """Test NaN returns are rejected."""
        values = np.ones((4, 2))
        values[1, 1] = np.nan

        with pytest.raises(InvalidConfigurationError):
            as_return_frame(values)

    def test_one_dimensional(self):
        """Test a vector is not a return matrix."""
        with pytest.raises(DimensionMismatchError):
            as_return_frame(np.zeros(5))


class TestChecks:
    """Tests for weight and cluster count checks."""

    def test_weights(self):
        """Test weight validation."""
        assert check_weights(None, 3) is None
        assert check_weights([], 3) is None
        with pytest.raises(DimensionMismatchError):
            check_weights([1.0, 1.0], 3)
        with pytest.raises(InvalidConfigurationError):
            check_weights([1.0, -1.0, 1.0], 3)
        with pytest.raises(InvalidConfigurationError):
            check_weights([0.0, 0.0, 0.0], 3)

    def test_cluster_count_defaults(self):
        """Test max_clusters defaults to p and n_clusters to max_clusters."""
        assert check_cluster_counts(None, None, 6) == (6, 6)
        assert check_cluster_counts(4, None, 6) == (4, 4)
        assert check_cluster_counts(4, 2, 6) == (4, 2)
        with pytest.raises(InvalidConfigurationError):
            check_cluster_counts(0, None, 6)


class TestProvenance:
    """Tests for Provenance records."""

    def test_matches(self, sample_returns):
        """Test the digest identifies the input matrix."""
        record = Provenance.build("network", sample_returns, filter_type="PMFG", weights=np.ones(3))

        assert record.matches(sample_returns)
        assert record.matches(sample_returns.values)
        assert not record.matches(sample_returns * 2)
        assert record.input_shape == sample_returns.shape
        assert record.settings["weights"] == (1.0, 1.0, 1.0)

    def test_immutable(self, sample_returns):
        """Test settings cannot be changed after the fact."""
        record = Provenance.build("network", sample_returns, filter_type="PMFG")

        with pytest.raises(TypeError):
            record.settings["filter_type"] = "MST"

    def test_large_arrays_summarized(self, sample_returns):
        """Test long weight vectors are stored as a digest string."""
        record = Provenance.build("network", sample_returns, weights=np.ones(len(sample_returns)))

        assert isinstance(record.settings["weights"], str)
        assert pd.Series([record.settings["weights"]]).str.startswith("<array").all()
