"""Tests for hierarchical clustering and DBHT."""

import pytest
import numpy as np
import pandas as pd
import networkx as nx

from corr_network.analysis.clustering import (
    ClusterAnalyzer,
    ClusterEngine,
    ClusterResult,
    order_cluster_ids,
    dendrogram_threshold,
)
from corr_network.analysis.dbht import (
    DBHTOracle,
    DirectBubbleHierarchy,
    decompose_bubbles,
    direct_bubble_tree,
    bubble_strength,
)
from corr_network.core.config import Config
from corr_network.core.exceptions import InvalidConfigurationError, DimensionMismatchError
from corr_network.estimation.distance import build_distance_pair


@pytest.fixture
def block_pair(block_returns):
    return build_distance_pair(block_returns, method="correlation")


def _assert_ordered(ids: np.ndarray, leaf_order: np.ndarray):
    along = ids[leaf_order]
    assert along[0] == 1
    assert np.all(np.diff(along) >= 0)


class TestHelpers:
    """Tests for cluster ID ordering and dendrogram thresholds."""

    def test_order_cluster_ids(self):
        """Test IDs are renumbered along the leaf order."""
        ids = np.array([3, 3, 1, 2, 1])
        leaf_order = np.array([2, 4, 0, 1, 3])

        assert order_cluster_ids(ids, leaf_order).tolist() == [2, 2, 1, 3, 1]

    def test_dendrogram_threshold(self):
        """Test the threshold is the merge height cutting k groups."""
        Z = np.array([
            [0.0, 1.0, 0.1, 2.0],
            [2.0, 3.0, 0.3, 2.0],
            [4.0, 5.0, 0.2, 4.0],
        ])

        assert dendrogram_threshold(Z, 2) == pytest.approx(0.3)
        assert dendrogram_threshold(Z, 3) == pytest.approx(0.2)
        assert dendrogram_threshold(Z, 4) == pytest.approx(0.1)
        assert dendrogram_threshold(Z, 1) == pytest.approx(0.301)


class TestClusterEngine:
    """Tests for ClusterEngine."""

    @pytest.mark.parametrize("linkage", ["single", "complete", "average", "ward"])
    def test_recovers_blocks(self, block_pair, block_labels, linkage):
        """Test three well-separated groups are found exactly."""
        result = ClusterEngine().cluster(
            block_pair.distance, block_pair.similarity,
            linkage=linkage, n_clusters=3, partitions=block_labels,
        )

        assert isinstance(result, ClusterResult)
        assert result.n_clusters == 3
        assert result.ari.loc["Partition_1", 3] == pytest.approx(1.0)

    def test_sweep_shapes(self, block_pair):
        """Test the cluster sweep covers 2..max_clusters."""
        p = block_pair.distance.shape[0]
        result = ClusterEngine().cluster(block_pair.distance, block_pair.similarity, max_clusters=5)

        assert list(result.all_cluster_ids.columns) == [2, 3, 4, 5]
        assert result.all_cluster_ids.shape == (p, 4)
        assert result.linkage.shape == (p - 1, 4)
        assert sorted(result.leaf_order.tolist()) == list(range(p))
        assert result.n_clusters == 5

    def test_ordered_ids(self, block_pair):
        """Test ordered IDs start at 1 and never decrease along the leaves."""
        result = ClusterEngine().cluster(block_pair.distance, block_pair.similarity, linkage="average")

        _assert_ordered(result.cluster_ids_ordered.values, result.leaf_order)
        for k in result.all_cluster_ids_ordered.columns:
            _assert_ordered(result.all_cluster_ids_ordered[k].values, result.leaf_order)
            assert result.all_cluster_ids_ordered[k].max() <= k

    def test_ari_self_agreement(self, block_pair):
        """Test a partition agrees perfectly with itself."""
        base = ClusterEngine().cluster(block_pair.distance, block_pair.similarity, n_clusters=4)
        partitions = base.all_cluster_ids_ordered[4].values
        result = ClusterEngine().cluster(
            block_pair.distance, block_pair.similarity, n_clusters=4, partitions=partitions
        )

        assert result.ari.loc["Partition_1", 4] == pytest.approx(1.0)

    def test_ari_independent_partitions(self):
        """Test random partitions unrelated to the clusters score ARI near 0."""
        from scipy.spatial.distance import pdist, squareform

        rng = np.random.default_rng(2024)
        p = 200
        D = squareform(pdist(rng.standard_normal((p, 3))))
        S = 1.0 / (1.0 + D)
        partitions = rng.integers(1, 6, size=(100, p))

        result = ClusterEngine().cluster(
            D, S, linkage="average", max_clusters=5, n_clusters=5, partitions=partitions
        )

        assert result.ari.shape == (100, 4)
        assert abs(result.ari.values.mean()) < 0.02
        assert result.ari.values.max() < 0.2

    def test_labels_ordered(self, block_pair):
        """Test leaf-ordered names are a permutation of the assets."""
        result = ClusterEngine().cluster(block_pair.distance, block_pair.similarity)

        assert sorted(result.labels_ordered) == sorted(block_pair.names)

    def test_partition_width_mismatch(self, block_pair):
        """Test partitions must cover every asset."""
        with pytest.raises(DimensionMismatchError):
            ClusterEngine().cluster(block_pair.distance, block_pair.similarity, partitions=[1, 2, 3])

    def test_cluster_count_out_of_range(self, block_pair):
        """Test more clusters than assets is rejected."""
        with pytest.raises(InvalidConfigurationError):
            ClusterEngine().cluster(block_pair.distance, block_pair.similarity, max_clusters=50)

    def test_unknown_linkage(self, block_pair):
        """Test unknown linkages are rejected."""
        with pytest.raises(InvalidConfigurationError):
            ClusterEngine().cluster(block_pair.distance, block_pair.similarity, linkage="upgma")

    @pytest.mark.parametrize("linkage", ["DBHT_PMFG", "DBHT_TMFG"])
    def test_dbht_sets_cluster_count(self, block_pair, linkage):
        """Test DBHT linkages take the cluster count from DBHT."""
        result = ClusterEngine().cluster(block_pair.distance, block_pair.similarity, linkage=linkage)

        assert result.dbht is not None
        assert result.n_clusters == result.dbht.n_clusters
        assert result.linkage.shape == (block_pair.distance.shape[0] - 1, 4)
        _assert_ordered(result.cluster_ids_ordered.values, result.leaf_order)

    def test_custom_dbht_oracle(self, block_pair):
        """Test the DBHT implementation is pluggable."""
        calls = []

        class Recording(DirectBubbleHierarchy):
            def run(self, distance, similarity, linkage="DBHT_PMFG"):
                calls.append(linkage)
                return super().run(distance, similarity, linkage)

        oracle = Recording()
        assert isinstance(oracle, DBHTOracle)

        ClusterEngine(dbht=oracle).cluster(block_pair.distance, block_pair.similarity, linkage="DBHT_TMFG")
        assert calls == ["DBHT_TMFG"]


class TestDBHT:
    """Tests for the Direct Bubble Hierarchical Tree."""

    @pytest.fixture
    def split_graph(self):
        """K4 on 0..3 with vertex 4 inserted into face (0, 1, 2)."""
        G = nx.complete_graph(4)
        G.add_edges_from([(4, 0), (4, 1), (4, 2)])
        return G

    def test_single_bubble(self):
        """Test a 4-clique is one bubble."""
        bubbles, links = decompose_bubbles(nx.complete_graph(4))

        assert bubbles == [frozenset(range(4))]
        assert links == []

    def test_separating_triangle(self, split_graph):
        """Test a separating triangle splits the graph into two bubbles."""
        bubbles, links = decompose_bubbles(split_graph)

        assert bubbles == [frozenset({0, 1, 2, 3}), frozenset({0, 1, 2, 4})]
        assert links == [(0, 1, (0, 1, 2))]

    def test_tree_points_to_stronger_side(self, split_graph):
        """Test the bubble tree edge points where the triangle attaches more."""
        S = np.ones((5, 5))
        S[:, 4] = S[4, :] = 1.8
        bubbles, links = decompose_bubbles(split_graph)
        tree = direct_bubble_tree(split_graph, S, bubbles, links)

        assert list(tree.edges()) == [(0, 1)]
        assert [b for b in tree.nodes if tree.out_degree(b) == 0] == [1]

    def test_bubble_strength(self):
        """Test chi divides vertex similarity by the bubble edge count."""
        G = nx.complete_graph(4)
        S = np.full((4, 4), 1.5)

        assert bubble_strength(G, S, 0, frozenset(range(4))) == pytest.approx(4.5 / 6)

    def test_run(self, block_pair, block_labels):
        """Test labels, bubbles and linkage of a full run."""
        p = len(block_labels)
        result = DirectBubbleHierarchy().run(block_pair.distance.values, block_pair.similarity.values)

        assert result.labels[0] == 1
        assert set(result.labels) == set(range(1, result.n_clusters + 1))
        assert result.converging
        assert len(result.vertex_bubble) == p
        assert result.graph.number_of_edges() == 3 * (p - 2)
        assert result.linkage.shape == (p - 1, 4)
        assert result.linkage[-1, 3] == p
        assert np.array_equal(result.shortest_paths, result.shortest_paths.T)

    def test_run_rejects_standard_linkage(self, block_pair):
        """Test DBHT refuses non-DBHT linkage names."""
        with pytest.raises(InvalidConfigurationError):
            DirectBubbleHierarchy().run(block_pair.distance.values, block_pair.similarity.values, "ward")


class TestClusterAnalyzer:
    """Tests for ClusterAnalyzer."""

    def test_compute_from_config(self, temp_config_file, block_returns):
        """Test the pipeline uses the configured linkage and sweep."""
        from corr_network.core.config import ConfigLoader

        result = ClusterAnalyzer(ConfigLoader.load(temp_config_file)).compute(block_returns)

        assert result.method == "average"
        assert result.max_clusters == 5
        assert list(result.cluster_ids.index) == list(block_returns.columns)
        assert result.corr is not None
        assert result.provenance.matches(block_returns)

    def test_partitions_dataframe(self, block_returns, block_labels):
        """Test partitions can be passed as a DataFrame."""
        parts = pd.DataFrame([block_labels, block_labels[::-1]], columns=block_returns.columns)
        result = ClusterAnalyzer(Config()).compute(block_returns, n_clusters=3, partitions=parts)

        assert list(result.ari.index) == ["Partition_1", "Partition_2"]

    def test_bad_partitions_fail_fast(self, block_returns):
        """Test mismatched partitions fail before estimation."""
        with pytest.raises(DimensionMismatchError):
            ClusterAnalyzer().compute(block_returns, partitions=np.ones((1, 4)))
