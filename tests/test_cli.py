"""Tests for the report generator and command line interface."""

import pytest
import pandas as pd
import yaml

from corr_network import __version__
from corr_network.cli import main, build_parser
from corr_network.core.config import Config
from corr_network.core.constants import OUTPUT_FILES
from corr_network.analysis.correlation import CorrelationAnalyzer
from corr_network.analysis.network import NetworkAnalyzer
from corr_network.analysis.clustering import ClusterAnalyzer
from corr_network.analysis.rolling import RollingDriver
from corr_network.analysis.bootstrap import BootstrapDriver
from corr_network.report.generator import ReportGenerator


class TestReportGenerator:
    """Tests for ReportGenerator class."""

    @pytest.fixture
    def gen(self):
        return ReportGenerator(Config(), top_n=3)

    def test_generate_wraps_sections(self, gen, sample_returns):
        """Test the banner and every section end up in the report."""
        section = gen.correlation_section(CorrelationAnalyzer().analyze(sample_returns))
        report = gen.generate([section], title="Unit Report")

        assert "UNIT REPORT" in report
        assert "CORRELATION DISTRIBUTION (QIS)" in report
        assert "p100" in report

    def test_network_section(self, gen, sample_returns):
        """Test the network section lists the hub first."""
        result = NetworkAnalyzer().compute(sample_returns, filter_type="MST")
        text = gen.network_section(result)

        assert "MST NETWORK" in text
        assert f"#1  {result.metrics.xpy.idxmin()}" in text
        assert "shortest_paths" in text
        hub = result.metrics.xpy.idxmin()
        assert f"XmY = {result.metrics.xmy[hub]:+6.2f}" in text

    def test_generate_weighting_line(self, gen, sample_config_dict):
        """Test the report header states the observation weighting."""
        assert "Weights:           equal" in gen.generate([])

        config = Config()
        config.preprocessing.ewma_alpha = sample_config_dict["preprocessing"]["ewma_alpha"]
        report = ReportGenerator(config).generate([])

        assert config.is_time_weighted
        assert "Weights:           EWMA (alpha = 0.01)" in report

    def test_cluster_section(self, gen, block_returns, block_labels):
        """Test the cluster section lists groups and ARI."""
        result = ClusterAnalyzer().compute(block_returns, n_clusters=3, partitions=block_labels)
        text = gen.cluster_section(result)

        assert "Clusters:          3" in text
        assert "Partition_1" in text

    def test_rolling_sections(self, gen, sample_returns):
        """Test rolling sections, including the empty case."""
        driver = RollingDriver()
        net = driver.run_network(sample_returns, window=150, step=100, filter_type="MST")
        empty = driver.run_correlation(sample_returns, window=500, step=10)

        assert "2 windows" in gen.rolling_network_section(net)
        assert "no windows" in gen.rolling_correlation_section(empty)

    def test_bootstrap_sections(self, gen, block_returns):
        """Test bootstrap sections render counts and reliabilities."""
        driver = BootstrapDriver()
        net = driver.run_network(block_returns, n_sim=3, seed=1, filter_type="MST")
        dbht = driver.run_dbht(block_returns, n_sim=0, linkage="DBHT_PMFG")

        assert "Edge Reliability" in gen.bootstrap_network_section(net)
        assert "n/a" in gen.bootstrap_dbht_section(dbht)

    def test_generate_summary(self, gen, sample_returns):
        """Test the brief summary names the hub."""
        result = NetworkAnalyzer().compute(sample_returns, filter_type="MST")

        assert f"Top Hub: {result.metrics.xpy.idxmin()}" in gen.generate_summary(result)


class TestCli:
    """Tests for the command line entry point."""

    def test_version(self, capsys):
        """Test --version prints the package version."""
        assert main(["--version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, capsys):
        """Test no command prints help."""
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_parser_rejects_unknown_filter(self):
        """Test argparse restricts method choices."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["network", "-d", "x.csv", "--filter", "KRUSKAL"])

    def test_network_command(self, returns_csv, tmp_path):
        """Test the network command writes edges, metrics and a report."""
        out = tmp_path / "out"
        code = main(["network", "-d", str(returns_csv), "-o", str(out), "--filter", "MST", "-q"])

        assert code == 0
        edges = pd.read_csv(out / OUTPUT_FILES["network_edges"])
        assert len(edges) == 8
        assert (out / OUTPUT_FILES["network_metrics"]).exists()
        assert list(out.glob("*.txt"))

    def test_clusters_command(self, returns_csv, tmp_path, block_returns, block_labels):
        """Test the clusters command with comparison partitions."""
        parts = tmp_path / "parts.csv"
        pd.DataFrame([block_labels], index=["groups"], columns=block_returns.columns).to_csv(
            parts, index_label="partition"
        )
        out = tmp_path / "out"
        code = main([
            "clusters", "-d", str(returns_csv), "-o", str(out),
            "--linkage", "average", "--n-clusters", "3", "--partitions", str(parts), "-q",
        ])

        assert code == 0
        clusters = pd.read_csv(out / OUTPUT_FILES["clusters"], index_col=0)
        assert clusters["cluster"].nunique() == 3
        assert (out / OUTPUT_FILES["ari"]).exists()

    def test_rolling_command(self, returns_csv, tmp_path):
        """Test the rolling network command writes one row per window."""
        out = tmp_path / "out"
        code = main([
            "rolling-network", "-d", str(returns_csv), "-o", str(out),
            "--filter", "MST", "--window", "200", "--step", "100", "-q",
        ])

        assert code == 0
        rolling = pd.read_csv(out / OUTPUT_FILES["rolling"], index_col=0)
        assert len(rolling) == 3

    def test_report_only(self, returns_csv, tmp_path):
        """Test --report-only skips the CSV outputs."""
        out = tmp_path / "out"
        code = main(["correlation", "-d", str(returns_csv), "-o", str(out), "--report-only", "-q"])

        assert code == 0
        assert not (out / OUTPUT_FILES["correlation"]).exists()
        assert list(out.glob("*.txt"))

    def test_log_file(self, returns_csv, tmp_path):
        """Test --log-file receives debug records even in quiet mode."""
        log_file = tmp_path / "logs" / "run.log"
        code = main([
            "network", "-d", str(returns_csv), "-o", str(tmp_path / "out"),
            "--filter", "MST", "--report-only", "-q", "--log-file", str(log_file),
        ])

        assert code == 0
        assert "MST filter" in log_file.read_text(encoding="utf-8")

    def test_bootstrap_dbht_default_linkage(self, returns_csv, tmp_path):
        """Test bootstrap-dbht runs without --linkage on the default config."""
        out = tmp_path / "out"
        code = main([
            "bootstrap-dbht", "-d", str(returns_csv), "-o", str(out), "--n-sim", "1", "--seed", "4", "-q",
        ])

        assert code == 0
        counts = pd.read_csv(out / OUTPUT_FILES["bootstrap"], index_col=0)
        assert len(counts) == 1
        assert "DBHT_PMFG CLUSTERS" in next(out.glob("*.txt")).read_text(encoding="utf-8")

    def test_missing_data_file(self, tmp_path):
        """Test a missing data file exits with status 1."""
        code = main(["network", "-d", str(tmp_path / "none.csv"), "-o", str(tmp_path), "-q"])

        assert code == 1

    def test_validate_config(self, temp_config_file, tmp_path, capsys):
        """Test validate-config on valid and invalid files."""
        assert main(["validate-config", str(temp_config_file)]) == 0

        bad = tmp_path / "bad.yaml"
        with open(bad, "w") as f:
            yaml.dump({"network": {"filter": "KRUSKAL"}}, f)
        assert main(["validate-config", str(bad)]) == 1
