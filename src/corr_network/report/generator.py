"""
Report generation module.

Generates text-based analysis reports.
"""

from typing import List, Optional
from datetime import datetime
import logging

import numpy as np
import pandas as pd

from ..core.config import Config
from ..analysis.correlation import CorrelationResult
from ..analysis.network import NetworkResult
from ..analysis.clustering import ClusterResult
from ..analysis.rolling import RollingNetworkResult, RollingClusterResult, RollingCorrelationResult
from ..analysis.bootstrap import BootstrapNetworkResult, BootstrapDBHTResult

logger = logging.getLogger(__name__)

WIDTH = 82
RULE = "━" * WIDTH


def _section(title: str) -> str:
    return f"\n{RULE}\n{title}\n{RULE}\n"


def _date(value) -> str:
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.strftime('%Y-%m-%d')
    return str(value)


class ReportGenerator:
    """
    Text report generator.

    Each ``*_section`` method renders one result type; ``generate`` wraps
    the sections in the report banner.

    Example:
        gen = ReportGenerator(config)
        text = gen.generate([gen.network_section(result)])
    """

    def __init__(self, config: Optional[Config] = None, top_n: int = 5):
        """
        Initialize report generator.

        Args:
            config: Configuration object
            top_n: Number of assets/edges listed in rankings
        """
        self.config = config or Config()
        self.top_n = top_n

    def header(self, title: str, date: Optional[datetime] = None) -> str:
        date = date or datetime.now()
        inner = WIDTH - 2
        return (
            f"╔{'═' * inner}╗\n"
            f"║{title.upper():^{inner}}║\n"
            f"║{date.strftime('%Y-%m-%d %H:%M'):^{inner}}║\n"
            f"╚{'═' * inner}╝\n"
        )

    def generate(
        self,
        sections: List[str],
        title: str = "Correlation Network Report",
        date: Optional[datetime] = None,
    ) -> str:
        """
        Assemble a full report.

        Args:
            sections: Rendered sections
            title: Banner title
            date: Report date (default: now)

        Returns:
            Formatted report string
        """
        report = self.header(title, date)
        if self.config.is_time_weighted:
            report += f"Weights:           EWMA (alpha = {self.config.preprocessing.ewma_alpha:g})\n"
        else:
            report += "Weights:           equal\n"
        for section in sections:
            report += section
        report += RULE + "\n"
        return report

    # ------------------------------------------------------------------
    # Single-period results
    # ------------------------------------------------------------------

    def correlation_section(self, result: CorrelationResult) -> str:
        summary = result.summary
        report = _section(f"CORRELATION DISTRIBUTION ({result.method})")
        report += f"""
Assets:            {result.corr.shape[0]}
Pairs:             {len(result.values)}
Mean ρ:            {result.mean:+.4f}

Five-number summary:
"""
        for key, val in summary.items():
            report += f"  {key:<6}: {val:+.4f}\n"
        return report

    def network_section(self, result: NetworkResult) -> str:
        net = result.network
        m = result.metrics
        report = _section(f"{net.filter_name} NETWORK")
        report += f"""
Nodes:             {net.graph.number_of_nodes()}
Edges:             {net.n_edges}
Tree Length:       {m.tree_length:.4f}
Normalized Length: {m.tree_length_norm:.4f}

Most central (lowest hybrid X + Y):
"""
        for i, (node, val) in enumerate(m.xpy.sort_values().head(self.top_n).items(), 1):
            report += f"  #{i}  {str(node):<12}  XpY = {val:7.2f}  XmY = {m.xmy[node]:+6.2f}\n"

        report += "\nPeripheral (highest hybrid X + Y):\n"
        for node, val in m.xpy.sort_values(ascending=False).head(self.top_n).items():
            report += f"      {str(node):<12}  XpY = {val:7.2f}  XmY = {m.xmy[node]:+6.2f}\n"

        report += "\nAverages:            unweighted      weighted\n"
        for metric, row in m.averages.iterrows():
            report += f"  {metric:<18}  {row['uw']:12.4f}  {row['wtd']:12.4f}\n"
        return report

    def cluster_section(self, result: ClusterResult) -> str:
        report = _section(f"CLUSTERS ({result.method})")
        report += f"""
Clusters:          {result.n_clusters}
Threshold:         {result.threshold:.4f}

"""
        ordered = result.cluster_ids_ordered
        for cid in sorted(ordered.unique()):
            members = [name for name in result.labels_ordered if ordered[name] == cid]
            shown = ', '.join(members[:8]) + ('...' if len(members) > 8 else '')
            report += f"  [{cid:>2}] ({len(members):>3})  {shown}\n"

        if result.ari is not None and len(result.ari.columns):
            report += f"\nAdjusted Rand Index at k = {result.n_clusters}:\n"
            at_k = result.ari[result.n_clusters] if result.n_clusters in result.ari.columns else result.ari.iloc[:, -1]
            for part, val in at_k.items():
                report += f"  {part:<14}: {val:+.4f}\n"
        return report

    # ------------------------------------------------------------------
    # Rolling results
    # ------------------------------------------------------------------

    def _window_span(self, dates: pd.Index) -> str:
        if len(dates) == 0:
            return "no windows"
        return f"{_date(dates[0])} ~ {_date(dates[-1])} ({len(dates)} windows)"

    def rolling_network_section(self, result: RollingNetworkResult) -> str:
        report = _section("ROLLING NETWORK")
        report += f"\nWindows:           {self._window_span(result.dates)}\n"
        if result.n_windows == 0:
            return report

        ntl = result.tree_length_norm
        report += f"""Normalized Length: last {ntl.iloc[-1]:.4f}  min {ntl.min():.4f}  max {ntl.max():.4f}
Mean Similarity:   last {result.mean_similarity.iloc[-1]:.4f}  avg {result.mean_similarity.mean():.4f}

Most central in last window:
"""
        last = result.xpy.iloc[:, -1].sort_values()
        for i, (node, val) in enumerate(last.head(self.top_n).items(), 1):
            report += f"  #{i}  {str(node):<12}  XpY = {val:7.2f}\n"
        return report

    def rolling_cluster_section(self, result: RollingClusterResult) -> str:
        report = _section("ROLLING CLUSTERS")
        report += f"\nWindows:           {self._window_span(result.dates)}\n"
        if result.n_windows == 0:
            return report

        k = result.n_clusters
        report += f"Clusters:          last {int(k.iloc[-1])}  min {int(k.min())}  max {int(k.max())}\n"
        if result.ari is not None:
            report += "\nMean Adjusted Rand Index:\n"
            for part, val in result.ari.mean(axis=1).items():
                report += f"  {part:<14}: {val:+.4f}\n"
        return report

    def rolling_correlation_section(self, result: RollingCorrelationResult) -> str:
        report = _section("ROLLING CORRELATION")
        report += f"\nWindows:           {self._window_span(result.dates)}\n"
        if result.n_windows == 0:
            return report

        mean = result.mean
        report += (
            f"Mean ρ:            last {mean.iloc[-1]:+.4f}  "
            f"min {mean.min():+.4f} ({_date(mean.idxmin())})  "
            f"max {mean.max():+.4f} ({_date(mean.idxmax())})\n"
        )
        return report

    # ------------------------------------------------------------------
    # Bootstrap results
    # ------------------------------------------------------------------

    def bootstrap_network_section(self, result: BootstrapNetworkResult) -> str:
        rel = result.edge_reliability
        report = _section(f"BOOTSTRAP {result.full_period.network.filter_name} NETWORK")
        report += f"\nResamples:         {result.n_sim}\n"
        if result.n_sim == 0 or rel.empty:
            report += "✓ No resamples drawn\n"
            return report

        report += f"""Edge Reliability:  mean {rel.mean():.4f}  min {rel.min():.4f}

Least reliable edges:
"""
        for (u, v), val in rel.sort_values().head(self.top_n).items():
            report += f"  {str(u):<12} - {str(v):<12}  {val:.3f}\n"

        report += "\nHybrid X + Y (mean ± std):\n"
        for node in result.xpy_mean.sort_values().head(self.top_n).index:
            report += f"  {str(node):<12}  {result.xpy_mean[node]:7.2f} ± {result.xpy_std[node]:.2f}\n"
        return report

    def bootstrap_dbht_section(self, result: BootstrapDBHTResult) -> str:
        report = _section(f"BOOTSTRAP {result.full_period.method} CLUSTERS")
        mean = result.n_clusters_mean
        std = result.n_clusters_std
        report += f"""
Resamples:         {result.n_sim}
Full period:       {result.full_period.n_clusters} clusters
Resampled:         {'n/a' if np.isnan(mean) else f'{mean:.2f}'} ± {'n/a' if np.isnan(std) else f'{std:.2f}'}
"""
        return report

    def generate_summary(self, result: NetworkResult, date: Optional[datetime] = None) -> str:
        """
        Generate brief summary of one network.

        Returns:
            Brief summary string
        """
        date = date or datetime.now()
        m = result.metrics
        hub = m.xpy.idxmin() if len(m.xpy) else None
        return f"""
[{date.strftime('%Y-%m-%d')}] Network Summary
─────────────────────────────────
Filter: {result.network.filter_name}
Top Hub: {hub}
Normalized Length: {m.tree_length_norm:.4f}
─────────────────────────────────
"""
