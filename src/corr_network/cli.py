"""
Command Line Interface for Correlation Network.

Provides the main entry point for running analysis.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd

from .core.constants import (
    VERSION,
    VERSION_NAME,
    NETWORK_FILTERS,
    DISTANCE_METHODS,
    LINKAGE_METHODS,
    DBHT_LINKAGES,
    CORRELATION_METHODS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_REPORT_PREFIX,
    OUTPUT_FILES,
)

logger = logging.getLogger(__name__)

Outputs = Dict[str, pd.DataFrame]


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"{VERSION_NAME} v{VERSION}")
        return 0

    if args.command == 'validate-config':
        return validate_config(args)
    elif args.command in COMMANDS:
        return run_analysis(args)
    else:
        parser.print_help()
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='corr-network',
        description='Correlation Network - Filtered networks, clusters and their stability',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # PMFG network with hybrid centrality
    python -m corr_network network -d returns.csv

    # DBHT clusters compared with sector partitions
    python -m corr_network clusters -d returns.csv --linkage DBHT_PMFG --partitions sectors.csv

    # Rolling MST from prices, 250-day windows every 20 days
    python -m corr_network rolling-network -d prices.xlsx --prices --filter MST --window 250 --step 20

    # Edge reliability over 500 resamples
    python -m corr_network bootstrap-network -d returns.csv --n-sim 500 --seed 7
        """
    )
    parser.add_argument('--version', action='store_true', help='Show version')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('-d', '--data', required=True, type=Path,
                        help='CSV or Excel file (first column dates, one column per asset)')
    common.add_argument('-o', '--output', default=DEFAULT_OUTPUT_DIR, type=Path,
                        help=f'Output directory (default: {DEFAULT_OUTPUT_DIR})')
    common.add_argument('-c', '--config', type=Path, help='Path to config.yaml')
    common.add_argument('--prices', action='store_true',
                        help='Data file holds prices; log returns are computed')
    common.add_argument('--sheet', default=0, help='Excel sheet name or index')
    common.add_argument('--standardize', action='store_true', default=None,
                        help='Standardize returns before and after market mode removal')
    common.add_argument('--remove-market-mode', action='store_true', default=None,
                        help='Remove the first weighted principal component')
    common.add_argument('--report-only', action='store_true',
                        help='Write the text report only (no CSV outputs)')
    common.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    common.add_argument('-q', '--quiet', action='store_true', help='Quiet mode (warnings only)')
    common.add_argument('--log-file', type=Path, help='Also write a DEBUG log to this file')

    network = argparse.ArgumentParser(add_help=False)
    network.add_argument('--filter', choices=NETWORK_FILTERS, help='Network filter')
    network.add_argument('--distance', choices=DISTANCE_METHODS, help='Distance method')

    clusters = argparse.ArgumentParser(add_help=False)
    clusters.add_argument('--distance', choices=DISTANCE_METHODS, help='Distance method')
    clusters.add_argument('--max-clusters', type=int, help='Largest cluster count in the sweep')

    rolling = argparse.ArgumentParser(add_help=False)
    rolling.add_argument('--window', type=int, help='Window length in observations')
    rolling.add_argument('--step', type=int, help='Stride between windows')

    bootstrap = argparse.ArgumentParser(add_help=False)
    bootstrap.add_argument('--n-sim', type=int, help='Number of resamples')
    bootstrap.add_argument('--seed', type=int, help='Random seed')

    corr_parser = subparsers.add_parser('correlation', parents=[common],
                                        help='Correlation distribution')
    corr_parser.add_argument('--method', choices=CORRELATION_METHODS, help='Correlation estimator')

    subparsers.add_parser('network', parents=[common, network],
                          help='Filtered network and centrality')

    cluster_parser = subparsers.add_parser('clusters', parents=[common, clusters],
                                           help='Hierarchical clustering')
    cluster_parser.add_argument('--linkage', choices=LINKAGE_METHODS, help='Linkage method')
    cluster_parser.add_argument('--n-clusters', type=int, help='Reference cluster count')
    cluster_parser.add_argument('--partitions', type=Path, help='CSV of comparison partitions')

    subparsers.add_parser('rolling-network', parents=[common, network, rolling],
                          help='Filtered network through time')

    rc_parser = subparsers.add_parser('rolling-clusters', parents=[common, clusters, rolling],
                                      help='Clusters through time')
    rc_parser.add_argument('--linkage', choices=LINKAGE_METHODS, help='Linkage method')
    rc_parser.add_argument('--n-clusters', type=int, help='Reference cluster count')
    rc_parser.add_argument('--partitions', type=Path, help='CSV of comparison partitions')

    rcorr_parser = subparsers.add_parser('rolling-correlation', parents=[common, rolling],
                                         help='Correlation distribution through time')
    rcorr_parser.add_argument('--method', choices=CORRELATION_METHODS, help='Correlation estimator')

    subparsers.add_parser('bootstrap-network', parents=[common, network, bootstrap],
                          help='Edge reliability and centrality dispersion')

    bd_parser = subparsers.add_parser('bootstrap-dbht', parents=[common, clusters, bootstrap],
                                      help='Distribution of the DBHT cluster count')
    bd_parser.add_argument('--linkage', choices=DBHT_LINKAGES, help='DBHT linkage')

    validate_parser = subparsers.add_parser('validate-config', help='Validate config file')
    validate_parser.add_argument('config', type=Path, help='Config file path')

    return parser


# =============================================================================
# Commands
# =============================================================================

def _preprocess(args) -> dict:
    return dict(standardize=args.standardize, remove_market_mode=args.remove_market_mode)


def _partitions(args, assets):
    from .data.loader import load_partitions

    if getattr(args, 'partitions', None) is None:
        return None
    return load_partitions(args.partitions, assets)


def cmd_correlation(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.correlation import CorrelationAnalyzer
    from .report.generator import ReportGenerator

    result = CorrelationAnalyzer(config).analyze(data.returns, method=args.method, **_preprocess(args))
    print(f"  Mean ρ: {result.mean:+.4f}")
    return [ReportGenerator(config).correlation_section(result)], {'correlation': result.corr}


def cmd_network(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.network import NetworkAnalyzer
    from .report.generator import ReportGenerator

    result = NetworkAnalyzer(config).compute(
        data.returns, filter_type=args.filter, distance_method=args.distance, **_preprocess(args)
    )
    m = result.metrics
    print(ReportGenerator(config).generate_summary(result, data.period[1]))

    node_table = pd.concat(
        [m.unweighted.add_suffix('_uw'), m.weighted.add_suffix('_wtd'), m.hybrid], axis=1
    )
    outputs = {'network_edges': result.network.edge_table(), 'network_metrics': node_table}
    return [ReportGenerator(config).network_section(result)], outputs


def cmd_clusters(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.clustering import ClusterAnalyzer
    from .report.generator import ReportGenerator

    result = ClusterAnalyzer(config).compute(
        data.returns,
        linkage=args.linkage,
        distance_method=args.distance,
        max_clusters=args.max_clusters,
        n_clusters=args.n_clusters,
        partitions=_partitions(args, data.assets),
        **_preprocess(args),
    )
    print(f"  {result.method}: {result.n_clusters} clusters")

    table = pd.DataFrame({
        'cluster': result.cluster_ids,
        'cluster_ordered': result.cluster_ids_ordered,
        'leaf_position': pd.Series(range(len(result.names)), index=result.labels_ordered),
    })
    outputs = {'clusters': table}
    if result.ari is not None:
        outputs['ari'] = result.ari
    return [ReportGenerator(config).cluster_section(result)], outputs


def cmd_rolling_network(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.rolling import RollingDriver
    from .report.generator import ReportGenerator

    result = RollingDriver(config).run_network(
        data.returns,
        window=args.window,
        step=args.step,
        filter_type=args.filter,
        distance_method=args.distance,
        **_preprocess(args),
    )
    print(f"  {result.n_windows} windows")

    table = pd.concat(
        [result.tree_length_norm, result.mean_similarity, result.xpy.T.add_prefix('XpY_')], axis=1
    )
    return [ReportGenerator(config).rolling_network_section(result)], {'rolling': table}


def cmd_rolling_clusters(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.rolling import RollingDriver
    from .report.generator import ReportGenerator

    result = RollingDriver(config).run_clusters(
        data.returns,
        window=args.window,
        step=args.step,
        linkage=args.linkage,
        distance_method=args.distance,
        max_clusters=args.max_clusters,
        n_clusters=args.n_clusters,
        partitions=_partitions(args, data.assets),
        **_preprocess(args),
    )
    print(f"  {result.n_windows} windows")

    table = pd.concat([result.n_clusters, result.cluster_ids_ordered.T], axis=1)
    outputs = {'rolling': table}
    if result.ari is not None:
        outputs['ari'] = result.ari.T
    return [ReportGenerator(config).rolling_cluster_section(result)], outputs


def cmd_rolling_correlation(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.rolling import RollingDriver
    from .report.generator import ReportGenerator

    result = RollingDriver(config).run_correlation(
        data.returns, window=args.window, step=args.step, method=args.method, **_preprocess(args)
    )
    print(f"  {result.n_windows} windows")

    table = pd.concat([result.mean, result.summary.T], axis=1)
    return [ReportGenerator(config).rolling_correlation_section(result)], {'rolling': table}


def cmd_bootstrap_network(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.bootstrap import BootstrapDriver
    from .report.generator import ReportGenerator

    result = BootstrapDriver(config).run_network(
        data.returns,
        n_sim=args.n_sim,
        seed=args.seed,
        filter_type=args.filter,
        distance_method=args.distance,
        **_preprocess(args),
    )
    print(f"  {result.n_sim} resamples, mean edge reliability {result.edge_reliability.mean():.4f}")

    table = result.edge_reliability.reset_index()
    return [ReportGenerator(config).bootstrap_network_section(result)], {'bootstrap': table}


def cmd_bootstrap_dbht(args, config, data) -> Tuple[List[str], Outputs]:
    from .analysis.bootstrap import BootstrapDriver
    from .report.generator import ReportGenerator

    result = BootstrapDriver(config).run_dbht(
        data.returns,
        n_sim=args.n_sim,
        seed=args.seed,
        linkage=args.linkage,
        distance_method=args.distance,
        max_clusters=args.max_clusters,
        **_preprocess(args),
    )
    print(f"  {result.n_sim} resamples, mean clusters {result.n_clusters_mean:.2f}")
    return [ReportGenerator(config).bootstrap_dbht_section(result)], {'bootstrap': result.n_clusters.to_frame()}


COMMANDS = {
    'correlation': cmd_correlation,
    'network': cmd_network,
    'clusters': cmd_clusters,
    'rolling-network': cmd_rolling_network,
    'rolling-clusters': cmd_rolling_clusters,
    'rolling-correlation': cmd_rolling_correlation,
    'bootstrap-network': cmd_bootstrap_network,
    'bootstrap-dbht': cmd_bootstrap_dbht,
}


def run_analysis(args) -> int:
    """Run one analysis command."""
    from .utils.logging import setup_logging
    from .core.config import ConfigLoader
    from .core.exceptions import CorrNetworkError, format_exception_chain
    from .data.loader import ReturnDataLoader
    from .report.generator import ReportGenerator

    log_level = logging.DEBUG if args.verbose else (logging.WARNING if args.quiet else logging.INFO)
    setup_logging(level=log_level, log_file=args.log_file, detailed=args.verbose, quiet=args.quiet)

    print("=" * 70)
    print(f"  {VERSION_NAME.upper()}: {args.command}")
    print("=" * 70)

    try:
        print("\n[1/4] Loading configuration...")
        config = ConfigLoader.load_or_default(args.config)

        output_dir = Path(args.output)
        output_dir.mkdir(parents=True, exist_ok=True)

        print("\n[2/4] Loading return data...")
        sheet = int(args.sheet) if str(args.sheet).isdigit() else args.sheet
        data = ReturnDataLoader(args.data, prices=args.prices, sheet_name=sheet).load()
        print(f"  {len(data.assets)} assets, {data.n_obs} observations")

        print(f"\n[3/4] Running {args.command}...")
        sections, outputs = COMMANDS[args.command](args, config, data)

        print("\n[4/4] Writing outputs...")
        date_str = data.period[1].strftime('%Y%m%d')
        report_gen = ReportGenerator(config)
        report = report_gen.generate(sections, title=f"Correlation Network - {args.command}")
        report_path = output_dir / f"{DEFAULT_REPORT_PREFIX}_{args.command}_{date_str}.txt"
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(report)
        print(f"  Report: {report_path}")

        if not args.report_only:
            for key, table in outputs.items():
                path = output_dir / OUTPUT_FILES[key]
                table.to_csv(path)
                print(f"  {key}: {path}")

        if not args.quiet:
            print("\n" + report)

        print("\n" + "=" * 70)
        print("  Done!")
        print("=" * 70)

        return 0

    except CorrNetworkError as e:
        logger.error(format_exception_chain(e))
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        return 1


def validate_config(args) -> int:
    """Validate a config file."""
    from .core.config import ConfigLoader
    from .core.exceptions import ConfigError

    print(f"Validating: {args.config}")

    try:
        config = ConfigLoader.load(args.config)
        print("✓ Config is valid")
        print(f"  Correlation: {config.correlation.method}")
        print(f"  Network: {config.network.filter} on {config.network.distance_method}")
        print(f"  Clustering: {config.clustering.linkage} on {config.clustering.distance_method}")
        print(f"  Rolling: window {config.rolling.window}, step {config.rolling.step}")
        print(f"  Bootstrap: {config.bootstrap.n_sim} samples (seed {config.bootstrap.seed})")
        return 0
    except ConfigError as e:
        print(f"✗ Config validation failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
