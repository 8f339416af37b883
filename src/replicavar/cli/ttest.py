"""
CLI for per-feature two-group Welch t-tests.

Decodes the design, keeps the requested replicate kinds, splits samples by
label and tests label 0 against label 1 for every feature.

Usage:
    replicavar ttest \\
        --expression data/exprs.csv \\
        --design data/pdata.csv \\
        --output results/pooled \\
        --label-marker b \\
        --selection-mode pooled
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime

from replicavar.cli._common import (
    add_common_arguments,
    add_test_arguments,
    configure_logging,
    load_inputs,
    resolve_config,
)
from replicavar.core.errors import ReplicavarError
from replicavar.io.writers import write_feature_stats, write_json
from replicavar.pipeline import run_group_comparison


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Add the ttest subcommand to the parser."""
    parser = subparsers.add_parser(
        "ttest",
        help="Per-feature Welch t-tests between the two labels",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    add_common_arguments(parser)
    add_test_arguments(parser)
    parser.set_defaults(func=run_ttest)


def run_ttest(args: argparse.Namespace) -> int:
    """Execute the two-group comparison."""
    configure_logging(args)

    try:
        args, config = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("=" * 70)
    print("  Two-group Welch t-tests")
    print("=" * 70)
    print(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Selection mode: {config.selection_mode.value}")
    print(f"Label marker: {config.label_marker_pattern!r}  "
          f"Exclusion: {config.exclusion_pattern!r}  Cohort size: {config.cohort_size}")
    print()

    try:
        expression, incidence = load_inputs(args, config)
        comparison = run_group_comparison(expression, incidence, config)
    except (ReplicavarError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print()
    print(f"Group A (label 0): {len(comparison.indices_a)} samples")
    print(f"Group B (label 1): {len(comparison.indices_b)} samples")

    stats_path = write_feature_stats(comparison.stats, args.output, fdr_method=config.fdr_method)
    summary = comparison.summary(alpha=config.alpha)
    summary['n_significant_adjusted'] = comparison.stats.n_significant(
        config.alpha, adjusted=True, method=config.fdr_method
    )
    summary['config'] = config.to_dict()
    summary_path = write_json(summary, args.output.with_name(args.output.name + ".summary.json"))

    print(f"Features with p < {config.alpha:g}: {summary['n_significant']}")
    print(f"Features with {config.fdr_method} adj. p < {config.alpha:g}: "
          f"{summary['n_significant_adjusted']}")
    print()
    print(f"Wrote {stats_path}")
    print(f"Wrote {summary_path}")
    return 0
