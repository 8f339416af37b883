"""
CLI for technical vs biological variability.

Within one label, computes per-feature standard deviations across the
pooled technical replicates and across the individual biological
replicates, and summarises both distributions.

Usage:
    replicavar variance \\
        --expression data/exprs.csv \\
        --design data/pdata.csv \\
        --output results/strain0 \\
        --label-marker b \\
        --exclude tr \\
        --label 0
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime

from replicavar.cli._common import (
    add_common_arguments,
    configure_logging,
    load_inputs,
    resolve_config,
)
from replicavar.core.errors import ReplicavarError
from replicavar.io.writers import write_variance_summary
from replicavar.pipeline import run_variance_comparison


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Add the variance subcommand to the parser."""
    parser = subparsers.add_parser(
        "variance",
        help="Technical vs biological per-feature standard deviations",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    add_common_arguments(parser)
    parser.add_argument(
        "--label",
        type=int,
        choices=[0, 1],
        default=0,
        help="Label whose pooled and individual samples are compared (default: 0)",
    )
    parser.set_defaults(func=run_variance)


def _fmt(summary) -> str:
    return (f"median={summary.median:.4f}  IQR=[{summary.q1:.4f}, {summary.q3:.4f}]  "
            f"range=[{summary.min:.4f}, {summary.max:.4f}]  n={summary.n}")


def run_variance(args: argparse.Namespace) -> int:
    """Execute the technical vs biological comparison."""
    configure_logging(args)

    try:
        args, config = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("=" * 70)
    print("  Technical vs biological variability")
    print("=" * 70)
    print(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Label: {args.label}  Exclusion: {config.exclusion_pattern!r}")
    print()

    try:
        expression, incidence = load_inputs(args, config)
        comparison = run_variance_comparison(expression, incidence, config, label=args.label)
    except (ReplicavarError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print()
    print(f"Technical SD:  {_fmt(comparison.technical)}")
    print(f"Biological SD: {_fmt(comparison.biological)}")
    print(f"Median ratio (technical/biological): {comparison.median_ratio:.3f}")
    if comparison.aligned:
        print(f"Features with biological SD > technical SD: "
              f"{100 * comparison.fraction_biological_greater:.1f}%")

    summary_path, sds_path = write_variance_summary(
        comparison, args.output, feature_ids=[str(f) for f in expression.feature_ids]
    )
    print()
    print(f"Wrote {summary_path}")
    print(f"Wrote {sds_path}")
    return 0
