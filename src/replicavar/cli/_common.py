"""Arguments and input loading shared by the analysis subcommands."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from replicavar.cli._validators import (
    _non_negative_float,
    _nonzero_int,
    _positive_int,
    _probability,
)
from replicavar.cli.config import analysis_config_from_args, load_config, merge_config_with_args
from replicavar.config import AnalysisConfig
from replicavar.core.expression import ExpressionMatrix
from replicavar.core.incidence import IncidenceMatrix
from replicavar.io.loaders import load_expression_csv, load_incidence_csv


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Input/output and analysis-surface options used by every subcommand."""
    parser.add_argument(
        "--expression", "-e",
        type=Path,
        required=True,
        help="Expression table (features × samples, first column feature IDs)",
    )
    parser.add_argument(
        "--design", "-d",
        type=Path,
        required=True,
        help="0/1 incidence table linking samples to biological units",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        required=True,
        help="Output base path (suffixes are appended)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="YAML/JSON config file; explicit CLI arguments override it",
    )
    parser.add_argument(
        "--orientation",
        choices=["samples_by_units", "units_by_samples"],
        default="samples_by_units",
        help="Orientation of the design table (default: samples_by_units)",
    )
    parser.add_argument(
        "--label-marker",
        type=str,
        default=None,
        help="Regex; sample IDs matching it get label 1, others label 0",
    )
    parser.add_argument(
        "--exclude",
        type=str,
        default=None,
        help="Regex of sample IDs to drop before splitting into groups",
    )
    parser.add_argument(
        "--cohort-size",
        type=_positive_int,
        default=12,
        help="Units per label making up a full pool (default: 12)",
    )
    parser.add_argument(
        "--n-jobs",
        type=_nonzero_int,
        default=1,
        help="Parallel workers for per-feature tests (-1 = all CPUs, default: 1)",
    )
    parser.add_argument(
        "--log2",
        action="store_true",
        help="log2-transform the expression values after loading",
    )
    parser.add_argument(
        "--pseudocount",
        type=_non_negative_float,
        default=0.0,
        help="Offset added before --log2 (default: 0)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging",
    )


def add_test_arguments(parser: argparse.ArgumentParser) -> None:
    """Options only meaningful when p-values are produced."""
    parser.add_argument(
        "--selection-mode",
        choices=["pooled", "individual", "all"],
        default="all",
        help="Replicate kinds compared (default: all)",
    )
    parser.add_argument(
        "--fdr-method",
        choices=["BH", "BY", "bonferroni"],
        default="BH",
        help="Multiple testing correction for adj_p_value (default: BH)",
    )
    parser.add_argument(
        "--alpha",
        type=_probability,
        default=0.01,
        help="Threshold for significant-feature counts (default: 0.01)",
    )


def configure_logging(args: argparse.Namespace) -> None:
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, 'verbose', False) else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def resolve_config(args: argparse.Namespace) -> tuple[argparse.Namespace, AnalysisConfig]:
    """Merge the optional config file into args and build AnalysisConfig."""
    if args.config is not None:
        config = load_config(args.config)
        args = merge_config_with_args(config, args, getattr(args, '_cli_args', None))
    return args, analysis_config_from_args(args)


def load_inputs(
    args: argparse.Namespace,
    config: AnalysisConfig,
) -> tuple[ExpressionMatrix, IncidenceMatrix]:
    print(f"Loading expression: {args.expression}")
    expression = load_expression_csv(args.expression, log2=args.log2, pseudocount=args.pseudocount)
    print(f"  {expression.n_features} features × {expression.n_samples} samples")

    print(f"Loading design: {args.design} ({config.orientation})")
    incidence = load_incidence_csv(args.design, orientation=config.orientation)
    print(f"  {incidence.n_samples} samples × {incidence.n_units} units")
    return expression, incidence
