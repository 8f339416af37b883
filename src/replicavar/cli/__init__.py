"""
replicavar CLI - Command-line interface for replicate analysis.

Commands:
    replicavar ttest     - Per-feature Welch t-tests between the two labels
    replicavar variance  - Technical vs biological per-feature SDs
"""

import argparse
import sys
from typing import Optional, List


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for replicavar."""
    parser = argparse.ArgumentParser(
        prog="replicavar",
        allow_abbrev=False,
        description="Technical vs biological replicate analysis for expression data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  ttest       Per-feature Welch t-tests between the two labels
  variance    Technical vs biological per-feature standard deviations

Examples:
  replicavar ttest -e exprs.csv -d pdata.csv -o results/pooled --label-marker b --selection-mode pooled
  replicavar ttest -e exprs.csv -d pdata.csv -o results/indiv --label-marker b --exclude tr --selection-mode individual
  replicavar variance -e exprs.csv -d pdata.csv -o results/strain0 --label-marker b --exclude tr
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version="%(prog)s 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from replicavar.cli import ttest, variance
    ttest.register_parser(subparsers)
    variance.register_parser(subparsers)

    if args is None:
        args = sys.argv[1:]
    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    parsed_args._cli_args = list(args)
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
