"""
Statistical testing module for replicate analysis.

Exports core functions for:
- Per-feature Welch two-sample t-tests
- Multiple testing correction (FDR)
- Technical vs biological dispersion summaries
"""

from .multitest import fdr_correction
from .variance import SummaryStats, VarianceComparison, VarianceComparator, summarize
from .welch import FeatureStatResult, FeatureStatsResult, FeatureStatsEngine, welch_t_test

__all__ = [
    "fdr_correction",
    "SummaryStats",
    "VarianceComparison",
    "VarianceComparator",
    "summarize",
    "FeatureStatResult",
    "FeatureStatsResult",
    "FeatureStatsEngine",
    "welch_t_test",
]
