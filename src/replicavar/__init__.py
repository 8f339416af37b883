"""
replicavar - Technical vs biological replicate analysis for expression data

Decodes pooled and individual samples from an experimental-design incidence
matrix, runs per-feature Welch t-tests between two labelled groups, and
compares technical-replicate variability with biological-replicate
variability.
"""

__version__ = "0.1.0"

from replicavar.config import AnalysisConfig
from replicavar.core.errors import (
    ReplicavarError,
    MalformedDesignError,
    EmptyGroupError,
    InsufficientReplicatesError,
    DimensionMismatchError,
)
from replicavar.core.expression import ExpressionMatrix
from replicavar.core.incidence import IncidenceMatrix
from replicavar.design.decoder import DesignDecoder, ReplicateKind, Sample
from replicavar.design.partition import GroupPartitioner, SelectionMode
from replicavar.stats.welch import FeatureStatResult, FeatureStatsResult, FeatureStatsEngine
from replicavar.stats.variance import SummaryStats, VarianceComparison, VarianceComparator
from replicavar.pipeline import run_group_comparison, run_variance_comparison

__all__ = [
    "AnalysisConfig",
    "ReplicavarError",
    "MalformedDesignError",
    "EmptyGroupError",
    "InsufficientReplicatesError",
    "DimensionMismatchError",
    "ExpressionMatrix",
    "IncidenceMatrix",
    "DesignDecoder",
    "ReplicateKind",
    "Sample",
    "GroupPartitioner",
    "SelectionMode",
    "FeatureStatResult",
    "FeatureStatsResult",
    "FeatureStatsEngine",
    "SummaryStats",
    "VarianceComparison",
    "VarianceComparator",
    "run_group_comparison",
    "run_variance_comparison",
]
