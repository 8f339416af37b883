"""
End-to-end replicate analyses.

Two entry points, both pure functions of (expression, incidence, config):

run_group_comparison
    decode design -> partition by label -> per-feature Welch tests.
    With SelectionMode.POOLED_ONLY the test compares strains using only
    technical replicates of the pools; with INDIVIDUAL_ONLY it uses one
    array per animal. The number of "significant" features differs
    dramatically between the two, which is the point of running both.

run_variance_comparison
    Within one label, per-feature SDs from pooled technical replicates
    versus SDs from individual biological replicates.

Examples:
    >>> from replicavar import AnalysisConfig, run_group_comparison
    >>> config = AnalysisConfig(label_marker_pattern="b", selection_mode="pooled")
    >>> comparison = run_group_comparison(expression, incidence, config)
    >>> comparison.stats.n_significant(alpha=0.01)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from replicavar.config import AnalysisConfig
from replicavar.core.errors import DimensionMismatchError, EmptyGroupError
from replicavar.core.expression import ExpressionMatrix
from replicavar.core.incidence import IncidenceMatrix
from replicavar.design.decoder import DesignDecoder, Sample
from replicavar.design.partition import GroupPartitioner, SelectionMode
from replicavar.stats.variance import VarianceComparator, VarianceComparison
from replicavar.stats.welch import FeatureStatsEngine, FeatureStatsResult

__all__ = [
    'GroupComparisonResult',
    'check_alignment',
    'run_group_comparison',
    'run_variance_comparison',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class GroupComparisonResult:
    """Outcome of a two-group comparison.

    Attributes:
        samples: All decoded samples, in column order.
        selection_mode: Replicate kinds that took part.
        indices_a: Column indices of group A (label 0).
        indices_b: Column indices of group B (label 1).
        stats: Per-feature Welch results.
    """

    samples: tuple[Sample, ...]
    selection_mode: SelectionMode
    indices_a: NDArray[np.intp]
    indices_b: NDArray[np.intp]
    stats: FeatureStatsResult

    @property
    def sample_ids_a(self) -> list[str]:
        return [self.samples[i].sample_id for i in self.indices_a]

    @property
    def sample_ids_b(self) -> list[str]:
        return [self.samples[i].sample_id for i in self.indices_b]

    def summary(self, alpha: float = 0.01) -> dict:
        return {
            'selection_mode': self.selection_mode.value,
            'n_features': len(self.stats),
            'n_a': len(self.indices_a),
            'n_b': len(self.indices_b),
            'samples_a': self.sample_ids_a,
            'samples_b': self.sample_ids_b,
            'alpha': alpha,
            'n_significant': self.stats.n_significant(alpha),
        }


def check_alignment(expression: ExpressionMatrix, incidence: IncidenceMatrix) -> None:
    """
    Verify that expression columns and incidence rows describe the same samples.

    Raises:
        DimensionMismatchError: If the counts differ, or the identifiers differ
            in content or order.
    """
    if expression.n_samples != incidence.n_samples:
        raise DimensionMismatchError(
            f"Expression matrix has {expression.n_samples} sample columns but the "
            f"incidence matrix has {incidence.n_samples} sample rows"
        )
    expr_ids = [str(s) for s in expression.sample_ids]
    if expr_ids != list(incidence.sample_ids):
        mismatched = [
            f"{e!r} != {d!r}" for e, d in zip(expr_ids, incidence.sample_ids) if e != d
        ]
        raise DimensionMismatchError(
            f"Sample identifiers differ between expression columns and incidence "
            f"rows at {len(mismatched)} position(s): {', '.join(mismatched[:3])}"
        )


def _coerce(expression, incidence, config: AnalysisConfig):
    if isinstance(incidence, pd.DataFrame):
        incidence = IncidenceMatrix.from_dataframe(incidence, config.orientation)
    if isinstance(expression, pd.DataFrame):
        expression = ExpressionMatrix(
            data=expression.to_numpy(dtype=np.float64),
            feature_ids=expression.index.astype(str),
            sample_ids=expression.columns.astype(str),
        )
    check_alignment(expression, incidence)
    return expression, incidence


def run_group_comparison(
    expression: ExpressionMatrix | pd.DataFrame,
    incidence: IncidenceMatrix | pd.DataFrame,
    config: AnalysisConfig,
    engine: FeatureStatsEngine | None = None,
) -> GroupComparisonResult:
    """
    Compare label 0 against label 1 for every feature.

    Args:
        expression: Features × samples matrix (DataFrame columns are sample ids).
        incidence: Design table; DataFrames are read with config.orientation.
        config: Analysis configuration.
        engine: Optional preconfigured FeatureStatsEngine.

    Raises:
        DimensionMismatchError: If the tables disagree on samples.
        MalformedDesignError: If the design is invalid.
        EmptyGroupError: If the selection leaves a group empty.
        InsufficientReplicatesError: If a group has fewer than 2 samples.
    """
    expression, incidence = _coerce(expression, incidence, config)

    decoder = DesignDecoder(config.cohort_size, config.label_marker_pattern)
    samples = decoder.decode(incidence)

    partitioner = GroupPartitioner(config.exclusion_pattern)
    indices_a, indices_b = partitioner.partition(samples, config.selection_mode)

    engine = engine or FeatureStatsEngine(n_jobs=config.n_jobs)
    stats = engine.compute(expression, indices_a, indices_b)

    logger.info(
        "%s comparison: %d/%d features with p < %g",
        config.selection_mode.value, stats.n_significant(config.alpha),
        len(stats), config.alpha,
    )
    return GroupComparisonResult(
        samples=tuple(samples),
        selection_mode=config.selection_mode,
        indices_a=indices_a,
        indices_b=indices_b,
        stats=stats,
    )


def run_variance_comparison(
    expression: ExpressionMatrix | pd.DataFrame,
    incidence: IncidenceMatrix | pd.DataFrame,
    config: AnalysisConfig,
    label: int = 0,
    engine: FeatureStatsEngine | None = None,
) -> VarianceComparison:
    """
    Technical vs biological per-feature SDs within one label.

    Technical SDs come from the pooled samples of the label, biological SDs
    from its individual samples; both after the exclusion pattern is applied.
    config.selection_mode is not used here.

    Raises:
        DimensionMismatchError: If the tables disagree on samples.
        EmptyGroupError: If the label has no pooled or no individual samples.
        InsufficientReplicatesError: If either set has fewer than 2 samples.
    """
    if label not in (0, 1):
        raise ValueError(f"label must be 0 or 1, got {label}")

    expression, incidence = _coerce(expression, incidence, config)

    decoder = DesignDecoder(config.cohort_size, config.label_marker_pattern)
    samples = decoder.decode(incidence)
    partitioner = GroupPartitioner(config.exclusion_pattern)
    engine = engine or FeatureStatsEngine(n_jobs=config.n_jobs)

    sds = {}
    for mode in (SelectionMode.POOLED_ONLY, SelectionMode.INDIVIDUAL_ONLY):
        indices = [s.index for s in partitioner.select(samples, mode) if s.label == label]
        if not indices:
            raise EmptyGroupError(
                f"Label {label} has no {mode.value} samples "
                f"(exclusion pattern: {config.exclusion_pattern!r})"
            )
        sds[mode] = engine.row_standard_deviations(expression, indices)

    logger.info("Comparing technical vs biological SDs for label %d", label)
    return VarianceComparator().compare(
        sds[SelectionMode.POOLED_ONLY], sds[SelectionMode.INDIVIDUAL_ONLY]
    )
