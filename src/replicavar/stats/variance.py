"""
Technical versus biological variability.

Per-feature standard deviations estimated from technical replicates (repeat
arrays of one pooled sample) measure the measurement process alone. The same
quantity estimated from biological replicates (one array per animal) adds
the animal-to-animal variation on top. Comparing the two distributions shows
how much of the spread in a typical experiment is biology.

The two SD vectors come from differently sized sample sets, so nothing here
assumes equal lengths. When the lengths do match the vectors are taken to be
aligned by feature and a paired summary is added.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy import stats as scipy_stats

__all__ = ['SummaryStats', 'VarianceComparison', 'VarianceComparator', 'summarize']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SummaryStats:
    """Distributional summary of one SD vector (NaNs excluded).

    Attributes:
        n: Number of finite values summarised.
        n_missing: Number of NaN values dropped.
        min, q1, median, q3, max: Five-number summary.
        mean: Arithmetic mean.
    """

    n: int
    n_missing: int
    min: float
    q1: float
    median: float
    q3: float
    max: float
    mean: float

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    @property
    def range(self) -> float:
        return self.max - self.min

    def to_dict(self) -> dict:
        return {
            'n': self.n,
            'n_missing': self.n_missing,
            'min': self.min,
            'q1': self.q1,
            'median': self.median,
            'q3': self.q3,
            'max': self.max,
            'mean': self.mean,
            'iqr': self.iqr,
        }


def summarize(values: NDArray[np.float64], name: str = "values") -> SummaryStats:
    """
    Five-number summary plus mean of a 1D vector.

    Raises:
        ValueError: If no finite values remain.
    """
    values = np.asarray(values, dtype=np.float64).ravel()
    missing = np.isnan(values)
    finite = values[~missing]
    if finite.size == 0:
        raise ValueError(f"{name} has no non-missing values to summarise")

    q0, q1, q2, q3, q4 = np.percentile(finite, [0, 25, 50, 75, 100])
    return SummaryStats(
        n=int(finite.size),
        n_missing=int(missing.sum()),
        min=float(q0),
        q1=float(q1),
        median=float(q2),
        q3=float(q3),
        max=float(q4),
        mean=float(finite.mean()),
    )


@dataclass(frozen=True, eq=False)
class VarianceComparison:
    """Technical vs biological SD comparison.

    Attributes:
        technical: Summary of the technical-replicate SDs.
        biological: Summary of the biological-replicate SDs.
        technical_sds: Read-only copy of the technical SD vector.
        biological_sds: Read-only copy of the biological SD vector.
        median_ratio: technical median / biological median.
        mannwhitney_pvalue: One-sided Mann-Whitney U p-value for
            technical SDs being stochastically smaller.
        fraction_biological_greater: Fraction of features whose biological
            SD exceeds the technical SD; None unless vectors are aligned.
    """

    technical: SummaryStats
    biological: SummaryStats
    technical_sds: NDArray[np.float64]
    biological_sds: NDArray[np.float64]
    median_ratio: float
    mannwhitney_pvalue: float
    fraction_biological_greater: float | None = None

    @property
    def aligned(self) -> bool:
        return self.fraction_biological_greater is not None

    def to_dict(self) -> dict:
        """Summary values only; the SD vectors are left out."""
        return {
            'technical': self.technical.to_dict(),
            'biological': self.biological.to_dict(),
            'median_ratio': self.median_ratio,
            'mannwhitney_pvalue': self.mannwhitney_pvalue,
            'fraction_biological_greater': self.fraction_biological_greater,
        }


class VarianceComparator:
    """Compare per-feature SDs from technical and biological replicates."""

    def compare(
        self,
        technical_sds: NDArray[np.float64],
        biological_sds: NDArray[np.float64],
    ) -> VarianceComparison:
        """
        Summarise both SD vectors side by side.

        Args:
            technical_sds: Per-feature SDs from technical replicates.
            biological_sds: Per-feature SDs from biological replicates.
                May differ in length from technical_sds.

        Returns:
            VarianceComparison; inputs are copied, never modified.

        Raises:
            ValueError: If either vector is not 1D or has no finite values.
        """
        technical = np.array(technical_sds, dtype=np.float64, copy=True)
        biological = np.array(biological_sds, dtype=np.float64, copy=True)
        for name, vec in (("technical_sds", technical), ("biological_sds", biological)):
            if vec.ndim != 1:
                raise ValueError(f"{name} must be 1D, got shape {vec.shape}")
            if np.any(vec[~np.isnan(vec)] < 0):
                raise ValueError(f"{name} contains negative standard deviations")
        technical.setflags(write=False)
        biological.setflags(write=False)

        tech_summary = summarize(technical, "technical_sds")
        bio_summary = summarize(biological, "biological_sds")

        if bio_summary.median > 0:
            median_ratio = tech_summary.median / bio_summary.median
        else:
            median_ratio = float('inf') if tech_summary.median > 0 else float('nan')

        mw = scipy_stats.mannwhitneyu(
            technical[~np.isnan(technical)],
            biological[~np.isnan(biological)],
            alternative='less',
        )

        fraction = None
        if len(technical) == len(biological):
            both = ~np.isnan(technical) & ~np.isnan(biological)
            if both.any():
                fraction = float(np.mean(biological[both] > technical[both]))
        else:
            logger.debug(
                "SD vectors differ in length (%d vs %d); skipping paired summary",
                len(technical), len(biological),
            )

        return VarianceComparison(
            technical=tech_summary,
            biological=bio_summary,
            technical_sds=technical,
            biological_sds=biological,
            median_ratio=float(median_ratio),
            mannwhitney_pvalue=float(mw.pvalue),
            fraction_biological_greater=fraction,
        )
