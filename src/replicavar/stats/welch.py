"""
Per-feature Welch two-sample t-tests.

For each feature (row) of an expression matrix and two column subsets A and
B, computes group means, Bessel-corrected standard deviations and the
unequal-variance (Welch) t-test:

    t  = (mean_a - mean_b) / sqrt(v_a + v_b),   v_g = var_g / n_g

    df = (v_a + v_b)^2 / (v_a^2 / (n_a - 1) + v_b^2 / (n_b - 1))

    p  = 2 * P(T_df > |t|)

The Welch–Satterthwaite df is generally fractional. Student's pooled-variance
t-test gives different p-values whenever the group variances or sizes differ
and is not used here.

Degenerate variances:
    A group is constant when all its values are identical (checked on the
    values, not on the rounded variance). One constant group leaves both
    formulas well defined. When both groups
    are constant the standard error is zero: t is ±inf with p = 0 if the
    means differ, t = 0 with p = 1 if they are equal, and df falls back to
    n_a + n_b - 2 (the limit of the Welch df for equal variances).

Rows are independent. The engine evaluates them in vectorised chunks; with
n_jobs != 1 the chunks are dispatched to joblib workers. Chunking never
changes the numbers.

References:
    - Welch (1947) Biometrika 34(1-2):28-35
    - Satterthwaite (1946) Biometrics Bulletin 2(6):110-114
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, Literal, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import stats as scipy_stats

from replicavar.core.errors import DimensionMismatchError, InsufficientReplicatesError
from replicavar.core.expression import ExpressionMatrix
from replicavar.stats.multitest import fdr_correction

__all__ = [
    'FeatureStatResult',
    'FeatureStatsResult',
    'FeatureStatsEngine',
    'welch_t_test',
]

logger = logging.getLogger(__name__)

MIN_REPLICATES = 2
DEFAULT_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class FeatureStatResult:
    """Welch test result for a single feature.

    Attributes:
        feature_id: Feature identifier.
        mean_a: Mean of group A.
        mean_b: Mean of group B.
        sd_a: Sample standard deviation (ddof=1) of group A.
        sd_b: Sample standard deviation (ddof=1) of group B.
        t_statistic: Welch t (A minus B).
        degrees_of_freedom: Welch–Satterthwaite degrees of freedom.
        p_value: Two-sided p-value.
    """

    feature_id: str
    mean_a: float
    mean_b: float
    sd_a: float
    sd_b: float
    t_statistic: float
    degrees_of_freedom: float
    p_value: float

    @property
    def mean_difference(self) -> float:
        return self.mean_a - self.mean_b

    def to_dict(self) -> dict:
        return {
            'feature_id': self.feature_id,
            'mean_a': self.mean_a,
            'mean_b': self.mean_b,
            'sd_a': self.sd_a,
            'sd_b': self.sd_b,
            't_statistic': self.t_statistic,
            'degrees_of_freedom': self.degrees_of_freedom,
            'p_value': self.p_value,
        }


@dataclass(frozen=True)
class FeatureStatsResult:
    """Per-feature Welch results, in input feature order.

    Behaves as an immutable sequence of FeatureStatResult.

    Attributes:
        results: One FeatureStatResult per feature row.
        n_a: Size of group A.
        n_b: Size of group B.
    """

    results: tuple[FeatureStatResult, ...]
    n_a: int
    n_b: int
    _columns: dict = field(default_factory=dict, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[FeatureStatResult]:
        return iter(self.results)

    def __getitem__(self, i: int) -> FeatureStatResult:
        return self.results[i]

    def _column(self, name: str) -> NDArray[np.float64]:
        if name not in self._columns:
            col = np.array([getattr(r, name) for r in self.results], dtype=np.float64)
            col.setflags(write=False)
            self._columns[name] = col
        return self._columns[name]

    @property
    def feature_ids(self) -> list[str]:
        return [r.feature_id for r in self.results]

    @property
    def t_statistics(self) -> NDArray[np.float64]:
        return self._column('t_statistic')

    @property
    def p_values(self) -> NDArray[np.float64]:
        return self._column('p_value')

    @property
    def sd_a(self) -> NDArray[np.float64]:
        return self._column('sd_a')

    @property
    def sd_b(self) -> NDArray[np.float64]:
        return self._column('sd_b')

    def adjusted_p_values(
        self, method: Literal["BH", "BY", "bonferroni"] = "BH"
    ) -> NDArray[np.float64]:
        """Multiple-testing adjusted p-values (see fdr_correction)."""
        return fdr_correction(np.array(self.p_values), method=method)

    def n_significant(
        self,
        alpha: float = 0.01,
        adjusted: bool = False,
        method: Literal["BH", "BY", "bonferroni"] = "BH",
    ) -> int:
        """Number of features with (adjusted) p-value below alpha."""
        p = self.adjusted_p_values(method) if adjusted else self.p_values
        return int(np.sum(p[~np.isnan(p)] < alpha))

    def to_dataframe(
        self, fdr_method: Literal["BH", "BY", "bonferroni"] | None = "BH"
    ) -> pd.DataFrame:
        """
        Long-format table, one row per feature.

        Adds ``mean_difference`` and, unless fdr_method is None, an
        ``adj_p_value`` column.
        """
        df = pd.DataFrame([r.to_dict() for r in self.results])
        if df.empty:
            df = pd.DataFrame(columns=list(FeatureStatResult.__dataclass_fields__))
        df.insert(3, 'mean_difference', df['mean_a'] - df['mean_b'])
        if fdr_method is not None:
            df['adj_p_value'] = self.adjusted_p_values(fdr_method)
        df['n_a'] = self.n_a
        df['n_b'] = self.n_b
        return df


def _row_moments(block: NDArray[np.float64]) -> tuple[NDArray, NDArray]:
    """
    Row means and Bessel-corrected variances of a 2D block.

    Rows holding a single repeated value get exactly that value as mean and
    exactly 0 as variance; summing e.g. 0.1 three times does not round-trip.
    """
    n = block.shape[1]
    mean = block.sum(axis=1) / n
    var = ((block - mean[:, None]) ** 2).sum(axis=1) / (n - 1)
    constant = np.ptp(block, axis=1) == 0
    if constant.any():
        mean = np.where(constant, block[:, 0], mean)
        var = np.where(constant, 0.0, var)
    return mean, var


def welch_t_test(
    mean_a: NDArray[np.float64],
    var_a: NDArray[np.float64],
    n_a: int,
    mean_b: NDArray[np.float64],
    var_b: NDArray[np.float64],
    n_b: int,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """
    Vectorised Welch t-test from summary statistics.

    Args:
        mean_a, var_a: Per-row mean and variance (ddof=1) of group A.
        n_a: Size of group A.
        mean_b, var_b: Same for group B.
        n_b: Size of group B.

    Returns:
        (t, df, p) arrays. Rows with zero pooled standard error get the
        degenerate values described in the module docstring.
    """
    va = var_a / n_a
    vb = var_b / n_b
    se2 = va + vb
    diff = mean_a - mean_b

    degenerate = se2 == 0
    safe_se2 = np.where(degenerate, 1.0, se2)

    with np.errstate(divide='ignore', invalid='ignore'):
        t = diff / np.sqrt(safe_se2)
        df = se2 ** 2 / (va ** 2 / (n_a - 1) + vb ** 2 / (n_b - 1))

    t = np.where(degenerate, np.where(diff == 0, 0.0, np.copysign(np.inf, diff)), t)
    df = np.where(degenerate, float(n_a + n_b - 2), df)

    p = 2.0 * scipy_stats.t.sf(np.abs(t), df)
    p = np.where(degenerate, np.where(diff == 0, 1.0, 0.0), p)
    # NaN inputs stay NaN through every branch above
    nan_rows = np.isnan(diff) | np.isnan(se2)
    t[nan_rows] = np.nan
    df[nan_rows] = np.nan
    p[nan_rows] = np.nan

    return t, df, p


def _compute_chunk(
    block_a: NDArray[np.float64],
    block_b: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Stats for one chunk of rows; columns mean_a, mean_b, sd_a, sd_b, t, df, p."""
    mean_a, var_a = _row_moments(block_a)
    mean_b, var_b = _row_moments(block_b)
    t, df, p = welch_t_test(
        mean_a, var_a, block_a.shape[1], mean_b, var_b, block_b.shape[1]
    )
    return np.column_stack([mean_a, mean_b, np.sqrt(var_a), np.sqrt(var_b), t, df, p])


class FeatureStatsEngine:
    """
    Stateless per-feature Welch test runner.

    Args:
        n_jobs: Number of joblib workers (1 = in-process, -1 = all CPUs).
        chunk_size: Rows per vectorised chunk.

    Examples:
        >>> engine = FeatureStatsEngine()
        >>> result = engine.compute(matrix, indices_a, indices_b)
        >>> result.n_significant(alpha=0.01)
        2083
        >>> technical_sd = engine.row_standard_deviations(matrix, pooled_strain0)
    """

    def __init__(self, n_jobs: int = 1, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.n_jobs = n_jobs
        self.chunk_size = chunk_size

    @staticmethod
    def _as_array(matrix: ExpressionMatrix | NDArray) -> NDArray[np.float64]:
        data = matrix.data if isinstance(matrix, ExpressionMatrix) else matrix
        data = np.asarray(data, dtype=np.float64)
        if data.ndim == 1:
            data = data.reshape(1, -1)
        if data.ndim != 2:
            raise ValueError(f"matrix must be 2D (features × samples), got shape {data.shape}")
        return data

    @staticmethod
    def _check_indices(
        indices: Sequence[int] | NDArray,
        n_samples: int,
        group: str,
    ) -> NDArray[np.intp]:
        indices = np.asarray(indices, dtype=np.intp).ravel()
        if len(indices) < MIN_REPLICATES:
            raise InsufficientReplicatesError(
                f"Group {group} has {len(indices)} sample(s); at least "
                f"{MIN_REPLICATES} are needed to estimate a standard deviation"
            )
        if indices.min() < 0 or indices.max() >= n_samples:
            raise DimensionMismatchError(
                f"Group {group} indices span [{indices.min()}, {indices.max()}] "
                f"but the matrix has {n_samples} sample columns"
            )
        if len(np.unique(indices)) != len(indices):
            raise ValueError(f"Group {group} indices contain duplicates")
        return indices

    def row_standard_deviations(
        self,
        matrix: ExpressionMatrix | NDArray,
        indices: Sequence[int] | NDArray,
    ) -> NDArray[np.float64]:
        """
        Per-feature sample standard deviation (ddof=1) over the given columns.

        Raises:
            InsufficientReplicatesError: If fewer than 2 columns are given.
            DimensionMismatchError: If an index is out of range.
        """
        data = self._as_array(matrix)
        indices = self._check_indices(indices, data.shape[1], "selection")
        _, var = _row_moments(data[:, indices])
        return np.sqrt(var)

    def compute(
        self,
        matrix: ExpressionMatrix | NDArray,
        indices_a: Sequence[int] | NDArray,
        indices_b: Sequence[int] | NDArray,
        feature_ids: Sequence[str] | None = None,
    ) -> FeatureStatsResult:
        """
        Welch test of group A against group B for every feature row.

        Args:
            matrix: Features × samples matrix (or ExpressionMatrix).
            indices_a: Column indices of group A (>= 2).
            indices_b: Column indices of group B (>= 2), disjoint from A.
            feature_ids: Row identifiers. Defaults to the ExpressionMatrix
                feature ids, or row numbers for plain arrays.

        Returns:
            FeatureStatsResult aligned to input row order.

        Raises:
            InsufficientReplicatesError: If a group has fewer than 2 samples.
            DimensionMismatchError: If indices or feature_ids do not fit the matrix.
            ValueError: If the groups overlap.
        """
        from joblib import Parallel, delayed

        data = self._as_array(matrix)
        n_features, n_samples = data.shape

        indices_a = self._check_indices(indices_a, n_samples, "A")
        indices_b = self._check_indices(indices_b, n_samples, "B")
        overlap = np.intersect1d(indices_a, indices_b)
        if len(overlap):
            raise ValueError(f"Groups A and B share sample columns {overlap.tolist()}")

        if feature_ids is None:
            if isinstance(matrix, ExpressionMatrix):
                feature_ids = matrix.feature_ids
            else:
                feature_ids = range(n_features)
        feature_ids = [str(f) for f in feature_ids]
        if len(feature_ids) != n_features:
            raise DimensionMismatchError(
                f"feature_ids length ({len(feature_ids)}) != matrix rows ({n_features})"
            )

        block_a = data[:, indices_a]
        block_b = data[:, indices_b]
        bounds = [
            (start, min(start + self.chunk_size, n_features))
            for start in range(0, n_features, self.chunk_size)
        ]

        if self.n_jobs == 1 or len(bounds) <= 1:
            chunks = [_compute_chunk(block_a[s:e], block_b[s:e]) for s, e in bounds]
        else:
            chunks = Parallel(n_jobs=self.n_jobs)(
                delayed(_compute_chunk)(block_a[s:e], block_b[s:e]) for s, e in bounds
            )
        stats = np.vstack(chunks) if chunks else np.empty((0, 7))

        nonfinite = ~np.isfinite(block_a).all(axis=1) | ~np.isfinite(block_b).all(axis=1)
        if nonfinite.any():
            logger.warning(
                "%d feature(s) contain non-finite values; their statistics are NaN",
                int(nonfinite.sum()),
            )
        zero_var = (stats[:, 2] == 0) & (stats[:, 3] == 0)
        if zero_var.any():
            logger.warning(
                "%d feature(s) are constant within both groups; t set to ±inf "
                "(p=0) or 0 (p=1)",
                int(zero_var.sum()),
            )

        results = tuple(
            FeatureStatResult(
                feature_id=fid,
                mean_a=float(row[0]),
                mean_b=float(row[1]),
                sd_a=float(row[2]),
                sd_b=float(row[3]),
                t_statistic=float(row[4]),
                degrees_of_freedom=float(row[5]),
                p_value=float(row[6]),
            )
            for fid, row in zip(feature_ids, stats)
        )

        logger.info(
            "Welch tests: %d features, group A n=%d, group B n=%d",
            n_features, len(indices_a), len(indices_b),
        )
        return FeatureStatsResult(results=results, n_a=len(indices_a), n_b=len(indices_b))
