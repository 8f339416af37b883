"""
Expression matrix container.

ExpressionMatrix couples per-feature measurements (log intensities of
microarray probesets, counts, abundances) with the identifiers and sample
annotations needed to slice them into comparison groups.

Biological Context:
    Rows are features (probesets, genes), columns are arrays. A single
    replicate study slices the same matrix several ways: the pooled arrays
    of one strain, the individual animals of one strain, both strains side
    by side. Every slice keeps its sample annotations so a subset can
    always be traced back to the design.

Engineering Design:
    - Subsetting and transforms return new instances; nothing is edited
      in place
    - numpy holds the values, pandas holds identifiers and annotations
    - The constructor rejects mismatched shapes and misaligned metadata

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from replicavar.core.expression import ExpressionMatrix
    >>>
    >>> matrix = ExpressionMatrix(
    ...     data=np.array([[10.0, 20.0], [30.0, 40.0]]),
    ...     feature_ids=pd.Index(["1367452_at", "1367453_at"]),
    ...     sample_ids=pd.Index(["a10", "b10"]),
    ... )
    >>> pooled = matrix.take_samples([0])
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

__all__ = ['ExpressionMatrix']


def _as_mask(mask: np.ndarray | pd.Series, expected: int, axis: str) -> np.ndarray:
    values = mask.to_numpy() if isinstance(mask, pd.Series) else mask
    values = np.asarray(values, dtype=bool)
    if values.shape != (expected,):
        raise ValueError(
            f"{axis} mask has length {len(values)} but the matrix has {expected} {axis}s"
        )
    return values


class ExpressionMatrix:
    """
    Features × samples values with identifiers and sample annotations.

    Attributes:
        data: Values, one row per feature and one column per sample
        feature_ids: Row labels (probeset or gene IDs)
        sample_ids: Column labels (array names)
        sample_metadata: Per-sample annotations indexed by sample_ids
            (e.g. pool_size, label, replicate_kind from the design decoder)
    """

    def __init__(
        self,
        data: np.ndarray,
        feature_ids: pd.Index,
        sample_ids: pd.Index,
        sample_metadata: pd.DataFrame | None = None,
    ):
        """
        Raises:
            TypeError: If an argument has the wrong container type
            ValueError: If dimensions disagree or metadata is not indexed
                by sample_ids
        """
        if sample_metadata is None:
            sample_metadata = pd.DataFrame(index=sample_ids)

        expected_types = (
            ('data', data, np.ndarray),
            ('feature_ids', feature_ids, pd.Index),
            ('sample_ids', sample_ids, pd.Index),
            ('sample_metadata', sample_metadata, pd.DataFrame),
        )
        for name, value, kind in expected_types:
            if not isinstance(value, kind):
                raise TypeError(f"{name} must be {kind.__name__}, got {type(value).__name__}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D (features × samples), got shape {data.shape}")
        if data.shape != (len(feature_ids), len(sample_ids)):
            raise ValueError(
                f"data shape {data.shape} does not match {len(feature_ids)} feature IDs "
                f"× {len(sample_ids)} sample IDs"
            )
        if not sample_metadata.index.equals(sample_ids):
            raise ValueError(
                f"sample_metadata must be indexed by sample_ids in the same order "
                f"({len(sample_metadata)} metadata rows, {len(sample_ids)} samples)"
            )

        self._data = data
        self._feature_ids = feature_ids
        self._sample_ids = sample_ids
        self._sample_metadata = sample_metadata

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def feature_ids(self) -> pd.Index:
        return self._feature_ids

    @property
    def sample_ids(self) -> pd.Index:
        return self._sample_ids

    @property
    def sample_metadata(self) -> pd.DataFrame:
        return self._sample_metadata

    @property
    def shape(self) -> tuple[int, int]:
        return self._data.shape

    @property
    def n_features(self) -> int:
        return len(self._feature_ids)

    @property
    def n_samples(self) -> int:
        return len(self._sample_ids)

    def _derive(self, **changes) -> ExpressionMatrix:
        parts = {
            'data': self._data,
            'feature_ids': self._feature_ids,
            'sample_ids': self._sample_ids,
            'sample_metadata': self._sample_metadata,
        }
        parts.update(changes)
        return ExpressionMatrix(**parts)

    def take_samples(self, indices: Sequence[int] | np.ndarray) -> ExpressionMatrix:
        """
        Columns at the given positions, in the order given.

        Raises:
            IndexError: If a position is outside the matrix

        Examples:
            >>> pooled_strain0 = matrix.take_samples(partition_a)
        """
        positions = np.asarray(indices, dtype=np.intp)
        if positions.size and (positions.min() < 0 or positions.max() >= self.n_samples):
            raise IndexError(f"sample indices out of range for {self.n_samples} samples")

        kept_ids = self._sample_ids[positions]
        return self._derive(
            data=self._data[:, positions],
            sample_ids=kept_ids,
            sample_metadata=self._sample_metadata.loc[kept_ids],
        )

    def select_samples(self, mask: np.ndarray | pd.Series) -> ExpressionMatrix:
        """Columns where mask is True. A Series mask is used positionally."""
        keep = _as_mask(mask, self.n_samples, "sample")
        return self.take_samples(np.flatnonzero(keep))

    def select_features(self, mask: np.ndarray | pd.Series) -> ExpressionMatrix:
        """Rows where mask is True. A Series mask is used positionally."""
        keep = _as_mask(mask, self.n_features, "feature")
        return self._derive(data=self._data[keep], feature_ids=self._feature_ids[keep])

    def with_sample_metadata(self, sample_metadata: pd.DataFrame) -> ExpressionMatrix:
        """Same values, different sample annotations."""
        return self._derive(sample_metadata=sample_metadata)

    def log2(self, pseudocount: float = 0.0) -> ExpressionMatrix:
        """
        log2(data + pseudocount). NaN entries stay NaN.

        Raises:
            ValueError: If a finite shifted value is zero or negative
        """
        shifted = self._data + pseudocount
        finite = shifted[np.isfinite(shifted)]
        if finite.size and finite.min() <= 0:
            raise ValueError(
                f"log2 requires data + pseudocount > 0 (pseudocount={pseudocount}, "
                f"smallest shifted value {finite.min():g})"
            )
        return self._derive(data=np.log2(shifted))

    def copy(self, deep: bool = True) -> ExpressionMatrix:
        """Copy; with deep=False the arrays and indexes are shared."""
        if not deep:
            return self._derive()
        return ExpressionMatrix(
            data=self._data.copy(),
            feature_ids=self._feature_ids.copy(),
            sample_ids=self._sample_ids.copy(),
            sample_metadata=self._sample_metadata.copy(),
        )

    def __repr__(self) -> str:
        head = f"ExpressionMatrix({self.n_features} features × {self.n_samples} samples)"
        if self.n_features == 0 or self.n_samples == 0:
            return head
        annotations = list(self._sample_metadata.columns) or "none"
        return (
            f"{head}\n"
            f"  features {self._feature_ids[0]} .. {self._feature_ids[-1]}\n"
            f"  samples {self._sample_ids[0]} .. {self._sample_ids[-1]}\n"
            f"  annotations: {annotations}"
        )
