"""
Sample decoding from an experimental-design incidence matrix.

Turns the raw 0/1 design into typed Sample records, once, so that every
downstream step agrees on which arrays are pooled, which are individual
animals, and which strain each belongs to.

Replicate kinds:
    pooled        row sum == cohort size (every unit of one label mixed
                  together; repeated arrays of it are technical replicates)
    individual    row sum == 1 (one unit; biological replicates)
    partial_pool  anything in between

Label inference:
    Strain (or any two-level label) is read from the sample identifier: a
    match of ``label_marker_pattern`` anywhere in the identifier gives label
    1, no match gives label 0. Naming conventions are dataset specific, so
    the pattern is always supplied by the caller.

Examples:
    >>> from replicavar.design.decoder import DesignDecoder
    >>> decoder = DesignDecoder(cohort_size=12, label_marker_pattern="b")
    >>> samples = decoder.decode(incidence)
    >>> [s.replicate_kind.value for s in samples[:3]]
    ['pooled', 'pooled', 'individual']
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

import pandas as pd

from replicavar.core.errors import MalformedDesignError
from replicavar.core.incidence import IncidenceMatrix

__all__ = ['ReplicateKind', 'Sample', 'DesignDecoder', 'DEFAULT_COHORT_SIZE']

logger = logging.getLogger(__name__)

DEFAULT_COHORT_SIZE = 12


class ReplicateKind(Enum):
    """How a sample relates to the biological units it was made from."""

    POOLED = "pooled"
    INDIVIDUAL = "individual"
    PARTIAL_POOL = "partial_pool"


@dataclass(frozen=True)
class Sample:
    """A decoded sample.

    Attributes:
        sample_id: Identifier as it appears in the design and expression tables.
        index: Column position in the expression matrix.
        pool_size: Number of biological units pooled into this sample.
        label: Two-level group label (0 or 1) inferred from sample_id.
        replicate_kind: Pooled, individual or partial pool.
    """

    sample_id: str
    index: int
    pool_size: int
    label: int
    replicate_kind: ReplicateKind

    @property
    def is_pooled(self) -> bool:
        return self.replicate_kind is ReplicateKind.POOLED

    @property
    def is_individual(self) -> bool:
        return self.replicate_kind is ReplicateKind.INDIVIDUAL


class DesignDecoder:
    """
    Classify samples of an incidence matrix and infer their labels.

    Args:
        cohort_size: Number of units making up "all units of one label".
            Either one size for both labels or a mapping label -> size.
        label_marker_pattern: Regular expression searched in each sample
            identifier; a match means label 1.

    Raises:
        ValueError: If cohort_size is not positive or the pattern is empty
            or does not compile.
    """

    def __init__(
        self,
        cohort_size: int | Mapping[int, int] = DEFAULT_COHORT_SIZE,
        label_marker_pattern: str = "",
    ):
        if isinstance(cohort_size, Mapping):
            sizes = {int(k): int(v) for k, v in cohort_size.items()}
            missing = {0, 1} - set(sizes)
            if missing:
                raise ValueError(f"cohort_size mapping is missing labels {sorted(missing)}")
        else:
            sizes = {0: int(cohort_size), 1: int(cohort_size)}

        for label, size in sizes.items():
            if size < 1:
                raise ValueError(f"cohort_size for label {label} must be >= 1, got {size}")

        if not label_marker_pattern:
            raise ValueError("label_marker_pattern must be a non-empty regular expression")
        try:
            self._marker = re.compile(label_marker_pattern)
        except re.error as e:
            raise ValueError(f"Invalid label_marker_pattern {label_marker_pattern!r}: {e}") from e

        self.cohort_sizes = sizes
        self.label_marker_pattern = label_marker_pattern

    def infer_label(self, sample_id: str) -> int:
        """Label 1 if the marker pattern occurs in sample_id, else 0."""
        return 1 if self._marker.search(sample_id) else 0

    def classify(self, pool_size: int, label: int) -> ReplicateKind:
        """Replicate kind for a sample of the given pool size and label."""
        cohort = self.cohort_sizes[label]
        # a cohort of one unit cannot be pooled
        if cohort == 1 or pool_size == 1:
            return ReplicateKind.INDIVIDUAL
        if pool_size == cohort:
            return ReplicateKind.POOLED
        return ReplicateKind.PARTIAL_POOL

    def decode(self, incidence: IncidenceMatrix | pd.DataFrame) -> list[Sample]:
        """
        Decode every sample (row) of the incidence matrix.

        Args:
            incidence: IncidenceMatrix, or a samples × units DataFrame.

        Returns:
            Samples in row order; ``Sample.index`` is the row position.

        Raises:
            MalformedDesignError: If the matrix has no rows/columns, holds
                entries other than 0/1, or a sample derives from no unit.
        """
        if isinstance(incidence, pd.DataFrame):
            incidence = IncidenceMatrix.from_dataframe(incidence)

        row_sums = incidence.row_sums
        orphans = [incidence.sample_ids[i] for i, s in enumerate(row_sums) if s == 0]
        if orphans:
            raise MalformedDesignError(
                f"{len(orphans)} sample(s) derive from no biological unit "
                f"(row sum 0): {', '.join(orphans[:5])}"
                + ("..." if len(orphans) > 5 else "")
            )

        samples = []
        for i, (sample_id, pool_size) in enumerate(zip(incidence.sample_ids, row_sums)):
            label = self.infer_label(sample_id)
            pool_size = int(pool_size)
            if pool_size > self.cohort_sizes[label] > 1:
                logger.warning(
                    "Sample %s pools %d units but label %d has a cohort of %d",
                    sample_id, pool_size, label, self.cohort_sizes[label],
                )
            samples.append(Sample(
                sample_id=sample_id,
                index=i,
                pool_size=pool_size,
                label=label,
                replicate_kind=self.classify(pool_size, label),
            ))

        counts = pd.Series([s.replicate_kind.value for s in samples]).value_counts()
        logger.info(
            "Decoded %d samples: %s",
            len(samples),
            ", ".join(f"{k}={v}" for k, v in counts.items()),
        )
        return samples

    def decode_frame(self, incidence: IncidenceMatrix | pd.DataFrame) -> pd.DataFrame:
        """
        Decode into a sample-indexed DataFrame.

        Columns: ``pool_size``, ``label``, ``replicate_kind``. Suitable as
        ``ExpressionMatrix.sample_metadata``.
        """
        samples = self.decode(incidence)
        return pd.DataFrame(
            {
                'pool_size': [s.pool_size for s in samples],
                'label': [s.label for s in samples],
                'replicate_kind': [s.replicate_kind.value for s in samples],
            },
            index=pd.Index([s.sample_id for s in samples]),
        )
