"""
Two-group partitioning of decoded samples.

Selects the samples that take part in a comparison (pooled arrays only,
individual animals only, or everything), optionally drops samples whose
identifier matches an exclusion pattern, and splits the rest by label:

    group A = label 0
    group B = label 1

Indices are column positions in the expression matrix and keep the original
sample order, so slicing with them is reproducible.

The exclusion filter exists because "individual" selections sometimes
contain repeated hybridisations of the same animal; those are technical
replicates and would shrink the apparent biological variance.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from replicavar.core.errors import EmptyGroupError
from replicavar.design.decoder import ReplicateKind, Sample

__all__ = ['SelectionMode', 'GroupPartitioner']

logger = logging.getLogger(__name__)


class SelectionMode(Enum):
    """Which replicate kinds take part in a comparison."""

    POOLED_ONLY = "pooled"
    INDIVIDUAL_ONLY = "individual"
    ALL = "all"

    @classmethod
    def parse(cls, value: SelectionMode | str) -> SelectionMode:
        """Accept an enum member, its value, or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for mode in cls:
            if key in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(
            f"Unknown selection mode: {value!r}. "
            f"Use one of {[m.value for m in cls]}"
        )


_KINDS_FOR_MODE = {
    SelectionMode.POOLED_ONLY: {ReplicateKind.POOLED},
    SelectionMode.INDIVIDUAL_ONLY: {ReplicateKind.INDIVIDUAL},
    SelectionMode.ALL: set(ReplicateKind),
}


class GroupPartitioner:
    """
    Split samples into two label groups.

    Args:
        exclusion_pattern: Optional regular expression; samples whose
            identifier matches it are dropped before label splitting.
    """

    def __init__(self, exclusion_pattern: str | None = None):
        self.exclusion_pattern = exclusion_pattern or None
        self._exclude = None
        if self.exclusion_pattern is not None:
            try:
                self._exclude = re.compile(self.exclusion_pattern)
            except re.error as e:
                raise ValueError(
                    f"Invalid exclusion_pattern {exclusion_pattern!r}: {e}"
                ) from e

    def select(
        self,
        samples: Sequence[Sample],
        selection_mode: SelectionMode | str = SelectionMode.ALL,
    ) -> list[Sample]:
        """Samples kept by the selection mode and exclusion pattern, in order."""
        mode = SelectionMode.parse(selection_mode)
        kinds = _KINDS_FOR_MODE[mode]

        selected = [s for s in samples if s.replicate_kind in kinds]
        if self._exclude is not None:
            kept = [s for s in selected if not self._exclude.search(s.sample_id)]
            if len(kept) != len(selected):
                logger.info(
                    "Excluded %d sample(s) matching %r",
                    len(selected) - len(kept), self.exclusion_pattern,
                )
            selected = kept
        return selected

    def partition(
        self,
        samples: Sequence[Sample],
        selection_mode: SelectionMode | str = SelectionMode.ALL,
    ) -> tuple[NDArray[np.intp], NDArray[np.intp]]:
        """
        Partition samples into (indices_a, indices_b).

        Args:
            samples: Decoded samples (see DesignDecoder.decode).
            selection_mode: POOLED_ONLY, INDIVIDUAL_ONLY or ALL.

        Returns:
            Column indices of label-0 samples and of label-1 samples, each
            in original sample order.

        Raises:
            EmptyGroupError: If either group is empty after filtering.
        """
        mode = SelectionMode.parse(selection_mode)
        selected = self.select(samples, mode)

        indices_a = np.array([s.index for s in selected if s.label == 0], dtype=np.intp)
        indices_b = np.array([s.index for s in selected if s.label == 1], dtype=np.intp)

        for name, label, indices in (("A", 0, indices_a), ("B", 1, indices_b)):
            if len(indices) == 0:
                raise EmptyGroupError(
                    f"Group {name} (label {label}) is empty for selection mode "
                    f"'{mode.value}' (exclusion pattern: {self.exclusion_pattern!r}); "
                    f"{len(selected)} of {len(samples)} samples selected"
                )

        logger.debug(
            "Partition (%s): group A %d samples, group B %d samples",
            mode.value, len(indices_a), len(indices_b),
        )
        return indices_a, indices_b
