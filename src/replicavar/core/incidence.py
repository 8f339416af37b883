"""
Experimental-design incidence matrix.

An incidence matrix records which biological units (animals, donors, cell
lines) contributed material to which sample:

    rows    = samples (arrays, runs)
    columns = biological units
    entry   = 1 if the unit's material went into the sample, else 0

A pooled design mixes RNA from every unit of one strain into one aggregate
and hybridises it several times (technical replicates), while the individual
arrays each carry a single unit (biological replicates). The row sums of the
incidence matrix are what tell the two apart.

Design tables are often stored the other way round (units × samples), so the
orientation must be declared explicitly rather than guessed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from replicavar.core.errors import MalformedDesignError

__all__ = ['IncidenceMatrix', 'Orientation']

Orientation = Literal["samples_by_units", "units_by_samples"]


@dataclass(frozen=True)
class IncidenceMatrix:
    """Validated 0/1 samples × units design table.

    Attributes:
        values: Integer 0/1 array (n_samples, n_units).
        sample_ids: Sample identifiers, one per row.
        unit_ids: Biological unit identifiers, one per column.
    """

    values: NDArray[np.int64]
    sample_ids: tuple[str, ...]
    unit_ids: tuple[str, ...]

    def __post_init__(self):
        values = np.asarray(self.values)
        if values.ndim != 2:
            raise MalformedDesignError(
                f"incidence matrix must be 2D, got shape {values.shape}"
            )
        n_samples, n_units = values.shape
        if n_samples == 0 or n_units == 0:
            raise MalformedDesignError(
                f"incidence matrix has {n_samples} samples × {n_units} units; "
                f"need at least one of each"
            )
        if len(self.sample_ids) != n_samples:
            raise MalformedDesignError(
                f"sample_ids length ({len(self.sample_ids)}) must match "
                f"incidence rows ({n_samples})"
            )
        if len(self.unit_ids) != n_units:
            raise MalformedDesignError(
                f"unit_ids length ({len(self.unit_ids)}) must match "
                f"incidence columns ({n_units})"
            )
        if len(set(self.sample_ids)) != n_samples:
            raise MalformedDesignError("sample_ids must be unique")

        if values.dtype == bool:
            values = values.astype(np.int64)
        elif not np.issubdtype(values.dtype, np.number):
            raise MalformedDesignError(
                f"incidence entries must be numeric 0/1, got dtype {values.dtype}"
            )
        if not np.isin(values, (0, 1)).all():
            bad = np.argwhere(~np.isin(values, (0, 1)))[0]
            raise MalformedDesignError(
                f"incidence entries must be 0 or 1; sample "
                f"'{self.sample_ids[bad[0]]}', unit '{self.unit_ids[bad[1]]}' "
                f"has value {values[bad[0], bad[1]]!r}"
            )

        values = values.astype(np.int64)
        values.setflags(write=False)
        object.__setattr__(self, 'values', values)
        object.__setattr__(self, 'sample_ids', tuple(str(s) for s in self.sample_ids))
        object.__setattr__(self, 'unit_ids', tuple(str(u) for u in self.unit_ids))

    @property
    def n_samples(self) -> int:
        return self.values.shape[0]

    @property
    def n_units(self) -> int:
        return self.values.shape[1]

    @property
    def row_sums(self) -> NDArray[np.int64]:
        """Number of units pooled into each sample."""
        return self.values.sum(axis=1)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        orientation: Orientation = "samples_by_units",
    ) -> IncidenceMatrix:
        """
        Build from a labelled table.

        Args:
            df: Design table. Index and columns carry the identifiers.
            orientation: "samples_by_units" if rows are samples (default),
                "units_by_samples" if rows are biological units.

        Examples:
            >>> design = pd.read_csv("design.csv", index_col=0)
            >>> incidence = IncidenceMatrix.from_dataframe(design, "units_by_samples")
        """
        if orientation == "units_by_samples":
            df = df.T
        elif orientation != "samples_by_units":
            raise ValueError(
                f"Unknown orientation: {orientation!r}. "
                f"Use 'samples_by_units' or 'units_by_samples'"
            )

        return cls(
            values=df.to_numpy(),
            sample_ids=tuple(df.index.astype(str)),
            unit_ids=tuple(df.columns.astype(str)),
        )

    def to_dataframe(self) -> pd.DataFrame:
        """Samples × units DataFrame view (copy)."""
        return pd.DataFrame(
            self.values.copy(),
            index=pd.Index(self.sample_ids, name="sample_id"),
            columns=pd.Index(self.unit_ids, name="unit_id"),
        )
