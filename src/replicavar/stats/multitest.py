"""
Multiple testing correction for per-feature p-values.

A microarray comparison runs one test per probeset (tens of thousands), so
raw p-value cutoffs mostly count false positives. The adjusted values here
are reported next to the raw ones; neither is used to filter results.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import NDArray

__all__ = ['fdr_correction']

# short name -> statsmodels method
_METHOD_MAP = {"BH": "fdr_bh", "BY": "fdr_by", "bonferroni": "bonferroni"}


def fdr_correction(
    pvalues: NDArray[np.float64],
    method: Literal["BH", "BY", "bonferroni"] = "BH",
    alpha: float = 0.05,
) -> NDArray[np.float64]:
    """
    Adjust p-values for the number of features tested.

    Args:
        pvalues: Raw p-values, one per feature. NaN entries (features that
            could not be tested) are skipped and come back as NaN.
        method: "BH" (Benjamini-Hochberg FDR), "BY" (Benjamini-Yekutieli,
            valid under arbitrary dependence) or "bonferroni" (FWER).
        alpha: Family level handed to statsmodels; it does not change the
            adjusted values.

    Returns:
        Adjusted p-values aligned with the input.

    Raises:
        ValueError: If method is unknown.
    """
    from statsmodels.stats.multitest import multipletests

    if method not in _METHOD_MAP:
        raise ValueError(
            f"Unknown FDR method: {method!r}. Use one of {list(_METHOD_MAP)}"
        )

    raw = np.asarray(pvalues, dtype=np.float64)
    tested = ~np.isnan(raw)
    adjusted = np.full(raw.shape, np.nan)
    if tested.any():
        adjusted[tested] = multipletests(raw[tested], alpha=alpha, method=_METHOD_MAP[method])[1]
    return adjusted
