"""
Writers for analysis results.

Outputs are plain tables and JSON so they can be picked up by whatever
plots or reports them:

    {path}.stats.csv        one row per feature (means, SDs, t, df, p, adj p)
    {path}.summary.json     comparison summary (groups, significant counts)
    {path}.variance.json    technical vs biological SD summaries
    {path}.sds.csv          the two SD vectors, for plotting
"""

from __future__ import annotations

import json
import math
from pathlib import Path

import pandas as pd

from replicavar.stats.variance import VarianceComparison
from replicavar.stats.welch import FeatureStatsResult

__all__ = ['write_feature_stats', 'write_json', 'write_variance_summary']


def _jsonable(value):
    """Replace non-finite floats, which strict JSON cannot hold, with None."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def write_json(payload: dict, path: Path) -> Path:
    """Write a dict as indented JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(_jsonable(payload), f, indent=2)
    return path


def write_feature_stats(
    result: FeatureStatsResult,
    path: Path,
    fdr_method: str | None = "BH",
) -> Path:
    """
    Write per-feature results to ``{path}.stats.csv``.

    Args:
        result: Output of FeatureStatsEngine.compute.
        path: Base path (without extension).
        fdr_method: Adjustment for the adj_p_value column, None to omit.

    Returns:
        Path of the written file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    out = path.with_name(path.name + ".stats.csv")
    result.to_dataframe(fdr_method=fdr_method).to_csv(out, index=False)
    return out


def write_variance_summary(
    comparison: VarianceComparison,
    path: Path,
    feature_ids: list[str] | None = None,
) -> tuple[Path, Path]:
    """
    Write ``{path}.variance.json`` and ``{path}.sds.csv``.

    The SD table has one column per vector. When the vectors differ in
    length the shorter column is padded with empty cells.

    Returns:
        Paths of the JSON summary and the SD table.
    """
    path = Path(path)
    summary_path = write_json(comparison.to_dict(), path.with_name(path.name + ".variance.json"))

    sds = pd.concat(
        [
            pd.Series(comparison.technical_sds, name='technical_sd'),
            pd.Series(comparison.biological_sds, name='biological_sd'),
        ],
        axis=1,
    )
    if feature_ids is not None and len(feature_ids) == len(sds):
        sds.insert(0, 'feature_id', feature_ids)
    sds_path = path.with_name(path.name + ".sds.csv")
    sds.to_csv(sds_path, index=False)
    return summary_path, sds_path
