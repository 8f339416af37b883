"""
Analysis configuration.

Everything that used to be a naming convention baked into sample
identifiers (which substring marks the second strain, which arrays are
repeated hybridisations) is an explicit field here.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Optional, Union

from replicavar.core.incidence import Orientation
from replicavar.design.decoder import DEFAULT_COHORT_SIZE
from replicavar.design.partition import SelectionMode

__all__ = ['AnalysisConfig']

_FDR_METHODS = ("BH", "BY", "bonferroni")
_ORIENTATIONS = ("samples_by_units", "units_by_samples")


def _as_int(value: Any, where: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{where} must be an integer, got {value!r}") from None
    if isinstance(value, bool) or (isinstance(value, float) and value != number):
        raise ValueError(f"{where} must be an integer, got {value!r}")
    return number


def _positive(value: Any, where: str) -> int:
    size = _as_int(value, where)
    if size < 1:
        raise ValueError(f"{where} must be >= 1, got {value!r}")
    return size


def _normalise_cohort_size(value: Any) -> Union[int, Dict[int, int]]:
    """One positive size, or a {label: size} dict covering labels 0 and 1."""
    if isinstance(value, Mapping):
        sizes = {_as_int(label, "cohort_size label"): size for label, size in value.items()}
        if set(sizes) != {0, 1}:
            raise ValueError(
                f"cohort_size mapping must have exactly the labels 0 and 1, got {list(value)}"
            )
        return {
            label: _positive(size, f"cohort_size for label {label}")
            for label, size in sizes.items()
        }
    return _positive(value, "cohort_size")


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Configuration for a replicate comparison.

    Attributes:
        label_marker_pattern: Regex; a match in the sample id means label 1.
        cohort_size: Units per label making up a full pool; one size for
            both labels or a mapping {0: size, 1: size}.
        exclusion_pattern: Regex of sample ids to drop before splitting.
        selection_mode: Replicate kinds taking part in the comparison.
        fdr_method: Multiple testing correction for reported adj_p_value.
        alpha: Significance threshold used for summary counts.
        n_jobs: joblib workers for the per-feature tests.
        orientation: Orientation of the incidence table on disk.
    """

    label_marker_pattern: str
    cohort_size: Union[int, Dict[int, int]] = DEFAULT_COHORT_SIZE
    exclusion_pattern: Optional[str] = None
    selection_mode: SelectionMode = SelectionMode.ALL
    fdr_method: str = "BH"
    alpha: float = 0.01
    n_jobs: int = 1
    orientation: Orientation = "samples_by_units"

    def __post_init__(self):
        if not self.label_marker_pattern:
            raise ValueError("label_marker_pattern is required")
        object.__setattr__(self, 'cohort_size', _normalise_cohort_size(self.cohort_size))
        object.__setattr__(self, 'selection_mode', SelectionMode.parse(self.selection_mode))
        if self.fdr_method not in _FDR_METHODS:
            raise ValueError(
                f"Unknown fdr_method: {self.fdr_method!r}. Use one of {list(_FDR_METHODS)}"
            )
        if not (0 < float(self.alpha) < 1):
            raise ValueError(f"alpha must be in (0, 1), got {self.alpha}")
        if self.n_jobs == 0:
            raise ValueError("n_jobs must be non-zero")
        if self.orientation not in _ORIENTATIONS:
            raise ValueError(
                f"Unknown orientation: {self.orientation!r}. Use one of {list(_ORIENTATIONS)}"
            )

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> AnalysisConfig:
        """
        Build from a plain mapping (e.g. a parsed YAML file).

        Raises:
            ValueError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(
                f"Unknown config key(s): {sorted(unknown)}. Valid keys: {sorted(known)}"
            )
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['selection_mode'] = self.selection_mode.value
        return d
