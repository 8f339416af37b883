"""
Experimental design decoding and group partitioning.
"""

from .decoder import DEFAULT_COHORT_SIZE, DesignDecoder, ReplicateKind, Sample
from .partition import GroupPartitioner, SelectionMode

__all__ = [
    "DEFAULT_COHORT_SIZE",
    "DesignDecoder",
    "ReplicateKind",
    "Sample",
    "GroupPartitioner",
    "SelectionMode",
]
