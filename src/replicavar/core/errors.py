"""
Error taxonomy for replicate-variance analysis.

Every error here signals caller misuse of the input data (a malformed design,
a selection that leaves a group empty, too few replicates, misaligned
tables). None of them are transient, so nothing in the package retries them.
"""

from __future__ import annotations

__all__ = [
    'ReplicavarError',
    'MalformedDesignError',
    'EmptyGroupError',
    'InsufficientReplicatesError',
    'DimensionMismatchError',
]


class ReplicavarError(Exception):
    """Base class for all replicavar data errors."""
    pass


class MalformedDesignError(ReplicavarError):
    """Raised when the incidence matrix is structurally invalid."""
    pass


class EmptyGroupError(ReplicavarError):
    """Raised when a requested partition leaves a comparison group empty."""
    pass


class InsufficientReplicatesError(ReplicavarError):
    """Raised when a compared group has fewer than 2 samples."""
    pass


class DimensionMismatchError(ReplicavarError):
    """Raised when expression and incidence tables disagree on the sample axis."""
    pass
