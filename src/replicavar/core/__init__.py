"""
Core data structures for replicate analysis.

1. ExpressionMatrix: features × samples measurements with identifiers and
   sample annotations
2. IncidenceMatrix: validated 0/1 samples × units design table
3. Error taxonomy shared by every stage

All containers are immutable; operations return new instances.
"""

from replicavar.core.errors import (
    ReplicavarError,
    MalformedDesignError,
    EmptyGroupError,
    InsufficientReplicatesError,
    DimensionMismatchError,
)
from replicavar.core.expression import ExpressionMatrix
from replicavar.core.incidence import IncidenceMatrix, Orientation

__all__ = [
    'ReplicavarError',
    'MalformedDesignError',
    'EmptyGroupError',
    'InsufficientReplicatesError',
    'DimensionMismatchError',
    'ExpressionMatrix',
    'IncidenceMatrix',
    'Orientation',
]
