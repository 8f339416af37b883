"""
I/O module for expression and design tables.

Key Functions:
    - load_expression_csv: Load features × samples matrix
    - load_incidence_csv: Load 0/1 design table with explicit orientation
    - write_feature_stats: Per-feature Welch results as CSV
    - write_variance_summary: Technical vs biological SD summary as JSON + CSV
"""

from replicavar.io.loaders import load_expression_csv, load_incidence_csv
from replicavar.io.writers import write_feature_stats, write_json, write_variance_summary

__all__ = [
    'load_expression_csv',
    'load_incidence_csv',
    'write_feature_stats',
    'write_json',
    'write_variance_summary',
]
