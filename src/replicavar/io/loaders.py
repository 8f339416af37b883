"""
Table loaders for expression and design matrices.

Expression tables:
    - First column: feature IDs (probesets, genes)
    - Remaining columns: sample IDs (headers) with numerical values

    ```
    "","a10","a11","b10"
    "1367452_at",10.31,10.42,10.27
    "1367453_at",9.88,9.95,10.01
    ```

Design (incidence) tables:
    - 0/1 values, one axis samples, the other biological units
    - Orientation must be stated ("samples_by_units" or "units_by_samples")

    ```
    "","a1","a2","a3","b1"
    "a10",1,1,1,0
    "a11",1,1,1,0
    "b10",0,0,0,1
    ```

Delimiters follow the suffix (.csv, .tsv) and are sniffed from the file
content otherwise.

Examples:
    >>> from pathlib import Path
    >>> from replicavar.io.loaders import load_expression_csv, load_incidence_csv
    >>> expression = load_expression_csv(Path("exprs.csv"))
    >>> incidence = load_incidence_csv(Path("pdata.csv"), orientation="samples_by_units")
"""

from __future__ import annotations

import csv
import warnings
from pathlib import Path

import numpy as np
import pandas as pd

from replicavar.core.expression import ExpressionMatrix
from replicavar.core.incidence import IncidenceMatrix, Orientation

__all__ = ['load_expression_csv', 'load_incidence_csv', 'sniff_delimiter']

_SUFFIX_DELIMITERS = {'.csv': ',', '.tsv': '\t', '.tab': '\t'}
_SNIFFED = '\t,;'


def sniff_delimiter(path: Path, sample_size: int = 8192) -> str:
    """
    Delimiter of a table whose suffix does not say (tab, comma or semicolon).

    Raises:
        ValueError: If the header line contains none of them
    """
    with open(path, encoding='utf-8', errors='ignore') as f:
        sample = f.read(sample_size)
    try:
        return csv.Sniffer().sniff(sample, delimiters=_SNIFFED).delimiter
    except csv.Error:
        header = sample.partition('\n')[0]
        best = max(_SNIFFED, key=header.count)
        if not header.count(best):
            raise ValueError(f"Could not detect delimiter in {path}") from None
        return best


def _read_table(path: Path | str, kind: str) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{kind} file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    sep = _SUFFIX_DELIMITERS.get(path.suffix.lower()) or sniff_delimiter(path)
    try:
        df = pd.read_csv(path, index_col=0, sep=sep)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"{kind} file is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Failed to parse {kind} file {path}: {e}") from e

    if df.shape[0] == 0 or df.shape[1] == 0:
        raise ValueError(f"{kind} file contains no data: {path} (shape {df.shape})")

    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)
    return df


def _non_numeric_examples(df: pd.DataFrame, limit: int = 5) -> list[str]:
    coerced = df.apply(pd.to_numeric, errors='coerce')
    bad = coerced.isna() & df.notna()
    examples = []
    for row, col in zip(*np.nonzero(bad.to_numpy())):
        examples.append(f"row '{df.index[row]}', col '{df.columns[col]}': {df.iat[row, col]!r}")
        if len(examples) >= limit:
            break
    return examples


def load_expression_csv(
    path: Path | str,
    log2: bool = False,
    pseudocount: float = 0.0,
) -> ExpressionMatrix:
    """
    Load a features × samples expression table.

    Args:
        path: CSV/TSV file, first column feature ids.
        log2: Apply log2(x + pseudocount) after loading.
        pseudocount: Offset added before the log.

    Returns:
        ExpressionMatrix with empty sample_metadata.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the table is empty, malformed or non-numeric
    """
    df = _read_table(path, "Expression")

    if df.columns.duplicated().any():
        dupes = df.columns[df.columns.duplicated()].tolist()
        raise ValueError(f"Duplicate sample IDs in expression table: {dupes[:5]}")

    if df.index.duplicated().any():
        n_duplicates = int(df.index.duplicated().sum())
        warnings.warn(
            f"Found {n_duplicates} duplicate feature IDs. Using first occurrence of each.",
            UserWarning,
        )
        df = df[~df.index.duplicated(keep='first')]

    try:
        data = df.to_numpy(dtype=np.float64)
    except (ValueError, TypeError) as e:
        examples = _non_numeric_examples(df)
        raise ValueError(
            "Expression table contains non-numeric values:\n"
            + "\n".join(f"  - {x}" for x in examples)
        ) from e

    if np.isnan(data).any():
        n_nan = int(np.isnan(data).sum())
        warnings.warn(
            f"Found {n_nan:,} NaN values ({100 * n_nan / data.size:.2f}% of data); "
            "statistics for affected features will be NaN.",
            UserWarning,
        )

    matrix = ExpressionMatrix(
        data=data,
        feature_ids=pd.Index(df.index),
        sample_ids=pd.Index(df.columns),
    )
    if log2:
        matrix = matrix.log2(pseudocount)
    return matrix


def load_incidence_csv(
    path: Path | str,
    orientation: Orientation = "samples_by_units",
) -> IncidenceMatrix:
    """
    Load a 0/1 design table.

    Args:
        path: CSV/TSV file with identifiers in the first column and header.
        orientation: "samples_by_units" if rows are samples,
            "units_by_samples" if rows are biological units.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the table is empty or unparseable
        MalformedDesignError: If entries are not 0/1
    """
    df = _read_table(path, "Design")
    return IncidenceMatrix.from_dataframe(df, orientation)
