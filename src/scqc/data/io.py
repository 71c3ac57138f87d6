"""
QC metric table I/O.

Reads per-cell QC metric tables (one row per cell, one column per metric,
as written by the host's metric calculation step) from CSV, TSV or Excel
files. Each file is treated as one sample: unless the table already carries
a batch column, the file stem is used as the batch label. Use
get_metric_vector and get_batch_labels to pull validated vectors out of the
combined table.
"""

import logging
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from scqc.constants import DEFAULT_BATCH_COL

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "*.csv"
READERS = {
    ".csv": lambda p: pd.read_csv(p),
    ".tsv": lambda p: pd.read_csv(p, sep="\t"),
    ".txt": lambda p: pd.read_csv(p, sep="\t"),
    ".xlsx": lambda p: pd.read_excel(p),
    ".xls": lambda p: pd.read_excel(p),
}
CELL_ID_COL = "cell_id"
SOURCE_COL = "filename"


def _collect_files(
    paths: Union[str, Path, List[Union[str, Path]]], pattern: str
) -> List[Path]:
    """Resolve paths to a flat list of metric tables. Handles file/folder or mix."""
    if not isinstance(paths, list):
        paths = [paths]
    files: List[Path] = []
    for p in paths:
        path = Path(p)
        if not path.exists():
            logger.warning("Path does not exist, skipping: %s", path)
            continue
        if path.is_file():
            if path.suffix.lower() in READERS:
                files.append(path)
            else:
                logger.warning("Skipping unsupported file: %s", path)
        else:
            for f in sorted(path.glob(pattern)):
                if f.is_file() and not f.name.startswith(("~", "_", ".")):
                    files.append(f)
    return files


def _load_metric_file(file_path: Path, batch_col: str) -> pd.DataFrame:
    """Load one QC metric table and tag it with its source."""
    reader = READERS.get(file_path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported file type: {file_path.name}")

    df = reader(file_path)
    if df.empty:
        raise ValueError(f"No rows in {file_path.name}")

    # An unnamed first column is the cell barcode index written by pandas/R.
    first = df.columns[0]
    if isinstance(first, str) and (first == "" or first.startswith("Unnamed")):
        df = df.rename(columns={first: CELL_ID_COL})

    if batch_col not in df.columns:
        df[batch_col] = file_path.stem
    df[SOURCE_COL] = file_path.name
    return df


def load_qc_metrics(
    paths: Union[str, Path, List[Union[str, Path]]],
    *,
    pattern: str = DEFAULT_PATTERN,
    batch_col: str = DEFAULT_BATCH_COL,
) -> pd.DataFrame:
    """
    Load per-cell QC metric tables from file(s) and/or folder(s).

    Args:
        paths: A file path, folder path, or list of files and/or folders.
        pattern: Glob pattern when scanning folders (default: *.csv).
        batch_col: Column holding the batch label. Filled with the file stem
            when a table does not have it.

    Returns:
        Concatenated DataFrame (one row per cell) with batch_col and
        "filename" columns. Empty DataFrame if nothing could be loaded.
    """
    files = _collect_files(paths, pattern)
    if not files:
        return pd.DataFrame()

    dfs: List[pd.DataFrame] = []
    for f in files:
        try:
            dfs.append(_load_metric_file(f, batch_col))
        except (OSError, ValueError) as e:
            logger.warning("Skipping file %s: %s", f.name, e)

    if not dfs:
        return pd.DataFrame()
    logger.info("Loaded QC metrics for %d files", len(dfs))
    return pd.concat(dfs, ignore_index=True)


def get_metric_vector(df: pd.DataFrame, col: str) -> pd.Series:
    """
    Return a QC metric column as a float Series (NaN for missing).

    Raises:
        ValueError: Column missing or not numeric.
    """
    if col not in df.columns:
        raise ValueError(
            f"metric '{col}' not in DataFrame. Available: {list(df.columns)}"
        )
    series = df[col]
    if not (pd.api.types.is_numeric_dtype(series) or series.isna().all()):
        raise ValueError(f"metric '{col}' is not numeric (dtype {series.dtype})")
    return series.astype(float)


def get_batch_labels(df: pd.DataFrame, col: str) -> np.ndarray:
    """
    Return a batch label column as an object array.

    Raises:
        ValueError: Column missing or containing missing labels.
    """
    if col not in df.columns:
        raise ValueError(
            f"batch column '{col}' not in DataFrame. Available: {list(df.columns)}"
        )
    labels = df[col]
    if labels.isna().any():
        raise ValueError(f"batch column '{col}' has {int(labels.isna().sum())} missing labels")
    return labels.to_numpy(dtype=object)
