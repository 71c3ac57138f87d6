"""
Applying discard decisions to QC metric tables.

Splits a cell table into retained and discarded cells and summarises how
many cells each reason removes, overall and per batch.
"""

from typing import Optional, Union

import numpy as np
import pandas as pd

from scqc.assessment.qc_filters import QCFilterResult, per_cell_qc_filters
from scqc.data.io import get_batch_labels
from scqc.exceptions import LengthMismatchError
from scqc.utils.natural_sort import order_batch_labels


def _discard_mask(
    df: pd.DataFrame,
    discard: Union[QCFilterResult, pd.Series, np.ndarray],
) -> np.ndarray:
    if isinstance(discard, QCFilterResult):
        discard = discard.discard
    mask = pd.Series(discard).fillna(False).astype(bool).to_numpy()
    if len(mask) != len(df):
        raise LengthMismatchError(
            f"Discard vector has length {len(mask)}, DataFrame has {len(df)} rows"
        )
    return mask


def split_by_discard(
    df: pd.DataFrame,
    discard: Union[QCFilterResult, pd.Series, np.ndarray],
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split a cell table into retained and discarded cells.

    Cells whose discard status is unknown (<NA>, e.g. missing metrics) are
    retained.

    Args:
        df: Per-cell DataFrame, in the same row order as the discard vector.
        discard: QCFilterResult or a boolean discard vector.

    Returns:
        Tuple of (retained_df, discarded_df).
    """
    mask = _discard_mask(df, discard)
    return df.loc[~mask].copy(), df.loc[mask].copy()


def summarize_discards(
    result: QCFilterResult,
    *,
    batch: Optional[Union[str, np.ndarray, pd.Series, list]] = None,
    metrics: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """
    Count cells flagged by each reason and by the combined discard.

    Args:
        result: Output of combine_outlier_filters / per_cell_qc_filters.
        batch: Optional per-cell batch labels (or a column name in metrics)
            to break counts down by batch.
        metrics: DataFrame holding the batch column when batch is a name.

    Returns:
        DataFrame with one row per batch (or a single "all" row), columns
        n_cells, one count per reason, and discard.
    """
    frame = result.reasons_frame()
    counts = frame.fillna(False).astype(bool)

    if batch is None:
        summary = counts.sum().to_frame("all").T
        summary.insert(0, "n_cells", len(frame))
        return summary.astype(int)

    if isinstance(batch, str):
        if metrics is None:
            raise ValueError("metrics is required when batch is a column name")
        batch = get_batch_labels(metrics, batch)
    labels = np.asarray(pd.Series(batch).astype(object))
    if len(labels) != len(frame):
        raise LengthMismatchError(
            f"Batch labels have length {len(labels)}, result has {len(frame)} cells"
        )

    counts.index = pd.Index(labels, name="batch")
    summary = counts.groupby(level="batch", sort=False).sum()
    summary.insert(0, "n_cells", counts.groupby(level="batch", sort=False).size())
    order = order_batch_labels(list(summary.index))
    return summary.loc[order].astype(int)


def quick_per_cell_qc(
    df: pd.DataFrame,
    *,
    keep_reasons: bool = False,
    **filter_kwargs,
) -> pd.DataFrame:
    """
    Run the standard per-cell QC filters and return the retained cells.

    Args:
        df: Per-cell QC metric DataFrame.
        keep_reasons: If True, append the reason and discard columns to the
            returned table instead of dropping discarded rows.
        **filter_kwargs: Passed to per_cell_qc_filters (subset_cols, batch,
            nmads, ...).

    Returns:
        Retained cells, or the full table annotated with reasons.
    """
    result = per_cell_qc_filters(df, **filter_kwargs)
    if keep_reasons:
        return pd.concat([df, result.reasons_frame()], axis=1)
    retained, _ = split_by_discard(df, result)
    return retained
