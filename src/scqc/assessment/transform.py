"""
Metric transforms applied before robust statistics are computed.

Library size and number of detected features are right-skewed and roughly
log-normal, so thresholds for them are usually computed in log space.
"""

import numpy as np
import pandas as pd


def transform_metric(
    values: np.ndarray | pd.Series,
    *,
    log: bool = False,
) -> np.ndarray:
    """
    Return a float copy of a metric vector, optionally log-transformed.

    Args:
        values: 1D array or Series of numeric values. NaN marks missing.
        log: If True, replace each value by its natural logarithm.

    Returns:
        Float array of the same length. With log=True, values <= 0 (and
        missing values) become NaN so they drop out of the statistics;
        +inf stays +inf.
    """
    vals = np.array(values, dtype=float)
    if vals.ndim != 1:
        raise ValueError(f"Metric must be one-dimensional, got shape {vals.shape}")
    if not log:
        return vals

    out = np.full(vals.shape, np.nan)
    positive = vals > 0
    out[positive] = np.log(vals[positive])
    return out
