"""
Median and median absolute deviation (MAD) for a statistics population.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from scipy import stats

from scqc.constants import MAD_SCALE, MIN_OBSERVATIONS
from scqc.exceptions import DegenerateStatisticsError, InsufficientDataError


@dataclass(frozen=True)
class RobustStatistics:
    """Location and spread of one statistics population."""

    median: float
    mad: float  # scaled, comparable to a standard deviation
    n: int  # non-missing observations used

    @property
    def is_degenerate(self) -> bool:
        return not self.mad > 0


def compute_robust_statistics(
    values: np.ndarray | pd.Series,
    *,
    subset: Optional[np.ndarray] = None,
    scale: float = MAD_SCALE,
    min_observations: int = MIN_OBSERVATIONS,
) -> RobustStatistics:
    """
    Compute median and scaled MAD, ignoring missing values.

    MAD = median(|x - median(x)|) * scale. The default scale of 1.4826 makes
    the MAD a consistent estimator of the standard deviation for normal data.

    Args:
        values: 1D numeric values (already transformed if needed).
        subset: Optional boolean mask restricting which values contribute.
        scale: Multiplier applied to the raw MAD.
        min_observations: Minimum number of non-missing values required.

    Returns:
        RobustStatistics. A zero MAD is returned as-is; callers decide how
        to treat it (see compute_thresholds).

    Raises:
        DegenerateStatisticsError: No non-missing values in the population.
        InsufficientDataError: Fewer than min_observations non-missing values.
    """
    vals = np.asarray(values, dtype=float)
    if subset is not None:
        vals = vals[np.asarray(subset, dtype=bool)]
    vals = vals[np.isfinite(vals)]

    if len(vals) == 0:
        raise DegenerateStatisticsError("Statistics population is empty or all missing")
    if len(vals) < min_observations:
        raise InsufficientDataError(len(vals), min_observations)

    med = float(np.median(vals))
    mad = float(stats.median_abs_deviation(vals, scale=1.0)) * scale
    return RobustStatistics(median=med, mad=mad, n=len(vals))
