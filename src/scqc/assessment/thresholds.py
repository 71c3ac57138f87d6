"""
Convert a median, MAD and multiplier into lower/upper outlier bounds.
"""

import math
from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

from scqc.constants import DEFAULT_NMADS, DIRECTIONS
from scqc.exceptions import InvalidDirectionError

Direction = Literal["lower", "higher", "both"]


def parse_direction(direction: str) -> Direction:
    """
    Validate a direction value.

    Raises:
        InvalidDirectionError: If direction is not "lower", "higher" or "both".
    """
    if not isinstance(direction, str) or direction not in DIRECTIONS:
        raise InvalidDirectionError(
            f"Invalid direction {direction!r}. Expected one of {list(DIRECTIONS)}"
        )
    return direction


@dataclass(frozen=True)
class ThresholdPair:
    """Outlier bounds for one batch; values outside (lower, upper) are outliers."""

    lower: float
    upper: float
    degenerate: bool = False

    def flag(self, values):
        """Outlier call for a value or an array of values; NaN is never flagged."""
        values = np.asarray(values, dtype=float)
        return (values < self.lower) | (values > self.upper)

    def exp(self) -> "ThresholdPair":
        """Back-transform log-space bounds for display (-inf maps to 0)."""
        return ThresholdPair(
            lower=math.exp(self.lower),
            upper=math.exp(self.upper),
            degenerate=self.degenerate,
        )


def compute_thresholds(
    median: float,
    mad: float,
    *,
    nmads: float = DEFAULT_NMADS,
    direction: str = "both",
    min_diff: Optional[float] = None,
) -> ThresholdPair:
    """
    Compute outlier bounds at nmads MADs from the median.

    lower = median - max(nmads * mad, min_diff) when direction is "lower"
    or "both", otherwise -inf; upper is the mirror image for "higher" or
    "both", otherwise +inf. Bounds stay in whatever space the statistics
    were computed in (log space when the metric was log-transformed).

    Args:
        median: Population median.
        mad: Scaled MAD of the same population.
        nmads: Number of MADs from the median.
        direction: Which tail(s) to bound.
        min_diff: Optional minimum distance from the median for a value to
            count as an outlier.

    Returns:
        ThresholdPair. When the effective distance is zero (zero MAD and no
        positive min_diff) both active bounds collapse to the median and the
        pair is marked degenerate.
    """
    direction = parse_direction(direction)
    if nmads < 0:
        raise ValueError(f"nmads must be non-negative, got {nmads}")

    diff = nmads * mad
    if min_diff is not None:
        diff = max(diff, min_diff)

    lower = median - diff if direction in ("lower", "both") else -math.inf
    upper = median + diff if direction in ("higher", "both") else math.inf
    return ThresholdPair(lower=lower, upper=upper, degenerate=not diff > 0)
