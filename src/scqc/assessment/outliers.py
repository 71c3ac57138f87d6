"""
Batch-aware outlier detection for per-cell QC metrics.

Each batch gets its own median/MAD thresholds, computed from a statistics
population (the batch's non-missing cells, optionally restricted to a
reference subset) and then applied to every cell of the batch. Conditions
intrinsic to one batch (too few cells, zero MAD) are recorded as a batch
status and never stop the other batches.
"""

import logging
from dataclasses import dataclass, field
from typing import Hashable, Literal, Optional

import numpy as np
import pandas as pd

from scqc.assessment.batches import BatchSpec, resolve_batch_spec
from scqc.assessment.robust_stats import RobustStatistics, compute_robust_statistics
from scqc.assessment.thresholds import ThresholdPair, compute_thresholds, parse_direction
from scqc.assessment.transform import transform_metric
from scqc.constants import DEFAULT_NMADS, DEGENERATE_POLICIES
from scqc.exceptions import (
    DegenerateStatisticsError,
    InsufficientDataError,
    LengthMismatchError,
)
from scqc.utils.natural_sort import order_batch_labels

logger = logging.getLogger(__name__)

BatchStatus = Literal["ok", "borrowed", "degenerate", "insufficient_data"]

_FAILED_STATUSES = ("degenerate", "insufficient_data")


@dataclass
class OutlierResult:
    """Outlier flags for one metric plus the per-batch diagnostics behind them."""

    flags: pd.Series  # nullable boolean; <NA> where the metric is missing
    thresholds: dict[Hashable, ThresholdPair]
    statistics: dict[Hashable, RobustStatistics]
    status: dict[Hashable, BatchStatus]
    nmads: float
    direction: str
    log: bool
    batch_spec: BatchSpec = field(repr=False)

    @property
    def failed_batches(self) -> list[Hashable]:
        """Batches that could not be filtered (degenerate or insufficient data)."""
        return [b for b, s in self.status.items() if s in _FAILED_STATUSES]

    @property
    def n_outliers(self) -> int:
        return int(self.flags.fillna(False).sum())

    def thresholds_frame(self) -> pd.DataFrame:
        """
        Thresholds as a table: rows "lower"/"higher", one column per batch.

        Batches without thresholds (insufficient data) hold NaN. Values are
        in transformed space when log=True.
        """
        labels = order_batch_labels(list(self.status))
        data = {
            label: [
                self.thresholds[label].lower if label in self.thresholds else np.nan,
                self.thresholds[label].upper if label in self.thresholds else np.nan,
            ]
            for label in labels
        }
        return pd.DataFrame(data, index=["lower", "higher"], columns=labels)


def _resolve_subset(
    subset: Optional[np.ndarray | pd.Series | list],
    n: int,
) -> np.ndarray:
    if subset is None:
        return np.ones(n, dtype=bool)
    mask = pd.Series(subset).fillna(False).astype(bool).to_numpy()
    if len(mask) != n:
        raise LengthMismatchError(
            f"Subset mask has length {len(mask)}, metric has length {n}"
        )
    return mask


def _shared_statistics(statistics: dict[Hashable, RobustStatistics]) -> RobustStatistics:
    """Median of per-batch medians and median of per-batch MADs."""
    medians = [s.median for s in statistics.values()]
    mads = [s.mad for s in statistics.values()]
    return RobustStatistics(
        median=float(np.median(medians)),
        mad=float(np.median(mads)),
        n=sum(s.n for s in statistics.values()),
    )


def detect_outliers(
    values: np.ndarray | pd.Series,
    *,
    nmads: float = DEFAULT_NMADS,
    direction: str = "both",
    log: bool = False,
    batch: Optional[np.ndarray | pd.Series | list | BatchSpec] = None,
    subset: Optional[np.ndarray | pd.Series | list] = None,
    min_diff: Optional[float] = None,
    share_medians: bool = False,
    share_mads: bool = False,
    share_missing: bool = True,
    degenerate_policy: str = "collapse",
) -> OutlierResult:
    """
    Flag observations more than nmads MADs from their batch median.

    For every batch, median and MAD are computed from the statistics
    population (batch cells that are non-missing and, if given, inside
    subset), converted to thresholds, and applied to all cells in the batch.
    Results are keyed by batch label, so the order of cells or batches in the
    input does not affect any flag.

    Args:
        values: 1D metric values, one per cell. NaN marks missing.
        nmads: Number of MADs from the median beyond which a value is an outlier.
        direction: "lower", "higher" or "both".
        log: Compute statistics and thresholds on the natural log of values.
        batch: Optional per-cell batch labels (or a resolved BatchSpec).
        subset: Optional boolean mask of cells allowed to contribute to the
            statistics. Cells outside it are still tested.
        min_diff: Minimum distance from the median for an outlier call
            (in transformed space).
        share_medians: Use the median of per-batch medians for every batch.
        share_mads: Use the median of per-batch MADs for every batch.
        share_missing: Batches with no cells in subset borrow the median of
            the other batches' medians and MADs instead of failing.
        degenerate_policy: What to do with a batch whose MAD is zero:
            "collapse" (default) applies the median as the bound, so any
            value strictly beyond it in a tested tail is flagged; "skip"
            flags nothing in the batch. Either way the batch status is
            "degenerate" and a warning is logged.

    Returns:
        OutlierResult with nullable boolean flags (<NA> for missing values;
        infinite values are tested but never enter the statistics),
        per-batch thresholds, statistics and status.

    Raises:
        InvalidDirectionError: Unknown direction.
        LengthMismatchError: batch or subset length differs from values.
    """
    direction = parse_direction(direction)
    if degenerate_policy not in DEGENERATE_POLICIES:
        raise ValueError(
            f"degenerate_policy must be one of {list(DEGENERATE_POLICIES)}, "
            f"got {degenerate_policy!r}"
        )

    if isinstance(values, pd.Series):
        index, name = values.index, values.name
    else:
        index, name = None, None
    vals = transform_metric(values, log=log)
    n = len(vals)
    if index is None:
        index = pd.RangeIndex(n)

    spec = resolve_batch_spec(batch, n)
    reference = _resolve_subset(subset, n)

    statistics: dict[Hashable, RobustStatistics] = {}
    status: dict[Hashable, BatchStatus] = {}
    borrowers: list[Hashable] = []

    for label, mask in spec.masks():
        try:
            statistics[label] = compute_robust_statistics(vals, subset=mask & reference)
        except DegenerateStatisticsError:
            if subset is not None and share_missing:
                borrowers.append(label)
                continue
            logger.warning("Batch %r has no usable observations for %s", label, name)
            status[label] = "insufficient_data"
        except InsufficientDataError as e:
            logger.warning("Batch %r skipped for %s: %s", label, name, e)
            status[label] = "insufficient_data"

    if statistics and (share_medians or share_mads or borrowers):
        shared = _shared_statistics(statistics)
        if share_medians or share_mads:
            statistics = {
                label: RobustStatistics(
                    median=shared.median if share_medians else s.median,
                    mad=shared.mad if share_mads else s.mad,
                    n=s.n,
                )
                for label, s in statistics.items()
            }
        for label in borrowers:
            statistics[label] = RobustStatistics(median=shared.median, mad=shared.mad, n=0)
            status[label] = "borrowed"
    else:
        for label in borrowers:
            logger.warning("Batch %r has no reference batches to borrow from", label)
            status[label] = "insufficient_data"

    flags = np.zeros(n, dtype=bool)
    thresholds: dict[Hashable, ThresholdPair] = {}
    for label, mask in spec.masks():
        robust = statistics.get(label)
        if robust is None:
            continue
        pair = compute_thresholds(
            robust.median,
            robust.mad,
            nmads=nmads,
            direction=direction,
            min_diff=min_diff,
        )
        thresholds[label] = pair
        status.setdefault(label, "ok")
        if robust.is_degenerate and not pair.degenerate:
            logger.debug(
                "Zero MAD for %s in batch %r, bounds set by min_diff=%g",
                name,
                label,
                min_diff,
            )
        if pair.degenerate:
            status[label] = "degenerate"
            logger.warning(
                "Zero MAD for %s in batch %r (median=%g); policy=%s",
                name,
                label,
                robust.median,
                degenerate_policy,
            )
            if degenerate_policy == "skip":
                continue
        flags[mask] = pair.flag(vals[mask])

    out = pd.array(flags, dtype="boolean")
    out[np.isnan(vals)] = pd.NA

    return OutlierResult(
        flags=pd.Series(out, index=index, name=name),
        thresholds=thresholds,
        statistics=statistics,
        status={label: status[label] for label in spec.labels},
        nmads=nmads,
        direction=direction,
        log=log,
        batch_spec=spec,
    )
