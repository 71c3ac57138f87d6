"""
Multi-metric QC filtering.

Runs batch-aware outlier detection independently for each configured
metric and unions the per-metric outlier calls into a single discard
decision, keeping each reason available for auditing.
"""

import logging
from dataclasses import dataclass
from typing import Hashable, Iterable, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from scqc.assessment.outliers import OutlierResult, detect_outliers
from scqc.assessment.thresholds import parse_direction
from scqc.constants import (
    DEFAULT_DETECTED_COL,
    DEFAULT_NMADS,
    DEFAULT_SUM_COL,
    DISCARD_COL,
    LOW_LIB_SIZE,
    LOW_N_FEATURES,
)
from scqc.data.io import get_batch_labels, get_metric_vector
from scqc.exceptions import LengthMismatchError
from scqc.utils.natural_sort import order_batch_labels

logger = logging.getLogger(__name__)

_REASON_PREFIX = {"lower": "low", "higher": "high", "both": "outlier"}


@dataclass(frozen=True)
class MetricFilter:
    """Outlier filter settings for one QC metric."""

    metric: str
    direction: str = "both"
    nmads: float = DEFAULT_NMADS
    log: bool = False
    min_diff: Optional[float] = None
    reason: Optional[str] = None

    @property
    def reason_name(self) -> str:
        if self.reason:
            return self.reason
        return f"{_REASON_PREFIX.get(self.direction, 'outlier')}_{self.metric}"


@dataclass
class QCFilterResult:
    """Per-reason outlier flags and their union."""

    reasons: dict[str, pd.Series]
    discard: pd.Series
    results: dict[str, OutlierResult]
    filters: dict[str, MetricFilter]

    def reasons_frame(self) -> pd.DataFrame:
        """One nullable boolean column per reason plus the combined discard."""
        frame = pd.DataFrame(self.reasons)
        frame[DISCARD_COL] = self.discard
        return frame

    def thresholds_frame(self) -> pd.DataFrame:
        """
        Long table of thresholds: reason, metric, batch, lower, higher, log, status.

        Thresholds are reported in the space they were computed in; rows with
        log=True need exponentiating for display.
        """
        rows: list[dict] = []
        for reason, res in self.results.items():
            for batch in order_batch_labels(list(res.status)):
                pair = res.thresholds.get(batch)
                rows.append(
                    {
                        "reason": reason,
                        "metric": self.filters[reason].metric,
                        "batch": batch,
                        "lower": pair.lower if pair is not None else np.nan,
                        "higher": pair.upper if pair is not None else np.nan,
                        "log": res.log,
                        "status": res.status[batch],
                    }
                )
        return pd.DataFrame(
            rows,
            columns=["reason", "metric", "batch", "lower", "higher", "log", "status"],
        )

    @property
    def failed_batches(self) -> dict[str, list[Hashable]]:
        return {r: res.failed_batches for r, res in self.results.items() if res.failed_batches}


def _as_frame(metrics: Union[pd.DataFrame, Mapping[str, Sequence[float]]]) -> pd.DataFrame:
    if isinstance(metrics, pd.DataFrame):
        return metrics
    lengths = {name: len(v) for name, v in metrics.items()}
    if len(set(lengths.values())) > 1:
        raise LengthMismatchError(f"Metric vectors differ in length: {lengths}")
    return pd.DataFrame({name: np.asarray(v, dtype=float) for name, v in metrics.items()})


def _as_filters(
    filters: Union[Iterable[MetricFilter], Mapping[str, Union[MetricFilter, dict]]],
) -> list[MetricFilter]:
    if isinstance(filters, Mapping):
        out = []
        for name, cfg in filters.items():
            if isinstance(cfg, MetricFilter):
                out.append(cfg)
            else:
                out.append(MetricFilter(metric=name, **cfg))
        return out
    return list(filters)


def _resolve_batch(df: pd.DataFrame, batch):
    if isinstance(batch, str):
        return get_batch_labels(df, batch)
    return batch


def combine_outlier_filters(
    metrics: Union[pd.DataFrame, Mapping[str, Sequence[float]]],
    filters: Union[Iterable[MetricFilter], Mapping[str, Union[MetricFilter, dict]]],
    *,
    batch=None,
    subset=None,
    **detector_kwargs,
) -> QCFilterResult:
    """
    Apply one outlier filter per metric and combine them into a discard flag.

    Configuration is validated for every metric before anything is computed,
    so a bad direction or unknown column fails the whole call. Data problems
    inside a batch (zero MAD, too few cells) only affect that metric and
    batch and are reported through the per-metric results.

    Args:
        metrics: DataFrame of QC metrics, or a mapping of metric name to values.
        filters: MetricFilter objects, or a mapping of metric name to a
            MetricFilter or a dict of MetricFilter keyword arguments.
        batch: Per-cell batch labels, or the name of a column in metrics.
        subset: Optional reference subset mask (see detect_outliers).
        **detector_kwargs: Passed to detect_outliers (share_medians,
            share_mads, share_missing, degenerate_policy).

    Returns:
        QCFilterResult. discard is the three-valued OR of all reasons: True
        if any reason is True, <NA> if none is True but some are unknown.

    Example:
        >>> result = combine_outlier_filters(
        ...     df,
        ...     {"sum": {"direction": "lower", "log": True},
        ...      "subsets_Mito_percent": {"direction": "higher"}},
        ...     batch="sample",
        ... )
        >>> result.reasons_frame().sum()
    """
    df = _as_frame(metrics)
    filter_list = _as_filters(filters)
    if not filter_list:
        raise ValueError("At least one metric filter is required")

    by_reason: dict[str, MetricFilter] = {}
    for f in filter_list:
        parse_direction(f.direction)
        if f.metric not in df.columns:
            raise ValueError(
                f"metric '{f.metric}' not in DataFrame. Available: {list(df.columns)}"
            )
        if f.reason_name in by_reason:
            raise ValueError(f"Duplicate reason name '{f.reason_name}'")
        by_reason[f.reason_name] = f

    batch = _resolve_batch(df, batch)

    results: dict[str, OutlierResult] = {}
    reasons: dict[str, pd.Series] = {}
    for reason, f in by_reason.items():
        res = detect_outliers(
            get_metric_vector(df, f.metric),
            nmads=f.nmads,
            direction=f.direction,
            log=f.log,
            min_diff=f.min_diff,
            batch=batch,
            subset=subset,
            **detector_kwargs,
        )
        results[reason] = res
        reasons[reason] = res.flags.rename(reason)
        logger.debug("%s: %d outliers", reason, res.n_outliers)

    discard = pd.Series(False, index=df.index, dtype="boolean", name=DISCARD_COL)
    for flags in reasons.values():
        discard = discard | flags

    logger.info(
        "Discarding %d of %d cells (%s)",
        int(discard.fillna(False).sum()),
        len(discard),
        ", ".join(f"{r}={int(v.fillna(False).sum())}" for r, v in reasons.items()),
    )
    return QCFilterResult(
        reasons=reasons,
        discard=discard.rename(DISCARD_COL),
        results=results,
        filters=by_reason,
    )


def per_cell_qc_filters(
    metrics: pd.DataFrame,
    *,
    sum_col: str = DEFAULT_SUM_COL,
    detected_col: str = DEFAULT_DETECTED_COL,
    subset_cols: Sequence[str] = (),
    nmads: float = DEFAULT_NMADS,
    batch=None,
    subset=None,
    **detector_kwargs,
) -> QCFilterResult:
    """
    Standard per-cell QC outlier filters.

    - low_lib_size: log library size, lower tail.
    - low_n_features: log number of detected features, lower tail.
    - high_<col>: each entry of subset_cols (e.g. mitochondrial percentage),
      higher tail, untransformed.

    Args:
        metrics: Per-cell QC metric DataFrame.
        sum_col: Library size column.
        detected_col: Detected-features column.
        subset_cols: Percentage columns for feature subsets (mito, spike-ins).
        nmads: MAD multiplier used for every filter.
        batch: Per-cell batch labels or a column name in metrics.
        subset: Optional reference subset mask.
        **detector_kwargs: Passed through to detect_outliers.

    Returns:
        QCFilterResult with the reasons above and the combined discard.
    """
    filters = [
        MetricFilter(sum_col, "lower", nmads, log=True, reason=LOW_LIB_SIZE),
        MetricFilter(detected_col, "lower", nmads, log=True, reason=LOW_N_FEATURES),
    ]
    filters.extend(MetricFilter(col, "higher", nmads, reason=f"high_{col}") for col in subset_cols)
    return combine_outlier_filters(
        metrics, filters, batch=batch, subset=subset, **detector_kwargs
    )
