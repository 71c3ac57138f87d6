"""
Detection of problematic batches from the spread of per-batch thresholds.

If a whole batch is of low quality, its own median and MAD describe the
damaged cells and its thresholds end up too permissive. Treating the
per-batch thresholds as a metric and running outlier detection on them
exposes such batches; a second pass then computes their thresholds from the
remaining batches only.
"""

import logging
from dataclasses import dataclass, field
from typing import Hashable, Optional

import numpy as np
import pandas as pd

from scqc.assessment.batches import LabeledBatches
from scqc.assessment.outliers import OutlierResult, detect_outliers
from scqc.constants import DEFAULT_NMADS

logger = logging.getLogger(__name__)

_BOUNDS = ("lower", "upper")

# Batches whose thresholds were estimated from their own cells.
_OWN_STATUSES = ("ok", "degenerate")


@dataclass
class ProblematicBatches:
    """Batches whose thresholds are outliers among all batches' thresholds."""

    labels: list[Hashable]
    bounds: pd.DataFrame  # one row per batch, one column per bound checked
    results: dict[str, OutlierResult] = field(default_factory=dict)


@dataclass
class TwoPassResult:
    """First pass, problematic batch call, and the final thresholds."""

    first_pass: OutlierResult
    problematic: ProblematicBatches
    final: OutlierResult

    @property
    def flags(self) -> pd.Series:
        return self.final.flags


def _default_bounds(direction: str) -> tuple[str, ...]:
    if direction == "lower":
        return ("lower",)
    if direction == "higher":
        return ("upper",)
    return _BOUNDS


def find_problematic_batches(
    result: OutlierResult,
    *,
    bound: Optional[str] = None,
    nmads: Optional[float] = None,
    direction: Optional[str] = None,
) -> ProblematicBatches:
    """
    Flag batches whose own threshold is an outlier among all batches.

    Each checked bound ("lower" and/or "upper") is collected across batches
    into a vector that is run through detect_outliers as a single implicit
    batch. Only batches with self-estimated thresholds take part; borrowed
    and failed batches are left out.

    Args:
        result: First-pass result computed with batch labels.
        bound: "lower" or "upper". Default follows result.direction
            ("lower" -> lower bound, "higher" -> upper bound, "both" -> both).
        nmads: MAD multiplier for the second level. Default: result.nmads.
        direction: Direction for the second level. Default: result.direction.

    Returns:
        ProblematicBatches with labels in batch order.
    """
    if bound is not None and bound not in _BOUNDS:
        raise ValueError(f"bound must be one of {list(_BOUNDS)}, got {bound!r}")
    bounds = (bound,) if bound is not None else _default_bounds(result.direction)
    nmads = result.nmads if nmads is None else nmads
    direction = result.direction if direction is None else direction

    own = [
        label
        for label, status in result.status.items()
        if status in _OWN_STATUSES and label in result.thresholds
    ]
    table = pd.DataFrame(
        {b: [getattr(result.thresholds[label], b) for label in own] for b in bounds},
        index=pd.Index(own, dtype=object, name="batch"),
    )

    flagged: set = set()
    results: dict[str, OutlierResult] = {}
    for b in bounds:
        col = table[b].replace([np.inf, -np.inf], np.nan)
        level = detect_outliers(col, nmads=nmads, direction=direction)
        results[b] = level
        flagged.update(col.index[level.flags.fillna(False).to_numpy(dtype=bool)])

    labels = [label for label in own if label in flagged]
    if labels:
        logger.info("Problematic batches: %s", labels)
    return ProblematicBatches(labels=labels, bounds=table, results=results)


def detect_outliers_two_pass(
    values: np.ndarray | pd.Series,
    *,
    batch: np.ndarray | pd.Series | list,
    nmads: float = DEFAULT_NMADS,
    direction: str = "both",
    log: bool = False,
    subset: Optional[np.ndarray | pd.Series | list] = None,
    min_diff: Optional[float] = None,
    degenerate_policy: str = "collapse",
    bound: Optional[str] = None,
    second_pass_nmads: Optional[float] = None,
    second_pass_direction: Optional[str] = None,
) -> TwoPassResult:
    """
    Batch outlier detection that excludes problematic batches from the statistics.

    Phase one computes thresholds for every batch. Only once all of them are
    available are problematic batches identified; phase two reruns detection
    with those batches removed from the reference subset, so they borrow
    the median of the remaining batches' medians and MADs.

    Args:
        values: 1D metric values.
        batch: Per-cell batch labels.
        nmads, direction, log, subset, min_diff, degenerate_policy: As for
            detect_outliers.
        bound: Threshold compared across batches (see find_problematic_batches).
        second_pass_nmads: MAD multiplier for the batch-level check.
        second_pass_direction: Direction for the batch-level check.

    Returns:
        TwoPassResult. When no batch is problematic, final is the first pass.
    """
    detector_kwargs = dict(
        nmads=nmads,
        direction=direction,
        log=log,
        min_diff=min_diff,
        degenerate_policy=degenerate_policy,
    )
    first = detect_outliers(values, batch=batch, subset=subset, **detector_kwargs)
    problematic = find_problematic_batches(
        first,
        bound=bound,
        nmads=second_pass_nmads,
        direction=second_pass_direction,
    )
    if not problematic.labels or not isinstance(first.batch_spec, LabeledBatches):
        return TwoPassResult(first_pass=first, problematic=problematic, final=first)

    spec = first.batch_spec
    reference = ~pd.Series(spec.values).isin(problematic.labels).to_numpy()
    if subset is not None:
        reference &= pd.Series(subset).fillna(False).astype(bool).to_numpy()

    final = detect_outliers(
        values,
        batch=spec,
        subset=reference,
        share_missing=True,
        **detector_kwargs,
    )
    return TwoPassResult(first_pass=first, problematic=problematic, final=final)
