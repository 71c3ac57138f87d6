"""
QC assessment: robust statistics, thresholds and batch-aware outlier calls.

Provides the statistical machinery for per-cell QC filtering without
hardcoding biological cutoffs: every threshold is derived from the data.
"""

from .batch_variance import (
    ProblematicBatches,
    TwoPassResult,
    detect_outliers_two_pass,
    find_problematic_batches,
)
from .batches import (
    BatchSpec,
    LabeledBatches,
    SingleImplicitBatch,
    resolve_batch_spec,
)
from .outliers import OutlierResult, detect_outliers
from .qc_filters import (
    MetricFilter,
    QCFilterResult,
    combine_outlier_filters,
    per_cell_qc_filters,
)
from .robust_stats import RobustStatistics, compute_robust_statistics
from .thresholds import ThresholdPair, compute_thresholds, parse_direction
from .transform import transform_metric

__all__ = [
    "BatchSpec",
    "LabeledBatches",
    "MetricFilter",
    "OutlierResult",
    "ProblematicBatches",
    "QCFilterResult",
    "RobustStatistics",
    "SingleImplicitBatch",
    "ThresholdPair",
    "TwoPassResult",
    "combine_outlier_filters",
    "compute_robust_statistics",
    "compute_thresholds",
    "detect_outliers",
    "detect_outliers_two_pass",
    "find_problematic_batches",
    "parse_direction",
    "per_cell_qc_filters",
    "resolve_batch_spec",
    "transform_metric",
]
