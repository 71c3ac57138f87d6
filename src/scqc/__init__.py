"""
scqc - Outlier-based quality control for single-cell data

Median/MAD outlier thresholds for per-cell QC metrics, with batch-aware
statistics, reference-subset sharing across batches, problematic batch
detection, and multi-metric discard bookkeeping.
"""

from .assessment import (
    MetricFilter,
    OutlierResult,
    QCFilterResult,
    ThresholdPair,
    combine_outlier_filters,
    compute_robust_statistics,
    compute_thresholds,
    detect_outliers,
    detect_outliers_two_pass,
    find_problematic_batches,
    per_cell_qc_filters,
    transform_metric,
)
from .data import (
    get_batch_labels,
    get_metric_vector,
    load_qc_metrics,
)
from .exceptions import (
    DegenerateStatisticsError,
    InsufficientDataError,
    InvalidDirectionError,
    LengthMismatchError,
    QCError,
)
from .processing import (
    quick_per_cell_qc,
    split_by_discard,
    summarize_discards,
)

__version__ = "0.1.0"

__all__ = [
    "DegenerateStatisticsError",
    "InsufficientDataError",
    "InvalidDirectionError",
    "LengthMismatchError",
    "MetricFilter",
    "OutlierResult",
    "QCError",
    "QCFilterResult",
    "ThresholdPair",
    "combine_outlier_filters",
    "compute_robust_statistics",
    "compute_thresholds",
    "detect_outliers",
    "detect_outliers_two_pass",
    "find_problematic_batches",
    "get_batch_labels",
    "get_metric_vector",
    "load_qc_metrics",
    "per_cell_qc_filters",
    "quick_per_cell_qc",
    "split_by_discard",
    "summarize_discards",
    "transform_metric",
    "__version__",
]
