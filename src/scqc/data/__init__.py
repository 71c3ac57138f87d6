"""
QC metric loading and typed column access (load_qc_metrics, get_metric_vector, etc.).
"""

from .io import (
    get_batch_labels,
    get_metric_vector,
    load_qc_metrics,
)

__all__ = [
    "get_batch_labels",
    "get_metric_vector",
    "load_qc_metrics",
]
