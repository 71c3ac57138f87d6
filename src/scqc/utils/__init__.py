"""
Utility functions shared across the QC pipeline.
"""

from .natural_sort import (
    natural_sort,
    natural_sort_key,
    order_batch_labels,
)

__all__ = [
    "natural_sort",
    "natural_sort_key",
    "order_batch_labels",
]
