"""
Applying QC decisions: splitting tables and summarising discards.
"""

from .filters import (
    quick_per_cell_qc,
    split_by_discard,
    summarize_discards,
)

__all__ = [
    "quick_per_cell_qc",
    "split_by_discard",
    "summarize_discards",
]
