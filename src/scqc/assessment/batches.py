"""
Batch specification resolved once at the API boundary.

A metric is either thresholded as one implicit batch or partitioned by
per-cell batch labels. Downstream code iterates over (label, mask) pairs
and never inspects whether a batch argument was supplied.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import Hashable, Iterator, Optional, Union

import numpy as np
import pandas as pd

from scqc.exceptions import LengthMismatchError
from scqc.utils.natural_sort import order_batch_labels

IMPLICIT_BATCH = "all"


@dataclass(frozen=True)
class SingleImplicitBatch:
    """All observations form one batch."""

    n: int

    @property
    def labels(self) -> list[Hashable]:
        return [IMPLICIT_BATCH]

    def masks(self) -> Iterator[tuple[Hashable, np.ndarray]]:
        yield IMPLICIT_BATCH, np.ones(self.n, dtype=bool)


@dataclass(frozen=True)
class LabeledBatches:
    """Observations partitioned by a per-cell batch label."""

    values: np.ndarray = field(repr=False)

    @property
    def n(self) -> int:
        return len(self.values)

    @cached_property
    def labels(self) -> list[Hashable]:
        # cached in the instance __dict__; frozen only blocks __setattr__
        return order_batch_labels(pd.unique(self.values).tolist())

    def masks(self) -> Iterator[tuple[Hashable, np.ndarray]]:
        for label in self.labels:
            yield label, self.values == label


BatchSpec = Union[SingleImplicitBatch, LabeledBatches]


def resolve_batch_spec(
    batch: Optional[Union[np.ndarray, pd.Series, list, BatchSpec]],
    n: int,
) -> BatchSpec:
    """
    Turn an optional per-cell label vector into a BatchSpec.

    Args:
        batch: None, an existing BatchSpec, or a sequence of labels.
        n: Number of observations the labels must cover.

    Returns:
        SingleImplicitBatch when batch is None, otherwise LabeledBatches.

    Raises:
        LengthMismatchError: Labels do not have length n.
        ValueError: Some labels are missing.
    """
    if batch is None:
        return SingleImplicitBatch(n)
    if isinstance(batch, (SingleImplicitBatch, LabeledBatches)):
        if batch.n != n:
            raise LengthMismatchError(f"Batch spec covers {batch.n} cells, expected {n}")
        return batch

    labels = np.asarray(pd.Series(batch).astype(object))
    if len(labels) != n:
        raise LengthMismatchError(
            f"Batch labels have length {len(labels)}, metric has length {n}"
        )
    if pd.isna(labels).any():
        raise ValueError("Batch labels must not contain missing values")
    return LabeledBatches(labels)
