"""
Exception hierarchy for QC thresholding.

Caller contract violations (bad direction, mismatched lengths) are raised
immediately. Data conditions intrinsic to one batch (no spread, too few
cells) are raised by the statistics layer and converted to a per-batch
status by the detector, so other batches keep going.
"""


class QCError(ValueError):
    """Base class for all scqc errors."""


class InvalidDirectionError(QCError):
    """Direction is not one of "lower", "higher" or "both"."""


class LengthMismatchError(QCError):
    """Metric, batch and subset vectors do not have the same length."""


class DegenerateStatisticsError(QCError):
    """Statistics population is empty, all missing, or has zero MAD."""


class InsufficientDataError(QCError):
    """Too few usable observations to estimate a median and MAD."""

    def __init__(self, n_observations: int, minimum: int):
        self.n_observations = n_observations
        self.minimum = minimum
        super().__init__(
            f"Need at least {minimum} non-missing observations, got {n_observations}"
        )
