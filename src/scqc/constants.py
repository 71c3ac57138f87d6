"""
Shared constants and default QC filter settings.
"""

# Consistency constant for MAD under normality: 1 / Phi^-1(3/4).
MAD_SCALE = 1.4826

DEFAULT_NMADS = 3.0

# Fewer usable observations than this and a batch cannot be thresholded.
MIN_OBSERVATIONS = 2

DIRECTIONS = ("lower", "higher", "both")

DEGENERATE_POLICIES = ("skip", "collapse")

# Column names produced by the usual per-cell QC metric calculation.
DEFAULT_SUM_COL = "sum"
DEFAULT_DETECTED_COL = "detected"
DEFAULT_BATCH_COL = "sample"

# Reason names reported by per_cell_qc_filters.
LOW_LIB_SIZE = "low_lib_size"
LOW_N_FEATURES = "low_n_features"
DISCARD_COL = "discard"
