import math

import numpy as np
import pandas as pd
import pytest

from scqc.assessment.qc_filters import (
    MetricFilter,
    combine_outlier_filters,
    per_cell_qc_filters,
)
from scqc.exceptions import InvalidDirectionError, LengthMismatchError

MITO = "subsets_Mito_percent"


def _flagged(series: pd.Series) -> list:
    return list(series.index[series.fillna(False).to_numpy(dtype=bool)])


def test_per_cell_qc_filters_reasons(qc_metrics):
    res = per_cell_qc_filters(qc_metrics, subset_cols=[MITO], batch="sample")

    assert list(res.reasons) == ["low_lib_size", "low_n_features", f"high_{MITO}"]
    assert _flagged(res.reasons["low_lib_size"]) == ["cell0"]
    assert _flagged(res.reasons["low_n_features"]) == ["cell2"]
    assert _flagged(res.reasons[f"high_{MITO}"]) == ["cell1"]
    assert _flagged(res.discard) == ["cell0", "cell1", "cell2"]
    assert res.discard.name == "discard"
    assert res.failed_batches == {}


def test_reasons_frame(qc_metrics):
    res = per_cell_qc_filters(qc_metrics, subset_cols=[MITO], batch="sample")
    frame = res.reasons_frame()
    assert list(frame.columns) == [
        "low_lib_size",
        "low_n_features",
        f"high_{MITO}",
        "discard",
    ]
    assert frame.index.equals(qc_metrics.index)
    assert frame.sum().tolist() == [1, 1, 1, 3]


def test_thresholds_frame(qc_metrics):
    res = per_cell_qc_filters(qc_metrics, subset_cols=[MITO], batch="sample")
    frame = res.thresholds_frame()

    assert len(frame) == 6
    lib = frame[frame["reason"] == "low_lib_size"].set_index("batch")
    assert lib["log"].all()
    assert lib.loc["s2", "lower"] == pytest.approx(7.4)
    assert math.exp(lib.loc["s2", "lower"]) == pytest.approx(math.exp(7.4))
    assert np.isinf(lib["higher"]).all()
    mito = frame[frame["reason"] == f"high_{MITO}"]
    assert not mito["log"].any()
    assert np.isinf(mito["lower"]).all()
    assert set(frame["status"]) == {"ok"}


def test_combined_discard_is_three_valued_or():
    res = combine_outlier_filters(
        {"a": [1, 2, 3, np.nan, 100, 2], "b": [1, 1, 2, 2, 3, np.nan]},
        {"a": {"direction": "higher"}, "b": {"direction": "higher"}},
    )
    assert list(res.reasons) == ["high_a", "high_b"]
    discard = res.discard
    assert discard.dtype == "boolean"
    assert discard.isna().tolist() == [False, False, False, True, False, True]
    assert bool(discard.iloc[4])
    assert not discard.iloc[:3].any()


def test_each_reason_is_computed_independently():
    metrics = pd.DataFrame({"a": [1, 2, 2, 3, 3, 3, 4, 4, 5, 100], "zeros": [0.0] * 10})
    res = combine_outlier_filters(
        metrics,
        [MetricFilter("a", "higher"), MetricFilter("zeros", "higher")],
    )
    assert res.failed_batches == {"high_zeros": ["all"]}
    assert _flagged(res.discard) == [9]


def test_batch_labels_from_column(qc_metrics):
    res = combine_outlier_filters(
        qc_metrics, [MetricFilter("sum", "lower", log=True)], batch="sample"
    )
    assert list(res.results["low_sum"].thresholds) == ["s1", "s2"]


def test_reason_names():
    assert MetricFilter("sum", "lower").reason_name == "low_sum"
    assert MetricFilter("pct", "higher").reason_name == "high_pct"
    assert MetricFilter("x").reason_name == "outlier_x"
    assert MetricFilter("x", reason="custom").reason_name == "custom"


def test_unknown_metric_is_fatal(qc_metrics):
    with pytest.raises(ValueError, match="not in DataFrame"):
        combine_outlier_filters(qc_metrics, [MetricFilter("nope", "lower")])


def test_invalid_direction_is_fatal_before_any_work(qc_metrics):
    with pytest.raises(InvalidDirectionError):
        combine_outlier_filters(
            qc_metrics,
            {"sum": {"direction": "lower"}, "detected": {"direction": "down"}},
        )


def test_duplicate_reason_rejected(qc_metrics):
    with pytest.raises(ValueError, match="Duplicate"):
        combine_outlier_filters(
            qc_metrics, [MetricFilter("sum", "lower"), MetricFilter("sum", "lower", nmads=5)]
        )


def test_no_filters_rejected(qc_metrics):
    with pytest.raises(ValueError):
        combine_outlier_filters(qc_metrics, [])


def test_mapping_length_mismatch():
    with pytest.raises(LengthMismatchError):
        combine_outlier_filters({"a": [1, 2, 3], "b": [1, 2]}, [MetricFilter("a")])
