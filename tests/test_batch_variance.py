import numpy as np
import pandas as pd
import pytest

from scqc.assessment.batch_variance import (
    detect_outliers_two_pass,
    find_problematic_batches,
)
from scqc.assessment.outliers import detect_outliers


@pytest.fixture
def plates(grid50):
    """Five healthy plates and one plate whose cells are all shifted down."""
    values, labels = [], []
    for k in range(1, 6):
        values.append(10 + 0.1 * k + grid50)
        labels += [f"plate{k}"] * len(grid50)
    values.append(4 + grid50)
    labels += ["bad"] * len(grid50)
    return np.concatenate(values), np.array(labels)


def test_bad_plate_thresholds_stand_out(plates):
    values, labels = plates
    first = detect_outliers(values, batch=labels, direction="lower")
    problematic = find_problematic_batches(first)

    assert problematic.labels == ["bad"]
    assert list(problematic.bounds.columns) == ["lower"]
    assert set(problematic.bounds.index) == {f"plate{k}" for k in range(1, 6)} | {"bad"}
    assert set(problematic.results) == {"lower"}


def test_two_pass_borrows_thresholds_for_bad_plate(plates):
    values, labels = plates
    in_bad = labels == "bad"
    res = detect_outliers_two_pass(values, batch=labels, direction="lower")

    # the bad plate passes its own, too permissive, thresholds
    assert not res.first_pass.flags[in_bad].any()
    assert res.problematic.labels == ["bad"]
    assert res.final.status["bad"] == "borrowed"
    assert res.flags[in_bad].all()
    # healthy plates keep their own thresholds
    for k in range(1, 6):
        label = f"plate{k}"
        assert res.final.status[label] == "ok"
        assert res.final.thresholds[label] == res.first_pass.thresholds[label]
    assert not res.flags[~in_bad].any()


def test_two_pass_without_problematic_batches_returns_first_pass(grid50):
    values = np.concatenate([10 + grid50, 10.1 + grid50, 9.9 + grid50, 10.05 + grid50])
    labels = np.repeat(["a", "b", "c", "d"], len(grid50))
    res = detect_outliers_two_pass(values, batch=labels, direction="both")
    assert res.problematic.labels == []
    assert res.final is res.first_pass


def test_both_direction_checks_both_bounds(plates):
    values, labels = plates
    first = detect_outliers(values, batch=labels, direction="both")
    problematic = find_problematic_batches(first)
    assert list(problematic.bounds.columns) == ["lower", "upper"]
    assert problematic.labels == ["bad"]


def test_second_level_parameters_are_configurable(plates):
    values, labels = plates
    first = detect_outliers(values, batch=labels, direction="lower")
    # looking only at the upper tail of the lower bounds finds nothing
    problematic = find_problematic_batches(first, direction="higher")
    assert problematic.labels == []
    # an absurd multiplier finds nothing either
    assert find_problematic_batches(first, nmads=100).labels == []


def test_single_batch_has_nothing_to_compare(grid50):
    first = detect_outliers(grid50, direction="lower")
    problematic = find_problematic_batches(first)
    assert problematic.labels == []
    assert problematic.results["lower"].status == {"all": "insufficient_data"}


def test_unbounded_side_is_ignored(plates):
    values, labels = plates
    first = detect_outliers(values, batch=labels, direction="lower")
    problematic = find_problematic_batches(first, bound="upper")
    assert problematic.labels == []
    assert problematic.bounds["upper"].map(np.isinf).all()


def test_invalid_bound():
    first = detect_outliers([1.0, 2.0, 3.0], batch=["a", "a", "a"])
    with pytest.raises(ValueError):
        find_problematic_batches(first, bound="middle")


def test_borrowed_batches_are_not_compared(plates):
    values, labels = plates
    first = detect_outliers(
        values, batch=labels, direction="lower", subset=pd.Series(labels) != "bad"
    )
    assert first.status["bad"] == "borrowed"
    problematic = find_problematic_batches(first)
    assert "bad" not in problematic.bounds.index
    assert problematic.labels == []
