import math

import numpy as np
import pytest

from scqc.assessment.thresholds import ThresholdPair, compute_thresholds, parse_direction
from scqc.exceptions import InvalidDirectionError


def test_both_bounds():
    pair = compute_thresholds(10.0, 2.0, nmads=3, direction="both")
    assert pair == ThresholdPair(lower=4.0, upper=16.0, degenerate=False)


def test_lower_direction_has_unbounded_upper():
    pair = compute_thresholds(10.0, 2.0, direction="lower")
    assert pair.lower == 4.0
    assert pair.upper == math.inf


def test_higher_direction_has_unbounded_lower():
    pair = compute_thresholds(10.0, 2.0, direction="higher")
    assert pair.lower == -math.inf
    assert pair.upper == 16.0


def test_zero_mad_collapses_to_median_and_is_degenerate():
    pair = compute_thresholds(5.0, 0.0, direction="both")
    assert pair.degenerate
    assert pair.lower == pair.upper == 5.0


def test_min_diff_widens_small_spread():
    pair = compute_thresholds(5.0, 0.1, nmads=3, direction="both", min_diff=2.0)
    assert pair.lower == 3.0
    assert pair.upper == 7.0
    assert not pair.degenerate


def test_min_diff_rescues_zero_mad():
    pair = compute_thresholds(5.0, 0.0, direction="higher", min_diff=1.0)
    assert pair.upper == 6.0
    assert not pair.degenerate


def test_min_diff_does_not_shrink_bounds():
    pair = compute_thresholds(5.0, 1.0, nmads=3, direction="both", min_diff=0.5)
    assert (pair.lower, pair.upper) == (2.0, 8.0)


def test_flag():
    pair = ThresholdPair(lower=1.0, upper=2.0)
    assert pair.flag(0.5)
    assert pair.flag(2.5)
    assert not pair.flag(1.0)
    assert not pair.flag(2.0)


def test_flag_array_leaves_nan_unflagged():
    pair = ThresholdPair(lower=1.0, upper=2.0)
    out = pair.flag(np.array([0.5, 1.5, np.nan, np.inf]))
    np.testing.assert_array_equal(out, [True, False, False, True])


def test_exp_back_transforms_log_bounds():
    pair = compute_thresholds(0.0, 1.0, nmads=1, direction="lower").exp()
    assert pair.lower == pytest.approx(math.exp(-1))
    assert pair.upper == math.inf
    assert ThresholdPair(-math.inf, 0.0).exp().lower == 0.0


@pytest.mark.parametrize("direction", ["upper", "LOWER", "", None, 1])
def test_invalid_direction(direction):
    with pytest.raises(InvalidDirectionError):
        parse_direction(direction)
    with pytest.raises(ValueError):
        compute_thresholds(0.0, 1.0, direction=direction)


def test_negative_nmads_rejected():
    with pytest.raises(ValueError):
        compute_thresholds(0.0, 1.0, nmads=-1)
