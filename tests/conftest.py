"""Shared fixtures: deterministic, normal-shaped QC metrics."""

import numpy as np
import pandas as pd
import pytest
from scipy import stats


def normal_grid(n: int, lo: float = 0.01, hi: float = 0.99) -> np.ndarray:
    """Evenly spaced standard normal quantiles (a noise-free 'sample')."""
    return stats.norm.ppf(np.linspace(lo, hi, n))


@pytest.fixture
def grid50() -> np.ndarray:
    return normal_grid(50)


@pytest.fixture
def qc_metrics(grid50) -> pd.DataFrame:
    """Two samples of 50 cells; cells 0-2 of s1 are damaged in one metric each."""
    frames = []
    for sample in ("s1", "s2"):
        frames.append(
            pd.DataFrame(
                {
                    "sum": np.exp(8 + 0.2 * grid50),
                    "detected": np.exp(7 + 0.2 * grid50),
                    "subsets_Mito_percent": 5 + grid50,
                    "sample": sample,
                }
            )
        )
    df = pd.concat(frames, ignore_index=True)
    df.index = [f"cell{i}" for i in range(len(df))]
    df.loc["cell0", "sum"] = 10.0
    df.loc["cell1", "subsets_Mito_percent"] = 50.0
    df.loc["cell2", "detected"] = 5.0
    return df
