"""
Shared fixtures: seeded, deterministic series for the time-series tests.
"""
from typing import Tuple

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def delayed_pair() -> Tuple[pd.Series, pd.Series]:
    """
    Output is a noisy copy of the input delayed by 3 periods:
    output[t] = 0.6 * input[t-3] + 0.8 * noise[t], 200 observations.
    """
    gen = np.random.default_rng(7)
    n, delay = 200, 3
    x = gen.normal(size=n + delay)
    noise = gen.normal(size=n)
    idx = pd.RangeIndex(n)
    input_s = pd.Series(x[delay:], index=idx, name="cases")
    output_s = pd.Series(0.6 * x[:-delay] + 0.8 * noise, index=idx, name="deaths")
    return input_s, output_s


@pytest.fixture
def white_noise_pair() -> Tuple[pd.Series, pd.Series]:
    """Two independent white-noise series of length 500."""
    gen = np.random.default_rng(2020)
    idx = pd.RangeIndex(500)
    return (
        pd.Series(gen.normal(size=500), index=idx, name="a"),
        pd.Series(gen.normal(size=500), index=idx, name="b"),
    )


@pytest.fixture
def daily_frame(delayed_pair) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """The delayed pair as DataFrames with a 'date' column and a label column."""
    input_s, output_s = delayed_pair
    dates = pd.date_range("2020-03-22", periods=len(input_s), freq="D")
    input_df = pd.DataFrame({"date": dates, "state": "OH", "cases": input_s.to_numpy()})
    output_df = pd.DataFrame({"date": dates, "state": "OH", "deaths": output_s.to_numpy()})
    return input_df, output_df
