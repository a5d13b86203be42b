"""
Tests for the differencing-order oracles and seasonal-period inference.
"""
import numpy as np
import pandas as pd
import pytest

from ebtools.ts.stationarity import (
    infer_period,
    seasonal_strength,
    unitroot_ndiffs,
    unitroot_nsdiffs,
)


@pytest.fixture
def seasonal_series() -> pd.Series:
    """An exactly repeating 12-period pattern: one seasonal difference removes it."""
    pattern = np.array([1, 5, 3, 8, 2, 9, 4, 7, 6, 0, 2, 5], dtype=float)
    return pd.Series(np.tile(pattern, 20))


def test_ndiffs_constant_series_needs_none() -> None:
    assert unitroot_ndiffs(pd.Series(np.full(100, 3.0))) == 0


def test_ndiffs_linear_trend_needs_one() -> None:
    assert unitroot_ndiffs(pd.Series(np.arange(200, dtype=float))) == 1


def test_ndiffs_quadratic_trend_needs_two() -> None:
    t = np.arange(200, dtype=float)
    assert unitroot_ndiffs(pd.Series(t ** 2)) == 2


def test_ndiffs_random_walk_needs_at_least_one(rng: np.random.Generator) -> None:
    walk = pd.Series(np.cumsum(rng.normal(size=400)))
    assert unitroot_ndiffs(walk) >= 1


def test_nsdiffs_non_seasonal_period_is_zero(seasonal_series: pd.Series) -> None:
    assert unitroot_nsdiffs(seasonal_series, period=1) == 0


def test_nsdiffs_repeating_pattern_needs_one(seasonal_series: pd.Series) -> None:
    assert seasonal_strength(seasonal_series, 12) >= 0.64
    assert unitroot_nsdiffs(seasonal_series, period=12) == 1


def test_nsdiffs_short_series_is_zero() -> None:
    assert unitroot_nsdiffs(pd.Series(np.arange(20, dtype=float)), period=12) == 0


def test_seasonal_strength_needs_two_periods() -> None:
    with pytest.raises(ValueError):
        seasonal_strength(pd.Series(np.arange(10, dtype=float)), 12)


@pytest.mark.parametrize(
    "index, expected",
    [
        (pd.date_range("2020-01-01", periods=30, freq="D"), 7),
        (pd.date_range("2020-01-01", periods=30, freq="MS"), 12),
        (pd.date_range("2020-01-05", periods=30, freq="W-SUN"), 52),
        (pd.period_range("2020Q1", periods=12, freq="Q"), 4),
        (pd.period_range("2020-01", periods=12, freq="M"), 12),
        (pd.date_range("2020-01-01", periods=30, freq="2D"), 1),
        (pd.RangeIndex(30), 1),
    ],
)
def test_infer_period(index: pd.Index, expected: int) -> None:
    assert infer_period(index) == expected


def test_infer_period_without_explicit_freq() -> None:
    idx = pd.DatetimeIndex(["2021-01-01", "2021-01-02", "2021-01-03", "2021-01-04"])
    assert infer_period(idx) == 7
