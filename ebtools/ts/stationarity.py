# ebtools/ts/stationarity.py
"""
Differencing-order oracles for a single series:
- unitroot_ndiffs(...)   number of first differences (repeated KPSS tests)
- unitroot_nsdiffs(...)  number of seasonal differences (STL seasonal strength)
- seasonal_strength(...)
- infer_period(...)      seasonal period implied by a time index

Both oracles follow the feature definitions of Hyndman & Athanasopoulos,
Forecasting: Principles and Practice (3rd ed.), section 9.1, and are
deterministic for a given series.
"""

from __future__ import annotations
import re
import warnings
import numpy as np
import pandas as pd
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.seasonal import STL
from statsmodels.tsa.stattools import kpss

from ebtools.config import (
    FREQ_TO_PERIOD,
    KPSS_ALPHA,
    MAX_DIFFS,
    SEASONAL_STRENGTH_THRESHOLD,
)
from ebtools.ts.transforms import difference

__all__ = [
    "kpss_pvalue",
    "seasonal_strength",
    "unitroot_ndiffs",
    "unitroot_nsdiffs",
    "infer_period",
]

# ----------------- Seasonal period -----------------
def infer_period(index: pd.Index) -> int:
    """
    Seasonal period of a regularly spaced index: 7 for daily data, 12 for
    monthly, 4 for quarterly, 52 for weekly, 24 for hourly. Integer indexes,
    multiplied frequencies ("2D") and anything unmapped are non-seasonal (1).
    """
    freq = None
    if isinstance(index, pd.PeriodIndex):
        freq = index.freqstr
    elif isinstance(index, pd.DatetimeIndex):
        freq = index.freqstr if index.freq is not None else None
        if freq is None and len(index) >= 3:
            freq = pd.infer_freq(index)
    if not freq:
        return 1

    m = re.match(r"^(\d*)([A-Za-z]+)", freq)
    if m is None:
        return 1
    mult, base = m.group(1), m.group(2)
    if mult not in ("", "1"):
        return 1
    return int(FREQ_TO_PERIOD.get(base, 1))

# ----------------- KPSS -----------------
def kpss_pvalue(s: pd.Series) -> float:
    """KPSS level-stationarity p-value (table-interpolated, clipped to [0.01, 0.1])."""
    x = pd.Series(s).astype(float).dropna()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", InterpolationWarning)
        _, p, _, _ = kpss(x.to_numpy(), regression="c", nlags="auto")
    return float(p)

def unitroot_ndiffs(s: pd.Series, alpha: float = KPSS_ALPHA, max_diffs: int = MAX_DIFFS) -> int:
    """
    Smallest d in 0..max_diffs such that the d-times differenced series is not
    rejected as level-stationary by KPSS at `alpha`.
    """
    x = pd.Series(s).astype(float).dropna()
    for d in range(max_diffs + 1):
        xd = difference(x, d).dropna()
        # nothing left to test, or a constant series: call it stationary
        if len(xd) < 3 or not np.isfinite(xd.std()) or xd.std() == 0:
            return d
        if kpss_pvalue(xd) >= alpha:
            return d
    return max_diffs

# ----------------- Seasonal strength -----------------
def seasonal_strength(s: pd.Series, period: int) -> float:
    """
    STL seasonal strength F_s = max(0, 1 - Var(R) / Var(S + R)).
    Needs period >= 2 and at least two full periods of data.
    """
    x = pd.Series(s).astype(float).dropna().to_numpy()
    if period < 2 or len(x) < 2 * period + 1:
        raise ValueError("seasonal_strength needs period >= 2 and two full periods of data.")
    res = STL(x, period=period, seasonal=13).fit()
    resid = np.asarray(res.resid)
    detrended = resid + np.asarray(res.seasonal)
    denom = np.var(detrended)
    if not np.isfinite(denom) or denom == 0:
        return 0.0
    return float(max(0.0, 1.0 - np.var(resid) / denom))

def unitroot_nsdiffs(
    s: pd.Series,
    period: int,
    threshold: float = SEASONAL_STRENGTH_THRESHOLD,
    max_diffs: int = MAX_DIFFS,
) -> int:
    """
    Smallest D in 0..max_diffs such that the D-times seasonally differenced
    series has STL seasonal strength below `threshold`. Non-seasonal data
    (period <= 1) or series too short to decompose give 0 further differences.
    """
    if period is None or period <= 1:
        return 0
    x = pd.Series(s).astype(float).dropna()
    for D in range(max_diffs + 1):
        xd = difference(x, D, lag=period).dropna()
        if len(xd) < 2 * period + 1:
            return D
        if seasonal_strength(xd, period) < threshold:
            return D
    return max_diffs
