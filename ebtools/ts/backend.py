# ebtools/ts/backend.py
"""
Numerical primitives consumed by the prewhitening pipeline, behind one small
interface so another statistics library can be swapped in without touching
pipeline logic.

Public API:
- StatsBackend          the interface (typing.Protocol)
- StatsmodelsBackend    default implementation (statsmodels + pandas)
- cross_correlation(...)
- fit_ar_bic(...)
"""

from __future__ import annotations
from typing import Protocol, Sequence
import numpy as np
import pandas as pd
from statsmodels.tsa.ar_model import AutoReg
from statsmodels.tsa.stattools import ccf as sm_ccf

from ebtools.exceptions import InsufficientHistory
from ebtools.ts.stationarity import unitroot_ndiffs, unitroot_nsdiffs
from ebtools.ts.transforms import ar_filter, difference

__all__ = [
    "StatsBackend",
    "StatsmodelsBackend",
    "cross_correlation",
    "fit_ar_bic",
]


class StatsBackend(Protocol):
    def nsdiffs(self, s: pd.Series, period: int) -> int: ...
    def ndiffs(self, s: pd.Series) -> int: ...
    def difference(self, s: pd.Series, order: int, lag: int = 1) -> pd.Series: ...
    def fit_ar(self, s: pd.Series, max_order: int, ic: str = "bic") -> np.ndarray: ...
    def ar_filter(self, s: pd.Series, coefs: Sequence[float]) -> pd.Series: ...
    def ccf(self, x: pd.Series, y: pd.Series, max_lag: int) -> pd.Series: ...


def fit_ar_bic(s: pd.Series, max_order: int, ic: str = "bic") -> np.ndarray:
    """
    Fit AR(p) with an intercept for p = 1..max_order on a common estimation
    sample and return the AR coefficients [a_1, ..., a_p] of the order with
    the smallest information criterion. Missing values are dropped first.
    """
    if ic not in ("bic", "aic", "hqic"):
        raise ValueError("ic must be 'bic', 'aic' or 'hqic'.")
    y = pd.Series(s).astype(float).dropna().to_numpy()
    if max_order < 1:
        raise InsufficientHistory("max_order must be at least 1 to fit an AR model.")
    # each candidate needs p lags + intercept + at least one residual dof
    if len(y) - max_order < max_order + 2:
        raise InsufficientHistory(
            f"{len(y)} observations cannot support an AR order search up to {max_order}."
        )

    best, best_ic = None, np.inf
    for p in range(1, max_order + 1):
        res = AutoReg(y, lags=p, trend="c", hold_back=max_order).fit()
        score = float(getattr(res, ic))
        if score < best_ic:
            best, best_ic = res, score
    # params = [const, a_1, ..., a_p]
    return np.asarray(best.params[1:], dtype=np.float64)


def cross_correlation(x: pd.Series, y: pd.Series, max_lag: int) -> pd.Series:
    """
    Sample cross-correlation of equal-length, aligned x and y for lags
    -max_lag..max_lag. The value at lag k estimates corr(x[t+k], y[t]), with
    full-sample means and the biased (1/n) covariance, so every value lies in
    [-1, 1].
    """
    xv = np.asarray(x, dtype=np.float64)
    yv = np.asarray(y, dtype=np.float64)
    if len(xv) != len(yv):
        raise ValueError("x and y must be aligned and of equal length.")
    max_lag = min(int(max_lag), len(xv) - 1)
    # statsmodels only returns k >= 0; negative lags are the reversed pair
    pos = sm_ccf(xv, yv, adjusted=False, fft=False)[: max_lag + 1]
    neg = sm_ccf(yv, xv, adjusted=False, fft=False)[1 : max_lag + 1]
    values = np.concatenate([neg[::-1], pos])
    lags = pd.RangeIndex(-max_lag, max_lag + 1, name="lag")
    return pd.Series(values, index=lags, name="ccf")


class StatsmodelsBackend:
    """Default primitives: KPSS/STL oracles, AutoReg fitting, statsmodels ccf."""

    def nsdiffs(self, s: pd.Series, period: int) -> int:
        return unitroot_nsdiffs(s, period)

    def ndiffs(self, s: pd.Series) -> int:
        return unitroot_ndiffs(s)

    def difference(self, s: pd.Series, order: int, lag: int = 1) -> pd.Series:
        return difference(s, order, lag=lag)

    def fit_ar(self, s: pd.Series, max_order: int, ic: str = "bic") -> np.ndarray:
        return fit_ar_bic(s, max_order, ic=ic)

    def ar_filter(self, s: pd.Series, coefs: Sequence[float]) -> pd.Series:
        return ar_filter(s, coefs)

    def ccf(self, x: pd.Series, y: pd.Series, max_lag: int) -> pd.Series:
        return cross_correlation(x, y, max_lag)
