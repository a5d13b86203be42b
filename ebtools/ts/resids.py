# ebtools/ts/resids.py
"""
Residual autocorrelation checks for batches of fitted models:
- lm_resid_tests(...)        Breusch-Godfrey and Durbin-Watson p-values (OLS fits)
- ts_model_resid_tests(...)  Ljung-Box p-value (ARIMA / SARIMAX / AutoReg fits)
- find_frequency(...), find_max_lag(...), durbin_watson_pvalue(...)

The test lag follows Hyndman's rule of thumb: min(2m, n/5) for seasonal
residuals with period m, min(10, n/5) otherwise.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional
import numpy as np
import pandas as pd
from scipy.integrate import quad
from scipy.stats import norm
from statsmodels.stats.diagnostic import acorr_breusch_godfrey, acorr_ljungbox
from statsmodels.stats.stattools import durbin_watson
from statsmodels.regression.linear_model import yule_walker

__all__ = [
    "find_frequency",
    "find_max_lag",
    "durbin_watson_pvalue",
    "lm_resid_tests",
    "ts_model_resid_tests",
]

logger = logging.getLogger(__name__)

# ----------------- Frequency / lag rules -----------------
def find_frequency(x, n_freq: int = 500) -> int:
    """
    Dominant period of a series from its autoregressive spectrum.

    The series is linearly detrended, an AR model is chosen by AIC (Yule-Walker,
    order up to 10*log10(n)), and the period of the spectral peak is returned.
    Series without a clear peak (flat or weak spectrum) give 1.
    """
    v = pd.Series(np.asarray(x, dtype=float)).dropna().to_numpy()
    n = len(v)
    if n < 4:
        return 1
    t = np.arange(n)
    v = v - np.polyval(np.polyfit(t, v, 1), t)

    max_order = int(min(n - 1, np.floor(10 * np.log10(n))))
    best_order, best_aic = 0, n * np.log(np.var(v)) if np.var(v) > 0 else -np.inf
    best_rho, best_sigma2 = np.array([]), float(np.var(v))
    for p in range(1, max_order + 1):
        rho, sigma = yule_walker(v, order=p, method="mle")
        aic = n * np.log(sigma ** 2) + 2 * p
        if aic < best_aic:
            best_order, best_aic, best_rho, best_sigma2 = p, aic, rho, float(sigma ** 2)

    freq = np.linspace(0.0, 0.5, n_freq)
    k = np.arange(1, best_order + 1)
    transfer = 1 - np.exp(-2j * np.pi * np.outer(freq, k)) @ best_rho if best_order else np.ones(n_freq)
    power = best_sigma2 / np.abs(transfer) ** 2

    # weak spectrum: no seasonality worth reporting
    if power.max() <= 10:
        return 1
    imax = int(np.argmax(power))
    if freq[imax] > 0:
        return int(np.floor(1 / freq[imax] + 0.5))

    # peak at frequency 0 (trend-like): look for the next local maximum
    rising = np.flatnonzero(np.diff(power) > 0)
    if len(rising) == 0:
        return 1
    nxt = rising[0] + 1 + int(np.argmax(power[rising[0] + 1:]))
    if nxt >= n_freq - 1 or freq[nxt] == 0:
        return 1
    return int(np.floor(1 / freq[nxt] + 0.5))

def find_max_lag(freq: int, n: int) -> int:
    """Hyndman's lag rule for residual autocorrelation tests."""
    lag = min(2 * freq, n / 5) if freq > 1 else min(10, n / 5)
    return max(1, int(lag))

# ----------------- Durbin-Watson p-value -----------------
def _imhof_below_zero(lam: np.ndarray) -> float:
    """P(sum_i lam_i * z_i^2 < 0) for iid standard normal z (Imhof, 1961)."""
    def integrand(u: float) -> float:
        theta = 0.5 * np.sum(np.arctan(lam * u))
        log_rho = 0.25 * np.sum(np.log1p((lam * u) ** 2))
        return np.sin(theta) / (u * np.exp(log_rho))

    val, _ = quad(integrand, 0.0, np.inf, limit=200)
    return float(min(1.0, max(0.0, 0.5 - val / np.pi)))

def durbin_watson_pvalue(resid, exog, exact: Optional[bool] = None) -> float:
    """
    P-value of the Durbin-Watson test against positive first-order
    autocorrelation: P(DW <= d) for the observed statistic d under iid
    normal errors, given the regressors `exog`.

    exact=None uses the exact null distribution (Imhof inversion over the
    eigenvalues of M A M) below 100 observations and the Durbin & Watson
    (1971) normal approximation otherwise.
    """
    e = np.asarray(resid, dtype=float)
    X = np.asarray(exog, dtype=float)
    if X.ndim == 1:
        X = X[:, None]
    n = X.shape[0]
    if len(e) != n:
        raise ValueError("resid and exog must have the same number of rows.")
    k = int(np.linalg.matrix_rank(X))
    if n - k < 2:
        raise ValueError("Durbin-Watson test needs more observations than regressors.")
    d = float(durbin_watson(e))
    if exact is None:
        exact = n < 100

    Q1 = np.linalg.pinv(X.T @ X)
    if exact:
        # e'Ae = sum (e_t - e_{t-1})^2
        A = np.diag(np.r_[1.0, np.full(n - 2, 2.0), 1.0]) - np.eye(n, k=1) - np.eye(n, k=-1)
        M = np.eye(n) - X @ Q1 @ X.T
        lam = np.linalg.eigvalsh(M @ A @ M)[k:]
        return _imhof_below_zero(lam - d)

    AX = np.empty_like(X)
    AX[1:-1] = -X[:-2] + 2 * X[1:-1] - X[2:]
    AX[0] = X[0] - X[1]
    AX[-1] = X[-1] - X[-2]
    XAXQ = X.T @ AX @ Q1
    P = 2 * (n - 1) - np.trace(XAXQ)
    Q = 2 * (3 * n - 4) - 2 * np.trace(AX.T @ AX @ Q1) + np.trace(XAXQ @ XAXQ)
    dmean = P / (n - k)
    dvar = 2.0 / ((n - k) * (n - k + 2)) * (Q - P * dmean)
    return float(norm.cdf(d, loc=dmean, scale=np.sqrt(dvar)))

# ----------------- Table checks -----------------
def _check_mod_tbl(mod_tbl: pd.DataFrame, grp_col: str, mod_col: str) -> None:
    if not isinstance(grp_col, str) or not isinstance(mod_col, str):
        raise TypeError("grp_col and mod_col must be column names (str).")
    if not isinstance(mod_tbl, pd.DataFrame):
        raise TypeError("mod_tbl must be a pandas DataFrame.")
    if mod_tbl.shape[1] != 2:
        raise ValueError(f"Number of columns must be 2; mod_tbl has {mod_tbl.shape[1]}.")
    for c in (grp_col, mod_col):
        if c not in mod_tbl.columns:
            raise ValueError(f"mod_tbl has no column {c!r}.")
    if len(mod_tbl) and not isinstance(mod_tbl[mod_col].iloc[0], dict):
        raise ValueError(f"{mod_col} column cells must be dicts of model name -> fitted model.")

def _iter_models(mod_tbl: pd.DataFrame, grp_col: str, mod_col: str):
    for grp, models in zip(mod_tbl[grp_col], mod_tbl[mod_col]):
        for mod_name, res in models.items():
            yield grp, mod_name, res

def _model_dof(res: Any) -> int:
    """Number of ARMA coefficients (seasonal included) of a fitted time-series model."""
    parts = ("arparams", "maparams", "seasonalarparams", "seasonalmaparams")
    found = [len(np.atleast_1d(getattr(res, p))) for p in parts if getattr(res, p, None) is not None]
    if found:
        return int(sum(found))
    ar_lags = getattr(getattr(res, "model", None), "ar_lags", None)
    return int(len(ar_lags)) if ar_lags is not None else 0

# ----------------- Public API -----------------
def lm_resid_tests(mod_tbl: pd.DataFrame, grp_col: str, mod_col: str) -> pd.DataFrame:
    """
    Breusch-Godfrey and Durbin-Watson checks for fitted statsmodels OLS results.

    `mod_tbl` has two columns: `grp_col` and `mod_col`, whose cells are dicts
    {model name: RegressionResults}. Returns one row per (group, model) with
    bg_pval and dw_pval, both rounded to 3. Values below 0.05 point to
    autocorrelated residuals.
    """
    _check_mod_tbl(mod_tbl, grp_col, mod_col)
    rows: List[Dict[str, Any]] = []
    for grp, mod_name, res in _iter_models(mod_tbl, grp_col, mod_col):
        resid = np.asarray(res.resid, dtype=float)
        max_lag = find_max_lag(find_frequency(resid), len(resid))
        _, bg_pval, _, _ = acorr_breusch_godfrey(res, nlags=max_lag)
        rows.append({
            grp_col: grp,
            "mod_name": mod_name,
            "bg_pval": round(float(bg_pval), 3),
            "dw_pval": round(durbin_watson_pvalue(resid, res.model.exog), 3),
        })
    return pd.DataFrame(rows, columns=[grp_col, "mod_name", "bg_pval", "dw_pval"])

def ts_model_resid_tests(mod_tbl: pd.DataFrame, grp_col: str, mod_col: str) -> pd.DataFrame:
    """
    Ljung-Box check on the residuals of fitted statsmodels time-series models.

    The degrees of freedom are the model's ARMA coefficient count; when the
    rule-of-thumb lag does not exceed them the lag is set to dof + 3. Returns
    columns grp_col, mod_name, lb_pval (rounded to 3), sorted by lb_pval
    descending.
    """
    _check_mod_tbl(mod_tbl, grp_col, mod_col)
    rows: List[Dict[str, Any]] = []
    for grp, mod_name, res in _iter_models(mod_tbl, grp_col, mod_col):
        resid = pd.Series(np.asarray(res.resid, dtype=float)).dropna()
        max_lag = find_max_lag(find_frequency(resid), len(resid))
        dof = _model_dof(res)
        lag = dof + 3 if dof >= max_lag else max_lag
        lb = acorr_ljungbox(resid, lags=[lag], model_df=dof, return_df=True)
        rows.append({
            grp_col: grp,
            "mod_name": mod_name,
            "lb_pval": round(float(lb["lb_pvalue"].iloc[0]), 3),
        })
        logger.debug("Ljung-Box %s/%s: lag=%d dof=%d", grp, mod_name, lag, dof)
    out = pd.DataFrame(rows, columns=[grp_col, "mod_name", "lb_pval"])
    return out.sort_values("lb_pval", ascending=False, kind="mergesort").reset_index(drop=True)
