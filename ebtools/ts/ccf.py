# ebtools/ts/ccf.py
"""
Prewhitened cross-correlation between an "input" (influential) and an
"output" (affected) time series, after Cryer & Chan (2008), Time Series
Analysis, chapter 11.

Public API:
- prewhitened_ccf(...)          one input/output pair
- prewhitened_ccf_joblib(...)   many independent pairs in parallel
- KeepInput, KeepCCF, SignifType

The pipeline differences both series to stationarity, fits an AR model to the
input, filters both series with the input's AR polynomial, cross-correlates
the two residual series and keeps the significant lags (or the strongest
non-significant one when nothing passes).
"""

from __future__ import annotations
from enum import Enum
from typing import Dict, Hashable, Optional, Tuple, Union
import logging
import os
import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from threadpoolctl import threadpool_limits
from tqdm import tqdm

from ebtools.config import NOT_SIGNIF_LABEL, SIGNIF_LABEL, SIGNIF_Z
from ebtools.exceptions import (
    DegenerateSeries,
    EmptyResultAfterFiltering,
    InsufficientHistory,
)
from ebtools.ts.backend import StatsBackend, StatsmodelsBackend
from ebtools.ts.stationarity import infer_period
from ebtools.utils.progress import tqdm_joblib
from ebtools.utils.validation import SeriesLike, align_pair, as_time_series

__all__ = [
    "KeepInput",
    "KeepCCF",
    "SignifType",
    "select_differencing_order",
    "cap_max_order",
    "prewhiten",
    "classify_ccf",
    "filter_ccf",
    "select_significant",
    "prewhitened_ccf",
    "prewhitened_ccf_joblib",
]

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ["input_type", "input_series", "signif_type", "signif_threshold", "ccf"]


# ---------- argument enums ----------
class _Choice(str, Enum):
    @classmethod
    def parse(cls, value: Union[str, "_Choice"], arg_name: str):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = cls._aliases().get(key, key)
        for member in cls:
            if member.value == key:
                return member
        choices = ", ".join(repr(m.value) for m in cls)
        raise ValueError(f"{arg_name} must be one of {choices}; got {value!r}.")

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {}


class KeepInput(_Choice):
    """Which side of the lag window to keep, relative to the input series."""
    INPUT_LAGS = "input_lags"
    INPUT_LEADS = "input_leads"
    BOTH = "both"

    @classmethod
    def _aliases(cls) -> Dict[str, str]:
        return {"input_lag": "input_lags", "input_lead": "input_leads"}


class KeepCCF(_Choice):
    """Which ccf signs to keep."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    BOTH = "both"


class SignifType(str, Enum):
    SIGNIFICANT = SIGNIF_LABEL
    NOT_SIGNIFICANT = NOT_SIGNIF_LABEL


# ---------- pipeline stages ----------
def select_differencing_order(
    input_s: pd.Series,
    output_s: pd.Series,
    *,
    period: int = 1,
    backend: Optional[StatsBackend] = None,
) -> Tuple[int, int, pd.Series, pd.Series]:
    """
    Estimate seasonal and ordinary differencing orders for each series and
    apply the larger of the two (per kind) to both, seasonal first.

    Each series is differenced from its own values, so both keep a directly
    comparable lag structure even when one of them is over-differenced.

    Returns (seasonal_diffs, diffs, input_differenced, output_differenced).
    """
    backend = backend or StatsmodelsBackend()

    sdiffs = max(backend.nsdiffs(input_s, period), backend.nsdiffs(output_s, period))
    if sdiffs != 0:
        input_s = backend.difference(input_s, sdiffs, lag=period)
        output_s = backend.difference(output_s, sdiffs, lag=period)

    diffs = max(backend.ndiffs(input_s), backend.ndiffs(output_s))
    if diffs != 0:
        input_s = backend.difference(input_s, diffs)
        output_s = backend.difference(output_s, diffs)

    return int(sdiffs), int(diffs), input_s, output_s


def cap_max_order(max_order: int, n: int) -> int:
    """
    Shrink `max_order` so the AR order search never asks for more lags than
    `n` observations support. With some = (n - 2) - max_order, an order with
    some <= max_order is reduced by (max_order - some + 1); when that leaves
    nothing usable the largest order meeting the bound, (n - 3) // 2, is used.
    """
    some = (n - 2) - max_order
    if some > max_order:
        return max_order

    capped = max_order - (max_order - some + 1)
    if capped < 1:
        capped = (n - 3) // 2
    if capped < 1:
        raise InsufficientHistory(
            f"Only {n} observations remain after differencing; an AR(1) prewhitening "
            "filter needs at least 5."
        )
    return capped


def prewhiten(
    input_s: pd.Series,
    output_s: pd.Series,
    max_order: int,
    *,
    backend: Optional[StatsBackend] = None,
) -> Tuple[pd.Series, pd.Series, np.ndarray]:
    """
    Fit an AR model (order 1..max_order by BIC) to the input series and filter
    both series with [1, -a_1, ..., -a_p]. The leading values without enough
    history stay NaN.
    """
    backend = backend or StatsmodelsBackend()
    if input_s.dropna().empty:
        raise InsufficientHistory("Input series has no non-missing values after differencing.")

    coefs = backend.fit_ar(input_s.dropna(), max_order, ic="bic")
    input_w = backend.ar_filter(input_s, coefs)
    output_w = backend.ar_filter(output_s, coefs)
    return input_w, output_w, np.asarray(coefs, dtype=np.float64)


def classify_ccf(ccf_vals: pd.Series, n: int) -> pd.DataFrame:
    """
    Attach significance to a ccf Series indexed by raw lag.

    Columns: lag, signif_type, signif_threshold, ccf. The threshold is
    1.96 / sqrt(n), carrying the sign of the ccf it is compared with.
    """
    thresh = SIGNIF_Z / np.sqrt(n)
    vals = ccf_vals.to_numpy(dtype=np.float64)
    signif = np.abs(vals) >= thresh
    return pd.DataFrame({
        "lag": np.asarray(ccf_vals.index, dtype=np.int64),
        "signif_type": np.where(signif, SignifType.SIGNIFICANT.value, SignifType.NOT_SIGNIFICANT.value),
        "signif_threshold": np.where(vals > 0, thresh, -thresh),
        "ccf": vals,
    })


def filter_ccf(
    tbl: pd.DataFrame,
    keep_input: Union[str, KeepInput] = KeepInput.BOTH,
    keep_ccf: Union[str, KeepCCF] = KeepCCF.BOTH,
) -> pd.DataFrame:
    """
    Apply the lag-direction filter, then the sign filter, and label rows.

    A negative raw lag pairs a lagged input with the current output ("lag");
    a positive one pairs a future input with the current output ("lead").
    `input_series` is the unsigned lag.
    """
    keep_input = KeepInput.parse(keep_input, "keep_input")
    keep_ccf = KeepCCF.parse(keep_ccf, "keep_ccf")

    lag = tbl["lag"]
    if keep_input is KeepInput.INPUT_LAGS:
        out = tbl[lag < 0].copy()
    elif keep_input is KeepInput.INPUT_LEADS:
        out = tbl[lag > 0].copy()
    else:
        out = tbl.copy()
    out["input_type"] = np.where(out["lag"] > 0, "lead", "lag")
    out["input_series"] = out["lag"].abs().astype(np.int64)

    if keep_ccf is KeepCCF.POSITIVE:
        out = out[out["ccf"] > 0]
    elif keep_ccf is KeepCCF.NEGATIVE:
        out = out[out["ccf"] < 0]

    return out[RESULT_COLUMNS].reset_index(drop=True)


def select_significant(tbl: pd.DataFrame) -> pd.DataFrame:
    """
    All significant rows, or, when there are none, the single row with the
    largest |ccf| (first one on ties).
    """
    if tbl.empty:
        raise EmptyResultAfterFiltering(
            "No lags remain after the keep_input/keep_ccf filters; nothing to select from."
        )
    signif = tbl[tbl["signif_type"] == SignifType.SIGNIFICANT.value]
    if not signif.empty:
        return signif.reset_index(drop=True)

    best = int(np.argmax(tbl["ccf"].abs().to_numpy()))
    logger.info(
        "No lag is significant at the 95%% level; keeping the largest |ccf| (%s %d, ccf=%.4f).",
        tbl["input_type"].iloc[best], tbl["input_series"].iloc[best], tbl["ccf"].iloc[best],
    )
    return tbl.iloc[[best]].reset_index(drop=True)


# ---------- main API ----------
def prewhitened_ccf(
    input: SeriesLike,
    output: SeriesLike,
    keep_input: Union[str, KeepInput] = "both",
    keep_ccf: Union[str, KeepCCF] = "both",
    max_order: int = 10,
    *,
    period: Optional[int] = None,
    index_col: Optional[str] = None,
    backend: Optional[StatsBackend] = None,
) -> pd.DataFrame:
    """
    Prewhiten two time series, cross-correlate them, and return the
    statistically significant lags.

    In a cross-correlation where the direction of influence is hypothesized,
    the influential series is the "input" and the affected one the "output".
    Often only lags (or only leads) of the input make theoretical sense, or
    only positive (or negative) correlations do; `keep_input` and `keep_ccf`
    restrict the result accordingly.

    Steps:
      1. Both series are differenced (seasonally, then ordinarily) by the
         larger of the orders the stationarity oracles pick for each.
      2. `max_order` is capped to what the differenced sample supports.
      3. An AR model (order by BIC) fit to the input filters both series.
      4. The ccf of the filtered series over lags -max_order..max_order is
         compared with 1.96 / sqrt(n), n being the aligned sample size.
      5. Significant lags are returned; when none survive the filters, the
         single largest |ccf| is returned instead.

    Args:
        input: influential series (Series, or DataFrame with one numeric column)
        output: affected series, same time index as `input`
        keep_input: "input_lags", "input_leads" or "both"
        keep_ccf: "positive", "negative" or "both"
        max_order: largest AR order searched and largest |lag| reported
        period: seasonal period; inferred from the index frequency when None
        index_col: DataFrame column holding the time stamps, if not the index
        backend: numerical primitives; StatsmodelsBackend when None

    Returns:
        DataFrame with columns
          input_type        "lag" or "lead"
          input_series      lag or lead number (unsigned)
          signif_type       "Statistically Significant" / "Not Statistically Significant"
          signif_threshold  95% threshold, signed like ccf
          ccf               cross-correlation coefficient
        and `attrs` holding n_obs, n_unmatched, n_dropped, max_order,
        ar_order, ar_coefs, seasonal_diffs, diffs and period.

    Raises:
        InvalidInputShape: a series is not a regular, time-indexed, single
            numeric column series.
        InsufficientHistory: too few observations for an AR(1) fit.
        DegenerateSeries: a prewhitened series is constant, or the ccf is
            not finite.
        EmptyResultAfterFiltering: the filters removed every lag.
        ValueError: unknown keep_input / keep_ccf, or a non-positive max_order.
    """
    keep_input = KeepInput.parse(keep_input, "keep_input")
    keep_ccf = KeepCCF.parse(keep_ccf, "keep_ccf")
    if isinstance(max_order, bool) or not isinstance(max_order, (int, np.integer)) or max_order < 1:
        raise ValueError(f"max_order must be a positive integer; got {max_order!r}.")
    max_order = int(max_order)
    backend = backend or StatsmodelsBackend()

    input_s = as_time_series(input, index_col=index_col, name="input")
    output_s = as_time_series(output, index_col=index_col, name="output")

    if period is None:
        period = infer_period(input_s.index)

    # ---- stationarity ----
    sdiffs, diffs, input_d, output_d = select_differencing_order(
        input_s, output_s, period=period, backend=backend
    )
    logger.info("Differencing both series: seasonal=%d (period %d), ordinary=%d.", sdiffs, period, diffs)

    # ---- order cap ----
    n_input = int(input_d.dropna().shape[0])
    capped = cap_max_order(max_order, n_input)
    if capped != max_order:
        logger.info("max_order reduced from %d to %d for %d observations.", max_order, capped, n_input)
    max_order = capped

    # ---- prewhitening ----
    input_w, output_w, coefs = prewhiten(input_d, output_d, max_order, backend=backend)
    logger.debug("AR(%d) prewhitening coefficients: %s", len(coefs), np.round(coefs, 4).tolist())

    # ---- align + ccf ----
    whitened, n_unmatched, n_missing = align_pair(input_w, output_w)
    if n_unmatched:
        logger.warning(
            "%d time stamps appear in only one series and were dropped before the ccf.", n_unmatched
        )
    n = len(whitened)
    if n < 3:
        raise InsufficientHistory(f"Only {n} aligned observations remain after prewhitening.")
    logger.debug("ccf on %d aligned observations (%d rows with missing values dropped).", n, n_missing)

    for col in ("input", "output"):
        if not np.ptp(whitened[col].to_numpy()) > 0:
            raise DegenerateSeries(
                f"The prewhitened {col} series is constant; its cross-correlation is undefined."
            )
    ccf_vals = backend.ccf(whitened["input"], whitened["output"], max_order)
    if not np.isfinite(ccf_vals.to_numpy(dtype=np.float64)).all():
        raise DegenerateSeries("The cross-correlation returned non-finite values.")
    tbl = classify_ccf(ccf_vals, n)
    tbl = filter_ccf(tbl, keep_input, keep_ccf)
    out = select_significant(tbl)

    out.attrs.update({
        "n_obs": n,
        "n_unmatched": n_unmatched,
        "n_dropped": n_unmatched + n_missing,
        "max_order": max_order,
        "ar_order": int(len(coefs)),
        "ar_coefs": coefs.tolist(),
        "seasonal_diffs": sdiffs,
        "diffs": diffs,
        "period": int(period),
    })
    return out


def prewhitened_ccf_joblib(
    series_pairs: Dict[Hashable, Tuple[SeriesLike, SeriesLike]],
    *,
    keep_input: Union[str, KeepInput] = "both",
    keep_ccf: Union[str, KeepCCF] = "both",
    max_order: int = 10,
    period: Optional[int] = None,
    index_col: Optional[str] = None,
    key_name: str = "key",
    skip_errors: bool = False,
    n_workers: Optional[int] = None,
    chunksize: int = 4,
    show_progress: bool = True,
) -> pd.DataFrame:
    """
    Run prewhitened_ccf for every {key: (input, output)} pair in parallel.

    Each pair is independent; results are stacked with `key_name` as the first
    column and the pair's aligned sample size in `n_obs`. With
    skip_errors=True a failing pair is logged and left out; otherwise the
    first failure propagates.
    """
    # Argument errors should surface before any worker starts
    keep_input = KeepInput.parse(keep_input, "keep_input")
    keep_ccf = KeepCCF.parse(keep_ccf, "keep_ccf")

    # Avoid BLAS oversubscription
    os.environ.setdefault("OPENBLAS_NUM_THREADS", "1")
    os.environ.setdefault("MKL_NUM_THREADS",      "1")
    os.environ.setdefault("NUMEXPR_NUM_THREADS",  "1")

    n_workers = n_workers or os.cpu_count() or 1
    keys = list(series_pairs.keys())

    def worker(key, input_x, output_x):
        try:
            with threadpool_limits(limits=1):
                res = prewhitened_ccf(
                    input_x, output_x,
                    keep_input=keep_input, keep_ccf=keep_ccf, max_order=max_order,
                    period=period, index_col=index_col,
                )
        except Exception as e:
            if not skip_errors:
                raise
            return key, None, f"{type(e).__name__}: {e}"
        return key, res, None

    iterator = (delayed(worker)(k, *series_pairs[k]) for k in keys)

    if show_progress:
        with tqdm_joblib(tqdm(total=len(keys), desc="Prewhitened CCF", leave=False)):
            results = Parallel(n_jobs=n_workers, prefer="processes", batch_size=chunksize)(iterator)
    else:
        results = Parallel(n_jobs=n_workers, prefer="processes", batch_size=chunksize)(iterator)

    frames = []
    for key, res, err in results:
        if res is None:
            logger.warning("prewhitened_ccf failed for %r and was skipped (%s).", key, err)
            continue
        res = res.copy()
        res.insert(0, key_name, [key] * len(res))
        res["n_obs"] = res.attrs.get("n_obs")
        frames.append(res)

    if not frames:
        return pd.DataFrame(columns=[key_name, *RESULT_COLUMNS, "n_obs"])
    out = pd.concat(frames, ignore_index=True)
    out.attrs = {}
    return out
