# ebtools/ts/features.py
"""
Per-series features from the `tsfeatures` package, joined back onto a
grouped long table (Montero-Manso & Hyndman, 2021).

- add_tsfeatures(...)   one feature row per group, optionally z-scored across groups
"""

from __future__ import annotations
import logging
from typing import Callable, List, Optional, Sequence
import numpy as np
import pandas as pd
from tsfeatures import tsfeatures

from ebtools.ts.stationarity import infer_period

__all__ = ["add_tsfeatures", "standardize_features"]

logger = logging.getLogger(__name__)


def standardize_features(feats: pd.DataFrame) -> pd.DataFrame:
    """Z-score each column across rows; cells that come out NaN keep their raw value."""
    out = feats.copy()
    for col in out.columns:
        v = out[col].astype(float)
        z = (v - v.mean()) / v.std(ddof=1)
        out[col] = z.where(np.isfinite(z), v)
    return out


def add_tsfeatures(
    df: pd.DataFrame,
    *groups: str,
    date: str = "date",
    value: str = "value",
    standardize: bool = True,
    parallel: bool = False,
    freq: Optional[int] = None,
    features: Optional[Sequence[Callable]] = None,
) -> pd.DataFrame:
    """
    Compute tsfeatures for each group's series and left-join them onto `df`.

    Args:
        df: long table with a date column, a numeric value column and the group columns
        *groups: one or more grouping columns
        date, value: names of the date and value columns
        standardize: z-score each feature across groups (NaN results revert to the raw value)
        parallel: spread the series over all cores; one worker otherwise
        freq: seasonal period; inferred from the first group's dates when omitted
        features: tsfeatures feature functions; the package's default set when omitted

    Returns:
        `df` with one column per feature, constant within each group.
    """
    if not isinstance(df, pd.DataFrame):
        raise TypeError("df must be a pandas DataFrame.")
    groups = list(groups)
    if not groups:
        raise ValueError("At least one group column is required.")
    missing = [c for c in [date, value, *groups] if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found: {missing}.")
    if not pd.api.types.is_numeric_dtype(df[value]):
        raise ValueError(f"{value!r} must be numeric.")

    gid = df.groupby(groups, sort=True, observed=True).ngroup()
    keys = df[groups].assign(unique_id=gid.to_numpy()).drop_duplicates("unique_id")
    ts = pd.DataFrame({
        "unique_id": gid.to_numpy(),
        "ds": df[date].to_numpy(),
        "y": df[value].to_numpy(dtype=float),
    }).sort_values(["unique_id", "ds"], kind="mergesort")

    if freq is None:
        first = ts.loc[ts["unique_id"] == ts["unique_id"].iloc[0], "ds"]
        freq = infer_period(pd.DatetimeIndex(first)) if pd.api.types.is_datetime64_any_dtype(first) else 1

    kwargs = {"freq": int(freq), "threads": None if parallel else 1}
    if features is not None:
        kwargs["features"] = list(features)
    logger.info("tsfeatures over %d series (freq=%d)", len(keys), kwargs["freq"])
    feats = tsfeatures(ts, **kwargs)

    if "unique_id" not in feats.columns:
        feats = feats.reset_index()
    feats["unique_id"] = feats["unique_id"].astype(keys["unique_id"].dtype)
    feats = feats.set_index("unique_id")
    if standardize:
        feats = standardize_features(feats)

    feats = keys.merge(feats.reset_index(), on="unique_id", how="left").drop(columns="unique_id")
    return df.merge(feats, on=groups, how="left", sort=False)
