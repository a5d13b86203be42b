# ebtools/ts/mase.py
"""
MASE-style scaling of grouped time series (Hyndman & Koehler, 2006).

Each group's series is divided by its in-sample seasonal-naive mean absolute
error, mean(|x_t - x_{t-m}|), which puts series of different magnitudes on a
common scale before pooling them in one model.

- scale_by_mase(...)        scale each group, keep the factors in attrs
- descale_by_mase(...)      undo the scaling (e.g. on forecasts)
- add_mase_scale_feat(...)  add each group's relative scale as a feature
"""

from __future__ import annotations
import logging
import warnings
from typing import List, Sequence
import numpy as np
import pandas as pd

from ebtools.config import MIN_MASE_SCALE

__all__ = ["mase_scale", "scale_by_mase", "descale_by_mase", "add_mase_scale_feat"]

logger = logging.getLogger(__name__)


def mase_scale(x: Sequence[float], period: int = 1) -> float:
    """mean(|x_t - x_{t-m}|); a series shorter than its period falls back to m = 1."""
    v = np.asarray(x, dtype=float)
    m = int(period)
    if len(v) < m:
        warnings.warn(
            "MASE calc: Series shorter than its period, period will be set to 1 for MASE calculations",
            stacklevel=2,
        )
        m = 1
    return float(np.mean(np.abs(v[m:] - v[:-m])))


def _check_args(df: pd.DataFrame, value: str, groups: Sequence[str]) -> List[str]:
    if not isinstance(df, pd.DataFrame):
        raise TypeError("df must be a pandas DataFrame.")
    groups = list(groups)
    if not groups:
        raise ValueError("At least one group column is required.")
    missing = [c for c in [value, *groups] if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found: {missing}.")
    if not pd.api.types.is_numeric_dtype(df[value]):
        raise ValueError(f"{value!r} must be numeric.")
    for g in groups:
        col = df[g]
        if not (pd.api.types.is_string_dtype(col) or isinstance(col.dtype, pd.CategoricalDtype)):
            raise ValueError(f"Group column {g!r} must be character or categorical.")
    return groups


def _group_scales(df: pd.DataFrame, value: str, groups: List[str], period: int, name: str) -> pd.DataFrame:
    scales = (
        df.groupby(groups, sort=True, observed=True)[value]
          .apply(lambda s: mase_scale(s.to_numpy(), period))
          .rename(name)
          .reset_index()
    )
    return scales


def scale_by_mase(df: pd.DataFrame, value: str, *groups: str, period: int = 1) -> pd.DataFrame:
    """
    Divide each group's `value` by its MASE scale factor.

    Rows are assumed to be in time order within each group. Groups whose
    factor is below 1e-4 (near-constant series) are refused with ValueError.

    Returns the scaled table (sorted by the group columns); the factors are in
    `attrs["scale_factors"]` with the group columns and a `scale` column, as
    needed by descale_by_mase.
    """
    groups = _check_args(df, value, groups)
    scales = _group_scales(df, value, groups, period, "scale")

    low = scales[scales["scale"] < MIN_MASE_SCALE]
    if not low.empty:
        bad = low[groups].to_dict("records")
        logger.error("MASE scale factors below %g for groups: %s", MIN_MASE_SCALE, bad)
        raise ValueError(
            f"These groups have MASE scale factors that are below {MIN_MASE_SCALE} and shouldn't be "
            f"MASE-scaled. They need to be removed or another scaling method should be used: {bad}"
        )

    out = df.merge(scales, on=groups, how="left", sort=False)
    out = out.sort_values(groups, kind="mergesort").reset_index(drop=True)
    out[value] = out[value] / out["scale"]
    out = out.drop(columns="scale")
    out.attrs["scale_factors"] = scales
    return out


def descale_by_mase(df: pd.DataFrame, value: str, scale_factors: pd.DataFrame, *groups: str) -> pd.DataFrame:
    """Multiply each group's `value` by its factor from scale_by_mase."""
    groups = _check_args(df, value, groups)
    if not isinstance(scale_factors, pd.DataFrame) or "scale" not in scale_factors.columns:
        raise ValueError("scale_factors must be a DataFrame with a 'scale' column.")
    if list(scale_factors.columns.drop("scale")) != groups:
        raise ValueError(
            f"grouping columns differ: {groups} vs {list(scale_factors.columns.drop('scale'))}."
        )

    out = df.merge(scale_factors, on=groups, how="left", sort=False)
    if out["scale"].isna().any():
        unknown = out.loc[out["scale"].isna(), groups].drop_duplicates().to_dict("records")
        raise ValueError(f"No scale factor for groups: {unknown}.")
    out = out.sort_values(groups, kind="mergesort").reset_index(drop=True)
    out[value] = out[value] * out["scale"]
    return out.drop(columns="scale")


def add_mase_scale_feat(df: pd.DataFrame, value: str, *groups: str, period: int = 1) -> pd.DataFrame:
    """
    Add a `scale` column: each group's MASE scale factor divided by the mean
    factor across groups. Useful as a feature in a global model fit to
    scaled series.
    """
    groups = _check_args(df, value, groups)
    scales = _group_scales(df, value, groups, period, "scale_factor")
    scales["scale"] = scales["scale_factor"] / scales["scale_factor"].mean()
    return df.merge(scales.drop(columns="scale_factor"), on=groups, how="left", sort=False)
