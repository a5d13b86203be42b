# ebtools/utils/validation.py
"""
Input checks shared by the time-series wrappers:
- as_time_series(...)   coerce a Series / one-numeric-column DataFrame to a float Series
- align_pair(...)       inner-join two series on their time index
"""
from __future__ import annotations
from typing import Optional, Tuple, Union
import numpy as np
import pandas as pd

from ebtools.exceptions import InvalidInputShape

__all__ = ["as_time_series", "align_pair", "numeric_columns"]

SeriesLike = Union[pd.Series, pd.DataFrame]


def numeric_columns(df: pd.DataFrame) -> list:
    """Names of the numeric (non-boolean) columns of ``df``."""
    return [
        c for c in df.columns
        if pd.api.types.is_numeric_dtype(df[c]) and not pd.api.types.is_bool_dtype(df[c])
    ]


def _check_index(idx: pd.Index, name: str) -> None:
    if isinstance(idx, (pd.DatetimeIndex, pd.PeriodIndex)):
        pass
    elif pd.api.types.is_integer_dtype(idx):
        pass
    else:
        raise InvalidInputShape(
            f"{name} must be indexed by datetimes, periods or integers; got {type(idx).__name__}."
        )

    if idx.hasnans:
        raise InvalidInputShape(f"{name} has missing time stamps.")
    if not idx.is_unique:
        raise InvalidInputShape(f"{name} has duplicate time stamps.")
    if not idx.is_monotonic_increasing:
        raise InvalidInputShape(f"{name} time stamps must be strictly increasing.")
    if len(idx) < 3:
        return

    # Regular spacing. Datetimes can be calendar-regular (month ends) without
    # equal nanosecond gaps, so those go through infer_freq.
    if isinstance(idx, pd.DatetimeIndex):
        regular = idx.freq is not None or pd.infer_freq(idx) is not None
    elif isinstance(idx, pd.PeriodIndex):
        regular = len(np.unique(np.diff(idx.asi8))) == 1
    else:
        regular = len(np.unique(np.diff(np.asarray(idx, dtype=np.int64)))) == 1
    if not regular:
        raise InvalidInputShape(f"{name} time stamps are not regularly spaced.")


def as_time_series(
    x: SeriesLike,
    *,
    index_col: Optional[str] = None,
    name: str = "series",
) -> pd.Series:
    """
    Validate ``x`` and return it as a float64 Series on its time index.

    ``x`` is either a Series or a DataFrame holding exactly one numeric
    column (other columns are ignored). ``index_col`` names a DataFrame column
    holding the time stamps when they are not already the index.
    The returned Series keeps the value column's name.
    """
    if isinstance(x, pd.DataFrame):
        df = x
        if index_col is not None:
            if index_col not in df.columns:
                raise InvalidInputShape(f"{name} has no column {index_col!r}.")
            df = df.set_index(index_col)
        num_cols = numeric_columns(df)
        if len(num_cols) != 1:
            raise InvalidInputShape(
                f"Number of numeric columns for {name} must be 1; found {len(num_cols)} ({num_cols})."
            )
        s = df[num_cols[0]]
    elif isinstance(x, pd.Series):
        s = x
        if not pd.api.types.is_numeric_dtype(s) or pd.api.types.is_bool_dtype(s):
            raise InvalidInputShape(f"{name} must hold numeric values; got dtype {s.dtype}.")
    else:
        raise InvalidInputShape(
            f"{name} must be a pandas Series or DataFrame; got {type(x).__name__}."
        )

    _check_index(s.index, name)
    return s.astype(np.float64)


def align_pair(
    s1: pd.Series,
    s2: pd.Series,
    name1: str = "input",
    name2: str = "output",
) -> Tuple[pd.DataFrame, int, int]:
    """
    Inner-join two series on their index and drop rows with a missing value.

    Returns:
        df           aligned float64 DataFrame with columns [name1, name2]
        n_unmatched  time stamps present in only one of the two series
        n_missing    matched time stamps dropped because a value was missing
    """
    union = s1.index.union(s2.index)
    joined = pd.concat([s1.rename(name1), s2.rename(name2)], axis=1, join="inner").sort_index()
    df = joined.dropna()
    n_unmatched = int(len(union) - len(joined))
    n_missing = int(len(joined) - len(df))
    return df.astype(np.float64), n_unmatched, n_missing
