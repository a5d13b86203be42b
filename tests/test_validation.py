"""
Tests for series coercion and alignment.
"""
import numpy as np
import pandas as pd
import pytest

from ebtools.exceptions import InvalidInputShape
from ebtools.utils.validation import align_pair, as_time_series


def test_series_passes_through_as_float() -> None:
    s = pd.Series([1, 2, 3, 4], index=pd.RangeIndex(4), name="x")
    out = as_time_series(s)
    assert out.dtype == np.float64
    assert out.name == "x"


def test_frame_with_one_numeric_column(daily_frame) -> None:
    input_df, _ = daily_frame
    out = as_time_series(input_df, index_col="date")
    assert isinstance(out.index, pd.DatetimeIndex)
    assert out.name == "cases"
    assert len(out) == len(input_df)


def test_frame_with_two_numeric_columns_is_rejected() -> None:
    df = pd.DataFrame({"a": [1.0, 2.0, 3.0], "b": [4.0, 5.0, 6.0]})
    with pytest.raises(InvalidInputShape, match="Number of numeric columns"):
        as_time_series(df, name="input")


def test_frame_without_numeric_column_is_rejected() -> None:
    df = pd.DataFrame({"a": ["x", "y", "z"]})
    with pytest.raises(InvalidInputShape):
        as_time_series(df)


def test_missing_index_col_is_rejected(daily_frame) -> None:
    input_df, _ = daily_frame
    with pytest.raises(InvalidInputShape):
        as_time_series(input_df, index_col="when")


def test_non_pandas_input_is_rejected() -> None:
    with pytest.raises(InvalidInputShape):
        as_time_series([1.0, 2.0, 3.0])


def test_non_numeric_series_is_rejected() -> None:
    with pytest.raises(InvalidInputShape):
        as_time_series(pd.Series(["a", "b", "c"]))


def test_string_index_is_rejected() -> None:
    s = pd.Series([1.0, 2.0, 3.0], index=["a", "b", "c"])
    with pytest.raises(InvalidInputShape):
        as_time_series(s)


def test_duplicate_time_stamps_are_rejected() -> None:
    s = pd.Series([1.0, 2.0, 3.0], index=[0, 1, 1])
    with pytest.raises(InvalidInputShape, match="duplicate"):
        as_time_series(s)


def test_unsorted_time_stamps_are_rejected() -> None:
    s = pd.Series([1.0, 2.0, 3.0], index=[0, 2, 1])
    with pytest.raises(InvalidInputShape, match="increasing"):
        as_time_series(s)


def test_irregular_time_stamps_are_rejected() -> None:
    idx = pd.DatetimeIndex(["2021-01-01", "2021-01-02", "2021-01-05", "2021-01-06"])
    with pytest.raises(InvalidInputShape, match="regularly spaced"):
        as_time_series(pd.Series([1.0, 2.0, 3.0, 4.0], index=idx))


def test_month_end_index_counts_as_regular() -> None:
    idx = pd.DatetimeIndex(["2021-01-31", "2021-02-28", "2021-03-31", "2021-04-30"])
    out = as_time_series(pd.Series([1.0, 2.0, 3.0, 4.0], index=idx))
    assert len(out) == 4


def test_align_pair_counts_unmatched_and_missing() -> None:
    a = pd.Series([np.nan, 1.0, 2.0, 3.0, 4.0], index=range(0, 5))
    b = pd.Series([1.0, 2.0, 3.0, 4.0, 5.0], index=range(2, 7))
    df, n_unmatched, n_missing = align_pair(a, b)
    assert list(df.columns) == ["input", "output"]
    # union 0..6 (7 stamps), intersection 2..4 (3 stamps)
    assert n_unmatched == 4
    assert n_missing == 0
    assert df.index.tolist() == [2, 3, 4]


def test_align_pair_drops_rows_with_missing_values() -> None:
    a = pd.Series([np.nan, 1.0, 2.0], index=range(3))
    b = pd.Series([1.0, np.nan, 2.0], index=range(3))
    df, n_unmatched, n_missing = align_pair(a, b)
    assert n_unmatched == 0
    assert n_missing == 2
    assert len(df) == 1
