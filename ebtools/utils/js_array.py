# ebtools/utils/js_array.py
"""
Nest grouped rows into arrays of records, the shape JavaScript charting
libraries expect (`[{x: .., y: ..}, ...]` per group).
"""

from __future__ import annotations
import pandas as pd

__all__ = ["to_js_array"]


def to_js_array(data: pd.DataFrame, grp_var: str, *cols: str, array_name: str) -> pd.DataFrame:
    """
    One row per value of `grp_var`; the `array_name` column holds that group's
    rows as a list of `{col: value}` dicts over `cols`, in their original order.

    >>> df = pd.DataFrame({"g": ["a", "a", "b"], "x": [1, 2, 3]})
    >>> to_js_array(df, "g", "x", array_name="pts")["pts"].tolist()
    [[{'x': 1}, {'x': 2}], [{'x': 3}]]
    """
    if not isinstance(array_name, str):
        raise TypeError("array_name must be a string.")
    if not isinstance(data, pd.DataFrame):
        raise TypeError("data must be a pandas DataFrame.")
    if not cols:
        raise ValueError("At least one array column is required.")
    missing = [c for c in [grp_var, *cols] if c not in data.columns]
    if missing:
        raise ValueError(f"Columns not found: {missing}.")

    rows = [
        (key, grp[list(cols)].to_dict("records"))
        for key, grp in data.groupby(grp_var, sort=True, observed=True)
    ]
    return pd.DataFrame(rows, columns=[grp_var, array_name])
