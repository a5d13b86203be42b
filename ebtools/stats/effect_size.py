# ebtools/stats/effect_size.py
"""
Common Language Effect Size (McGraw & Wong, 1992): the probability that a
randomly drawn observation from one group is larger than a randomly drawn
observation from the other, under normality.
"""

from __future__ import annotations
from typing import Any, Sequence
import numpy as np
import pandas as pd
from scipy.stats import norm

__all__ = ["cles", "cles_boot"]


def _cles_from_samples(x: np.ndarray, y: np.ndarray, *, paired: bool = False) -> float:
    if len(x) < 2 or len(y) < 2:
        raise ValueError("Each group needs at least two observations.")
    # variances weighted by each group's share of the sample
    p1 = len(x) / (len(x) + len(y))
    p2 = len(y) / (len(x) + len(y))
    diff = abs(np.mean(x) - np.mean(y))
    sd_x, sd_y = np.std(x, ddof=1), np.std(y, ddof=1)

    if not paired:
        standardizer = np.sqrt(p1 * sd_x ** 2 + p2 * sd_y ** 2)
        z = (diff / standardizer) / np.sqrt(2)
    else:
        r = np.corrcoef(x, y)[0, 1]
        s_diff = np.sqrt(sd_x ** 2 + sd_y ** 2 - 2 * r * sd_x * sd_y)
        z = diff / s_diff
    return float(norm.cdf(z))


def cles(data: pd.DataFrame, variable: str, group: str, baseline: Any) -> float:
    """
    Common Language Effect Size for a long-format table.

    Args:
        data: one row per observation
        variable: numeric column compared between groups
        group: column holding the group labels
        baseline: label of the first group; every other row is the second group

    Returns:
        Phi(|mean(x) - mean(y)| / sqrt(p1*sd(x)^2 + p2*sd(y)^2) / sqrt(2))
    """
    for col in (variable, group):
        if col not in data.columns:
            raise ValueError(f"data has no column {col!r}.")
    mask = data[group] == baseline
    if not mask.any():
        raise ValueError(f"baseline {baseline!r} not found in column {group!r}.")
    x = data.loc[mask, variable].to_numpy(dtype=float)
    y = data.loc[~mask, variable].to_numpy(dtype=float)
    return _cles_from_samples(x, y)


def cles_boot(
    data: pd.DataFrame,
    ind: Sequence[int],
    group_variables: Sequence[str],
    paired: bool = False,
) -> float:
    """
    CLES for two columns of a wide table, restricted to rows `ind`.

    Shaped as a bootstrap statistic for get_boot_ci:
        get_boot_ci(df, cles_boot, group_variables=["a", "b"])
    With paired=True the standardizer is the sd of the paired differences.
    """
    if len(group_variables) != 2:
        raise ValueError("group_variables must name exactly two columns.")
    g1, g2 = group_variables
    for col in (g1, g2):
        if col not in data.columns:
            raise ValueError(f"data has no column {col!r}.")
    sub = data.iloc[np.asarray(ind, dtype=int)]
    return _cles_from_samples(
        sub[g1].to_numpy(dtype=float), sub[g2].to_numpy(dtype=float), paired=paired
    )
