# ebtools/ts/transforms.py
from __future__ import annotations
from typing import Sequence
import numpy as np
import pandas as pd

__all__ = ["difference", "ar_filter"]

def difference(s: pd.Series, order: int = 1, lag: int = 1) -> pd.Series:
    """
    Backward difference x_t - x_{t-lag}, applied `order` times.
    Length is preserved: the first order*lag values become NaN.
    """
    if order < 0 or lag < 1:
        raise ValueError("order must be >= 0 and lag >= 1.")
    out = pd.to_numeric(s, errors="coerce").astype(float)
    for _ in range(int(order)):
        out = out.diff(periods=int(lag))
    return out

def ar_filter(s: pd.Series, coefs: Sequence[float]) -> pd.Series:
    """
    One-sided linear filter with weights [1, -a_1, ..., -a_p]:

        y_t = x_t - a_1 x_{t-1} - ... - a_p x_{t-p}

    Only past values are used, so the first p values are NaN (missing,
    never zero). Missing inputs propagate to every output that touches them.
    """
    x = pd.to_numeric(s, errors="coerce").astype(float)
    out = x.copy()
    for i, a in enumerate(np.asarray(coefs, dtype=float), start=1):
        out = out - a * x.shift(i)
    return out
