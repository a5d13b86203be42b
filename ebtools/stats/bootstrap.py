# ebtools/stats/bootstrap.py
"""
Nonparametric bootstrap confidence intervals for any statistic of a table.

The statistic follows the `f(data, ind, **kwargs)` convention: it receives the
full table and an integer array of (resampled) row positions, so the same
function works for the point estimate and every resample.
"""

from __future__ import annotations
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Sequence, Union
import numpy as np
import pandas as pd
from scipy.stats import bootstrap, norm

from ebtools.config import BOOT_SEED

__all__ = ["get_boot_ci", "CI_TYPES"]

logger = logging.getLogger(__name__)

# requested type -> (scipy method, label in the output table)
CI_TYPES = {
    "norm": ("percentile", "normal"),
    "basic": ("basic", "basic"),
    "perc": ("percentile", "percent"),
    "bca": ("BCa", "bca"),
}

# scipy >= 1.15 takes `rng`; older releases only know `random_state`
_SEED_KW = "rng" if "rng" in inspect.signature(bootstrap).parameters else "random_state"


def _normal_ci(t0: float, boot_dist: np.ndarray, conf: float) -> tuple:
    """Bias-corrected normal-approximation interval, as in boot::norm.ci."""
    bias = float(np.mean(boot_dist)) - t0
    se = float(np.std(boot_dist, ddof=1))
    z = norm.ppf((1 + conf) / 2)
    center = t0 - bias
    return center - z * se, center + z * se


def get_boot_ci(
    data: pd.DataFrame,
    stat_fun: Callable[..., float],
    conf: float = 0.95,
    type: Union[str, Sequence[str]] = "bca",
    n_resamples: int = 1000,
    add_boot: Optional[Dict[str, Any]] = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """
    Bootstrap confidence intervals of `stat_fun` over the rows of `data`.

    Args:
        data: table whose rows are resampled with replacement
        stat_fun: f(data, ind, **kwargs) -> float
        conf: confidence level
        type: "norm", "basic", "perc", "bca", a list of these, or "all"
        n_resamples: number of bootstrap replicates
        add_boot: extra keyword arguments for scipy.stats.bootstrap
        **kwargs: forwarded to stat_fun

    Returns:
        DataFrame with columns type, conf, .lower, .upper (rounded to 4
        places), one row per interval type. The point estimate is stored in
        `attrs["estimate"]`.

    Resampling is seeded with config.BOOT_SEED, so repeated calls agree.
    """
    if not isinstance(data, pd.DataFrame):
        raise TypeError("data must be a pandas DataFrame.")
    if not callable(stat_fun):
        raise TypeError("stat_fun must be callable.")
    if not 0 < conf < 1:
        raise ValueError("conf must lie strictly between 0 and 1.")

    types = list(CI_TYPES) if type == "all" else ([type] if isinstance(type, str) else list(type))
    unknown = [t for t in types if t not in CI_TYPES]
    if unknown:
        raise ValueError(f"{unknown} not among the supported interval types {list(CI_TYPES)} or 'all'.")

    n = len(data)
    if n < 2:
        raise ValueError("data needs at least two rows to bootstrap.")
    idx = np.arange(n)

    def statistic(ind):
        return stat_fun(data, np.asarray(ind, dtype=np.int64), **kwargs)

    t0 = float(statistic(idx))

    rows = []
    for t in types:
        method, label = CI_TYPES[t]
        boot_args = {
            "n_resamples": n_resamples,
            "confidence_level": conf,
            "method": method,
            "vectorized": False,
            _SEED_KW: np.random.default_rng(BOOT_SEED),
        }
        if add_boot:
            boot_args.update(add_boot)
        res = bootstrap((idx,), statistic, **boot_args)

        if t == "norm":
            lower, upper = _normal_ci(t0, np.asarray(res.bootstrap_distribution), conf)
        else:
            lower, upper = res.confidence_interval.low, res.confidence_interval.high
        rows.append((label, conf, round(float(lower), 4), round(float(upper), 4)))
        logger.debug("%s interval: [%.4f, %.4f]", label, lower, upper)

    out = pd.DataFrame(rows, columns=["type", "conf", ".lower", ".upper"])
    out.attrs["estimate"] = t0
    return out
