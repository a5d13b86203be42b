# ebtools/ts/dtw.py
"""
Grid search over distance-algorithm parameters for (dynamic time warping
style) series distances.

- create_dtw_grids(...)      expand per-algorithm parameter lists into grids
- dtw_dist_gridsearch(...)   distance from each query series to a reference
                             for every parameter configuration

Distance functions are supplied by the caller, f(x, y, **params), so any
implementation (dtaidistance, tslearn, dtw-python, a hand-written one) plugs in.
"""

from __future__ import annotations
from itertools import product
from typing import Any, Callable, Dict, List, Mapping, Sequence, Union
import numpy as np
import pandas as pd
from tqdm import tqdm

__all__ = ["DTW_ALGORITHMS", "create_dtw_grids", "dtw_dist_gridsearch"]

DTW_ALGORITHMS = ("dtw_basic", "dtw2", "dtw_lb", "sbd", "SBD", "gak", "GAK")


def _pattern_id(pattern: Any) -> Any:
    if isinstance(pattern, str):
        return pattern
    return getattr(pattern, "__name__", None)


def create_dtw_grids(params: Mapping[str, Mapping[str, Sequence[Any]]]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Cartesian product of each algorithm's parameter values.

        create_dtw_grids({"dtw_basic": {"window_size": [5, 10], "norm": ["L1", "L2"]}})
        -> {"dtw_basic": [{"window_size": 5, "norm": "L1"}, ..., {"window_size": 10, "norm": "L2"}]}

    A `step_pattern` parameter also gets a readable `step_pattern_id` (the
    string itself, or the pattern object's __name__).
    """
    if not isinstance(params, Mapping):
        raise TypeError("params must be a mapping of algorithm name -> parameter lists.")
    unknown = [k for k in params if k not in DTW_ALGORITHMS]
    if unknown:
        raise ValueError(f"Unsupported distance algorithms {unknown}; expected names from {DTW_ALGORITHMS}.")

    grids: Dict[str, List[Dict[str, Any]]] = {}
    for alg, alg_params in params.items():
        names = list(alg_params.keys())
        values = [v if isinstance(v, (list, tuple)) else [v] for v in alg_params.values()]
        grid = [dict(zip(names, combo)) for combo in product(*values)]
        if "step_pattern" in names:
            for g in grid:
                g["step_pattern_id"] = _pattern_id(g["step_pattern"])
        grids[alg] = grid
    return grids


def _as_distance(res: Any) -> float:
    # some implementations return a result object/dict or a 1x1 matrix
    if isinstance(res, Mapping):
        res = res["distance"]
    elif hasattr(res, "distance"):
        res = res.distance
    return float(np.asarray(res, dtype=float).ravel()[0])


def dtw_dist_gridsearch(
    query_tbl: pd.DataFrame,
    ref_series: Sequence[float],
    dtw_funs: Mapping[str, Callable[..., Any]],
    dtw_grids: Mapping[str, List[Dict[str, Any]]],
    num_best: Union[int, str] = "all",
    show_progress: bool = False,
) -> pd.DataFrame:
    """
    Distance from every column of `query_tbl` to `ref_series`, for every
    algorithm in `dtw_funs` and every configuration in its grid.

    Returns a DataFrame with columns query, algorithm, distance, then the
    parameter columns (step_pattern objects are replaced by their id). With
    num_best=k only the k closest queries per parameter configuration are kept.
    """
    if not isinstance(query_tbl, pd.DataFrame):
        raise TypeError("query_tbl needs to be a DataFrame")
    if sorted(dtw_funs) != sorted(dtw_grids):
        raise ValueError(
            "The distance algorithms used in dtw_funs don't match the distance algorithms used in dtw_grids"
        )
    if not (num_best == "all" or (isinstance(num_best, (int, np.integer)) and num_best > 0)):
        raise ValueError("num_best should be a positive integer or 'all'")
    ref = np.asarray(ref_series, dtype=float)
    if ref.ndim != 1:
        raise ValueError("ref_series must be one-dimensional numeric.")

    algs = sorted(dtw_grids)
    total = len(query_tbl.columns) * sum(len(dtw_grids[a]) for a in algs)
    pbar = tqdm(total=total, desc="DTW grid search", leave=False, disable=not show_progress)

    rows = []
    for query_name in query_tbl.columns:
        query = query_tbl[query_name].to_numpy(dtype=float)
        for alg in algs:
            fun = dtw_funs[alg]
            for params in dtw_grids[alg]:
                call_params = {k: v for k, v in params.items() if k != "step_pattern_id"}
                dist = _as_distance(fun(query, ref, **call_params))
                row = {"query": query_name, "algorithm": alg, "distance": dist}
                row.update({k: v for k, v in params.items() if k != "step_pattern"})
                rows.append(row)
                pbar.update(1)
    pbar.close()

    out = pd.DataFrame(rows)
    if num_best == "all" or out.empty:
        return out

    param_cols = [c for c in out.columns if c not in ("query", "distance")]
    return (
        out.sort_values("distance", kind="mergesort")
           .groupby(param_cols, sort=False, dropna=False)
           .head(int(num_best))
           .sort_values(["algorithm", "distance"], kind="mergesort")
           .reset_index(drop=True)
    )
