# ebtools/spatial.py
"""
Spatial lags of a variable over a neighbourhood structure (libpysal).

Public API:
- neighbors_from_coords(...)  k-nearest-neighbour or distance-band neighbours
- add_spatial_lags(...)       add spatlag_<k>_<y> columns for orders 1..lags

Rows of `data` line up with `w.id_order`. Order k uses the neighbours that
are exactly k steps away on the neighbour graph; each order gets its own
weights, built from the chosen distance decay (or plain adjacency) and
normalised by `style`.
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Sequence, Tuple, Union
import logging
import numpy as np
import pandas as pd
from libpysal.weights import KNN, DistanceBand, W, higher_order, lag_spatial

__all__ = ["SPATIAL_TYPES", "SPATIAL_STYLES", "neighbors_from_coords", "add_spatial_lags"]

logger = logging.getLogger(__name__)

SPATIAL_TYPES = ("idw", "exp", "dpd")
SPATIAL_STYLES = ("W", "B", "C", "S", "U", "minmax", "raw")

# style -> libpysal transform; C and minmax are rescaled after the lag
_TRANSFORMS = {
    "W": "R",
    "B": "B",
    "C": "D",
    "U": "D",
    "S": "V",
    "minmax": "O",
    "raw": "O",
}

CoordsLike = Union[np.ndarray, Sequence[Sequence[float]], Tuple[str, str]]


# ---------- neighbours ----------
def neighbors_from_coords(
    coords: Any,
    *,
    k: Optional[int] = None,
    threshold: Optional[float] = None,
) -> W:
    """
    Neighbour structure from point coordinates: the `k` nearest points, or
    every point within `threshold`. Exactly one of the two must be given.
    """
    pts = np.asarray(coords, dtype=float)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError("coords must be an (n, 2) array of point coordinates.")
    if (k is None) == (threshold is None):
        raise ValueError("Give exactly one of k or threshold.")
    if k is not None:
        return KNN.from_array(pts, k=int(k))
    return DistanceBand.from_array(pts, threshold=float(threshold), binary=True, silence_warnings=True)


# ---------- weights ----------
def _resolve_coords(data: pd.DataFrame, coords: Optional[CoordsLike]) -> np.ndarray:
    if coords is None:
        geom = getattr(data, "geometry", None)
        if geom is None:
            raise ValueError("Distance weights need coords or a data frame with a geometry column.")
        cent = geom.centroid
        return np.column_stack([cent.x.to_numpy(), cent.y.to_numpy()])
    if isinstance(coords, (tuple, list)) and len(coords) == 2 and all(isinstance(c, str) for c in coords):
        return data[list(coords)].to_numpy(dtype=float)
    pts = np.asarray(coords, dtype=float)
    if pts.shape != (len(data), 2):
        raise ValueError(f"coords must have shape ({len(data)}, 2); got {pts.shape}.")
    return pts


def _decay(d: np.ndarray, type: str, alpha: float, dmax: Optional[float]) -> np.ndarray:
    if type == "idw":
        return d ** (-alpha)
    if type == "exp":
        return np.exp(-alpha * d)
    # dpd
    return np.where(d < dmax, (1 - (d / dmax) ** alpha) ** alpha, 0.0)


def _lag_weights(
    neighbors: Dict[Any, list],
    id_order: list,
    type: Optional[str],
    pts: Optional[np.ndarray],
    alpha: float,
    dmax: Optional[float],
) -> W:
    if type is None:
        return W(neighbors, id_order=id_order, silence_warnings=True)

    pos = {i: p for p, i in enumerate(id_order)}
    weights = {}
    for i in id_order:
        nbrs = neighbors[i]
        if not nbrs:
            weights[i] = []
            continue
        d = np.linalg.norm(pts[[pos[j] for j in nbrs]] - pts[pos[i]], axis=1)
        weights[i] = _decay(d, type, alpha, dmax).tolist()
    return W(neighbors, weights, id_order=id_order, silence_warnings=True)


def _weights_summary(w: W, style: str) -> Dict[str, Any]:
    return {
        "n_regions": int(w.n),
        "n_links": int(w.nonzero),
        "pct_nonzero": float(w.pct_nonzero),
        "avg_links": float(w.mean_neighbors),
        "n_islands": len(w.islands),
        "style": style,
    }


# ---------- main API ----------
def add_spatial_lags(
    w: W,
    y: str,
    data: pd.DataFrame,
    lags: int,
    type: Optional[str] = None,
    *,
    style: Optional[str] = None,
    alpha: float = 1.0,
    dmax: Optional[float] = None,
    coords: Optional[CoordsLike] = None,
    zero_policy: bool = False,
) -> pd.DataFrame:
    """
    Add the spatial lags of column `y` for neighbour orders 1..`lags`.

    Args:
        w: libpysal neighbour structure; its links define order 1
        y: numeric column of `data`
        data: one row per region, in `w.id_order`
        lags: number of neighbour orders
        type: None for adjacency weights, or "idw" (d^-alpha), "exp"
              (exp(-alpha d)) or "dpd" ((1 - (d/dmax)^alpha)^alpha inside dmax)
        style: "W" row-standardised, "B" binary, "C" globally standardised
               to sum n, "U" to sum 1, "S" variance-stabilising, "minmax",
               or "raw"; defaults to "W" for adjacency and "raw" for distances
        alpha, dmax: distance-decay parameters
        coords: (n, 2) coordinates, or two column names, for distance types;
                a GeoDataFrame's centroids are used when omitted
        zero_policy: allow regions without neighbours at some order (their lag is 0)

    Returns:
        `data` with `y` first, then spatlag_1_<y> .. spatlag_<lags>_<y>, then
        the remaining columns. `attrs["summ_wgts_spatlag_<k>"]` summarises the
        weights of order k.
    """
    if not isinstance(w, W):
        raise TypeError("w must be a libpysal.weights.W neighbour structure.")
    if not isinstance(data, pd.DataFrame):
        raise TypeError("data must be a pandas DataFrame.")
    if not isinstance(y, str) or y not in data.columns:
        raise ValueError(f"y must name a column of data; got {y!r}.")
    if not pd.api.types.is_numeric_dtype(data[y]) or pd.api.types.is_bool_dtype(data[y]):
        raise ValueError(f"{y!r} must be numeric.")
    if isinstance(lags, bool) or not isinstance(lags, (int, np.integer)) or lags < 1:
        raise ValueError(f"lags must be a positive integer; got {lags!r}.")
    if type is not None and type not in SPATIAL_TYPES:
        raise ValueError(f"type must be one of {SPATIAL_TYPES} or None; got {type!r}.")
    style = style or ("W" if type is None else "raw")
    if style not in SPATIAL_STYLES:
        raise ValueError(f"style must be one of {SPATIAL_STYLES}; got {style!r}.")
    if type == "dpd" and (dmax is None or dmax <= 0):
        raise ValueError("type='dpd' needs a positive dmax.")
    if len(data) != w.n:
        raise ValueError(f"data has {len(data)} rows but w has {w.n} regions.")

    pts = _resolve_coords(data, coords) if type is not None else None
    values = data[y].to_numpy(dtype=float)

    id_order = list(w.id_order)
    # higher_order only accepts binary weights
    binary = W({i: list(w.neighbors.get(i, [])) for i in id_order}, id_order=id_order, silence_warnings=True)

    lag_cols = {}
    summaries = {}
    for k in range(1, int(lags) + 1):
        nb = binary if k == 1 else higher_order(binary, k)
        neighbors = {i: list(nb.neighbors.get(i, [])) for i in id_order}
        wk = _lag_weights(neighbors, id_order, type, pts, alpha, dmax)
        if wk.islands and not zero_policy:
            raise ValueError(
                f"{len(wk.islands)} regions have no neighbours at order {k}; "
                "pass zero_policy=True to give them a lag of 0."
            )
        wk.transform = _TRANSFORMS[style]
        lagged = np.asarray(lag_spatial(wk, values), dtype=float)
        if style == "C":
            lagged = lagged * wk.n
        elif style == "minmax":
            sp = wk.sparse
            lagged = lagged / min(sp.sum(axis=1).max(), sp.sum(axis=0).max())

        lag_cols[f"spatlag_{k}_{y}"] = lagged
        summaries[f"summ_wgts_spatlag_{k}"] = _weights_summary(wk, style)
        logger.debug("spatial lag %d of %s: %s", k, y, summaries[f"summ_wgts_spatlag_{k}"])

    lag_df = pd.DataFrame(lag_cols, index=data.index)
    rest = data.drop(columns=y)
    out = pd.concat([data[[y]], lag_df, rest], axis=1)
    out.attrs.update(summaries)
    return out
