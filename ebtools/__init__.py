# ebtools/__init__.py
"""
ebtools: a toolbox of statistical and time-series helpers.

Key exports
-----------
prewhitened_ccf : function
    Differences two series to stationarity, prewhitens them with the input
    series' AR filter and returns the statistically significant lags of
    their cross-correlation.
prewhitened_ccf_joblib : function
    The same pipeline over many independent series pairs, in parallel.
cles, get_boot_ci : functions
    Common Language Effect Size and bootstrap confidence intervals.
scale_by_mase, descale_by_mase, add_mase_scale_feat : functions
    MASE scaling for grouped series.
create_dtw_grids, dtw_dist_gridsearch : functions
    Parameter grid search for DTW-style distances.
lm_resid_tests, ts_model_resid_tests : functions
    Residual autocorrelation tests for batches of fitted models.
add_tsfeatures : function
    tsfeatures for each series of a grouped table.
add_spatial_lags : function
    Spatial lags of a variable over neighbour orders 1..k (libpysal).
to_js_array : function
    Nest grouped rows into arrays of records.
"""

import logging

from ebtools.exceptions import (
    DegenerateSeries,
    EbtoolsError,
    EmptyResultAfterFiltering,
    InsufficientHistory,
    InvalidInputShape,
)
from ebtools.stats import cles, cles_boot, get_boot_ci
from ebtools.ts import (
    KeepCCF,
    KeepInput,
    SignifType,
    add_mase_scale_feat,
    add_tsfeatures,
    create_dtw_grids,
    descale_by_mase,
    dtw_dist_gridsearch,
    lm_resid_tests,
    prewhitened_ccf,
    prewhitened_ccf_joblib,
    scale_by_mase,
    ts_model_resid_tests,
)
from ebtools.spatial import add_spatial_lags, neighbors_from_coords
from ebtools.utils import to_js_array

# Library: leave handler configuration to the application
logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.3.0"

__all__ = [
    "DegenerateSeries",
    "EbtoolsError",
    "EmptyResultAfterFiltering",
    "InsufficientHistory",
    "InvalidInputShape",
    "cles",
    "cles_boot",
    "get_boot_ci",
    "KeepCCF",
    "KeepInput",
    "SignifType",
    "add_mase_scale_feat",
    "add_spatial_lags",
    "add_tsfeatures",
    "neighbors_from_coords",
    "create_dtw_grids",
    "descale_by_mase",
    "dtw_dist_gridsearch",
    "lm_resid_tests",
    "prewhitened_ccf",
    "prewhitened_ccf_joblib",
    "scale_by_mase",
    "to_js_array",
    "ts_model_resid_tests",
]
