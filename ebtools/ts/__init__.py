# ebtools/ts/__init__.py
"""
Time-series utilities:
- Prewhitened cross-correlation (single pair and joblib batch)
- Differencing-order oracles (KPSS / STL seasonal strength)
- MASE scaling of grouped series
- DTW distance grid search
- Residual autocorrelation tests for fitted models
- tsfeatures per grouped series
"""

from .ccf import (
    KeepCCF,
    KeepInput,
    SignifType,
    prewhitened_ccf,
    prewhitened_ccf_joblib,
)
from .backend import StatsBackend, StatsmodelsBackend
from .stationarity import infer_period, unitroot_ndiffs, unitroot_nsdiffs
from .transforms import ar_filter, difference
from .mase import add_mase_scale_feat, descale_by_mase, scale_by_mase
from .dtw import create_dtw_grids, dtw_dist_gridsearch
from .resids import lm_resid_tests, ts_model_resid_tests
from .features import add_tsfeatures

__all__ = [
    "KeepCCF",
    "KeepInput",
    "SignifType",
    "prewhitened_ccf",
    "prewhitened_ccf_joblib",
    "StatsBackend",
    "StatsmodelsBackend",
    "infer_period",
    "unitroot_ndiffs",
    "unitroot_nsdiffs",
    "ar_filter",
    "difference",
    "add_mase_scale_feat",
    "descale_by_mase",
    "scale_by_mase",
    "create_dtw_grids",
    "dtw_dist_gridsearch",
    "lm_resid_tests",
    "ts_model_resid_tests",
    "add_tsfeatures",
]
