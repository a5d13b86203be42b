# ebtools/config.py
"""Package-wide constants.

Every tuneable number used by the toolbox lives here so the statistical
wrappers and their tests import a single source of truth.
"""

# ---------- ccf significance ----------

# Two-sided 95% normal critical value. The large-sample CCF threshold is
# SIGNIF_Z / sqrt(n).
SIGNIF_Z = 1.96

SIGNIF_LABEL = "Statistically Significant"
NOT_SIGNIF_LABEL = "Not Statistically Significant"

# ---------- differencing-order oracles ----------

# KPSS level-stationarity test level used to pick the number of first
# differences.
KPSS_ALPHA = 0.05

# STL seasonal strength at or above which another seasonal difference is
# taken (Hyndman & Athanasopoulos, FPP3 section 9.1).
SEASONAL_STRENGTH_THRESHOLD = 0.64

# Largest number of differences (seasonal or ordinary) either oracle returns.
MAX_DIFFS = 2

# Seasonal period implied by a pandas frequency prefix. Anything missing
# from this map is treated as non-seasonal (period 1).
FREQ_TO_PERIOD = {
    "min": 60,
    "T": 60,
    "h": 24,
    "H": 24,
    "D": 7,
    "B": 5,
    "W": 52,
    "M": 12,
    "ME": 12,
    "MS": 12,
    "Q": 4,
    "QE": 4,
    "QS": 4,
}

# ---------- bootstrap and scaling ----------

# Seed for every bootstrap so confidence intervals are reproducible.
BOOT_SEED = 2023

# Groups whose MASE scale factor falls below this are refused: dividing by
# it would blow the series up.
MIN_MASE_SCALE = 1e-4
