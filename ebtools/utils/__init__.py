# ebtools/utils/__init__.py
from .progress import tqdm_joblib
from .validation import align_pair, as_time_series, numeric_columns
from .js_array import to_js_array

__all__ = ["tqdm_joblib", "align_pair", "as_time_series", "numeric_columns", "to_js_array"]
