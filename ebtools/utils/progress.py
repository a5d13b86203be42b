# ebtools/utils/progress.py
from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator
import joblib
from tqdm import tqdm

@contextmanager
def tqdm_joblib(pbar: tqdm) -> Iterator[tqdm]:
    """
    Advance `pbar` each time a joblib batch finishes.

        with tqdm_joblib(tqdm(total=len(series_pairs), desc="Prewhitened CCF")):
            Parallel(n_jobs=4)(delayed(prewhitened_ccf)(a, b, max_order=10) for a, b in ...)

    joblib's completion callback is patched for the duration of the block and
    restored afterwards; the bar is closed on exit.
    """
    base_cb = joblib.parallel.BatchCompletionCallBack

    class _PbarCallback(base_cb):
        def __call__(self, *args, **kwargs):
            pbar.update(n=self.batch_size)
            return super().__call__(*args, **kwargs)

    joblib.parallel.BatchCompletionCallBack = _PbarCallback
    try:
        yield pbar
    finally:
        joblib.parallel.BatchCompletionCallBack = base_cb
        pbar.close()
