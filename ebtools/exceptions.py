# ebtools/exceptions.py
"""Error types raised by the toolbox.

All of them subclass ``ValueError`` so callers that already guard argument
checks with ``except ValueError`` keep working.
"""

__all__ = [
    "EbtoolsError",
    "InvalidInputShape",
    "InsufficientHistory",
    "EmptyResultAfterFiltering",
    "DegenerateSeries",
]


# ---------- base ----------
class EbtoolsError(ValueError):
    """Base class for every error raised by ebtools."""


# ---------- input and pipeline errors ----------
class InvalidInputShape(EbtoolsError):
    """Input is not a time-indexed series with exactly one numeric column."""


class InsufficientHistory(EbtoolsError):
    """Too few observations remain for the requested model."""


class EmptyResultAfterFiltering(EbtoolsError):
    """The lag-direction and ccf-sign filters left no candidate rows."""


class DegenerateSeries(EbtoolsError):
    """A series has no variation left, so its cross-correlation is undefined."""
