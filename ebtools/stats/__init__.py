# ebtools/stats/__init__.py
"""
Statistics helpers:
- Common Language Effect Size (plain and bootstrap-ready)
- Bootstrap confidence intervals
"""

from .effect_size import cles, cles_boot
from .bootstrap import get_boot_ci

__all__ = ["cles", "cles_boot", "get_boot_ci"]
