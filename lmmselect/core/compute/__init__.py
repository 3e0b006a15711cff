"""
Shared compute infrastructure for lmmselect.

Submodules:
    timing: Execution timing utilities
    tolerances: Significance level, minimum sizes and numeric tolerances
"""

from lmmselect.core.compute.timing import Timer, format_timing
from lmmselect.core.compute.tolerances import (
    DEFAULT_ALPHA,
    DEFAULT_MAX_ITER,
    MIN_GROUP_LEVELS,
    MIN_OBSERVATIONS,
    MIN_ROWS_PER_GROUP,
    ToleranceTier,
)

__all__ = [
    "Timer",
    "format_timing",
    "ToleranceTier",
    "DEFAULT_ALPHA",
    "DEFAULT_MAX_ITER",
    "MIN_GROUP_LEVELS",
    "MIN_OBSERVATIONS",
    "MIN_ROWS_PER_GROUP",
]
