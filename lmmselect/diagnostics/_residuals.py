"""
Residual transforms for model diagnostics.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from lmmselect.core.exceptions import NumericalError


def standardized_residuals(residuals: ArrayLike) -> NDArray:
    """Zero-mean, unit-variance transform of raw residuals.

    (r - mean(r)) / sd(r), with the sample standard deviation (ddof=1)
    taken across all observations.

    Raises:
        NumericalError: Fewer than 2 residuals, non-finite residuals, or
            zero spread (a perfect fit has no standardized residuals).
    """
    r = np.asarray(residuals, dtype=np.float64).ravel()
    if r.size < 2:
        raise NumericalError(f"Need at least 2 residuals, got {r.size}")
    if not np.all(np.isfinite(r)):
        raise NumericalError("Residuals contain non-finite values")

    sd = float(np.std(r, ddof=1))
    if not sd > 0:
        raise NumericalError("Residuals have zero spread; cannot standardize")

    return (r - r.mean()) / sd
