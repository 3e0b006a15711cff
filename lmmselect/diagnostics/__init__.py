"""
Residual diagnostics for fitted models.

Public API:
    standardized_residuals() — (r - mean) / sd with ddof=1
    diagnostic_frame()       — per-observation fitted/residual table
    plot_diagnostics()       — 2×2 residual diagnostic figure
"""

from lmmselect.diagnostics._residuals import standardized_residuals
from lmmselect.diagnostics.plots import diagnostic_frame, plot_diagnostics

__all__ = [
    "standardized_residuals",
    "diagnostic_frame",
    "plot_diagnostics",
]
