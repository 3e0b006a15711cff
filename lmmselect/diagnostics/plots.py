"""
Residual diagnostic plots.

Four standard views of a fitted model:
    - residuals vs fitted (non-linearity, heteroscedasticity)
    - scale-location: sqrt(|standardized residual|) vs fitted
    - normal QQ plot of standardized residuals
    - histogram of standardized residuals with a N(0, 1) reference curve

Only the FittedModelSummary payload is read, so any backend's fit can be
plotted.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Union

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy import stats

from lmmselect.diagnostics._residuals import standardized_residuals

if TYPE_CHECKING:
    from lmmselect.mixed._common import FittedModelSummary
    from lmmselect.mixed.solution import FittedModel

logger = logging.getLogger(__name__)

ModelLike = Union['FittedModel', 'FittedModelSummary']


def _payload(model: ModelLike) -> 'FittedModelSummary':
    return model.to_summary() if hasattr(model, 'to_summary') else model


def diagnostic_frame(model: ModelLike) -> pd.DataFrame:
    """Per-observation fitted value, residual and standardized residual.

    Columns: fitted, residual, std_residual, sqrt_abs_std_residual.
    """
    params = _payload(model)
    std_resid = standardized_residuals(params.residuals)
    return pd.DataFrame({
        'fitted': np.asarray(params.fitted_values, dtype=np.float64),
        'residual': np.asarray(params.residuals, dtype=np.float64),
        'std_residual': std_resid,
        'sqrt_abs_std_residual': np.sqrt(np.abs(std_resid)),
    })


def plot_diagnostics(
    model: ModelLike,
    path: Path | str | None = None,
    *,
    title: str | None = None,
    bins: int = 30,
) -> plt.Figure:
    """Draw the 2×2 residual diagnostic panel.

    Args:
        model: FittedModel or FittedModelSummary.
        path: If given, the figure is saved there (PNG/PDF/SVG by
            extension) and closed.
        title: Figure title; defaults to the model formula.
        bins: Histogram bin count.

    Returns:
        The matplotlib Figure.
    """
    params = _payload(model)
    df = diagnostic_frame(params)

    fig, axes = plt.subplots(2, 2, figsize=(12, 10))
    fig.suptitle(title or f"{params.formula} ({params.method.value})", fontsize=13)

    # Residuals vs fitted
    ax = axes[0, 0]
    ax.scatter(df['fitted'], df['residual'], alpha=0.6, s=18)
    ax.axhline(0, color='r', linestyle='--', linewidth=1)
    _add_trend(ax, df['fitted'], df['residual'])
    ax.set_xlabel('Fitted values')
    ax.set_ylabel('Residuals')
    ax.set_title('Residuals vs Fitted')
    ax.grid(True, alpha=0.3)

    # Scale-location
    ax = axes[0, 1]
    ax.scatter(df['fitted'], df['sqrt_abs_std_residual'], alpha=0.6, s=18)
    _add_trend(ax, df['fitted'], df['sqrt_abs_std_residual'])
    ax.set_xlabel('Fitted values')
    ax.set_ylabel(r'$\sqrt{|\mathrm{Standardized\ residuals}|}$')
    ax.set_title('Scale-Location')
    ax.grid(True, alpha=0.3)

    # Normal QQ
    ax = axes[1, 0]
    stats.probplot(df['std_residual'], dist="norm", plot=ax)
    ax.set_title("Normal Q-Q (Standardized Residuals)")
    ax.grid(True, alpha=0.3)

    # Histogram
    ax = axes[1, 1]
    ax.hist(df['std_residual'], bins=bins, density=True, alpha=0.7,
            color='skyblue', edgecolor='black')
    grid = np.linspace(min(-4.0, df['std_residual'].min()),
                       max(4.0, df['std_residual'].max()), 200)
    ax.plot(grid, stats.norm.pdf(grid), 'r-', linewidth=2, label='N(0, 1)')
    ax.set_xlabel('Standardized residuals')
    ax.set_ylabel('Density')
    ax.set_title('Residual Distribution')
    ax.legend()
    ax.grid(True, alpha=0.3)

    fig.tight_layout()

    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        logger.info("Saved diagnostic plots to %s", path)

    return fig


def _add_trend(ax, x: pd.Series, y: pd.Series) -> None:
    """Overlay a binned-mean trend line (a light stand-in for a lowess smoother)."""
    if len(x) < 10:
        return
    n_bins = min(20, len(x) // 5)
    edges = np.unique(np.quantile(x, np.linspace(0, 1, n_bins + 1)))
    if len(edges) < 3:
        return
    idx = np.clip(np.digitize(x, edges[1:-1]), 0, len(edges) - 2)
    centers, means = [], []
    for b in range(len(edges) - 1):
        mask = idx == b
        if mask.any():
            centers.append(float(np.mean(np.asarray(x)[mask])))
            means.append(float(np.mean(np.asarray(y)[mask])))
    ax.plot(centers, means, color='darkorange', linewidth=1.5)
