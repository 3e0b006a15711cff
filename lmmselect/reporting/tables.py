"""
Tabular summaries of fitted models and likelihood ratio tests.

Tables are pandas DataFrames built from FittedModelSummary and LRTParams
only, so they render the same whichever backend produced the fits.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence, Union

import numpy as np
import pandas as pd

from lmmselect.core.exceptions import ValidationError
from lmmselect.mixed._common import FittedModelSummary
from lmmselect.mixed.solution import _format_pvalue, _significance_stars

if TYPE_CHECKING:
    from lmmselect.comparison.solution import ComparisonResult
    from lmmselect.mixed.solution import FittedModel

logger = logging.getLogger(__name__)

ModelLike = Union['FittedModel', FittedModelSummary]

FIT_STATISTIC_ROWS = ('N', 'logLik', 'AIC', 'BIC', 'Free parameters', 'Method')


def _summary_of(model: ModelLike) -> FittedModelSummary:
    if isinstance(model, FittedModelSummary):
        return model
    return model.to_summary()


def _estimate_cell(estimate: float, se: float, p: float, digits: int) -> str:
    stars = _significance_stars(p).strip() if np.isfinite(p) else ''
    cell = f"{estimate:.{digits}f} ({se:.{digits}f})"
    return f"{cell} {stars}" if stars else cell


def comparison_table(
    models: Sequence[ModelLike],
    names: Sequence[str] | None = None,
    *,
    digits: int = 3,
    include_random: bool = True,
) -> pd.DataFrame:
    """Side-by-side table of fitted models.

    One column per model. Rows: every fixed-effect term in order of first
    appearance ("estimate (se)" with significance stars), then the random
    effect standard deviations and residual SD, then the fit statistics
    (N, logLik, AIC, BIC, free parameters, method). A term a model lacks
    is an empty cell.

    Args:
        models: FittedModel or FittedModelSummary instances.
        names: Column headers; defaults to "Model 1", "Model 2", ...
        digits: Decimal places for estimates.
        include_random: Include the random-effect SD rows.

    Raises:
        ValidationError: No models, or ``names`` of the wrong length.
    """
    summaries = [_summary_of(m) for m in models]
    if not summaries:
        raise ValidationError("comparison_table: no models given")
    if names is None:
        names = [f"Model {i}" for i in range(1, len(summaries) + 1)]
    names = [str(n) for n in names]
    if len(names) != len(summaries):
        raise ValidationError(
            f"comparison_table: {len(summaries)} models but {len(names)} names"
        )
    if len(set(names)) != len(names):
        raise ValidationError(f"comparison_table: duplicate names {names}")

    # Row order: fixed terms by first appearance, then random SDs
    fixed_rows: list[str] = []
    random_rows: list[str] = []
    for s in summaries:
        for term in s.coefficient_names:
            if term not in fixed_rows:
                fixed_rows.append(term)
        for vc in s.var_components:
            label = f"SD ({vc.group}: {vc.name})"
            if label not in random_rows:
                random_rows.append(label)

    columns: dict[str, dict[str, str]] = {}
    for name, s in zip(names, summaries):
        col: dict[str, str] = {}
        for i, term in enumerate(s.coefficient_names):
            col[term] = _estimate_cell(
                s.coefficients[i], s.se[i], s.p_values[i], digits,
            )
        if include_random:
            for vc in s.var_components:
                col[f"SD ({vc.group}: {vc.name})"] = f"{vc.std_dev:.{digits}f}"
            col['SD (Residual)'] = f"{s.residual_std:.{digits}f}"
        col['N'] = str(s.n_obs)
        col['logLik'] = f"{s.log_likelihood:.2f}"
        col['AIC'] = f"{s.aic:.2f}"
        col['BIC'] = f"{s.bic:.2f}"
        col['Free parameters'] = str(s.n_params)
        col['Method'] = s.method.value
        columns[name] = col

    index = list(fixed_rows)
    if include_random:
        index += random_rows + ['SD (Residual)']
    index += list(FIT_STATISTIC_ROWS)

    table = pd.DataFrame(columns, index=index).fillna('')
    table.index.name = 'Term'
    return table


def anova_table(comparisons: Sequence['ComparisonResult']) -> pd.DataFrame:
    """One row per likelihood ratio test, like R's anova() output.

    Columns: Simple, Complex, npar (simple/complex), logLik (simple/complex),
    Chisq, Df, Pr(>Chisq), significance code and the preferred model.
    """
    rows = []
    for comp in comparisons:
        p = comp.params
        rows.append({
            'Simple': p.simple_formula,
            'Complex': p.complex_formula,
            'npar (simple)': p.simple_n_params,
            'npar (complex)': p.complex_n_params,
            'logLik (simple)': round(p.simple_loglik, 2),
            'logLik (complex)': round(p.complex_loglik, 2),
            'Chisq': round(p.statistic, 4),
            'Df': p.df,
            'Pr(>Chisq)': _format_pvalue(p.p_value),
            'Signif.': _significance_stars(p.p_value).strip(),
            'Preferred': 'complex' if p.prefer_complex else 'simple',
        })
    table = pd.DataFrame(rows, columns=[
        'Simple', 'Complex', 'npar (simple)', 'npar (complex)',
        'logLik (simple)', 'logLik (complex)', 'Chisq', 'Df', 'Pr(>Chisq)',
        'Signif.', 'Preferred',
    ])
    table.index = pd.RangeIndex(1, len(table) + 1, name='Test')
    return table
