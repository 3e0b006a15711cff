"""
Solution wrapper for fitted models.

FittedModel wraps Result[FittedModelSummary] together with the design
(formula + dataset) that produced it, and provides R-style summary output,
property accessors for common quantities, refitting under another
estimation mode, and model comparison via likelihood ratio tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from lmmselect.core.datasource import Dataset
from lmmselect.core.result import Result
from lmmselect.diagnostics import _residuals
from lmmselect.mixed._common import EstimationMode, FittedModelSummary, VarCompSummary
from lmmselect.mixed.formula import Formula

if TYPE_CHECKING:
    import pandas as pd

    from lmmselect.comparison.solution import ComparisonResult
    from lmmselect.core.protocols import ModelBackend
    from lmmselect.mixed.design import MixedDesign


def _significance_stars(p: float) -> str:
    """Return significance stars like R."""
    if p < 0.001:
        return '***'
    elif p < 0.01:
        return '**'
    elif p < 0.05:
        return '*'
    elif p < 0.1:
        return '.'
    else:
        return ' '


def _format_pvalue(p: float) -> str:
    """Format p-value like R."""
    if np.isnan(p):
        return 'NA'
    if p < 2e-16:
        return '< 2e-16'
    elif p < 0.001:
        return f'{p:.2e}'
    else:
        return f'{p:.4f}'


class FittedModel:
    """A fitted linear or linear mixed model.

    Immutable after creation. Holds read-only references to the formula and
    dataset that produced it; ``refit`` returns a new model.
    """

    def __init__(
        self,
        _result: Result[FittedModelSummary],
        _design: 'MixedDesign',
        _backend: 'ModelBackend',
    ):
        self._result = _result
        self._design = _design
        self._backend = _backend

    @property
    def params(self) -> FittedModelSummary:
        return self._result.params

    @property
    def result(self) -> Result[FittedModelSummary]:
        return self._result

    # --- Provenance ---

    @property
    def formula(self) -> Formula:
        return self._design.formula

    @property
    def dataset(self) -> Dataset:
        return self._design.dataset

    @property
    def method(self) -> EstimationMode:
        return self._design.method

    @property
    def reml(self) -> bool:
        return self._design.method is EstimationMode.REML

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    # --- Fixed effects ---

    @property
    def coefficients(self) -> NDArray:
        """Fixed effect estimates β̂."""
        return self.params.coefficients

    @property
    def fixef(self) -> dict[str, float]:
        """Fixed effects as name → value dict."""
        return dict(zip(self.params.coefficient_names, self.params.coefficients))

    @property
    def se(self) -> NDArray:
        """Standard errors of fixed effects."""
        return self.params.se

    @property
    def p_values(self) -> NDArray:
        return self.params.p_values

    # --- Random effects ---

    @property
    def ranef(self) -> dict[str, 'pd.DataFrame']:
        """Conditional modes of the random effects per grouping factor."""
        return self.params.random_effects

    @property
    def var_components(self) -> tuple[VarCompSummary, ...]:
        return self.params.var_components

    @property
    def icc(self) -> dict[str, float]:
        """Intraclass correlation coefficient per grouping factor.

        ICC = σ²_group / (σ²_group + σ²_residual)

        For models with random slopes, uses the intercept variance only.
        """
        sigma_sq_resid = self.params.residual_variance
        result = {}
        for vc in self.params.var_components:
            if vc.name == '(Intercept)' and vc.group not in result:
                total = vc.variance + sigma_sq_resid
                result[vc.group] = vc.variance / total if total > 0 else float('nan')
        return result

    # --- Model fit ---

    @property
    def log_likelihood(self) -> float:
        return self.params.log_likelihood

    @property
    def n_params(self) -> int:
        """Free parameters: fixed effects, covariance parameters and σ²."""
        return self.params.n_params

    @property
    def aic(self) -> float:
        return self.params.aic

    @property
    def bic(self) -> float:
        return self.params.bic

    @property
    def n_obs(self) -> int:
        return self.params.n_obs

    @property
    def fitted_values(self) -> NDArray:
        return self.params.fitted_values

    @property
    def residuals(self) -> NDArray:
        return self.params.residuals

    @property
    def standardized_residuals(self) -> NDArray:
        """Residuals scaled to zero mean and unit sample variance."""
        return _residuals.standardized_residuals(self.params.residuals)

    @property
    def converged(self) -> bool:
        return self.params.converged

    # --- Conversion ---

    def to_summary(self) -> FittedModelSummary:
        """Library-agnostic payload consumed by tables and plots."""
        return self.params

    # --- Refitting and comparison ---

    def refit(self, method: EstimationMode | str) -> 'FittedModel':
        """Fit the same formula and dataset under another estimation mode.

        Returns self when the mode already matches.
        """
        from lmmselect.mixed.solvers import fit

        method = EstimationMode.coerce(method)
        if method is self.method:
            return self
        return fit(
            self.formula,
            self.dataset,
            method,
            backend=self._backend,
            max_iter=self._design.max_iter,
        )

    def compare(self, other: 'FittedModel', **kwargs) -> 'ComparisonResult':
        """Likelihood ratio test between self and a nested model.

        The simpler model may be either ``self`` or ``other``; both are
        refit under ML if needed. See
        :func:`lmmselect.comparison.likelihood_ratio_test`.
        """
        from lmmselect.comparison.solvers import likelihood_ratio_test

        if self.formula.is_strictly_nested_in(other.formula):
            return likelihood_ratio_test(self, other, **kwargs)
        return likelihood_ratio_test(other, self, **kwargs)

    # --- Summary ---

    def summary(self) -> str:
        """R-style summary in the manner of lmerTest::summary()."""
        params = self.params
        method = params.method.value

        lines = []
        if params.has_random:
            lines.append(f"Linear mixed model fit by {method}")
        else:
            lines.append(f"Linear model fit by least squares ({method} scale)")
        lines.append(f"Formula: {params.formula}")
        lines.append("")

        if params.has_random:
            # Random effects table
            lines.append("Random effects:")
            lines.append(f" {'Groups':<12s} {'Name':<15s} {'Variance':>10s} "
                         f"{'Std.Dev.':>10s} {'Corr':>6s}")

            prev_group = None
            for vc in params.var_components:
                grp_label = vc.group if vc.group != prev_group else ''
                corr_str = f'{vc.corr:6.2f}' if vc.corr is not None else ''
                lines.append(
                    f" {grp_label:<12s} {vc.name:<15s} {vc.variance:10.4f} "
                    f"{vc.std_dev:10.4f} {corr_str}"
                )
                prev_group = vc.group

            lines.append(
                f" {'Residual':<12s} {'':<15s} {params.residual_variance:10.4f} "
                f"{params.residual_std:10.4f}"
            )
            group_parts = ', '.join(
                f'{name}: {n}' for name, n in params.n_groups.items()
            )
            lines.append(f"Number of obs: {params.n_obs}, groups: {group_parts}")
        else:
            lines.append(
                f"Residual standard error: {params.residual_std:.4f} "
                f"on {params.df_resid:.0f} degrees of freedom"
            )
            lines.append(f"Number of obs: {params.n_obs}")
        lines.append("")

        # Fixed effects table
        stat = params.statistic_name
        lines.append("Fixed effects:")
        header = (f" {'':>15s} {'Estimate':>10s} {'Std. Error':>10s} "
                  f"{stat + ' value':>10s} {f'Pr(>|{stat}|)':>10s} {'':>4s}")
        lines.append(header)

        for i, name in enumerate(params.coefficient_names):
            p_str = _format_pvalue(params.p_values[i])
            stars = _significance_stars(params.p_values[i])
            lines.append(
                f" {name:>15s} {params.coefficients[i]:10.4f} "
                f"{params.se[i]:10.4f} "
                f"{params.statistics[i]:10.3f} {p_str:>10s} {stars}"
            )

        lines.append("---")
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        lines.append("")

        lines.append(f"logLik: {params.log_likelihood:.2f} (df = {params.n_params})")
        lines.append(f"AIC: {params.aic:.1f}, BIC: {params.bic:.1f}")

        if self.warnings:
            lines.append("")
            for w in self.warnings:
                lines.append(f"WARNING: {w}")

        return '\n'.join(lines)

    def __repr__(self) -> str:
        nfe = len(self.params.coefficients)
        nre = len(self.params.var_components)
        return (
            f"FittedModel({self.method.value}, "
            f"'{self.params.formula}', "
            f"n={self.params.n_obs}, "
            f"fixed={nfe}, "
            f"random={nre} var components)"
        )
