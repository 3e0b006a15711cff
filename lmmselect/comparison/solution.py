"""
Comparison and selection solution types.

ComparisonResult wraps Result[LRTParams] and prints like R's anova() on
two merMod fits. SelectionResult records a whole random-structure
selection: every candidate, every test and the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lmmselect.comparison._common import LRTParams, SelectionState
from lmmselect.core.result import Result
from lmmselect.mixed.solution import _format_pvalue, _significance_stars

if TYPE_CHECKING:
    from lmmselect.comparison.design import ComparisonDesign
    from lmmselect.mixed.solution import FittedModel


@dataclass
class ComparisonResult:
    """
    Likelihood ratio test between two nested models.

    Both ``simple`` and ``complex`` are the ML fits the test was computed
    on, whatever mode the caller passed in.
    """
    _result: Result[LRTParams]
    _design: 'ComparisonDesign'

    @property
    def params(self) -> LRTParams:
        return self._result.params

    @property
    def result(self) -> Result[LRTParams]:
        return self._result

    @property
    def statistic(self) -> float:
        return self.params.statistic

    @property
    def df(self) -> int:
        return self.params.df

    @property
    def p_value(self) -> float:
        return self.params.p_value

    @property
    def alpha(self) -> float:
        return self.params.alpha

    @property
    def prefer_complex(self) -> bool:
        return self.params.prefer_complex

    @property
    def simple(self) -> 'FittedModel':
        return self._design.simple

    @property
    def complex(self) -> 'FittedModel':
        return self._design.complex

    @property
    def preferred(self) -> 'FittedModel':
        """The complex model when p < alpha, else the simple one."""
        return self.complex if self.prefer_complex else self.simple

    @property
    def decision(self) -> str:
        return 'complex' if self.prefer_complex else 'simple'

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """R-style anova() table for the two models."""
        p = self.params
        lines = [
            "Likelihood ratio test (models fit by ML)",
            f"  simple:  {p.simple_formula}",
            f"  complex: {p.complex_formula}",
            "",
            f" {'':<8s} {'npar':>5s} {'AIC':>10s} {'BIC':>10s} {'logLik':>10s} "
            f"{'Chisq':>8s} {'Df':>3s} {'Pr(>Chisq)':>11s}",
            f" {'simple':<8s} {p.simple_n_params:5d} {p.simple_aic:10.2f} "
            f"{p.simple_bic:10.2f} {p.simple_loglik:10.2f}",
            f" {'complex':<8s} {p.complex_n_params:5d} {p.complex_aic:10.2f} "
            f"{p.complex_bic:10.2f} {p.complex_loglik:10.2f} "
            f"{p.statistic:8.4f} {p.df:3d} {_format_pvalue(p.p_value):>11s} "
            f"{_significance_stars(p.p_value)}",
            "---",
            "Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1",
            f"Decision at alpha = {p.alpha:g}: prefer {self.decision} model",
        ]
        for w in self.warnings:
            lines.append(f"WARNING: {w}")
        return '\n'.join(lines)

    def __repr__(self) -> str:
        return (
            f"ComparisonResult(Chisq={self.statistic:.4f}, df={self.df}, "
            f"p={_format_pvalue(self.p_value)}, prefer={self.decision})"
        )


@dataclass(frozen=True)
class SelectionResult:
    """
    Outcome of a random-effects structure selection.

    Attributes:
        state: Final SelectionState.
        candidates: ML fits in the order they were made, keyed by state
            ('none', 'intercept_only', 'intercept_and_slope').
        comparisons: Likelihood ratio tests performed, in order.
        selected: The selected structure refit under REML (the ML fit if
            that refit failed), or None when the
            selection did not converge.
        reason: Human-readable explanation of the outcome.
        error: Message of the NonConvergenceError that stopped the
            selection or its REML refit, if any.
        alpha: Significance level used for every test.
    """
    state: SelectionState
    candidates: dict[str, 'FittedModel'] = field(default_factory=dict)
    comparisons: tuple[ComparisonResult, ...] = ()
    selected: 'FittedModel | None' = None
    reason: str = ''
    error: str | None = None
    alpha: float = 0.05

    @property
    def resolved(self) -> bool:
        return self.state.resolved

    @property
    def models(self) -> list['FittedModel']:
        """ML candidate fits in fitting order."""
        return list(self.candidates.values())

    def summary(self) -> str:
        lines = [
            "Random-effects structure selection",
            "=" * 50,
            f"State:  {self.state.value} ({self.state.description})",
            f"Reason: {self.reason}",
        ]
        if self.error:
            lines.append(f"Error:  {self.error}")
        for i, comp in enumerate(self.comparisons, 1):
            lines.append("")
            lines.append(f"Test {i}:")
            lines.append(comp.summary())
        if self.selected is not None:
            lines.append("")
            lines.append("Selected model:")
            lines.append(self.selected.summary())
        return '\n'.join(lines)

    def __repr__(self) -> str:
        selected = str(self.selected.formula) if self.selected is not None else None
        return (
            f"SelectionResult(state={self.state.value}, "
            f"tests={len(self.comparisons)}, selected={selected!r})"
        )
