"""
Common types for model comparison.

Defines the selection state machine and the LRTParams payload that goes
inside Result[P] envelopes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SelectionState(str, Enum):
    """Outcome of random-effects structure selection.

    NONE -> INTERCEPT_ONLY -> INTERCEPT_AND_SLOPE; a selection stops at
    the last accepted structure. NON_CONVERGED is terminal and carries no
    selected model.
    """
    NONE = 'none'
    INTERCEPT_ONLY = 'intercept_only'
    INTERCEPT_AND_SLOPE = 'intercept_and_slope'
    NON_CONVERGED = 'non_converged'

    @property
    def resolved(self) -> bool:
        return self is not SelectionState.NON_CONVERGED

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    def __str__(self) -> str:
        return self.value


_DESCRIPTIONS = {
    SelectionState.NONE: "no random effects needed",
    SelectionState.INTERCEPT_ONLY: "random intercept per group",
    SelectionState.INTERCEPT_AND_SLOPE: "random intercept and slope per group",
    SelectionState.NON_CONVERGED: "a candidate fit did not converge",
}


@dataclass(frozen=True)
class LRTParams:
    """
    Parameter payload for a likelihood ratio test between nested models.

    Attributes:
        statistic: 2 * (logLik(complex) - logLik(simple)), clipped at 0.
        df: Difference in free-parameter counts.
        p_value: Upper tail of chi-squared(df) at the statistic.
        alpha: Significance level the decision was made at.
        prefer_complex: True when p_value < alpha.
        simple_formula / complex_formula: String forms of the formulas.
        simple_loglik / complex_loglik: ML log-likelihoods.
        simple_n_params / complex_n_params: Free-parameter counts.
        simple_aic / complex_aic, simple_bic / complex_bic: ML criteria.
        raw_statistic: The statistic before clipping.
    """
    statistic: float
    df: int
    p_value: float
    alpha: float
    prefer_complex: bool
    simple_formula: str
    complex_formula: str
    simple_loglik: float
    complex_loglik: float
    simple_n_params: int
    complex_n_params: int
    simple_aic: float
    complex_aic: float
    simple_bic: float
    complex_bic: float
    raw_statistic: float
