"""
Common data types for fitted models.

Contains the estimation-mode enum and the frozen parameter payloads that go
inside Result[P] envelopes. Each payload is a pure data container: no
methods, no computation, and no reference to the statistics library that
produced it. Plotting and table rendering consume only these types.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import pandas as pd
from numpy.typing import NDArray


class EstimationMode(str, Enum):
    """Estimation criterion.

    REML gives less biased variance components and is used for reporting.
    ML likelihoods are comparable across models with different fixed
    effects and are required for likelihood ratio tests.
    """
    REML = 'REML'
    ML = 'ML'

    @classmethod
    def coerce(cls, value: 'EstimationMode | str | bool') -> 'EstimationMode':
        """Accept an enum member, its name (any case) or a ``reml`` flag."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.REML if value else cls.ML
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValueError(
                f"Unknown estimation mode {value!r}; expected 'REML' or 'ML'"
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class VarCompSummary:
    """Variance component summary for one random effect term.

    Attributes:
        group: Grouping factor name (e.g. 'subject').
        name: Term name within the group (e.g. '(Intercept)', 'days').
        variance: Estimated variance for this component.
        std_dev: Standard deviation (sqrt of variance).
        corr: Correlation with the first term in the same group,
              or None if this is the first (or only) term.
    """
    group: str
    name: str
    variance: float
    std_dev: float
    corr: float | None = None


@dataclass(frozen=True)
class FittedModelSummary:
    """
    Library-agnostic payload for a fitted linear or linear mixed model.

    Everything downstream (likelihood ratio tests, diagnostics, tables)
    reads these fields and nothing else.
    """
    # Model
    formula: str
    response: str
    method: EstimationMode
    has_random: bool

    # Fixed effects
    coefficient_names: tuple[str, ...]
    coefficients: NDArray              # β̂ (p,)
    se: NDArray                        # standard errors of β̂ (p,)
    statistics: NDArray                # β̂ / se (p,)
    statistic_name: str                # 't' (OLS) or 'z' (mixed, Wald)
    p_values: NDArray                  # (p,)
    conf_int: NDArray                  # 95% Wald interval (p, 2)

    # Random effects
    var_components: tuple[VarCompSummary, ...]
    residual_variance: float           # σ²
    residual_std: float                # σ

    # Model fit
    log_likelihood: float
    n_params: int                      # free parameters, incl. σ²
    aic: float
    bic: float
    n_obs: int
    df_resid: float                    # n - p
    n_groups: dict[str, int]           # grouping factor → number of levels

    # Convergence
    converged: bool
    n_iter: int | None

    # Predictions
    fitted_values: NDArray             # conditional fitted values (n,)
    residuals: NDArray                 # y - fitted (n,)

    # Conditional modes, one frame per grouping factor (levels × terms)
    random_effects: dict[str, pd.DataFrame] = field(default_factory=dict)
