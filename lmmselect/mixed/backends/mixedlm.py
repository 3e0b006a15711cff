"""
Linear mixed model backend.

Delegates REML/ML estimation to statsmodels MixedLM and converts the
result into a FittedModelSummary. Two random-effect layouts are supported:

    - one grouping factor with a random intercept and/or random slopes,
      estimated with a full covariance matrix: (1 + days | subject)
    - several intercept-only grouping factors, fitted as crossed variance
      components over a single all-observations group:
      (1 | subject) + (1 | trial)

The free-parameter count is read off the fitted parameter vector (fixed
effects, packed random-effects covariance, variance components) plus one
for the residual variance, so correlated slopes are counted correctly.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

from lmmselect.core.compute.timing import Timer
from lmmselect.core.compute.tolerances import MIXEDLM_OPTIMIZERS
from lmmselect.core.exceptions import NonConvergenceError, ValidationError
from lmmselect.core.result import Result
from lmmselect.mixed._common import FittedModelSummary, VarCompSummary
from lmmselect.mixed.backends._extract import (
    capture_warnings,
    clean_term_name,
    information_criteria,
)
from lmmselect.mixed.design import MixedDesign
from lmmselect.mixed.formula import quote_name

logger = logging.getLogger(__name__)

_CROSSED_GROUP = '__all__'


class MixedLMBackend:
    """
    Mixed model backend using statsmodels MixedLM.

    Implements the ModelBackend protocol for MixedDesign -> FittedModelSummary.
    """

    @property
    def name(self) -> str:
        return 'statsmodels_mixedlm'

    def solve(self, design: MixedDesign) -> Result[FittedModelSummary]:
        """
        Fit the mixed model.

        Raises:
            ValidationError: If the formula has no random terms, or mixes
                random slopes with several grouping factors
            NonConvergenceError: If the optimizer does not converge or the
                numerics break down
        """
        formula = design.formula
        terms = formula.random
        if not terms:
            raise ValidationError(
                f"{self.name}: formula '{formula}' has no random terms; "
                f"use the OLS backend"
            )
        crossed = len(terms) > 1
        if crossed and any(t.slopes or not t.intercept for t in terms):
            raise ValidationError(
                f"{self.name}: several grouping factors are supported only as "
                f"random intercepts, got '{formula}'"
            )

        timer = Timer()
        timer.start()
        warn_list: list[str] = []
        frame = design.frame

        with timer.section('setup'):
            if crossed:
                data = frame.assign(**{_CROSSED_GROUP: 1})
                model = smf.mixedlm(
                    formula.to_patsy(),
                    data=data,
                    groups=data[_CROSSED_GROUP],
                    re_formula='0',
                    vc_formula={
                        t.group: f"0 + C({quote_name(t.group)})" for t in terms
                    },
                )
            else:
                term = terms[0]
                model = smf.mixedlm(
                    formula.to_patsy(),
                    data=frame,
                    groups=frame[term.group],
                    re_formula=term.re_formula(),
                )

        with timer.section('optimization'), capture_warnings(warn_list):
            try:
                res = model.fit(
                    reml=design.reml,
                    maxiter=design.max_iter,
                    method=list(MIXEDLM_OPTIMIZERS),
                )
            except (np.linalg.LinAlgError, ValueError) as e:
                raise NonConvergenceError(
                    f"Mixed model fit of '{formula}' failed: {e}",
                    formula=str(formula),
                    backend=self.name,
                    reason=str(e),
                ) from e

        n_iter = _iterations(res)
        if not res.converged:
            raise NonConvergenceError(
                f"Mixed model fit of '{formula}' did not converge",
                formula=str(formula),
                backend=self.name,
                iterations=n_iter,
                reason='; '.join(warn_list) or 'optimizer reported failure',
            )

        ll = float(res.llf)
        if not np.isfinite(ll):
            raise NonConvergenceError(
                f"Mixed model fit of '{formula}' has non-finite log-likelihood",
                formula=str(formula),
                backend=self.name,
                iterations=n_iter,
                reason='non-finite log-likelihood',
            )

        with timer.section('extract'):
            k_fe = int(res.k_fe)
            n_params = int(len(res.params)) + 1
            aic, bic = information_criteria(ll, n_params, design.n)

            if crossed:
                var_comps = _variance_components(res)
                ranef = _crossed_random_effects(res, [t.group for t in terms])
                n_groups = {
                    t.group: int(frame[t.group].nunique()) for t in terms
                }
            else:
                var_comps = _covariance_components(res, terms[0].group)
                ranef = {terms[0].group: _grouped_random_effects(res)}
                n_groups = {terms[0].group: int(frame[terms[0].group].nunique())}

            fe_names = tuple(clean_term_name(c) for c in res.fe_params.index)
            sigma_sq = float(res.scale)

        timer.stop()

        params = FittedModelSummary(
            formula=str(formula),
            response=formula.response,
            method=design.method,
            has_random=True,
            coefficient_names=fe_names,
            coefficients=res.fe_params.to_numpy(dtype=np.float64),
            se=np.asarray(res.bse_fe, dtype=np.float64),
            statistics=np.asarray(res.tvalues, dtype=np.float64)[:k_fe],
            statistic_name='z',
            p_values=np.asarray(res.pvalues, dtype=np.float64)[:k_fe],
            conf_int=np.asarray(res.conf_int(), dtype=np.float64)[:k_fe],
            var_components=tuple(var_comps),
            residual_variance=sigma_sq,
            residual_std=float(np.sqrt(sigma_sq)),
            log_likelihood=ll,
            n_params=n_params,
            aic=aic,
            bic=bic,
            n_obs=design.n,
            df_resid=float(design.n - k_fe),
            n_groups=n_groups,
            converged=True,
            n_iter=n_iter,
            fitted_values=np.asarray(res.fittedvalues, dtype=np.float64),
            residuals=np.asarray(res.resid, dtype=np.float64),
            random_effects=ranef,
        )

        return Result(
            params=params,
            info={
                'method': design.method.value,
                'likelihood': design.method.value,
                'converged': True,
                'n_iter': n_iter,
                'n_dropped': design.n_dropped,
                'layout': 'crossed' if crossed else 'grouped',
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warn_list),
        )


# =====================================================================
# Helpers
# =====================================================================

def _iterations(res) -> int | None:
    retvals = getattr(res, 'mle_retvals', None) or {}
    n_iter = retvals.get('iterations')
    return int(n_iter) if n_iter is not None else None


def _covariance_components(res, group: str) -> list[VarCompSummary]:
    """Variance, std dev and correlation with the first term, per random coefficient."""
    cov = res.cov_re
    names = [clean_term_name(str(c)) for c in cov.index]
    cov_matrix = np.asarray(cov, dtype=np.float64)

    var_comps = []
    for i, name in enumerate(names):
        var_i = float(cov_matrix[i, i])
        sd_i = float(np.sqrt(max(var_i, 0.0)))

        # Correlation with first term (only for 2nd+ terms)
        if i > 0 and cov_matrix[0, 0] > 0 and var_i > 0:
            corr = cov_matrix[i, 0] / (np.sqrt(cov_matrix[0, 0]) * sd_i)
            corr = float(np.clip(corr, -1.0, 1.0))
        else:
            corr = None

        var_comps.append(VarCompSummary(
            group=group,
            name=name,
            variance=var_i,
            std_dev=sd_i,
            corr=corr,
        ))
    return var_comps


def _variance_components(res) -> list[VarCompSummary]:
    """One intercept variance per crossed grouping factor."""
    names = list(res.model.exog_vc.names)
    values = np.asarray(res.vcomp, dtype=np.float64)
    return [
        VarCompSummary(
            group=name,
            name='(Intercept)',
            variance=float(v),
            std_dev=float(np.sqrt(max(v, 0.0))),
        )
        for name, v in zip(names, values)
    ]


def _grouped_random_effects(res) -> pd.DataFrame:
    """Conditional modes as a levels × terms frame."""
    frame = pd.DataFrame.from_dict(res.random_effects, orient='index')
    frame.columns = [clean_term_name(str(c)) for c in frame.columns]
    return frame


def _crossed_random_effects(res, groups: list[str]) -> dict[str, pd.DataFrame]:
    """Split the single all-observations block into one frame per factor."""
    (block,) = res.random_effects.values()
    out = {}
    for group in groups:
        prefix = f"{group}["
        values = block[[str(k).startswith(prefix) for k in block.index]]
        out[group] = pd.DataFrame({'(Intercept)': values.to_numpy(dtype=np.float64)},
                                  index=list(values.index))
    return out
