"""
Ordinary least squares backend (no random terms).

Delegates estimation to statsmodels OLS. The log-likelihood statsmodels
reports for OLS is the maximum likelihood value, so it is directly
comparable with an ML fit of a mixed model on the same data.
"""

from __future__ import annotations

import logging

import numpy as np
import statsmodels.formula.api as smf

from lmmselect.core.compute.timing import Timer
from lmmselect.core.exceptions import NonConvergenceError, ValidationError
from lmmselect.core.result import Result
from lmmselect.mixed._common import EstimationMode, FittedModelSummary
from lmmselect.mixed.backends._extract import (
    capture_warnings,
    clean_term_name,
    information_criteria,
)
from lmmselect.mixed.design import MixedDesign

logger = logging.getLogger(__name__)


class OLSBackend:
    """
    Fixed-effects-only backend using statsmodels OLS.

    Implements the ModelBackend protocol for MixedDesign -> FittedModelSummary.

    Coefficients do not depend on the estimation mode. The residual
    variance does: SSR / (n - p) under REML, SSR / n under ML.
    """

    @property
    def name(self) -> str:
        return 'statsmodels_ols'

    def solve(self, design: MixedDesign) -> Result[FittedModelSummary]:
        """
        Fit the fixed-effects model.

        Raises:
            ValidationError: If the formula has random terms
            NonConvergenceError: If the least squares solve fails
        """
        formula = design.formula
        if formula.has_random:
            raise ValidationError(
                f"{self.name}: formula '{formula}' has random terms; "
                f"use the mixed model backend"
            )

        timer = Timer()
        timer.start()
        warn_list: list[str] = []

        with timer.section('optimization'), capture_warnings(warn_list):
            try:
                res = smf.ols(formula.to_patsy(), data=design.frame).fit()
            except np.linalg.LinAlgError as e:
                raise NonConvergenceError(
                    f"OLS fit of '{formula}' failed: {e}",
                    formula=str(formula),
                    backend=self.name,
                    reason=str(e),
                ) from e

        with timer.section('extract'):
            n = design.n
            p = len(res.params)
            if res.model.rank < p:
                warn_list.append(
                    f"Design matrix is rank deficient (rank={res.model.rank}, p={p})"
                )

            ssr = float(res.ssr)
            if design.method is EstimationMode.REML:
                sigma_sq = ssr / max(n - p, 1)
            else:
                sigma_sq = ssr / n

            ll = float(res.llf)
            n_params = p + 1
            aic, bic = information_criteria(ll, n_params, n)

        timer.stop()

        params = FittedModelSummary(
            formula=str(formula),
            response=formula.response,
            method=design.method,
            has_random=False,
            coefficient_names=tuple(clean_term_name(c) for c in res.params.index),
            coefficients=res.params.to_numpy(dtype=np.float64),
            se=res.bse.to_numpy(dtype=np.float64),
            statistics=res.tvalues.to_numpy(dtype=np.float64),
            statistic_name='t',
            p_values=res.pvalues.to_numpy(dtype=np.float64),
            conf_int=res.conf_int().to_numpy(dtype=np.float64),
            var_components=(),
            residual_variance=sigma_sq,
            residual_std=float(np.sqrt(sigma_sq)),
            log_likelihood=ll,
            n_params=n_params,
            aic=aic,
            bic=bic,
            n_obs=n,
            df_resid=float(res.df_resid),
            n_groups={},
            converged=True,
            n_iter=None,
            fitted_values=res.fittedvalues.to_numpy(dtype=np.float64),
            residuals=res.resid.to_numpy(dtype=np.float64),
        )

        return Result(
            params=params,
            info={
                'method': design.method.value,
                'likelihood': 'ML',
                'optimizer': 'pinv',
                'converged': True,
                'n_iter': None,
                'n_dropped': design.n_dropped,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warn_list),
        )
