"""
Model comparison and random-effects structure selection.

Public API:
    likelihood_ratio_test()   — chi-squared test between two nested fits
    select_random_structure() — stepwise choice between no random effects,
                                a random intercept, and a random intercept
                                plus slope
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from scipy import stats

from lmmselect.comparison._common import LRTParams, SelectionState
from lmmselect.comparison.design import ComparisonDesign
from lmmselect.comparison.solution import ComparisonResult, SelectionResult
from lmmselect.core.compute.timing import Timer
from lmmselect.core.compute.tolerances import DEFAULT_ALPHA, LRT_NEGATIVE_SLACK
from lmmselect.core.datasource import Dataset, normalize_column_name
from lmmselect.core.exceptions import (
    NonConvergenceError,
    SelectionCancelled,
    ValidationError,
)
from lmmselect.core.protocols import ModelBackend
from lmmselect.core.result import Result
from lmmselect.core.validation import check_columns, check_grouping_factor
from lmmselect.mixed._common import EstimationMode
from lmmselect.mixed.formula import FixedTerm, Formula, RandomTerm
from lmmselect.mixed.solution import FittedModel
from lmmselect.mixed.solvers import BackendChoice, fit

logger = logging.getLogger(__name__)


def likelihood_ratio_test(
    simple: FittedModel,
    complex: FittedModel,
    *,
    alpha: float = DEFAULT_ALPHA,
) -> ComparisonResult:
    """Likelihood ratio test of ``simple`` against ``complex``.

    Any REML input is refit under ML first. The statistic is
    2 * (logLik(complex) - logLik(simple)), clipped at 0 (a slightly
    negative value means the larger model's optimizer stopped short). The
    degrees of freedom are the difference in fitted free-parameter counts,
    not in term counts: adding a random slope to a random intercept adds a
    variance and a covariance.

    The chi-squared reference is used even when the null puts a variance
    on the boundary of its parameter space; the resulting p-value is
    conservative.

    Args:
        simple: Model nested in ``complex``.
        complex: The larger model.
        alpha: Significance level; ``complex`` is preferred when p < alpha.

    Returns:
        ComparisonResult.

    Raises:
        NonNestedComparisonError: Models are not nested, have different
            responses, or were fitted to different data.
        ValidationError: alpha outside (0, 1), or the models have the same
            number of free parameters.
        NonConvergenceError: An ML refit failed.

    Examples:
        >>> m0 = fit(Formula('y', fixed=['x']), ds, 'ML')
        >>> m1 = fit(Formula('y', fixed=['x'], random=[RandomTerm('g')]), ds, 'ML')
        >>> print(likelihood_ratio_test(m0, m1).summary())
    """
    timer = Timer()
    timer.start()

    with timer.section('validate'):
        design = ComparisonDesign.validate(simple, complex, alpha)

    s, c = design.simple, design.complex
    df = c.n_params - s.n_params
    if df <= 0:
        raise ValidationError(
            f"'{c.formula}' has {c.n_params} free parameters, "
            f"'{s.formula}' has {s.n_params}; cannot test with df={df}"
        )

    warnings_list = []
    raw = 2.0 * (c.log_likelihood - s.log_likelihood)
    if raw < -LRT_NEGATIVE_SLACK * max(1.0, abs(s.log_likelihood)):
        msg = (
            f"Likelihood ratio statistic {raw:.6g} is negative; "
            f"the fit of '{c.formula}' may not have reached its maximum"
        )
        logger.warning(msg)
        warnings_list.append(msg)
    statistic = max(raw, 0.0)
    p_value = float(stats.chi2.sf(statistic, df))
    prefer_complex = p_value < design.alpha

    timer.stop()

    params = LRTParams(
        statistic=float(statistic),
        df=int(df),
        p_value=p_value,
        alpha=design.alpha,
        prefer_complex=prefer_complex,
        simple_formula=str(s.formula),
        complex_formula=str(c.formula),
        simple_loglik=s.log_likelihood,
        complex_loglik=c.log_likelihood,
        simple_n_params=s.n_params,
        complex_n_params=c.n_params,
        simple_aic=s.aic,
        complex_aic=c.aic,
        simple_bic=s.bic,
        complex_bic=c.bic,
        raw_statistic=float(raw),
    )

    logger.info(
        "LRT %s vs %s: Chisq=%.4f, df=%d, p=%.4g -> prefer %s",
        s.formula, c.formula, statistic, df, p_value,
        'complex' if prefer_complex else 'simple',
    )

    result = Result(
        params=params,
        info={'refit': design.refit, 'distribution': 'chi2'},
        timing=timer.result(),
        backend_name='scipy_chi2',
        warnings=tuple(warnings_list),
    )
    return ComparisonResult(_result=result, _design=design)


def select_random_structure(
    dataset: Dataset,
    response: str,
    fixed: Sequence[FixedTerm | str],
    group: str,
    *,
    slope: str | None = None,
    alpha: float = DEFAULT_ALPHA,
    should_abort: Callable[[], bool] | None = None,
    backend: BackendChoice | ModelBackend | None = None,
) -> SelectionResult:
    """Choose the random-effects structure by successive likelihood ratio tests.

    Steps:
        1. Validate the grouping factor (before any fit).
        2. Fit the model without random terms (ML).
        3. Fit a random intercept per ``group`` (ML) and test it against
           step 2. Not preferred: stop at NONE.
        4. Without ``slope``: stop at INTERCEPT_ONLY.
        5. Fit a random intercept and ``slope`` per ``group`` (ML) and test
           it against step 3: INTERCEPT_AND_SLOPE if preferred, else
           INTERCEPT_ONLY.
        6. Refit the selected structure under REML for reporting. If that
           refit fails the decided state stands, the ML fit is reported
           and the failure is recorded in ``error``.

    All candidates are fitted to the same rows: those complete in every
    column any candidate uses.

    Args:
        dataset: Source data (not modified).
        response: Response column.
        fixed: Fixed-effect terms shared by every candidate.
        group: Grouping factor for the random terms.
        slope: Column to give a random slope, or None.
        alpha: Significance level for every test.
        should_abort: Polled before each fit; returning True cancels.
        backend: Passed to ``fit`` for random-term models. Models without
            random terms always use OLS unless a backend object is given.

    Returns:
        SelectionResult. A candidate fit that fails to converge gives state
        NON_CONVERGED with no selected model; it never falls back to a
        simpler structure.

    Raises:
        MalformedInputError: A referenced column is absent.
        DegenerateGroupingError: ``group`` cannot carry a random effect.
        SelectionCancelled: ``should_abort()`` returned True.
    """
    response = normalize_column_name(response)
    group = normalize_column_name(group)
    slope = normalize_column_name(slope) if slope is not None else None
    if isinstance(fixed, (str, FixedTerm)):
        fixed = [fixed]
    fixed_terms = tuple(
        t if isinstance(t, FixedTerm) else FixedTerm.parse(normalize_column_name(t))
        for t in fixed
    )

    if not 0.0 < alpha < 1.0:
        raise ValidationError(f"alpha must be in (0, 1), got {alpha}")

    base = Formula(response, fixed=fixed_terms)
    columns = list(dict.fromkeys([*base.variables, group] + ([slope] if slope else [])))

    # === Validation: before any fit ===
    check_columns(dataset.frame, columns, "selection")
    data = dataset.complete_cases(*columns)
    check_grouping_factor(data.frame, group)

    intercept_formula = base.with_random(RandomTerm(group))
    slope_formula = (
        base.with_random(RandomTerm(group, slopes=(slope,)))
        if slope is not None else None
    )

    candidates: dict[str, FittedModel] = {}
    comparisons: list[ComparisonResult] = []

    def checkpoint(step: str) -> None:
        if should_abort is not None and should_abort():
            logger.info("Selection cancelled before %s", step)
            raise SelectionCancelled(
                f"Selection cancelled before {step}",
                step=step,
                comparisons=comparisons,
            )

    def fit_ml(f: Formula, step: str) -> FittedModel:
        checkpoint(step)
        choice = backend
        if choice is None or (isinstance(choice, str) and not f.has_random):
            choice = 'auto'
        model = fit(f, data, EstimationMode.ML, backend=choice)
        candidates[step] = model
        return model

    def non_converged(e: NonConvergenceError) -> SelectionResult:
        logger.error("Selection stopped: %s", e)
        return SelectionResult(
            state=SelectionState.NON_CONVERGED,
            candidates=dict(candidates),
            comparisons=tuple(comparisons),
            selected=None,
            reason=f"fit of '{e.formula}' did not converge" if e.formula
            else "a candidate fit did not converge",
            error=str(e),
            alpha=alpha,
        )

    logger.info("Selecting random structure for %s by %s (n=%d, alpha=%g)",
                base, group, data.n_observations, alpha)

    try:
        model_a = fit_ml(base, SelectionState.NONE.value)
        model_b = fit_ml(intercept_formula, SelectionState.INTERCEPT_ONLY.value)
        test_b = likelihood_ratio_test(model_a, model_b, alpha=alpha)
        comparisons.append(test_b)

        if not test_b.prefer_complex:
            state, chosen = SelectionState.NONE, model_a
            reason = (f"random intercept by '{group}' not supported "
                      f"(p = {test_b.p_value:.4g} >= {alpha:g}); "
                      f"no random effects needed")
        elif slope_formula is None:
            state, chosen = SelectionState.INTERCEPT_ONLY, model_b
            reason = (f"random intercept by '{group}' preferred "
                      f"(p = {test_b.p_value:.4g} < {alpha:g}); no slope requested")
        else:
            model_c = fit_ml(slope_formula, SelectionState.INTERCEPT_AND_SLOPE.value)
            test_c = likelihood_ratio_test(model_b, model_c, alpha=alpha)
            comparisons.append(test_c)
            if test_c.prefer_complex:
                state, chosen = SelectionState.INTERCEPT_AND_SLOPE, model_c
                reason = (f"random slope of '{slope}' by '{group}' preferred "
                          f"(p = {test_c.p_value:.4g} < {alpha:g})")
            else:
                state, chosen = SelectionState.INTERCEPT_ONLY, model_b
                reason = (f"random intercept by '{group}' preferred "
                          f"(p = {test_b.p_value:.4g}); random slope of "
                          f"'{slope}' not supported (p = {test_c.p_value:.4g})")

    except NonConvergenceError as e:
        return non_converged(e)

    # The structure is decided; a failed REML refit only affects reporting
    checkpoint('reml_refit')
    error = None
    try:
        selected = chosen.refit(EstimationMode.REML)
    except NonConvergenceError as e:
        logger.warning("REML refit of %s failed, reporting the ML fit: %s",
                       chosen.formula, e)
        selected = chosen
        error = str(e)
        reason += "; REML refit failed, selected model is the ML fit"

    logger.info("Selected %s: %s", state.value, reason)
    return SelectionResult(
        state=state,
        candidates=dict(candidates),
        comparisons=tuple(comparisons),
        selected=selected,
        reason=reason,
        error=error,
        alpha=alpha,
    )
