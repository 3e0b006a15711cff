"""
Solver dispatch for model fitting.

Public API:
    fit() — fit a linear (no random terms) or linear mixed model under
            REML or ML
"""

from __future__ import annotations

import logging
import warnings
from typing import Literal

from lmmselect.core.compute.timing import format_timing
from lmmselect.core.compute.tolerances import DEFAULT_MAX_ITER
from lmmselect.core.datasource import Dataset
from lmmselect.core.protocols import ModelBackend
from lmmselect.mixed._common import EstimationMode
from lmmselect.mixed.backends import MixedLMBackend, OLSBackend
from lmmselect.mixed.design import MixedDesign
from lmmselect.mixed.formula import Formula
from lmmselect.mixed.solution import FittedModel

logger = logging.getLogger(__name__)

BackendChoice = Literal['auto', 'ols', 'mixedlm']


def fit(
    formula: Formula,
    dataset: Dataset,
    method: EstimationMode | str = EstimationMode.REML,
    *,
    backend: BackendChoice | ModelBackend = 'auto',
    max_iter: int = DEFAULT_MAX_ITER,
) -> FittedModel:
    """Fit a model described by a typed formula.

    Estimation itself is delegated to the backend. Use REML (the default)
    for reporting parameter estimates; use ML whenever the fit will be
    compared with another by likelihood ratio test. The comparison
    functions enforce the latter by refitting.

    Args:
        formula: Response, fixed terms and random terms.
        dataset: Dataset holding every referenced column.
        method: EstimationMode.REML or EstimationMode.ML (or 'REML'/'ML').
        backend: 'auto' (OLS without random terms, MixedLM otherwise),
            'ols', 'mixedlm', or any object implementing ModelBackend.
        max_iter: Optimizer iteration cap for iterative backends.

    Returns:
        FittedModel holding the formula, the dataset and a
        library-agnostic FittedModelSummary.

    Raises:
        MalformedInputError: A referenced column is absent.
        DegenerateGroupingError: A grouping factor cannot carry a random
            effect. Raised before any fit.
        NonConvergenceError: The optimizer failed.

    Examples:
        # Random intercept + slope, REML for reporting
        >>> f = Formula('reaction', fixed=['days'],
        ...             random=[RandomTerm('subject', slopes=('days',))])
        >>> model = fit(f, ds)
        >>> print(model.summary())
    """
    # === Input Validation ===
    # This is the boundary - validate here, trust everywhere else
    design = MixedDesign.validate(formula, dataset, method, max_iter=max_iter)

    # === Select Backend ===
    backend_impl = _get_backend(backend, design)

    # === Solve ===
    logger.info("Fitting %s by %s (%s, n=%d)",
                formula, design.method.value, backend_impl.name, design.n)
    result = backend_impl.solve(design)

    for message in result.warnings:
        warnings.warn(
            f"{formula}: {message}",
            RuntimeWarning,
            stacklevel=2,
        )

    logger.debug("logLik=%.4f, n_params=%d, %s",
                 result.params.log_likelihood, result.params.n_params,
                 format_timing(result.timing))

    # === Wrap and Return ===
    return FittedModel(_result=result, _design=design, _backend=backend_impl)


def _get_backend(choice: BackendChoice | ModelBackend, design: MixedDesign) -> ModelBackend:
    """
    Select and instantiate the appropriate backend.

    Raises:
        ValueError: If unknown backend specified
    """
    if not isinstance(choice, str):
        return choice

    if choice == 'auto':
        if design.formula.has_random:
            return MixedLMBackend()
        return OLSBackend()

    elif choice == 'ols':
        return OLSBackend()

    elif choice == 'mixedlm':
        return MixedLMBackend()

    else:
        raise ValueError(f"Unknown backend: {choice!r}")
