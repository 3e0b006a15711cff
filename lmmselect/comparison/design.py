"""
Design validation for likelihood ratio tests.

ComparisonDesign checks that two fitted models can be compared at all
(nested formulas, same response, same observations) and brings both to
ML. REML likelihoods depend on the fixed-effects design and are never
compared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lmmselect.core.exceptions import NonNestedComparisonError, ValidationError
from lmmselect.mixed._common import EstimationMode

if TYPE_CHECKING:
    from lmmselect.mixed.solution import FittedModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonDesign:
    """Validated pair of nested ML fits.

    Attributes:
        simple: The nested (smaller) model, fit by ML.
        complex: The larger model, fit by ML.
        alpha: Significance level.
        refit: Which of the inputs had to be refit under ML.
    """
    simple: 'FittedModel'
    complex: 'FittedModel'
    alpha: float
    refit: tuple[str, ...] = ()

    @staticmethod
    def validate(
        simple: 'FittedModel',
        complex: 'FittedModel',
        alpha: float,
    ) -> 'ComparisonDesign':
        """Validate a comparison and refit REML inputs under ML.

        Raises:
            ValidationError: alpha outside (0, 1).
            NonNestedComparisonError: Different responses or datasets, or
                ``simple`` is not strictly nested in ``complex``.
            NonConvergenceError: An ML refit failed.
        """
        if not 0.0 < alpha < 1.0:
            raise ValidationError(f"alpha must be in (0, 1), got {alpha}")

        sf, cf = simple.formula, complex.formula
        if sf.response != cf.response:
            raise NonNestedComparisonError(
                f"Models have different responses: '{sf.response}' vs '{cf.response}'",
                simple=str(sf), complex=str(cf),
            )
        if not _same_data(simple, complex):
            raise NonNestedComparisonError(
                "Models were fitted to different datasets",
                simple=str(sf), complex=str(cf),
            )
        if not sf.is_strictly_nested_in(cf):
            raise NonNestedComparisonError(
                f"'{sf}' is not nested in '{cf}'",
                simple=str(sf), complex=str(cf),
            )

        refit = []
        if simple.method is not EstimationMode.ML:
            logger.debug("Refitting %s under ML for comparison", sf)
            simple = simple.refit(EstimationMode.ML)
            refit.append('simple')
        if complex.method is not EstimationMode.ML:
            logger.debug("Refitting %s under ML for comparison", cf)
            complex = complex.refit(EstimationMode.ML)
            refit.append('complex')

        if simple.n_obs != complex.n_obs:
            raise NonNestedComparisonError(
                f"Models use different observations ({simple.n_obs} vs "
                f"{complex.n_obs} rows after dropping missing values)",
                simple=str(sf), complex=str(cf),
            )

        return ComparisonDesign(
            simple=simple,
            complex=complex,
            alpha=float(alpha),
            refit=tuple(refit),
        )


def _same_data(a: 'FittedModel', b: 'FittedModel') -> bool:
    if a.dataset is b.dataset:
        return True
    return a.dataset.frame.equals(b.dataset.frame)
