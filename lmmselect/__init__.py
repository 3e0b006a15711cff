"""
lmmselect: random-effects structure selection for linear mixed models.

Loads long-format repeated-measures data, fits candidate models with and
without random intercepts and slopes, chooses between them by likelihood
ratio tests, and reports the selected model with residual diagnostics.

Submodules:
    core: Dataset container, exceptions, result envelope, validation
    preprocessing: Releveling, derived groups, log and z-score transforms
    mixed: Typed formulas and model fitting (statsmodels)
    comparison: Likelihood ratio tests and structure selection
    diagnostics: Standardized residuals and diagnostic plots
    reporting: Comparison tables, HTML and Markdown reports
"""

__version__ = "0.1.0"

from lmmselect.core.datasource import Dataset
from lmmselect.mixed import EstimationMode, FixedTerm, Formula, RandomTerm, fit
from lmmselect.comparison import (
    SelectionState,
    likelihood_ratio_test,
    select_random_structure,
)

__all__ = [
    "__version__",
    "Dataset",
    "Formula",
    "FixedTerm",
    "RandomTerm",
    "EstimationMode",
    "fit",
    "likelihood_ratio_test",
    "select_random_structure",
    "SelectionState",
]
