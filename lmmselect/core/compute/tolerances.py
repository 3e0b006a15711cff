"""
Numeric defaults shared across the package.

Every default here can be overridden per call through keyword arguments;
the command line maps its flags onto the same arguments.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Significance threshold for likelihood ratio decisions
DEFAULT_ALPHA = 0.05

# Minimum observations for any fit
MIN_OBSERVATIONS = 3

# Minimum distinct levels for a grouping factor used in a random term
MIN_GROUP_LEVELS = 2

# Minimum rows per level of a grouping factor (no singleton groups)
MIN_ROWS_PER_GROUP = 2

# Optimizer iteration cap passed through to the fitting library
DEFAULT_MAX_ITER = 200

# Likelihood ratio statistics above -LRT_NEGATIVE_SLACK are clipped to zero;
# anything more negative means the complex fit landed on a worse optimum.
LRT_NEGATIVE_SLACK = 1e-6

# Standardized columns (per-subject z-scores, standardized residuals)
STANDARDIZATION = ToleranceTier(
    rtol=1e-9,
    atol=1e-9,
    name='standardization',
    description='Mean 0 and sd 1 after z-scoring, up to rounding',
)

# Reparameterization checks (re-leveling a factor, refitting)
REPARAMETERIZATION = ToleranceTier(
    rtol=1e-6,
    atol=1e-8,
    name='reparameterization',
    description='Fitted values identical across equivalent codings',
)

# statsmodels MixedLM optimizers, tried in order until one converges.
# Powell reaches variance estimates on the zero boundary; the gradient
# methods report non-convergence there.
MIXEDLM_OPTIMIZERS = ('powell', 'lbfgs')
