"""
Model-fitting backends.

Available backends:
    OLSBackend: statsmodels OLS, for formulas without random terms
    MixedLMBackend: statsmodels MixedLM, for formulas with random terms
"""

from lmmselect.mixed.backends.ols import OLSBackend
from lmmselect.mixed.backends.mixedlm import MixedLMBackend

__all__ = [
    "OLSBackend",
    "MixedLMBackend",
]
