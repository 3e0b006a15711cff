"""
Model comparison and random-effects structure selection.

Public API:
    likelihood_ratio_test()   — chi-squared test between nested ML fits
    select_random_structure() — NONE / INTERCEPT_ONLY / INTERCEPT_AND_SLOPE
    SelectionState            — selection outcome
    ComparisonResult          — one likelihood ratio test
    SelectionResult           — candidates, tests and the selected model
"""

from lmmselect.comparison._common import LRTParams, SelectionState
from lmmselect.comparison.solution import ComparisonResult, SelectionResult
from lmmselect.comparison.solvers import likelihood_ratio_test, select_random_structure

__all__ = [
    "likelihood_ratio_test",
    "select_random_structure",
    "SelectionState",
    "ComparisonResult",
    "SelectionResult",
    "LRTParams",
]
