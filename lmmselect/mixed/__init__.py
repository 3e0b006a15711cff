"""
Model fitting: linear models and linear mixed models.

Public API:
    fit()                — fit a typed formula under REML or ML
    Formula              — response + fixed terms + random terms
    FixedTerm            — main effect or interaction
    RandomTerm           — random intercept / slopes by grouping factor
    EstimationMode       — REML or ML
    FittedModel          — result wrapper
    FittedModelSummary   — library-agnostic payload for tables and plots
"""

from lmmselect.mixed._common import EstimationMode, FittedModelSummary, VarCompSummary
from lmmselect.mixed.formula import Formula, FixedTerm, RandomTerm, formula
from lmmselect.mixed.solution import FittedModel
from lmmselect.mixed.solvers import fit

__all__ = [
    "fit",
    "formula",
    "Formula",
    "FixedTerm",
    "RandomTerm",
    "EstimationMode",
    "FittedModel",
    "FittedModelSummary",
    "VarCompSummary",
]
