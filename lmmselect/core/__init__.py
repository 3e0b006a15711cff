"""
Core infrastructure for lmmselect.

This module provides shared abstractions and utilities used by every
stage of the analysis (loading, fitting, comparison, reporting).

Key components:
    protocols: DataSource, ModelBackend protocols
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    datasource: Dataset container
    compute: Timing and numeric defaults
"""

from lmmselect.core.protocols import DataSource, ModelBackend
from lmmselect.core.result import Result
from lmmselect.core.datasource import Dataset
from lmmselect.core.exceptions import (
    LmmSelectError,
    ValidationError,
    MalformedInputError,
    DegenerateGroupingError,
    NonNestedComparisonError,
    NumericalError,
    NonConvergenceError,
    SelectionCancelled,
)

__all__ = [
    # Protocols
    "DataSource",
    "ModelBackend",
    # Containers
    "Result",
    "Dataset",
    # Exceptions
    "LmmSelectError",
    "ValidationError",
    "MalformedInputError",
    "DegenerateGroupingError",
    "NonNestedComparisonError",
    "NumericalError",
    "NonConvergenceError",
    "SelectionCancelled",
]
