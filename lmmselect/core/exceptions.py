"""
Exception hierarchy for lmmselect.

All exceptions inherit from LmmSelectError to allow catching any
library-specific error. Domain-specific exceptions should inherit from
the appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information

Workflow semantics:
    - MalformedInputError, DegenerateGroupingError and
      NonNestedComparisonError are raised before any model is fitted and
      abort the analysis of that dataset.
    - NonConvergenceError is raised by a single fit; the selection workflow
      catches it and reports the selection as unresolved.
"""

from __future__ import annotations

from typing import Any, Sequence


class LmmSelectError(Exception):
    """Base exception for all lmmselect errors."""
    pass


class ValidationError(LmmSelectError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class MalformedInputError(ValidationError):
    """
    A required column is absent, misnamed, or holds unusable values.

    Attributes:
        missing: Column names that were required but not found
        available: Column names that were present
    """

    def __init__(
        self,
        message: str,
        missing: Sequence[str] | None = None,
        available: Sequence[str] | None = None,
    ):
        super().__init__(message)
        self.missing = tuple(missing) if missing is not None else ()
        self.available = tuple(available) if available is not None else ()


class DegenerateGroupingError(ValidationError):
    """
    Grouping factor cannot support a random effect.

    Raised at formula-validation time, before any fit, when a grouping
    factor has fewer than 2 distinct levels or contains singleton groups.

    Attributes:
        group: Name of the grouping factor
        n_levels: Number of distinct levels found
        singleton_levels: Levels observed exactly once
    """

    def __init__(
        self,
        message: str,
        group: str | None = None,
        n_levels: int | None = None,
        singleton_levels: Sequence[Any] | None = None,
    ):
        super().__init__(message)
        self.group = group
        self.n_levels = n_levels
        self.singleton_levels = (
            tuple(singleton_levels) if singleton_levels is not None else ()
        )


class NonNestedComparisonError(ValidationError):
    """
    Likelihood ratio test requested between models that are not nested.

    Attributes:
        simple: String form of the putatively simpler formula
        complex: String form of the putatively more complex formula
    """

    def __init__(
        self,
        message: str,
        simple: str | None = None,
        complex: str | None = None,
    ):
        super().__init__(message)
        self.simple = simple
        self.complex = complex


class NumericalError(LmmSelectError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class NonConvergenceError(NumericalError):
    """
    Iterative fit failed to reach a stable solution.

    Numeric non-convergence is not transient; callers should not retry.

    Attributes:
        formula: String form of the formula being fitted
        backend: Name of the backend that failed
        iterations: Number of optimizer iterations, if reported
        reason: Why convergence failed (optimizer message or exception text)
    """

    def __init__(
        self,
        message: str,
        formula: str | None = None,
        backend: str | None = None,
        iterations: int | None = None,
        reason: str | None = None,
    ):
        super().__init__(message)
        self.formula = formula
        self.backend = backend
        self.iterations = iterations
        self.reason = reason


class SelectionCancelled(LmmSelectError):
    """
    Caller aborted a selection workflow between fit steps.

    Attributes:
        step: Name of the step that was about to run
        comparisons: Comparison results completed before cancellation
    """

    def __init__(
        self,
        message: str,
        step: str | None = None,
        comparisons: Sequence[Any] | None = None,
    ):
        super().__init__(message)
        self.step = step
        self.comparisons = tuple(comparisons) if comparisons is not None else ()
