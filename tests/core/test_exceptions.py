"""
Tests for the lmmselect exception hierarchy.

Validates:
    - Inheritance chain (all exceptions catchable via LmmSelectError)
    - Input errors are ValidationErrors, non-convergence is a NumericalError
    - Diagnostic attributes and their defaults
"""

import pytest

from lmmselect.core.exceptions import (
    DegenerateGroupingError,
    LmmSelectError,
    MalformedInputError,
    NonConvergenceError,
    NonNestedComparisonError,
    NumericalError,
    SelectionCancelled,
    ValidationError,
)


# ═══════════════════════════════════════════════════════════════════════
# Inheritance hierarchy
# ═══════════════════════════════════════════════════════════════════════


class TestInheritance:
    """Every exception is catchable via LmmSelectError."""

    @pytest.mark.parametrize("exc_type", [
        MalformedInputError,
        DegenerateGroupingError,
        NonNestedComparisonError,
    ])
    def test_input_errors_are_validation_errors(self, exc_type):
        with pytest.raises(ValidationError):
            raise exc_type("bad input")

    def test_non_convergence_is_numerical_error(self):
        with pytest.raises(NumericalError):
            raise NonConvergenceError("did not converge")

    def test_non_convergence_is_not_validation_error(self):
        assert not isinstance(NonConvergenceError("x"), ValidationError)

    @pytest.mark.parametrize("exc_type", [
        ValidationError,
        MalformedInputError,
        DegenerateGroupingError,
        NonNestedComparisonError,
        NumericalError,
        NonConvergenceError,
        SelectionCancelled,
    ])
    def test_all_are_lmmselect_errors(self, exc_type):
        with pytest.raises(LmmSelectError):
            raise exc_type("failure")


# ═══════════════════════════════════════════════════════════════════════
# Diagnostic attributes
# ═══════════════════════════════════════════════════════════════════════


class TestMalformedInputError:

    def test_attributes(self):
        err = MalformedInputError("missing", missing=['rt'], available=['subject', 'day'])
        assert err.missing == ('rt',)
        assert err.available == ('subject', 'day')
        assert str(err) == "missing"

    def test_defaults(self):
        err = MalformedInputError("missing")
        assert err.missing == ()
        assert err.available == ()


class TestDegenerateGroupingError:

    def test_attributes(self):
        err = DegenerateGroupingError(
            "one level", group='subject', n_levels=1, singleton_levels=['s1'],
        )
        assert err.group == 'subject'
        assert err.n_levels == 1
        assert err.singleton_levels == ('s1',)

    def test_defaults(self):
        err = DegenerateGroupingError("one level")
        assert err.group is None
        assert err.n_levels is None
        assert err.singleton_levels == ()


class TestNonNestedComparisonError:

    def test_attributes(self):
        err = NonNestedComparisonError("not nested", simple="y ~ 1 + a", complex="y ~ 1 + b")
        assert err.simple == "y ~ 1 + a"
        assert err.complex == "y ~ 1 + b"


class TestNonConvergenceError:

    def test_attributes(self):
        err = NonConvergenceError(
            "failed", formula="y ~ 1 + (1 | g)", backend='statsmodels_mixedlm',
            iterations=200, reason='singular',
        )
        assert err.formula == "y ~ 1 + (1 | g)"
        assert err.backend == 'statsmodels_mixedlm'
        assert err.iterations == 200
        assert err.reason == 'singular'

    def test_defaults(self):
        err = NonConvergenceError("failed")
        assert err.formula is None
        assert err.backend is None
        assert err.iterations is None
        assert err.reason is None


class TestSelectionCancelled:

    def test_carries_partial_comparisons(self):
        err = SelectionCancelled("stop", step='intercept_only', comparisons=['t1'])
        assert err.step == 'intercept_only'
        assert err.comparisons == ('t1',)

    def test_defaults(self):
        err = SelectionCancelled("stop")
        assert err.step is None
        assert err.comparisons == ()
