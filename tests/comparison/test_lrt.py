"""Tests for likelihood_ratio_test()."""

import numpy as np
import pytest
from scipy import stats

from lmmselect.comparison import ComparisonResult, likelihood_ratio_test
from lmmselect.core.datasource import Dataset
from lmmselect.core.exceptions import NonNestedComparisonError, ValidationError
from lmmselect.mixed import EstimationMode, Formula, RandomTerm, fit


@pytest.fixture
def fits(sleepstudy):
    """No random effects, random intercept, random intercept + slope (all ML)."""
    base = Formula('reaction', fixed=['days'])
    a = fit(base, sleepstudy, 'ML')
    b = fit(base.with_random(RandomTerm('subject')), sleepstudy, 'ML')
    c = fit(base.with_random(RandomTerm('subject', slopes=('days',))), sleepstudy, 'ML')
    return a, b, c


class TestStatistic:

    def test_non_negative(self, fits):
        a, b, c = fits
        for simple, complex_ in [(a, b), (b, c), (a, c)]:
            assert likelihood_ratio_test(simple, complex_).statistic >= 0.0

    def test_value(self, fits):
        a, b, _ = fits
        result = likelihood_ratio_test(a, b)
        expected = 2.0 * (b.log_likelihood - a.log_likelihood)
        np.testing.assert_allclose(result.statistic, max(expected, 0.0))
        np.testing.assert_allclose(result.p_value, stats.chi2.sf(result.statistic, result.df))

    def test_df_is_free_parameter_difference(self, fits):
        a, b, c = fits
        assert likelihood_ratio_test(a, b).df == 1
        # slope variance + intercept/slope covariance
        assert likelihood_ratio_test(b, c).df == 2
        assert likelihood_ratio_test(a, c).df == 3

    def test_random_intercept_detected(self, fits):
        a, b, _ = fits
        result = likelihood_ratio_test(a, b)
        assert result.p_value < 0.05
        assert result.prefer_complex
        assert result.preferred is result.complex
        assert result.decision == 'complex'

    def test_alpha_controls_decision(self, fits):
        a, b, _ = fits
        result = likelihood_ratio_test(a, b, alpha=1e-300)
        assert result.alpha == 1e-300
        assert result.prefer_complex == (result.p_value < 1e-300)

    def test_two_group_scenario(self, two_group_dataset):
        m0 = fit(Formula('y'), two_group_dataset, 'ML')
        m1 = fit(Formula('y', random=[RandomTerm('g')]), two_group_dataset, 'ML')
        result = likelihood_ratio_test(m0, m1)
        assert result.df == 1
        assert result.p_value < 0.05
        assert result.prefer_complex


class TestEstimationMode:

    def test_reml_inputs_refit_under_ml(self, sleepstudy):
        base = Formula('reaction', fixed=['days'])
        a = fit(base, sleepstudy, 'REML')
        b = fit(base.with_random(RandomTerm('subject')), sleepstudy, 'REML')
        result = likelihood_ratio_test(a, b)
        assert result.simple.method is EstimationMode.ML
        assert result.complex.method is EstimationMode.ML
        assert result.result.info['refit'] == ('simple', 'complex')

    def test_same_as_ml_fits(self, sleepstudy, fits):
        a, b, _ = fits
        ml = likelihood_ratio_test(a, b)
        from_reml = likelihood_ratio_test(a.refit('REML'), b.refit('REML'))
        np.testing.assert_allclose(from_reml.statistic, ml.statistic, rtol=1e-5)
        assert from_reml.df == ml.df

    def test_compare_orders_models(self, fits):
        a, b, _ = fits
        result = b.compare(a)
        assert isinstance(result, ComparisonResult)
        assert result.simple.formula == a.formula
        assert result.complex.formula == b.formula


class TestNesting:

    def test_reversed_order_rejected(self, fits):
        a, b, _ = fits
        with pytest.raises(NonNestedComparisonError) as exc_info:
            likelihood_ratio_test(b, a)
        assert exc_info.value.simple == str(b.formula)

    def test_identical_models_rejected(self, fits):
        a, _, _ = fits
        with pytest.raises(NonNestedComparisonError):
            likelihood_ratio_test(a, a)

    def test_different_fixed_terms_rejected(self, factor_dataset):
        m1 = fit(Formula('y', fixed=['condition']), factor_dataset, 'ML')
        m2 = fit(Formula('y', random=[RandomTerm('subject')]), factor_dataset, 'ML')
        with pytest.raises(NonNestedComparisonError, match="not nested"):
            likelihood_ratio_test(m1, m2)

    def test_different_response_rejected(self, sleepstudy):
        ds = sleepstudy.with_columns(rt2=sleepstudy['reaction'] * 2)
        m1 = fit(Formula('reaction'), ds, 'ML')
        m2 = fit(Formula('rt2', fixed=['days']), ds, 'ML')
        with pytest.raises(NonNestedComparisonError, match="responses"):
            likelihood_ratio_test(m1, m2)

    def test_different_dataset_rejected(self, sleepstudy_df):
        ds1 = Dataset.from_dataframe(sleepstudy_df)
        ds2 = Dataset.from_dataframe(sleepstudy_df.iloc[:120])
        m1 = fit(Formula('reaction'), ds1, 'ML')
        m2 = fit(Formula('reaction', fixed=['days']), ds2, 'ML')
        with pytest.raises(NonNestedComparisonError, match="datasets"):
            likelihood_ratio_test(m1, m2)

    def test_equal_datasets_accepted(self, sleepstudy_df):
        m1 = fit(Formula('reaction'), Dataset.from_dataframe(sleepstudy_df), 'ML')
        m2 = fit(Formula('reaction', fixed=['days']), Dataset.from_dataframe(sleepstudy_df), 'ML')
        assert likelihood_ratio_test(m1, m2).df == 1

    def test_invalid_alpha(self, fits):
        a, b, _ = fits
        with pytest.raises(ValidationError, match="alpha"):
            likelihood_ratio_test(a, b, alpha=1.5)


class TestOutput:

    def test_summary(self, fits):
        a, b, _ = fits
        text = likelihood_ratio_test(a, b).summary()
        assert "Likelihood ratio test" in text
        assert "Chisq" in text
        assert "prefer complex" in text

    def test_repr(self, fits):
        a, b, _ = fits
        assert repr(likelihood_ratio_test(a, b)).startswith("ComparisonResult(")
