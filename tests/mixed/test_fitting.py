"""Tests for fit(): OLS and MixedLM backends, REML vs ML, validation."""

import numpy as np
import pandas as pd
import pytest
import statsmodels.formula.api as smf

from lmmselect.core.compute.tolerances import REPARAMETERIZATION
from lmmselect.core.datasource import Dataset
from lmmselect.core.exceptions import (
    DegenerateGroupingError,
    MalformedInputError,
    NonConvergenceError,
    ValidationError,
)
from lmmselect.mixed import (
    EstimationMode,
    FittedModel,
    Formula,
    RandomTerm,
    fit,
)
from lmmselect.mixed.backends import MixedLMBackend, OLSBackend
from lmmselect.preprocessing import relevel


@pytest.fixture
def no_random():
    return Formula('reaction', fixed=['days'])


@pytest.fixture
def intercept_only():
    return Formula('reaction', fixed=['days'], random=[RandomTerm('subject')])


@pytest.fixture
def intercept_and_slope():
    return Formula('reaction', fixed=['days'],
                   random=[RandomTerm('subject', slopes=('days',))])


# ═══════════════════════════════════════════════════════════════════════
# Fixed-effects-only models
# ═══════════════════════════════════════════════════════════════════════


class TestOLS:

    def test_matches_statsmodels(self, sleepstudy, sleepstudy_df, no_random):
        model = fit(no_random, sleepstudy, 'ML')
        ref = smf.ols('reaction ~ days', data=sleepstudy_df).fit()
        np.testing.assert_allclose(model.coefficients, ref.params.to_numpy(), rtol=1e-10)
        np.testing.assert_allclose(model.log_likelihood, ref.llf, rtol=1e-10)
        assert model.backend_name == 'statsmodels_ols'

    def test_free_parameters(self, sleepstudy, no_random):
        model = fit(no_random, sleepstudy, 'ML')
        assert model.n_params == 3

    def test_coefficient_names(self, sleepstudy, no_random):
        model = fit(no_random, sleepstudy)
        assert list(model.fixef) == ['(Intercept)', 'days']

    def test_residual_variance_by_mode(self, sleepstudy, no_random):
        reml = fit(no_random, sleepstudy, EstimationMode.REML)
        ml = fit(no_random, sleepstudy, EstimationMode.ML)
        n, p = reml.n_obs, len(reml.coefficients)
        np.testing.assert_allclose(
            reml.params.residual_variance * (n - p),
            ml.params.residual_variance * n,
        )
        np.testing.assert_allclose(reml.log_likelihood, ml.log_likelihood)

    def test_rejects_random_terms(self, sleepstudy, intercept_only):
        with pytest.raises(ValidationError, match="random terms"):
            fit(intercept_only, sleepstudy, backend='ols')

    def test_singular_solve_raises_non_convergence(self, sleepstudy, no_random,
                                                   monkeypatch):
        def singular(*args, **kwargs):
            raise np.linalg.LinAlgError("SVD did not converge")

        monkeypatch.setattr(smf, 'ols', singular)
        with pytest.raises(NonConvergenceError, match="SVD did not converge") as exc:
            fit(no_random, sleepstudy, 'ML')
        assert exc.value.backend == 'statsmodels_ols'
        assert exc.value.formula == str(no_random)


# ═══════════════════════════════════════════════════════════════════════
# Mixed models
# ═══════════════════════════════════════════════════════════════════════


class TestMixedLM:

    def test_random_slope_converges(self, sleepstudy, intercept_and_slope):
        model = fit(intercept_and_slope, sleepstudy)
        assert isinstance(model, FittedModel)
        assert model.converged
        assert model.backend_name == 'statsmodels_mixedlm'
        np.testing.assert_allclose(model.coefficients[0], 250.0, atol=25.0)
        np.testing.assert_allclose(model.coefficients[1], 10.0, atol=5.0)

    def test_ml_matches_statsmodels(self, sleepstudy, sleepstudy_df, intercept_and_slope):
        model = fit(intercept_and_slope, sleepstudy, 'ML')
        ref = smf.mixedlm('reaction ~ days', sleepstudy_df,
                          groups=sleepstudy_df['subject'],
                          re_formula='1 + days').fit(reml=False)
        np.testing.assert_allclose(model.log_likelihood, ref.llf, rtol=1e-5)

    def test_free_parameters_counted_from_fit(self, sleepstudy, intercept_only,
                                              intercept_and_slope):
        m1 = fit(intercept_only, sleepstudy, 'ML')
        m2 = fit(intercept_and_slope, sleepstudy, 'ML')
        # 2 fixed + 1 variance + residual
        assert m1.n_params == 4
        # 2 fixed + 2 variances + 1 covariance + residual
        assert m2.n_params == 6

    def test_variance_components(self, sleepstudy, intercept_and_slope):
        model = fit(intercept_and_slope, sleepstudy)
        vc = model.var_components
        assert [v.name for v in vc] == ['(Intercept)', 'days']
        assert all(v.group == 'subject' for v in vc)
        assert vc[0].corr is None
        assert vc[1].corr is not None
        assert model.params.n_groups == {'subject': 18}

    def test_random_effects_per_level(self, sleepstudy, intercept_and_slope):
        model = fit(intercept_and_slope, sleepstudy)
        ranef = model.ranef['subject']
        assert ranef.shape == (18, 2)

    def test_icc_in_unit_interval(self, sleepstudy, intercept_only):
        icc = fit(intercept_only, sleepstudy).icc['subject']
        assert 0.0 < icc < 1.0

    def test_reml_and_ml_differ(self, sleepstudy, intercept_only):
        reml = fit(intercept_only, sleepstudy, 'REML')
        ml = fit(intercept_only, sleepstudy, 'ML')
        assert reml.method is EstimationMode.REML
        assert ml.method is EstimationMode.ML
        assert reml.log_likelihood != pytest.approx(ml.log_likelihood)

    def test_refit_switches_mode(self, sleepstudy, intercept_only):
        reml = fit(intercept_only, sleepstudy)
        ml = reml.refit('ML')
        assert ml.method is EstimationMode.ML
        assert ml.formula == reml.formula
        assert ml.dataset is reml.dataset
        assert reml.refit(EstimationMode.REML) is reml

    def test_residuals_sum_to_fitted(self, sleepstudy, intercept_only):
        model = fit(intercept_only, sleepstudy)
        np.testing.assert_allclose(
            model.fitted_values + model.residuals,
            sleepstudy['reaction'].to_numpy(),
        )

    def test_crossed_intercepts(self, rng):
        n_subjects, n_items = 15, 8
        subject = np.repeat(np.arange(n_subjects), n_items)
        item = np.tile(np.arange(n_items), n_subjects)
        y = (3.0 + rng.normal(0, 2.0, n_subjects)[subject]
             + rng.normal(0, 1.5, n_items)[item]
             + rng.normal(0, 1.0, subject.size))
        ds = Dataset.from_dataframe(pd.DataFrame({
            'y': y, 'subject': subject, 'item': item,
        }))
        f = Formula('y', random=[RandomTerm('subject'), RandomTerm('item')])
        model = fit(f, ds, 'ML')
        assert model.result.info['layout'] == 'crossed'
        assert {v.group for v in model.var_components} == {'subject', 'item'}
        assert model.params.n_groups == {'subject': n_subjects, 'item': n_items}
        # 1 fixed + 2 variance components + residual
        assert model.n_params == 4

    def test_crossed_slopes_rejected(self, sleepstudy):
        f = Formula('reaction', fixed=['days'], random=[
            RandomTerm('subject', slopes=('days',)),
            RandomTerm('days'),
        ])
        with pytest.raises(ValidationError, match="random intercepts"):
            fit(f, sleepstudy)

    def test_zero_group_variance_converges(self, no_signal_dataset):
        # identical patterns in every group: the intercept variance MLE is 0
        f = Formula('y', random=[RandomTerm('g')])
        mixed = fit(f, no_signal_dataset, 'ML', backend=MixedLMBackend())
        ols = fit(f.without_random(), no_signal_dataset, 'ML')
        assert mixed.converged
        assert mixed.var_components[0].variance == pytest.approx(0.0, abs=1e-4)
        assert mixed.log_likelihood >= ols.log_likelihood - 1e-6

    def test_summary_layout(self, sleepstudy, intercept_and_slope):
        text = fit(intercept_and_slope, sleepstudy).summary()
        assert "Linear mixed model fit by REML" in text
        assert "Random effects:" in text
        assert "Fixed effects:" in text
        assert "subject" in text


# ═══════════════════════════════════════════════════════════════════════
# Validation happens before any fit
# ═══════════════════════════════════════════════════════════════════════


class RecordingBackend:
    """Backend stub that records every solve() call."""

    def __init__(self):
        self.calls = []

    @property
    def name(self):
        return 'recording'

    def solve(self, design):
        self.calls.append(design)
        raise AssertionError("solve() must not be reached")


class TestValidation:

    def test_missing_column(self, sleepstudy):
        backend = RecordingBackend()
        with pytest.raises(MalformedInputError) as exc_info:
            fit(Formula('reaction', fixed=['dose']), sleepstudy, backend=backend)
        assert exc_info.value.missing == ('dose',)
        assert backend.calls == []

    def test_single_level_group(self, sleepstudy_df):
        df = sleepstudy_df.assign(site='only')
        ds = Dataset.from_dataframe(df)
        backend = RecordingBackend()
        f = Formula('reaction', fixed=['days'], random=[RandomTerm('site')])
        with pytest.raises(DegenerateGroupingError) as exc_info:
            fit(f, ds, backend=backend)
        assert exc_info.value.n_levels == 1
        assert backend.calls == []

    def test_non_numeric_response(self, sleepstudy):
        with pytest.raises(MalformedInputError, match="non-numeric"):
            fit(Formula('subject', fixed=['days']), sleepstudy)

    def test_missing_values_dropped(self, sleepstudy_df, no_random):
        df = sleepstudy_df.copy()
        df.loc[:4, 'reaction'] = np.nan
        model = fit(no_random, Dataset.from_dataframe(df))
        assert model.n_obs == 175
        assert model.result.info['n_dropped'] == 5

    def test_unknown_backend(self, sleepstudy, no_random):
        with pytest.raises(ValueError, match="Unknown backend"):
            fit(no_random, sleepstudy, backend='lme4')

    def test_unknown_method(self, sleepstudy, no_random):
        with pytest.raises(ValueError, match="estimation mode"):
            fit(no_random, sleepstudy, 'GLS')


# ═══════════════════════════════════════════════════════════════════════
# Re-leveling a factor is a reparameterization
# ═══════════════════════════════════════════════════════════════════════


class TestReleveling:

    def test_ols_fitted_values_invariant(self, factor_dataset):
        f = Formula('y', fixed=['condition'])
        a = fit(f, relevel(factor_dataset, 'condition', 'control'), 'ML')
        b = fit(f, relevel(factor_dataset, 'condition', 'high'), 'ML')
        np.testing.assert_allclose(
            a.fitted_values, b.fitted_values,
            rtol=REPARAMETERIZATION.rtol, atol=REPARAMETERIZATION.atol,
        )
        np.testing.assert_allclose(a.log_likelihood, b.log_likelihood,
                                   rtol=REPARAMETERIZATION.rtol)

    def test_mixed_fitted_values_invariant(self, factor_dataset):
        f = Formula('y', fixed=['condition'], random=[RandomTerm('subject')])
        a = fit(f, relevel(factor_dataset, 'condition', 'control'), 'ML')
        b = fit(f, relevel(factor_dataset, 'condition', 'high'), 'ML')
        np.testing.assert_allclose(a.fitted_values, b.fitted_values, rtol=1e-4)
        np.testing.assert_allclose(a.log_likelihood, b.log_likelihood, rtol=1e-6)

    def test_intercept_is_baseline_mean(self, factor_dataset):
        f = Formula('y', fixed=['condition'])
        ds = relevel(factor_dataset, 'condition', 'high')
        model = fit(f, ds)
        frame = ds.frame
        expected = frame.loc[frame['condition'] == 'high', 'y'].mean()
        np.testing.assert_allclose(model.fixef['(Intercept)'], expected)


class TestBackendSelection:

    def test_auto_picks_by_random_terms(self, sleepstudy, no_random, intercept_only):
        assert fit(no_random, sleepstudy).backend_name == 'statsmodels_ols'
        assert fit(intercept_only, sleepstudy).backend_name == 'statsmodels_mixedlm'

    def test_backend_objects_pass_through(self, sleepstudy, no_random, intercept_only):
        assert fit(no_random, sleepstudy, backend=OLSBackend()).backend_name == 'statsmodels_ols'
        model = fit(intercept_only, sleepstudy, backend=MixedLMBackend())
        assert model.backend_name == 'statsmodels_mixedlm'

    def test_mixedlm_rejects_no_random(self, sleepstudy, no_random):
        with pytest.raises(ValidationError, match="no random terms"):
            fit(no_random, sleepstudy, backend='mixedlm')
