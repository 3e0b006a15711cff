"""
pytest configuration and shared fixtures.
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

from lmmselect.core.datasource import Dataset


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(2024)


@pytest.fixture
def sleepstudy_df(rng):
    """Sleepstudy-like frame: reaction ~ days + (1 + days | subject).

    18 subjects, 10 days each = 180 observations.
    Random intercept SD 25, random slope SD 6, correlation 0.07.
    Residual SD 25.
    """
    n_subjects = 18
    n_days = 10

    beta_intercept = 250.0
    beta_days = 10.0
    sigma_intercept = 25.0
    sigma_slope = 6.0
    rho = 0.07
    sigma_resid = 25.0

    cov_matrix = np.array([
        [sigma_intercept**2, rho * sigma_intercept * sigma_slope],
        [rho * sigma_intercept * sigma_slope, sigma_slope**2],
    ])
    re = rng.multivariate_normal([0, 0], cov_matrix, size=n_subjects)

    subject = np.repeat(np.arange(n_subjects), n_days)
    days = np.tile(np.arange(n_days, dtype=float), n_subjects)
    reaction = (beta_intercept + re[subject, 0]
                + (beta_days + re[subject, 1]) * days
                + rng.normal(0, sigma_resid, size=subject.size))

    return pd.DataFrame({
        'subject': [f"S{s:02d}" for s in subject],
        'days': days,
        'reaction': reaction,
    })


@pytest.fixture
def sleepstudy(sleepstudy_df):
    return Dataset.from_dataframe(sleepstudy_df)


@pytest.fixture
def two_group_dataset():
    """Two clearly separated groups: random intercept strongly supported."""
    return Dataset.from_dataframe(pd.DataFrame({
        'y': [10.0, 12.0, 11.0, 30.0, 32.0, 31.0],
        'g': ['A', 'A', 'A', 'B', 'B', 'B'],
    }))


@pytest.fixture
def no_signal_dataset(rng):
    """Six groups with identical within-group patterns: no group signal at all."""
    pattern = np.array([10.0, 12.0, 11.0, 13.0, 9.0])
    n_groups = 6
    return Dataset.from_dataframe(pd.DataFrame({
        'y': np.tile(pattern, n_groups),
        'g': np.repeat([f"G{i}" for i in range(n_groups)], pattern.size),
    }))


@pytest.fixture
def factor_dataset(rng):
    """Three-level condition within 12 subjects, for re-leveling tests."""
    n_subjects = 12
    conditions = ['control', 'low', 'high']
    effects = {'control': 0.0, 'low': 1.5, 'high': 4.0}
    reps = 4

    subject = np.repeat(np.arange(n_subjects), len(conditions) * reps)
    condition = np.tile(np.repeat(conditions, reps), n_subjects)
    subject_effect = rng.normal(0, 2.0, size=n_subjects)
    y = (10.0 + np.array([effects[c] for c in condition])
         + subject_effect[subject] + rng.normal(0, 1.0, size=subject.size))

    return Dataset.from_dataframe(pd.DataFrame({
        'subject': [f"P{s}" for s in subject],
        'condition': condition,
        'y': y,
    }))
