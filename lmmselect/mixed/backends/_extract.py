"""
Helpers shared by the statsmodels backends.
"""

from __future__ import annotations

import warnings
from contextlib import contextmanager
from typing import Iterator

import numpy as np


def clean_term_name(name: str) -> str:
    """R-style coefficient label: 'Intercept' becomes '(Intercept)'."""
    if name in ('Intercept', 'Group', 'const'):
        return '(Intercept)'
    return name


def information_criteria(log_likelihood: float, n_params: int, n: int) -> tuple[float, float]:
    """AIC and BIC from a log-likelihood and the free-parameter count."""
    aic = -2.0 * log_likelihood + 2.0 * n_params
    bic = -2.0 * log_likelihood + np.log(n) * n_params
    return float(aic), float(bic)


@contextmanager
def capture_warnings(sink: list[str]) -> Iterator[None]:
    """Collect warnings raised by the fitting library into ``sink``.

    The messages end up in Result.warnings instead of being printed once and
    lost.
    """
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter('always')
        yield
    for w in caught:
        message = f"{w.category.__name__}: {w.message}"
        if message not in sink:
            sink.append(message)
