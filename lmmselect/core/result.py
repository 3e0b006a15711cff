"""
Result envelope shared by model fits and likelihood ratio tests.

Backends return ``Result[FittedModelSummary]``; the comparator returns
``Result[LRTParams]``. The payload never holds a statsmodels object, so
tables and plots work from the envelope alone.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

P = TypeVar('P')


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Frozen payload plus provenance.

    Attributes:
        params: The payload (FittedModelSummary, LRTParams, ...).
        info: Free-form metadata: estimation mode, convergence flag,
            iteration count, rows dropped, refits performed.
        timing: Timer.result() output, or None when not measured.
        backend_name: e.g. 'statsmodels_mixedlm', 'scipy_chi2'.
        warnings: Non-fatal messages (boundary fits, clipped statistics).
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        return any(substring in w for w in self.warnings)
