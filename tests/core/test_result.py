"""
Tests for the Result[P] envelope and the section Timer.
"""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from lmmselect.core.compute.timing import Timer, format_timing
from lmmselect.core.result import Result


@dataclass(frozen=True)
class FakeParams:
    """Minimal payload for testing."""
    value: float


class TestResult:

    def test_basic_creation(self):
        result = Result(
            params=FakeParams(value=42.0),
            info={"method": "ML"},
            timing=None,
            backend_name="test",
        )
        assert result.params.value == 42.0
        assert result.info["method"] == "ML"
        assert result.timing is None
        assert result.warnings == ()

    def test_frozen(self):
        result = Result(params=FakeParams(1.0), info={}, timing=None, backend_name="x")
        with pytest.raises(FrozenInstanceError):
            result.backend_name = "y"

    def test_has_warning(self):
        result = Result(
            params=FakeParams(1.0), info={}, timing=None, backend_name="x",
            warnings=("ConvergenceWarning: MLE is on the boundary",),
        )
        assert result.has_warning("boundary")
        assert not result.has_warning("singular")


class TestTimer:

    def test_sections_recorded(self):
        timer = Timer()
        timer.start()
        with timer.section('setup'):
            pass
        with timer.section('optimization'):
            pass
        timer.stop()

        timing = timer.result()
        assert 'total_seconds' in timing
        assert 'setup' in timing
        assert 'optimization' in timing
        assert all(v >= 0.0 for v in timing.values())

    def test_stop_returns_total(self):
        timer = Timer()
        timer.start()
        total = timer.stop()
        assert timer.result()['total_seconds'] == total

    def test_result_before_stop(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError):
            timer.result()

    def test_stop_before_start(self):
        with pytest.raises(RuntimeError):
            Timer().stop()


class TestFormatTiming:

    def test_sections_listed(self):
        text = format_timing({'total_seconds': 0.5, 'optimization': 0.4})
        assert text == "total 0.500s (optimization 0.400s)"

    def test_untimed(self):
        assert format_timing(None) == "untimed"
