"""
Wall-clock timing of fits and tests.

A fit spends nearly all of its time inside one blocking statsmodels call,
so a handful of named sections ('setup', 'optimization', 'extract') is
enough to see where a slow selection went.
"""

import time
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Total elapsed time plus accumulated time per named section.

    Usage:
        timer = Timer()
        timer.start()
        with timer.section('optimization'):
            res = model.fit(reml=False)
        timer.stop()
        timer.result()   # {'total_seconds': ..., 'optimization': ...}
    """

    def __init__(self) -> None:
        self._sections: dict[str, float] = {}
        self._t0: float | None = None
        self._total: float | None = None

    def start(self) -> None:
        self._t0 = time.perf_counter()
        self._total = None

    def stop(self) -> float:
        """Stop the clock and return the total in seconds."""
        if self._t0 is None:
            raise RuntimeError("Timer.stop() called before start()")
        self._total = time.perf_counter() - self._t0
        return self._total

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Add the time spent in the block to section ``name``.

        Sections may repeat (time accumulates) and are not required to
        lie between start() and stop().
        """
        t = time.perf_counter()
        try:
            yield
        finally:
            self._sections[name] = self._sections.get(name, 0.0) + time.perf_counter() - t

    def result(self) -> dict[str, float]:
        """'total_seconds' followed by each section in first-use order.

        Raises:
            RuntimeError: If the timer was not stopped
        """
        if self._total is None:
            raise RuntimeError("Timer.result() called before stop()")
        return {'total_seconds': self._total, **self._sections}


def format_timing(timing: dict[str, float] | None) -> str:
    """One-line rendering for log messages, e.g. ``total 0.041s (optimization 0.037s)``."""
    if not timing:
        return "untimed"
    total = timing.get('total_seconds', 0.0)
    parts = [f"{name} {secs:.3f}s" for name, secs in timing.items() if name != 'total_seconds']
    return f"total {total:.3f}s" + (f" ({', '.join(parts)})" if parts else "")
