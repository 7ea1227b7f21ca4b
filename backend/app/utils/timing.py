"""Timing helpers for request and pipeline stage logging."""
import time
from typing import Callable, Dict, Optional
import logging

logger = logging.getLogger(__name__)


def now_ms() -> float:
    """Return current time in milliseconds using high-resolution timer."""
    return time.perf_counter() * 1000


def log_elapsed(start_ms: float, label: str, log_fn: Optional[Callable[[str], None]] = None) -> float:
    """
    Log elapsed time since start_ms and return current time.

    Example:
        t = now_ms()
        t = log_elapsed(t, "fetch_books")
        t = log_elapsed(t, "to_entries")
    """
    elapsed = now_ms() - start_ms
    (log_fn or logger.debug)(f"{label}: {elapsed:.2f}ms")
    return now_ms()


class StageTimer:
    """
    Records how long each named stage of a run took.

    Each ``mark(stage)`` closes the stage that started at the previous mark
    (or at construction) and logs it with ``prefix``.
    """

    def __init__(self, prefix: str = "", log_fn: Optional[Callable[[str], None]] = None):
        self._prefix = prefix
        self._log_fn = log_fn
        self._started = now_ms()
        self._last = self._started
        self._durations: Dict[str, float] = {}

    def mark(self, stage: str) -> float:
        current = now_ms()
        elapsed = current - self._last
        self._durations[stage] = elapsed
        self._last = current
        label = f"{self._prefix} {stage}".strip()
        (self._log_fn or logger.debug)(f"{label}: {elapsed:.2f}ms")
        return elapsed

    @property
    def durations(self) -> Dict[str, float]:
        return dict(self._durations)

    @property
    def total_ms(self) -> float:
        return self._last - self._started
