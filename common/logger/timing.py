# common/logger/timing.py
"""Latency statistics for backend writes."""

import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator


class TimingStats:
    """
    Thread-safe running min/avg/max of operation durations.

    Usage:
        stats = TimingStats()
        with stats.measure():
            backend_call()
        stats.get_stats()["avg_time_ms"]
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_calls = 0
        self.total_time = 0.0
        self.max_time = 0.0
        self.min_time = float("inf")

    def record(self, elapsed: float) -> None:
        """Record one duration in seconds."""
        with self._lock:
            self.total_calls += 1
            self.total_time += elapsed
            self.max_time = max(self.max_time, elapsed)
            self.min_time = min(self.min_time, elapsed)

    @contextmanager
    def measure(self) -> Iterator[None]:
        """Record how long the block takes, whether or not it raises."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            self.record(time.perf_counter() - start_time)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            calls = self.total_calls
            avg = self.total_time / calls if calls else 0.0
            return {
                "total_calls": calls,
                "avg_time_ms": round(avg * 1000, 3),
                "max_time_ms": round(self.max_time * 1000, 3),
                "min_time_ms": round(self.min_time * 1000, 3) if calls else 0.0,
            }


__all__ = ["TimingStats"]
