# logvault/retention.py
"""
Retention: delete log files and rows older than N days.

``RetentionSweeper.sweep`` is one pass over every configured backend.
``RetentionScheduler`` repeats it from a background thread: one sweep at
start, then one per interval. Runs missed while the process was down are not
caught up.
"""

import threading
import time
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from common.logger import get_app_logger
from logvault.clock import Clock
from logvault.schemas import SweepReport
from logvault.storage import StorageBackend

logger = get_app_logger(__name__)


class RetentionSweeper:
    """
    Deletes everything older than the retention window from each backend.

    A failure on one artifact or one backend is recorded in the report and the
    sweep moves on.
    """

    def __init__(self, backends: Iterable[StorageBackend], clock: Optional[Clock] = None):
        self._backends: List[StorageBackend] = list(backends)
        self.clock = clock or Clock()

    @property
    def backends(self) -> List[StorageBackend]:
        return list(self._backends)

    def sweep(self, retention_days: int) -> SweepReport:
        """
        Run one retention pass.

        Args:
            retention_days: Age in days past which artifacts are deleted (>= 1)

        Returns:
            Combined report of all backends

        Raises:
            ValueError: If retention_days is below 1
        """
        if isinstance(retention_days, bool) or not isinstance(retention_days, int):
            raise ValueError(f"retention_days must be an integer, got {retention_days!r}")
        if retention_days < 1:
            raise ValueError(f"retention_days must be at least 1, got {retention_days}")

        cutoff = self.clock.wall_time() - timedelta(days=retention_days)
        report = SweepReport()
        start_time = time.perf_counter()

        for backend in self._backends:
            try:
                report.merge(backend.purge_older_than(cutoff))
            except Exception as e:
                report.record_failure(backend.name, e)
                logger.exception("Retention sweep failed for backend", backend=backend.name)

        logger.info(
            "Retention sweep finished",
            retention_days=retention_days,
            cutoff=cutoff.isoformat(),
            deleted=report.deleted,
            failed=report.failed,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        for failure in report.failures:
            logger.warning("Retention sweep failure", detail=failure)
        return report


class RetentionScheduler:
    """
    Runs a sweep at start and then once per interval on a daemon thread.

    Usage:
        scheduler = RetentionScheduler(sweeper, retention_days=30, interval_seconds=86400)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(self, sweeper: RetentionSweeper, retention_days: int, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if retention_days < 1:
            raise ValueError(f"retention_days must be at least 1, got {retention_days}")

        self._sweeper = sweeper
        self.retention_days = retention_days
        self.interval_seconds = interval_seconds

        self._shutdown_event = threading.Event()
        self._worker_thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        # Metrics
        self._runs = 0
        self._failed_runs = 0
        self._last_report: Optional[SweepReport] = None

    @property
    def is_running(self) -> bool:
        return self._worker_thread is not None and self._worker_thread.is_alive()

    @property
    def last_report(self) -> Optional[SweepReport]:
        return self._last_report

    def start(self) -> None:
        """Start the background worker thread (no-op if already running)."""
        with self._lock:
            if self.is_running:
                return
            self._shutdown_event.clear()
            self._worker_thread = threading.Thread(
                target=self._run,
                daemon=True,
                name="RetentionSweepWorker",
            )
            self._worker_thread.start()
        logger.info(
            "Retention scheduler started",
            retention_days=self.retention_days,
            interval_seconds=self.interval_seconds,
        )

    def _run(self) -> None:
        """Background worker: sweep, then wait for the interval or shutdown."""
        while not self._shutdown_event.is_set():
            self.run_once()
            if self._shutdown_event.wait(self.interval_seconds):
                break

    def run_once(self) -> Optional[SweepReport]:
        """Run one sweep; errors are logged and never escape."""
        try:
            report = self._sweeper.sweep(self.retention_days)
        except Exception:
            self._failed_runs += 1
            logger.exception("Scheduled retention sweep failed")
            return None
        self._runs += 1
        self._last_report = report
        return report

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the worker thread.

        Args:
            timeout: Maximum time to wait for a running sweep to finish (seconds)
        """
        self._shutdown_event.set()
        worker = self._worker_thread
        if worker is not None and worker.is_alive():
            worker.join(timeout=timeout)
        logger.info("Retention scheduler stopped", metrics=self.get_metrics())

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "runs": self._runs,
            "failed_runs": self._failed_runs,
            "worker_alive": self.is_running,
            "last_deleted": self._last_report.deleted if self._last_report else None,
        }


__all__ = ["RetentionScheduler", "RetentionSweeper"]
