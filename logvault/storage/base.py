# logvault/storage/base.py
"""Base class for log storage backends."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List

from logvault.clock import Clock
from logvault.levels import LevelLike
from logvault.schemas import LogSource, LogSummary, LogView, SweepReport


class StorageBackend(ABC):
    """
    Abstract base class for log storage backends.

    A backend owns its physical artifacts (files or rows) and implements the
    same write/list/view/delete/purge contract, so the facade, explorer and
    retention sweeper never branch on which one they hold.
    """

    source: LogSource

    def __init__(self, clock: Clock):
        """
        Initialize backend.

        Args:
            clock: Time source for dates and entry timestamps
        """
        self.clock = clock

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for identification."""

    def initialize(self) -> None:
        """
        Prepare the backend for use.

        Backends also initialize lazily on first write; calling this up front
        surfaces configuration problems at startup.
        """

    @abstractmethod
    def write(self, stream: str, level: LevelLike, message: str) -> None:
        """
        Persist one already-interpolated entry.

        Args:
            stream: Stream name (sanitized by the backend)
            level: One of the eight log levels
            message: Final message text

        Raises:
            WriteError / StoreError: If the entry could not be persisted
        """

    @abstractmethod
    def list(self) -> List[LogSummary]:
        """Summaries of everything this backend holds; empty when nothing is stored."""

    @abstractmethod
    def view(self, selector: str) -> LogView:
        """
        Read one file (file backend) or one stream (table backend).

        Raises:
            NotFoundError: If nothing matches the selector
        """

    @abstractmethod
    def delete(self, selector: str) -> int:
        """
        Remove one file or every row of one stream.

        Returns:
            Number of files or rows removed

        Raises:
            NotFoundError: If nothing matches the selector
        """

    @abstractmethod
    def purge_older_than(self, cutoff: datetime) -> SweepReport:
        """
        Delete everything older than *cutoff*, continuing past failures.
        """

    @abstractmethod
    def get_metrics(self) -> Dict[str, Any]:
        """
        Get performance/health metrics for this backend.
        """

    def shutdown(self) -> None:
        """Release resources held by the backend."""


__all__ = ["StorageBackend"]
