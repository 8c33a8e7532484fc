# logvault/explorer.py
"""
Read side: one listing over both backends, plus view/delete/download.

Files are addressed by file name and database streams by stream name; a
``LogSelector`` says which.
"""

from dataclasses import dataclass
from typing import List, Optional

from common.api_error import NotFoundError
from common.logger import get_app_logger
from logvault.schemas import LogPage, LogSource, LogSummary, LogView
from logvault.storage import FileBackend, StorageBackend, TableBackend

logger = get_app_logger(__name__)

DEFAULT_PAGE_SIZE = 20


@dataclass(frozen=True)
class LogSelector:
    """What to view or delete: one log file, or one database stream."""

    source: LogSource
    name: str

    @classmethod
    def file(cls, filename: str) -> "LogSelector":
        return cls(LogSource.FILE, filename)

    @classmethod
    def stream(cls, stream: str) -> "LogSelector":
        return cls(LogSource.DATABASE, stream)

    @classmethod
    def for_summary(cls, summary: LogSummary) -> "LogSelector":
        """Selector for the newest artifact behind a listing row."""
        if summary.source is LogSource.FILE:
            if summary.primary_file is None:
                raise NotFoundError(f"No log file behind summary for stream: {summary.stream}")
            return cls.file(summary.primary_file)
        return cls.stream(summary.stream)

    def __str__(self) -> str:
        return f"{self.source.value}:{self.name}"


class Explorer:
    """
    Query layer over the file backend and, when configured, the table backend.

    Both are read independently: a listing always shows files and database
    streams, whichever backend currently receives writes.
    """

    def __init__(
        self,
        file_backend: Optional[FileBackend],
        table_backend: Optional[TableBackend] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")
        self.file_backend = file_backend
        self.table_backend = table_backend
        self.page_size = page_size

    def _backend_for(self, selector: LogSelector) -> StorageBackend:
        backend: Optional[StorageBackend]
        if selector.source is LogSource.FILE:
            backend = self.file_backend
        else:
            backend = self.table_backend
        if backend is None:
            raise NotFoundError(f"No {selector.source.value} storage is configured for {selector}")
        return backend

    def list_all(self) -> List[LogSummary]:
        """
        Every file group and database stream, most recently modified first.

        Ties keep file summaries ahead of database summaries.
        """
        summaries: List[LogSummary] = []
        if self.file_backend is not None:
            summaries.extend(self.file_backend.list())
        if self.table_backend is not None:
            summaries.extend(self.table_backend.list())
        # sorted() is stable with reverse=True as well
        return sorted(summaries, key=lambda s: s.modified, reverse=True)

    def page(self, number: int = 1) -> LogPage:
        """
        One page of ``list_all``. Pages are 1-based; a page past the end is empty.

        Raises:
            ValueError: If number is below 1
        """
        if number < 1:
            raise ValueError(f"Page number must be at least 1, got {number}")
        summaries = self.list_all()
        start = (number - 1) * self.page_size
        return LogPage(
            items=summaries[start : start + self.page_size],
            page=number,
            page_size=self.page_size,
            total=len(summaries),
        )

    def view(self, selector: LogSelector) -> LogView:
        """
        Raises:
            NotFoundError: If the file or stream does not exist
        """
        return self._backend_for(selector).view(selector.name)

    def delete(self, selector: LogSelector) -> int:
        """
        Delete one file or every row of one stream.

        Returns:
            Number of files or rows removed
        """
        removed = self._backend_for(selector).delete(selector.name)
        logger.debug("Deleted log", selector=str(selector), removed=removed)
        return removed

    def download(self, selector: LogSelector) -> bytes:
        """
        Raw bytes of one log file.

        Raises:
            ValueError: If the selector is not a file
            NotFoundError: If the file does not exist
        """
        if selector.source is not LogSource.FILE:
            raise ValueError("Only log files can be downloaded")
        if self.file_backend is None:
            raise NotFoundError(f"No file storage is configured for {selector}")
        return self.file_backend.read_bytes(selector.name)


__all__ = ["DEFAULT_PAGE_SIZE", "Explorer", "LogSelector"]
