# logvault/storage/table_backend.py
"""
Relational log storage.

One row per entry in the ``logs`` table. The table is created on first write
if it is missing; creation is idempotent and tolerates a concurrent creator.
There is no rotation here: growth is bounded only by the retention sweep.
"""

import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from common.api_error import NotFoundError, StoreError
from common.config import DatabaseConfig
from common.logger import TimingStats, get_app_logger
from logvault.clock import Clock
from logvault.db import LOG_TABLE_NAME, DbManager, LogRow
from logvault.levels import LevelLike, LogLevel
from logvault.naming import sanitize_stream
from logvault.schemas import LogEntry, LogSource, LogSummary, LogView, SweepReport
from .base import StorageBackend

logger = get_app_logger(__name__)


class TableBackend(StorageBackend):
    """
    Log storage in a SQL table managed through SQLAlchemy.

    Timestamps are stored as naive wall time in the clock's timezone and
    become timezone-aware again when read.
    """

    source = LogSource.DATABASE

    def __init__(self, db_manager: DbManager, clock: Optional[Clock] = None):
        super().__init__(clock or Clock())
        self._db = db_manager
        self._table_ready = False
        self._table_lock = threading.Lock()

        self._metrics_lock = threading.Lock()
        self._total_writes = 0
        self._failed_writes = 0
        self._timing = TimingStats()

    @classmethod
    def from_config(cls, config: DatabaseConfig, clock: Optional[Clock] = None) -> "TableBackend":
        return cls(DbManager.from_config(config), clock=clock)

    @property
    def name(self) -> str:
        return "database"

    @property
    def db_manager(self) -> DbManager:
        return self._db

    def initialize(self) -> None:
        """Verify the database is reachable; the table itself stays lazy."""
        self._db.verify_connection()

    def _naive(self, moment: datetime) -> datetime:
        return self.clock.localize(moment).replace(tzinfo=None)

    def table_exists(self) -> bool:
        """
        Whether the logs table exists. A positive answer is cached.

        Raises:
            StoreError: If the check itself fails
        """
        if self._table_ready:
            return True
        try:
            exists = self._db.has_table(LOG_TABLE_NAME)
        except SQLAlchemyError as e:
            raise StoreError(f"Unable to check for the logs table: {e}") from e
        if exists:
            self._table_ready = True
        return exists

    def ensure_table(self) -> None:
        """
        Create the logs table if it does not exist.

        Safe to race: a failure caused by another process creating the table
        first is detected by checking again.
        """
        if self._table_ready:
            return
        with self._table_lock:
            if self.table_exists():
                return
            try:
                LogRow.__table__.create(self._db.engine, checkfirst=True)
                logger.info("Created logs table", table=LOG_TABLE_NAME)
            except SQLAlchemyError as e:
                self._table_ready = False
                if not self.table_exists():
                    raise StoreError(f"Unable to create the logs table: {e}") from e
            self._table_ready = True

    def drop_table(self) -> None:
        """Drop the logs table and everything in it."""
        with self._table_lock:
            try:
                LogRow.__table__.drop(self._db.engine, checkfirst=True)
            except SQLAlchemyError as e:
                raise StoreError(f"Unable to drop the logs table: {e}") from e
            self._table_ready = False
        logger.info("Dropped logs table", table=LOG_TABLE_NAME)

    def _insert(self, stream: str, level: LogLevel, message: str) -> None:
        self.ensure_table()
        row = LogRow(
            log_name=stream,
            level=level.value,
            message=message,
            timestamp=self._naive(self.clock.now()),
        )
        try:
            with self._db.session() as session:
                session.add(row)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert log entry for stream '{stream}': {e}") from e

    def write(self, stream: str, level: LevelLike, message: str) -> None:
        """
        Insert one row.

        Raises:
            StoreError: If the table cannot be created or the insert fails
        """
        level = LogLevel.coerce(level)
        stream = sanitize_stream(stream)

        try:
            with self._timing.measure():
                self._insert(stream, level, message)
        except StoreError:
            with self._metrics_lock:
                self._failed_writes += 1
            raise

        with self._metrics_lock:
            self._total_writes += 1

    def list(self) -> List[LogSummary]:
        """One summary per stream: first and last timestamp plus row count."""
        if not self.table_exists():
            return []

        stmt = (
            select(
                LogRow.log_name,
                func.min(LogRow.timestamp),
                func.max(LogRow.timestamp),
                func.count(LogRow.id),
            )
            .group_by(LogRow.log_name)
            .order_by(LogRow.log_name)
        )
        try:
            with self._db.session() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list log streams: {e}") from e

        return [
            LogSummary(
                source=self.source,
                stream=log_name,
                created=self.clock.localize(first),
                modified=self.clock.localize(last),
                entry_count=count,
            )
            for log_name, first, last, count in rows
        ]

    @staticmethod
    def _stream_selector(selector: str) -> str:
        try:
            return sanitize_stream(selector)
        except (TypeError, ValueError) as e:
            raise NotFoundError(f"Log stream not found: {selector!r}") from e

    def read(self, stream: str) -> List[LogEntry]:
        """
        Entries of one stream, most recent first.

        Raises:
            NotFoundError: If the stream has no rows
        """
        stream = self._stream_selector(stream)
        if not self.table_exists():
            raise NotFoundError(f"Log stream not found: {stream}")

        stmt = (
            select(LogRow)
            .where(LogRow.log_name == stream)
            .order_by(LogRow.timestamp.desc(), LogRow.id.desc())
        )
        try:
            with self._db.session() as session:
                rows = session.scalars(stmt).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read log stream '{stream}': {e}") from e

        if not rows:
            raise NotFoundError(f"Log stream not found: {stream}")

        return [
            LogEntry(
                stream=row.log_name,
                level=row.level,
                message=row.message,
                timestamp=self.clock.localize(row.timestamp),
            )
            for row in rows
        ]

    def view(self, selector: str) -> LogView:
        return LogView(source=self.source, selector=selector, entries=self.read(selector))

    def delete(self, selector: str) -> int:
        """
        Remove every row of one stream.

        Raises:
            NotFoundError: If the stream has no rows
            StoreError: If the delete fails or its row count is unknown
        """
        stream = self._stream_selector(selector)
        if not self.table_exists():
            raise NotFoundError(f"Log stream not found: {stream}")

        try:
            with self._db.session() as session:
                result = session.execute(delete(LogRow).where(LogRow.log_name == stream))
                removed = result.rowcount
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete log stream '{stream}': {e}") from e

        if removed is None or removed < 0:
            raise StoreError(f"Deletion of log stream '{stream}' could not be confirmed")
        if removed == 0:
            raise NotFoundError(f"Log stream not found: {stream}")

        logger.info("Deleted log stream", stream=stream, rows=removed)
        return removed

    def _purge_stream(self, stream: str, threshold: datetime) -> int:
        try:
            with self._db.session() as session:
                result = session.execute(
                    delete(LogRow).where(
                        LogRow.log_name == stream,
                        LogRow.timestamp < threshold,
                    )
                )
                return max(result.rowcount or 0, 0)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to purge log stream '{stream}': {e}") from e

    def purge_older_than(self, cutoff: datetime) -> SweepReport:
        """
        Delete rows timestamped before *cutoff*, one stream per transaction.
        """
        report = SweepReport()
        try:
            if not self.table_exists():
                return report
            threshold = self._naive(cutoff)
            with self._db.session() as session:
                streams = session.scalars(
                    select(LogRow.log_name)
                    .where(LogRow.timestamp < threshold)
                    .distinct()
                    .order_by(LogRow.log_name)
                ).all()
        except (SQLAlchemyError, StoreError) as e:
            report.record_failure(LOG_TABLE_NAME, e)
            logger.warning("Failed to scan logs table for expired rows", error=str(e))
            return report

        for stream in streams:
            try:
                report.deleted += self._purge_stream(stream, threshold)
            except StoreError as e:
                report.record_failure(stream, e)
                logger.warning("Failed to purge expired rows", stream=stream, error=str(e))

        return report

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "backend": self.name,
            "total_writes": self._total_writes,
            "failed_writes": self._failed_writes,
            "database": self._db.url,
            "table": LOG_TABLE_NAME,
            "write_timing": self._timing.get_stats(),
        }

    def shutdown(self) -> None:
        self._db.dispose()


__all__ = ["TableBackend"]
