"""Tests for the SQL table backend."""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from common.api_error import NotFoundError, StoreError
from logvault.clock import Clock
from logvault.db import LOG_TABLE_NAME, DbManager, LogRow
from logvault.levels import LogLevel
from logvault.schemas import LogSource
from logvault.storage import TableBackend


def _rows(db_manager):
    with db_manager.session() as session:
        return session.scalars(select(LogRow).order_by(LogRow.id)).all()


class TestTableLifecycle:
    """Test lazy table creation."""

    def test_table_created_on_first_write(self, table_backend, db_manager):
        assert not db_manager.has_table(LOG_TABLE_NAME)
        assert not table_backend.table_exists()

        table_backend.write("auth", "info", "hello")

        assert db_manager.has_table(LOG_TABLE_NAME)
        assert table_backend.table_exists()

    def test_existing_table_reused(self, db_manager, clock):
        LogRow.__table__.create(db_manager.engine)
        backend = TableBackend(db_manager, clock=clock)

        backend.write("auth", "info", "hello")

        assert len(_rows(db_manager)) == 1

    def test_concurrent_first_writes(self, db_url, clock):
        """Test several backends racing to create the table all succeed."""
        managers = [DbManager(db_url) for _ in range(4)]
        backends = [TableBackend(m, clock=clock) for m in managers]
        barrier = threading.Barrier(len(backends))
        errors = []

        def worker(backend):
            barrier.wait()
            try:
                for i in range(5):
                    backend.write("race", "info", f"entry {i}")
            except Exception as e:  # collected for the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(b,)) for b in backends]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        try:
            assert errors == []
            assert len(_rows(managers[0])) == 20
        finally:
            for m in managers:
                m.dispose()

    def test_drop_table(self, table_backend, db_manager):
        table_backend.write("auth", "info", "hello")

        table_backend.drop_table()

        assert not db_manager.has_table(LOG_TABLE_NAME)
        assert table_backend.list() == []

        table_backend.write("auth", "info", "again")
        assert len(_rows(db_manager)) == 1

    def test_unreachable_database(self, tmp_path, clock):
        """Test driver failures surface as StoreError."""
        manager = DbManager(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'logs.db'}")
        backend = TableBackend(manager, clock=clock)

        with pytest.raises(StoreError):
            backend.write("auth", "info", "x")
        with pytest.raises(StoreError):
            backend.initialize()
        assert backend.get_metrics()["failed_writes"] == 1
        manager.dispose()


class TestTableWrite:
    """Test TableBackend.write()."""

    def test_row_contents(self, table_backend, db_manager):
        table_backend.write("auth", LogLevel.INFO, "User 42 logged in")

        [row] = _rows(db_manager)
        assert row.log_name == "auth"
        assert row.level == "info"
        assert row.message == "User 42 logged in"
        assert row.timestamp == datetime(2024, 5, 1, 12, 0, 0)

    def test_level_stored_lowercase(self, table_backend, db_manager):
        table_backend.write("auth", "CRITICAL", "x")

        assert _rows(db_manager)[0].level == "critical"

    def test_stream_sanitized(self, table_backend, db_manager):
        table_backend.write("my stream", "info", "x")

        assert _rows(db_manager)[0].log_name == "my-stream"

    def test_no_rotation(self, table_backend, db_manager):
        for i in range(50):
            table_backend.write("auth", "debug", "z" * 100)

        assert len(_rows(db_manager)) == 50
        assert table_backend.get_metrics()["total_writes"] == 50


class TestTableReadSide:
    """Test list/read/view/delete."""

    def test_list_missing_table(self, table_backend):
        assert table_backend.list() == []

    def test_list_summaries(self, table_backend, manual_time):
        table_backend.write("auth", "info", "a")
        manual_time.advance(minutes=5)
        table_backend.write("auth", "error", "b")
        table_backend.write("billing", "info", "c")

        summaries = {s.stream: s for s in table_backend.list()}

        auth = summaries["auth"]
        assert auth.source is LogSource.DATABASE
        assert auth.entry_count == 2
        assert auth.created == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert auth.modified == datetime(2024, 5, 1, 12, 5, tzinfo=timezone.utc)
        assert summaries["billing"].entry_count == 1

    def test_read_newest_first(self, table_backend, manual_time):
        table_backend.write("auth", "info", "first")
        table_backend.write("auth", "info", "second")
        manual_time.advance(seconds=1)
        table_backend.write("auth", "info", "third")

        messages = [e.message for e in table_backend.read("auth")]

        # Equal timestamps fall back to insertion order, newest first
        assert messages == ["third", "second", "first"]

    def test_view(self, table_backend):
        table_backend.write("auth", "notice", "n")

        view = table_backend.view("auth")

        assert view.source is LogSource.DATABASE
        assert view.selector == "auth"
        assert view.content is None
        assert view.entries[0].level is LogLevel.NOTICE
        assert view.entries[0].timestamp.tzinfo is not None

    def test_read_missing_stream(self, table_backend):
        with pytest.raises(NotFoundError):
            table_backend.read("auth")

        table_backend.write("other", "info", "x")
        with pytest.raises(NotFoundError):
            table_backend.view("auth")

    def test_read_invalid_selector(self, table_backend):
        with pytest.raises(NotFoundError):
            table_backend.view("///")

    def test_delete(self, table_backend, db_manager):
        table_backend.write("auth", "info", "a")
        table_backend.write("auth", "info", "b")
        table_backend.write("billing", "info", "c")

        assert table_backend.delete("auth") == 2
        assert [r.log_name for r in _rows(db_manager)] == ["billing"]

        with pytest.raises(NotFoundError):
            table_backend.delete("auth")

    def test_delete_missing_table(self, table_backend):
        with pytest.raises(NotFoundError):
            table_backend.delete("auth")


class TestTablePurge:
    """Test TableBackend.purge_older_than()."""

    def test_purge_missing_table(self, table_backend):
        report = table_backend.purge_older_than(datetime.now(timezone.utc))

        assert report.deleted == 0
        assert report.failed == 0

    def test_purge_strictly_older(self, table_backend, manual_time, db_manager):
        start = manual_time.current
        table_backend.write("auth", "info", "old")
        table_backend.write("billing", "info", "old")
        manual_time.advance(days=10)
        table_backend.write("auth", "info", "new")

        report = table_backend.purge_older_than(start + timedelta(days=1))

        assert report.deleted == 2
        assert [r.message for r in _rows(db_manager)] == ["new"]

    def test_purge_continues_after_failure(self, table_backend, manual_time, db_manager, monkeypatch):
        """Test a failing stream is recorded and the others are still purged."""
        for stream in ("alpha", "beta", "gamma"):
            table_backend.write(stream, "info", "old")
        manual_time.advance(days=40)

        original = TableBackend._purge_stream

        def flaky(self, stream, threshold):
            if stream == "beta":
                raise StoreError("simulated failure")
            return original(self, stream, threshold)

        monkeypatch.setattr(TableBackend, "_purge_stream", flaky)

        report = table_backend.purge_older_than(manual_time.current - timedelta(days=30))

        assert report.deleted == 2
        assert report.failed == 1
        assert "beta" in report.failures[0]
        assert [r.log_name for r in _rows(db_manager)] == ["beta"]

    def test_naive_timestamps_use_clock_timezone(self, db_manager, manual_time):
        """Test rows are stored as wall time in the configured timezone."""
        from zoneinfo import ZoneInfo

        backend = TableBackend(db_manager, clock=Clock(ZoneInfo("America/New_York"), source=manual_time))

        backend.write("auth", "info", "x")

        assert _rows(db_manager)[0].timestamp == datetime(2024, 5, 1, 8, 0, 0)
        assert backend.read("auth")[0].timestamp == manual_time.current
