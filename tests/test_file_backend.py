"""Tests for the rotating file backend."""

import math
import re
from datetime import date, datetime, timezone

import pytest

from common.api_error import ConfigurationError, NotFoundError, WriteError
from logvault.clock import Clock
from logvault.levels import LogLevel
from logvault.naming import parse
from logvault.schemas import LogSource
from logvault.storage import FileBackend, format_line, parse_log_lines

LINE_RE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] [A-Z]+: .*$")


def _log_files(directory):
    return sorted(p for p in directory.glob("*.log"))


class TestInitialize:
    """Test FileBackend.initialize()."""

    def test_creates_directory_and_marker(self, file_backend, log_dir):
        """Test directory and deny-all marker are created."""
        file_backend.initialize()

        assert log_dir.is_dir()
        assert (log_dir / ".htaccess").read_text() == "Deny from all\n"

    def test_existing_marker_kept(self, file_backend, log_dir):
        """Test an existing marker is not overwritten."""
        log_dir.mkdir(parents=True)
        (log_dir / ".htaccess").write_text("custom\n")

        file_backend.initialize()

        assert (log_dir / ".htaccess").read_text() == "custom\n"

    def test_parent_is_a_file(self, tmp_path, clock):
        """Test an uncreatable directory raises ConfigurationError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        backend = FileBackend(blocker / "logs", clock=clock)

        with pytest.raises(ConfigurationError):
            backend.initialize()

    def test_write_initializes_lazily(self, file_backend, log_dir):
        """Test first write creates the directory."""
        file_backend.write("auth", "info", "hello")

        assert (log_dir / ".htaccess").exists()

    def test_rejects_non_positive_ceiling(self, log_dir, clock):
        with pytest.raises(ValueError):
            FileBackend(log_dir, clock=clock, max_file_size=0)


class TestWrite:
    """Test FileBackend.write()."""

    def test_line_format(self, file_backend, log_dir):
        """Test one entry produces one well-formed line."""
        file_backend.write("auth", LogLevel.INFO, "User 42 logged in")

        files = _log_files(log_dir)
        assert len(files) == 1
        assert files[0].read_text() == "[2024-05-01 12:00:00] INFO: User 42 logged in\n"

    def test_file_name(self, file_backend, log_dir):
        """Test file name carries stream, date and token."""
        file_backend.write("auth", "error", "boom")

        parsed = parse(_log_files(log_dir)[0].name)
        assert parsed.stream == "auth"
        assert parsed.day == date(2024, 5, 1)
        assert parsed.token is not None

    def test_appends_to_same_file(self, file_backend, log_dir):
        """Test entries of one stream and day share a file below the ceiling."""
        for i in range(5):
            file_backend.write("auth", "debug", f"entry {i}")

        files = _log_files(log_dir)
        assert len(files) == 1
        assert len(files[0].read_text().splitlines()) == 5

    def test_streams_get_separate_files(self, file_backend, log_dir):
        file_backend.write("auth", "info", "a")
        file_backend.write("billing", "info", "b")

        assert {parse(p.name).stream for p in _log_files(log_dir)} == {"auth", "billing"}

    def test_prefix_stream_not_confused(self, file_backend, log_dir):
        """Test 'auth' never appends to the file of 'auth-2024-05-01-x'."""
        file_backend.write("auth-2024-05-01-x", "info", "other")
        file_backend.write("auth", "info", "mine")

        assert len(_log_files(log_dir)) == 2

    def test_new_day_new_file(self, file_backend, log_dir, manual_time):
        file_backend.write("auth", "info", "day one")
        manual_time.advance(days=1)
        file_backend.write("auth", "info", "day two")

        days = sorted(parse(p.name).day for p in _log_files(log_dir))
        assert days == [date(2024, 5, 1), date(2024, 5, 2)]

    def test_day_follows_clock_timezone(self, log_dir, manual_time):
        """Test the file date is the date in the configured timezone."""
        from zoneinfo import ZoneInfo

        manual_time.set(datetime(2024, 5, 1, 23, 30, tzinfo=timezone.utc))
        backend = FileBackend(log_dir, clock=Clock(ZoneInfo("Asia/Tokyo"), source=manual_time))

        backend.write("auth", "info", "late")

        assert parse(_log_files(log_dir)[0].name).day == date(2024, 5, 2)

    def test_level_coerced(self, file_backend, log_dir):
        file_backend.write("auth", "WARNING", "x")

        assert "WARNING: x" in _log_files(log_dir)[0].read_text()

    def test_unknown_level_rejected(self, file_backend):
        with pytest.raises(ValueError):
            file_backend.write("auth", "verbose", "x")

    def test_append_failure_raises_write_error(self, file_backend, monkeypatch):
        """Test OSError during append becomes WriteError."""

        def failing_append(path, data):
            raise OSError("disk full")

        monkeypatch.setattr(FileBackend, "_append", staticmethod(failing_append))

        with pytest.raises(WriteError):
            file_backend.write("auth", "info", "x")
        assert file_backend.get_metrics()["failed_writes"] == 1


class TestRotation:
    """Test size-based rotation."""

    def test_rotates_at_ceiling(self, log_dir, clock):
        """Test total/ceiling files are produced and none overflows by more than one entry."""
        ceiling = 200
        backend = FileBackend(log_dir, clock=clock, max_file_size=ceiling)
        line_size = len(format_line(clock.now(), LogLevel.INFO, "x" * 40).encode())

        for _ in range(20):
            backend.write("auth", "info", "x" * 40)

        files = _log_files(log_dir)
        total = 20 * line_size
        assert len(files) >= math.ceil(total / ceiling)
        for path in files:
            assert path.stat().st_size < ceiling + line_size
        assert sum(len(p.read_text().splitlines()) for p in files) == 20
        assert backend.get_metrics()["rotations"] == len(files) - 1

    def test_oversized_entry_rotates_next_write(self, log_dir, clock):
        """Test a single entry larger than the ceiling still lands, then rotates."""
        backend = FileBackend(log_dir, clock=clock, max_file_size=10)

        backend.write("auth", "info", "a much longer message than ten bytes")
        backend.write("auth", "info", "second")

        assert len(_log_files(log_dir)) == 2

    def test_rotated_files_share_stream_and_day(self, log_dir, clock):
        backend = FileBackend(log_dir, clock=clock, max_file_size=50)

        for i in range(6):
            backend.write("auth", "info", f"message number {i}")

        parsed = {(parse(p.name).stream, parse(p.name).day) for p in _log_files(log_dir)}
        assert parsed == {("auth", date(2024, 5, 1))}


class TestReadSide:
    """Test list/view/read_bytes/delete."""

    def test_list_empty(self, file_backend):
        """Test listing a missing directory returns nothing."""
        assert file_backend.list() == []

    def test_list_groups_rotated_files(self, log_dir, clock):
        backend = FileBackend(log_dir, clock=clock, max_file_size=50)
        for i in range(6):
            backend.write("auth", "info", f"message number {i}")
        backend.write("billing", "info", "paid")

        summaries = {s.stream: s for s in backend.list()}

        assert set(summaries) == {"auth", "billing"}
        auth = summaries["auth"]
        assert auth.source is LogSource.FILE
        assert auth.day == date(2024, 5, 1)
        assert len(auth.file_names) == len([p for p in _log_files(log_dir) if p.name.startswith("auth-")])
        assert auth.size == sum(
            p.stat().st_size for p in _log_files(log_dir) if p.name.startswith("auth-")
        )

    def test_list_ignores_marker(self, file_backend):
        file_backend.initialize()

        assert file_backend.list() == []

    def test_view_newest_first(self, file_backend, log_dir, manual_time):
        file_backend.write("auth", "info", "first")
        manual_time.advance(seconds=5)
        file_backend.write("auth", "error", "second")
        name = _log_files(log_dir)[0].name

        view = file_backend.view(name)

        assert view.source is LogSource.FILE
        assert [e.message for e in view.entries] == ["second", "first"]
        assert view.entries[0].level is LogLevel.ERROR
        assert view.entries[0].timestamp == datetime(2024, 5, 1, 12, 0, 5, tzinfo=timezone.utc)
        assert view.content.endswith("ERROR: second\n")

    def test_view_multiline_message(self, file_backend, log_dir):
        """Test continuation lines fold into their entry."""
        file_backend.write("auth", "info", "line one\nline two")

        view = file_backend.view(_log_files(log_dir)[0].name)

        assert len(view.entries) == 1
        assert view.entries[0].message == "line one\nline two"

    def test_view_missing(self, file_backend):
        with pytest.raises(NotFoundError):
            file_backend.view("nope-2024-05-01-0a1b2c3d4e.log")

    @pytest.mark.parametrize("name", ["../secret.log", ".htaccess", "auth.txt", ""])
    def test_view_rejects_non_log_names(self, file_backend, name):
        file_backend.initialize()

        with pytest.raises(NotFoundError):
            file_backend.view(name)

    def test_read_bytes(self, file_backend, log_dir):
        file_backend.write("auth", "info", "payload")
        path = _log_files(log_dir)[0]

        assert file_backend.read_bytes(path.name) == path.read_bytes()

    def test_delete(self, file_backend, log_dir):
        file_backend.write("auth", "info", "x")
        name = _log_files(log_dir)[0].name

        assert file_backend.delete(name) == 1
        assert _log_files(log_dir) == []

        with pytest.raises(NotFoundError):
            file_backend.delete(name)

    def test_directory_size(self, file_backend, log_dir):
        assert file_backend.directory_size() == 0

        file_backend.write("auth", "info", "x")

        assert file_backend.directory_size() == _log_files(log_dir)[0].stat().st_size


class TestParseLogLines:
    """Test parse_log_lines()."""

    def test_skips_leading_garbage(self):
        content = "garbage\n[2024-05-01 12:00:00] INFO: ok\n"

        entries = parse_log_lines(content, "auth", timezone.utc)

        assert [e.message for e in entries] == ["ok"]

    def test_unknown_level_is_continuation(self):
        content = "[2024-05-01 12:00:00] INFO: ok\n[2024-05-01 12:00:00] LOUD: not a level\n"

        entries = parse_log_lines(content, "auth", timezone.utc)

        assert len(entries) == 1
        assert entries[0].message.endswith("LOUD: not a level")

    def test_line_regex(self):
        line = format_line(datetime(2024, 5, 1, tzinfo=timezone.utc), LogLevel.NOTICE, "n")

        assert LINE_RE.match(line.rstrip("\n"))
