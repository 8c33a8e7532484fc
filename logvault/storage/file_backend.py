# logvault/storage/file_backend.py
"""
File-based log storage with size-based rotation.

Entries for one stream and day go to ``{stream}-{YYYY-MM-DD}-{token}.log``.
The most recently modified file of that stream and day keeps receiving
appends while it is below the size ceiling; after that a new file with a fresh
token is started. Selection and append happen under one exclusive ``flock``
on a lock file in the log directory, so concurrent writers (threads or
processes) never interleave partial lines or race a rotation.
"""

import fcntl
import os
import re
import threading
from contextlib import contextmanager
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from common.api_error import ConfigurationError, NotFoundError, WriteError
from common.config import DEFAULT_MAX_FILE_SIZE, StorageConfig
from common.logger import TimingStats, get_app_logger
from logvault.clock import TIMESTAMP_FORMAT, Clock, format_timestamp
from logvault.levels import LevelLike, LogLevel
from logvault.naming import (
    LOG_SUFFIX,
    candidate_pattern,
    encode,
    new_rotation_token,
    parse,
    sanitize_stream,
)
from logvault.schemas import LogEntry, LogSource, LogSummary, LogView, SweepReport
from .base import StorageBackend

logger = get_app_logger(__name__)

_LINE = re.compile(
    r"^\[(?P<timestamp>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\] (?P<level>[A-Za-z]+): (?P<message>.*)$"
)


def format_line(moment: datetime, level: LogLevel, message: str) -> str:
    """Render one entry as ``[Y-m-d H:i:s] LEVEL: message`` plus newline."""
    return f"[{format_timestamp(moment)}] {level.label}: {message}\n"


def parse_log_lines(content: str, stream: str, tz: tzinfo) -> List[LogEntry]:
    """
    Parse file content back into entries, oldest first.

    Lines that do not start a new entry (multi-line messages) are folded into
    the previous entry; text before the first entry is ignored.
    """
    entries: List[LogEntry] = []
    current: Optional[Dict[str, Any]] = None

    for raw in content.splitlines():
        match = _LINE.match(raw)
        level: Optional[LogLevel] = None
        if match:
            try:
                level = LogLevel.coerce(match.group("level"))
            except ValueError:
                level = None

        if match and level is not None:
            if current is not None:
                entries.append(LogEntry(**current))
            timestamp = datetime.strptime(match.group("timestamp"), TIMESTAMP_FORMAT)
            current = {
                "stream": stream,
                "level": level,
                "message": match.group("message"),
                "timestamp": timestamp.replace(tzinfo=tz),
            }
        elif current is not None:
            current["message"] += "\n" + raw

    if current is not None:
        entries.append(LogEntry(**current))
    return entries


class FileBackend(StorageBackend):
    """
    Rotating append-only log files in one directory.

    The directory also holds a deny-all ``.htaccess`` marker for web servers
    that might expose it, and the ``.write.lock`` file used for locking.
    """

    source = LogSource.FILE

    MARKER_FILE = ".htaccess"
    MARKER_CONTENT = "Deny from all\n"
    LOCK_FILE = ".write.lock"
    MAX_TOKEN_ATTEMPTS = 16

    def __init__(
        self,
        log_dir: Union[str, Path],
        clock: Optional[Clock] = None,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ):
        """
        Initialize file backend.

        Args:
            log_dir: Directory holding the log files (created on first use)
            clock: Time source (default UTC wall clock)
            max_file_size: Size ceiling in bytes before rotating
        """
        super().__init__(clock or Clock())
        if max_file_size <= 0:
            raise ValueError(f"max_file_size must be positive, got {max_file_size}")

        self._log_dir = Path(log_dir)
        self.max_file_size = max_file_size
        self._initialized = False
        self._init_lock = threading.Lock()

        # Metrics
        self._metrics_lock = threading.Lock()
        self._total_writes = 0
        self._failed_writes = 0
        self._rotations = 0
        self._timing = TimingStats()

    @classmethod
    def from_config(cls, config: StorageConfig, clock: Optional[Clock] = None) -> "FileBackend":
        return cls(
            log_dir=config.log_dir,
            clock=clock or Clock(config.tzinfo),
            max_file_size=config.max_file_size,
        )

    @property
    def name(self) -> str:
        """Backend name."""
        return "file"

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def initialize(self) -> None:
        """
        Create the log directory and the access-control marker.

        Raises:
            ConfigurationError: If the directory cannot be created or written
        """
        with self._init_lock:
            if self._initialized:
                return

            try:
                self._log_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(
                    f"Unable to create log directory {self._log_dir}: {e}"
                ) from e

            if not os.access(self._log_dir, os.W_OK | os.X_OK):
                raise ConfigurationError(f"Log directory is not writable: {self._log_dir}")

            marker = self._log_dir / self.MARKER_FILE
            if not marker.exists():
                try:
                    marker.write_text(self.MARKER_CONTENT, encoding="utf-8")
                except OSError as e:
                    raise ConfigurationError(
                        f"Unable to create the {self.MARKER_FILE} file for log protection: {e}"
                    ) from e

            self._initialized = True
            logger.debug("File backend initialized", log_dir=str(self._log_dir))

    @contextmanager
    def _exclusive_lock(self) -> Iterator[None]:
        """Hold an exclusive flock on the directory's lock file."""
        fd = os.open(self._log_dir / self.LOCK_FILE, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield
        finally:
            # Closing the descriptor releases the lock
            os.close(fd)

    def _select_target(self, stream: str, day: date) -> Tuple[Path, bool]:
        """
        Pick the file to append to.

        Returns:
            (path, rotated) where rotated is True when an existing file for
            this stream and day was full.
        """
        candidates: List[Tuple[int, bool, str, Path]] = []
        for path in self._log_dir.glob(candidate_pattern(stream, day)):
            parsed = parse(path.name)
            # The glob also matches longer stream names that share the prefix
            if parsed.stream != stream or parsed.day != day or parsed.token is None:
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            candidates.append(
                (stat.st_mtime_ns, stat.st_size < self.max_file_size, path.name, path)
            )

        if candidates:
            # Equal mtimes prefer the file that still has room
            _, has_room, _, latest = max(candidates)
            if has_room:
                return latest, False
            return self._allocate(stream, day), True

        return self._allocate(stream, day), False

    def _allocate(self, stream: str, day: date) -> Path:
        """New file path with a token no existing file uses."""
        for _ in range(self.MAX_TOKEN_ATTEMPTS):
            path = self._log_dir / encode(stream, day, new_rotation_token())
            if not path.exists():
                return path
        raise WriteError(f"Could not allocate a unique log file name for stream '{stream}'")

    @staticmethod
    def _append(path: Path, data: bytes) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
        try:
            view = memoryview(data)
            while view:
                written = os.write(fd, view)
                if written == 0:
                    raise OSError(f"Partial write to {path.name}")
                view = view[written:]
        finally:
            os.close(fd)

    def write(self, stream: str, level: LevelLike, message: str) -> None:
        """
        Append one entry, rotating to a new file when the current one is full.

        Raises:
            ConfigurationError: If the directory is unusable
            WriteError: If the append fails (not retried)
        """
        level = LogLevel.coerce(level)
        stream = sanitize_stream(stream)
        self.initialize()

        try:
            with self._timing.measure(), self._exclusive_lock():
                moment = self.clock.now()
                target, rotated = self._select_target(stream, moment.date())
                self._append(target, format_line(moment, level, message).encode("utf-8"))
        except OSError as e:
            with self._metrics_lock:
                self._failed_writes += 1
            raise WriteError(f"Failed to append to log file for stream '{stream}': {e}") from e

        with self._metrics_lock:
            self._total_writes += 1
            if rotated:
                self._rotations += 1

        if rotated:
            logger.info("Rotated log file", stream=stream, file=target.name)

    def _log_files(self) -> List[Path]:
        if not self._log_dir.is_dir():
            return []
        return sorted(p for p in self._log_dir.glob(f"*{LOG_SUFFIX}") if p.is_file())

    def list(self) -> List[LogSummary]:
        """
        One summary per stream and day, merging rotated files.

        Size is the sum over the files, modification time the latest one and
        creation time the earliest one.
        """
        groups: Dict[Tuple[str, Optional[date]], Dict[str, Any]] = {}

        for path in self._log_files():
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue

            parsed = parse(path.name)
            group = groups.setdefault(
                (parsed.stream, parsed.day),
                {
                    "files": [],
                    "created": stat.st_ctime,
                    "modified": stat.st_mtime,
                    "size": 0,
                },
            )
            group["files"].append((stat.st_mtime_ns, path.name))
            group["created"] = min(group["created"], stat.st_ctime)
            group["modified"] = max(group["modified"], stat.st_mtime)
            group["size"] += stat.st_size

        return [
            LogSummary(
                source=self.source,
                stream=stream,
                day=day,
                file_names=tuple(name for _, name in sorted(group["files"])),
                created=self.clock.from_timestamp(group["created"]),
                modified=self.clock.from_timestamp(group["modified"]),
                size=group["size"],
            )
            for (stream, day), group in groups.items()
        ]

    def _resolve(self, filename: str) -> Path:
        """Map a bare log file name to its path; anything else is not found."""
        if (
            not filename
            or Path(filename).name != filename
            or filename.startswith(".")
            or not filename.endswith(LOG_SUFFIX)
        ):
            raise NotFoundError(f"Log file not found: {filename}")

        path = self._log_dir / filename
        if not path.is_file():
            raise NotFoundError(f"Log file not found: {filename}")
        return path

    def read_bytes(self, filename: str) -> bytes:
        """Raw bytes of one log file (downloads)."""
        path = self._resolve(filename)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Log file not found: {filename}") from e

    def read(self, filename: str) -> str:
        """Text content of one log file."""
        return self.read_bytes(filename).decode("utf-8", errors="replace")

    def view(self, selector: str) -> LogView:
        content = self.read(selector)
        entries = parse_log_lines(content, parse(selector).stream, self.clock.tz)
        entries.reverse()
        return LogView(source=self.source, selector=selector, entries=entries, content=content)

    def delete(self, selector: str) -> int:
        path = self._resolve(selector)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"Log file not found: {selector}") from e

        logger.info("Deleted log file", file=selector)
        return 1

    def _remove_file(self, path: Path) -> None:
        path.unlink()

    def purge_older_than(self, cutoff: datetime) -> SweepReport:
        """Delete every log file last modified before *cutoff*."""
        report = SweepReport()
        threshold = cutoff.timestamp()

        for path in self._log_files():
            try:
                mtime = path.stat().st_mtime
            except FileNotFoundError:
                continue
            if mtime >= threshold:
                continue

            try:
                self._remove_file(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                report.record_failure(path.name, e)
                logger.warning("Failed to delete expired log file", file=path.name, error=str(e))
                continue
            report.deleted += 1

        return report

    def directory_size(self) -> int:
        """Total size in bytes of the visible files in the log directory."""
        if not self._log_dir.is_dir():
            return 0
        total = 0
        for path in self._log_dir.iterdir():
            if path.name.startswith(".") or not path.is_file():
                continue
            try:
                total += path.stat().st_size
            except FileNotFoundError:
                continue
        return total

    def get_metrics(self) -> Dict[str, Any]:
        """Get file backend metrics."""
        return {
            "backend": self.name,
            "total_writes": self._total_writes,
            "failed_writes": self._failed_writes,
            "rotations": self._rotations,
            "log_directory": str(self._log_dir),
            "max_file_size": self.max_file_size,
            "write_timing": self._timing.get_stats(),
        }


__all__ = ["FileBackend", "format_line", "parse_log_lines"]
