# common/config/structlog_config.py
"""
Structlog configuration module.

Diagnostics only: rotation, table creation, sweep results and backend
failures. Stored log entries never pass through structlog.
"""
import sys
import os
import threading
from typing import Any, Optional
import structlog
from rich.traceback import install as install_rich_traceback


class _StructlogState:
    """
    Thread-safe, process-safe singleton for structlog configuration state.

    This prevents race conditions during initialization and handles
    forked worker processes.
    """

    _instance: Optional["_StructlogState"] = None
    _lock = threading.Lock()

    # Declare instance attributes with their types
    _initialized: bool
    _log_level: Optional[int]
    _process_id: Optional[int]

    def __new__(cls) -> "_StructlogState":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:  # Double-check locking
                    instance = super().__new__(cls)
                    instance._initialized = False
                    instance._log_level = None
                    instance._process_id = None  # Track which process configured
                    cls._instance = instance
        return cls._instance

    @property
    def is_configured(self) -> bool:
        """Check if configured in the CURRENT process."""
        return self._initialized and self._process_id == os.getpid()

    @property
    def log_level(self) -> Optional[int]:
        return self._log_level

    def mark_configured(self, log_level: int) -> None:
        """Mark structlog as configured with given level in this process."""
        with self._lock:
            self._log_level = log_level
            self._process_id = os.getpid()
            self._initialized = True

    def reset(self) -> None:
        """Reset state. FOR TESTING ONLY."""
        with self._lock:
            self._initialized = False
            self._log_level = None
            self._process_id = None


_state = _StructlogState()


def _stderr_logger_factory(*args: Any) -> structlog.PrintLogger:
    """Bind to whatever sys.stderr is when the logger is created."""
    return structlog.PrintLogger(file=sys.stderr)


def configure_structlog(log_level: int, *, rich_tracebacks: bool = True) -> None:
    """
    Configure structlog with the specified log level.

    Idempotent for the same level within a process. Reconfiguring with a
    different level replaces the previous configuration (the CLI does this
    when LOG_LEVEL differs from the library default).

    Args:
        log_level: Numeric logging level (e.g., logging.INFO)
        rich_tracebacks: Install Rich tracebacks for uncaught exceptions
    """
    if _state.is_configured and _state.log_level == log_level:
        return

    if rich_tracebacks:
        install_rich_traceback(show_locals=False, width=None, extra_lines=3)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,  # type: ignore[list-item]
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.RichTracebackFormatter(
                    show_locals=False,
                    width=None,
                ),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=True,
    )

    _state.mark_configured(log_level)


def get_logger(name: str = "logvault") -> structlog.typing.FilteringBoundLogger:
    """
    Get a structlog logger instance.

    Works before configure_structlog() has been called; structlog's defaults
    apply until then.
    """
    return structlog.get_logger(name)


def is_configured() -> bool:
    """Check if structlog has been configured in this process."""
    return _state.is_configured


def reset_structlog() -> None:
    """Restore structlog defaults and forget the configured level. FOR TESTING ONLY."""
    structlog.reset_defaults()
    _state.reset()


__all__ = [
    "configure_structlog",
    "get_logger",
    "is_configured",
    "reset_structlog",
]
