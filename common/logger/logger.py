# common/logger/logger.py
"""
Diagnostics logger for logvault internals.

Usage:
    from common.logger import get_app_logger

    logger = get_app_logger(__name__)
    logger.info("Rotated log file", stream="auth")

This is not the log facade: entries written here go to stderr through
structlog and are never persisted by a storage backend.
"""

from typing import Any
import structlog

from common.config.structlog_config import get_logger as _get_structlog_logger


class AppLogger:
    """
    Diagnostics logger wrapper.

    Provides a type-safe interface to structlog. The structlog logger is
    looked up on every call, so configuring structlog after modules are
    imported (or reconfiguring it) takes effect everywhere.

    Diagnostics never break the caller: if the output stream is closed or
    the pipe is broken, the event is dropped.
    """

    def __init__(self, name: str = "logvault") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def _logger(self) -> structlog.typing.FilteringBoundLogger:
        return _get_structlog_logger(self._name)

    def _emit(self, method: str, msg: str, **kwargs: Any) -> None:
        try:
            getattr(self._logger, method)(msg, **kwargs)
        except (OSError, ValueError):
            # Closed or broken diagnostics stream
            pass

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._emit("debug", msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message."""
        self._emit("info", msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._emit("warning", msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log error message."""
        self._emit("error", msg, **kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        """Log critical message."""
        self._emit("critical", msg, **kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log error message with the active exception's traceback."""
        self._emit("exception", msg, **kwargs)


def get_app_logger(name: str = "logvault") -> AppLogger:
    """
    Get diagnostics logger instance.

    Args:
        name: Logger name

    Returns:
        AppLogger instance
    """
    return AppLogger(name=name)


# Convenience instance for simple usage
logger = get_app_logger()

__all__ = ["logger", "AppLogger", "get_app_logger"]
