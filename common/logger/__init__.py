# common/logger/__init__.py
"""Diagnostics logging for logvault internals."""

from .logger import AppLogger, get_app_logger, logger
from .timing import TimingStats

__all__ = ["AppLogger", "TimingStats", "get_app_logger", "logger"]
