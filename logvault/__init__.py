# logvault/__init__.py
"""
logvault: leveled log streams stored in rotating files or a SQL table.
"""

from .clock import Clock
from .core import LogVault
from .explorer import Explorer, LogSelector
from .facade import LogFacade
from .interpolate import RawJson, interpolate
from .levels import LogLevel
from .retention import RetentionScheduler, RetentionSweeper
from .schemas import LogEntry, LogPage, LogSource, LogSummary, LogView, SweepReport

__version__ = "0.1.0"

__all__ = [
    "Clock",
    "Explorer",
    "LogEntry",
    "LogFacade",
    "LogLevel",
    "LogPage",
    "LogSelector",
    "LogSource",
    "LogSummary",
    "LogVault",
    "LogView",
    "RawJson",
    "RetentionScheduler",
    "RetentionSweeper",
    "SweepReport",
    "interpolate",
]
