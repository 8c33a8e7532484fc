# logvault/levels.py
"""Log severities."""

from enum import Enum
from typing import Union


class LogLevel(str, Enum):
    """
    The eight standard severities, most severe first.

    No ordering or threshold filtering is applied when writing; every level
    is stored when logging is enabled.
    """

    EMERGENCY = "emergency"
    ALERT = "alert"
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"
    INFO = "info"
    DEBUG = "debug"

    @classmethod
    def coerce(cls, value: Union["LogLevel", str]) -> "LogLevel":
        """
        Resolve a level from an enum member or its name (case-insensitive).

        Raises:
            ValueError: If the value is not one of the eight levels
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(level.value for level in cls)
            raise ValueError(f"Unknown log level {value!r}. Must be one of: {valid}") from None

    @property
    def label(self) -> str:
        """Upper-case label used inside log files."""
        return self.value.upper()

    def __str__(self) -> str:
        return self.value


LevelLike = Union[LogLevel, str]

__all__ = ["LogLevel", "LevelLike"]
