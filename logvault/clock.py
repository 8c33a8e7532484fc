# logvault/clock.py
"""Timezone-aware time source shared by a backend's writes."""

import threading
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Clock:
    """
    Wall clock in a fixed timezone that never steps backwards.

    ``now()`` returns the later of the source time and the last value handed
    out, so entries written through one clock keep non-decreasing
    timestamps even if the system time is adjusted.

    Args:
        tz: Timezone for dates and timestamps (default UTC)
        source: Optional callable returning the current time; naive results
            are interpreted in ``tz``. Tests pass a controllable source.
    """

    def __init__(
        self,
        tz: tzinfo = timezone.utc,
        source: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tz = tz
        self._source = source
        self._last: Optional[datetime] = None
        self._lock = threading.Lock()

    def _read_source(self) -> datetime:
        if self._source is None:
            return datetime.now(self.tz)
        current = self._source()
        if current.tzinfo is None:
            return current.replace(tzinfo=self.tz)
        return current.astimezone(self.tz)

    def now(self) -> datetime:
        """Current aware time in the clock's timezone, whole seconds."""
        current = self._read_source().replace(microsecond=0)
        with self._lock:
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
        return current

    def wall_time(self) -> datetime:
        """Current time without the non-decreasing guarantee (for cutoffs)."""
        return self._read_source()

    def localize(self, moment: datetime) -> datetime:
        """Attach or convert *moment* to the clock's timezone."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.tz)
        return moment.astimezone(self.tz)

    def from_timestamp(self, seconds: float) -> datetime:
        return datetime.fromtimestamp(seconds, tz=self.tz)


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


__all__ = ["Clock", "TIMESTAMP_FORMAT", "format_timestamp"]
