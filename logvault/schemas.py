# logvault/schemas.py
"""Read-side models shared by both storage backends."""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .levels import LogLevel


class LogSource(str, Enum):
    """Which backend a listing item or view came from."""

    FILE = "file"
    DATABASE = "database"

    def __str__(self) -> str:
        return self.value


class LogEntry(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,  # Tells Pydantic to read SQLAlchemy objects
        populate_by_name=True,
    )

    stream: str = Field(validation_alias=AliasChoices("stream", "log_name"))
    level: LogLevel
    message: str
    timestamp: datetime

    @field_validator("level", mode="before")
    @classmethod
    def coerce_level(cls, v: object) -> LogLevel:
        return LogLevel.coerce(v)  # type: ignore[arg-type]


class LogSummary(BaseModel):
    """
    One row of the unified listing.

    File summaries cover every rotated file of one stream and day; database
    summaries cover every row of one stream.
    """

    model_config = ConfigDict(frozen=True)

    source: LogSource
    stream: str
    created: datetime
    modified: datetime
    day: Optional[date] = None
    file_names: Tuple[str, ...] = ()
    size: Optional[int] = Field(default=None, ge=0)
    entry_count: Optional[int] = Field(default=None, ge=0)

    @property
    def primary_file(self) -> Optional[str]:
        """Most recently rotated file of the group, if any."""
        return self.file_names[-1] if self.file_names else None


class LogView(BaseModel):
    """Contents of one file or one database stream, newest entry first."""

    model_config = ConfigDict(frozen=True)

    source: LogSource
    selector: str
    entries: List[LogEntry] = Field(default_factory=list)
    content: Optional[str] = None


class LogPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[LogSummary]
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total: int = Field(..., ge=0)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


@dataclass
class SweepReport:
    """Outcome of a retention sweep; failures never abort the sweep."""

    deleted: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    def record_failure(self, target: str, error: BaseException) -> None:
        self.failures.append(f"{target}: {error}")

    def merge(self, other: "SweepReport") -> "SweepReport":
        self.deleted += other.deleted
        self.failures.extend(other.failures)
        return self


__all__ = [
    "LogEntry",
    "LogPage",
    "LogSource",
    "LogSummary",
    "LogView",
    "SweepReport",
]
