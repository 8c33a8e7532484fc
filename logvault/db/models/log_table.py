# logvault/db/models/log_table.py
from datetime import datetime
from sqlalchemy import BigInteger, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel

LOG_TABLE_NAME = "logs"


class LogRow(DbBaseModel):
    __tablename__ = LOG_TABLE_NAME

    # SQLite only auto-increments INTEGER PRIMARY KEY
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    log_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    level: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    # Naive wall time in the configured timezone
    timestamp: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"LogRow(id={self.id}, log_name={self.log_name!r}, level={self.level!r})"


__all__ = ["LogRow", "LOG_TABLE_NAME"]
