# common/config/app_config.py
"""
Complete logvault configuration with validation.
Storage, database and diagnostics settings are passed explicitly to the
engine at construction time; nothing in the core reads the environment.
"""

from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .config_types import StorageMethod
from .env_config import collect_env, get_env
from .logging_config import LoggingConfig

DEFAULT_MAX_FILE_SIZE = 1 * 1024 * 1024  # 1 MiB


class StorageConfig(BaseModel):
    """
    File storage configuration.
    """

    log_dir: Path = Field(default=Path("logs"))
    max_file_size: int = Field(
        default=DEFAULT_MAX_FILE_SIZE,
        gt=0,
        description="Size ceiling in bytes after which a new file is started",
    )
    timezone: str = Field(default="UTC", min_length=1)

    model_config = {"frozen": True}

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate the IANA timezone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {v}") from exc
        return v

    @property
    def tzinfo(self) -> tzinfo:
        return ZoneInfo(self.timezone)


class DatabaseConfig(BaseModel):
    """
    Database configuration for the table backend.

    The URL is any SQLAlchemy URL with a synchronous driver, e.g.
    ``sqlite:///logs.db`` or ``postgresql+psycopg://user:pw@host/db``.
    """

    url: SecretStr  # Pydantic hides this in logs

    # Connection pooling (ignored for SQLite)
    pool_size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, le=300)
    pool_recycle: int = Field(default=3600, ge=300)  # Min 5 minutes

    echo: bool = False

    model_config = {"frozen": True}

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: SecretStr) -> SecretStr:
        """Validate that the URL parses as a SQLAlchemy URL."""
        try:
            make_url(v.get_secret_value())
        except ArgumentError as exc:
            raise ValueError("Invalid database URL") from exc
        return v

    def get_connection_url(self, include_password: bool = False) -> str:
        """
        Build SQLAlchemy connection URL.

        Args:
            include_password: If True, include password in URL (use for actual connections)
                            If False, mask it (use for logging)

        Returns:
            Database URL string
        """
        url = make_url(self.url.get_secret_value())
        return url.render_as_string(hide_password=not include_password)

    def to_dict_safe(self) -> dict[str, Any]:
        """Convert to dict with sensitive data masked (safe for logging)."""
        data = self.model_dump()
        data["url"] = self.get_connection_url(include_password=False)
        return data


class LogVaultConfig(BaseModel):
    """
    Complete logvault configuration.

    All configuration is loaded from environment variables and validated
    at startup. Invalid configuration will fail fast with clear error messages.
    """

    logging_enabled: bool = False
    storage_method: StorageMethod = StorageMethod.FILE
    retention_days: int = Field(default=30, ge=1)
    page_size: int = Field(default=20, ge=1)
    sweep_interval_hours: float = Field(default=24.0, gt=0)
    capture_fatal_errors: bool = True

    storage: StorageConfig = Field(default_factory=StorageConfig)
    database: Optional[DatabaseConfig] = None
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_storage_method(self) -> "LogVaultConfig":
        """
        The database storage method needs a database to write to.
        """
        if self.storage_method == StorageMethod.DATABASE and self.database is None:
            raise ValueError("Database config required when storage_method is 'database'")
        return self


def load_storage_config() -> StorageConfig:
    """
    Load file storage configuration from environment.

    Environment variables (all optional):
    - LOGVAULT_LOG_DIR: Directory holding the log files (default ./logs)
    - LOGVAULT_MAX_FILE_SIZE: Rotation ceiling in bytes (default 1 MiB)
    - LOGVAULT_TIMEZONE: IANA timezone for dates and timestamps (default UTC)
    """
    data: Dict[str, Any] = dict(
        collect_env(
            {
                "log_dir": "LOGVAULT_LOG_DIR",
                "max_file_size": "LOGVAULT_MAX_FILE_SIZE",
                "timezone": "LOGVAULT_TIMEZONE",
            }
        )
    )
    if "log_dir" in data:
        data["log_dir"] = Path(data["log_dir"]).expanduser()

    return StorageConfig(**data)


def load_database_config() -> Optional[DatabaseConfig]:
    """
    Load database configuration from environment.

    Returns None when LOGVAULT_DB_URL is not set.

    Environment variables:
    - LOGVAULT_DB_URL: SQLAlchemy database URL
    - LOGVAULT_DB_POOL_SIZE, LOGVAULT_DB_MAX_OVERFLOW,
      LOGVAULT_DB_POOL_TIMEOUT, LOGVAULT_DB_POOL_RECYCLE: pool tuning
    - LOGVAULT_DB_ECHO: Log all SQL statements
    """
    url = get_env("LOGVAULT_DB_URL")
    if not url:
        return None

    data: Dict[str, Any] = {"url": SecretStr(url)}
    data.update(
        collect_env(
            {
                "pool_size": "LOGVAULT_DB_POOL_SIZE",
                "max_overflow": "LOGVAULT_DB_MAX_OVERFLOW",
                "pool_timeout": "LOGVAULT_DB_POOL_TIMEOUT",
                "pool_recycle": "LOGVAULT_DB_POOL_RECYCLE",
                "echo": "LOGVAULT_DB_ECHO",
            }
        )
    )

    return DatabaseConfig(**data)


def load_app_config() -> LogVaultConfig:
    """
    Load complete logvault configuration.

    Environment variables (all optional):
    - LOGVAULT_ENABLED: Master switch for writing entries (default false)
    - LOGVAULT_STORAGE_METHOD: file | database (default file)
    - LOGVAULT_RETENTION_DAYS: Retention horizon in days (default 30)
    - LOGVAULT_PAGE_SIZE: Explorer page size (default 20)
    - LOGVAULT_SWEEP_INTERVAL_HOURS: Retention scheduler period (default 24)
    - LOGVAULT_CAPTURE_FATAL: Log uncaught exceptions at exit once init() runs (default true)

    Returns:
        Validated LogVaultConfig instance

    Raises:
        ValidationError: If configuration is invalid
        ConfigurationError: If LOG_LEVEL is invalid
    """
    from .logging_config import load_logging_config

    data: Dict[str, Any] = {
        "storage": load_storage_config(),
        "database": load_database_config(),
        "logging": load_logging_config(),
    }
    data.update(
        collect_env(
            {
                "logging_enabled": "LOGVAULT_ENABLED",
                "storage_method": "LOGVAULT_STORAGE_METHOD",
                "retention_days": "LOGVAULT_RETENTION_DAYS",
                "page_size": "LOGVAULT_PAGE_SIZE",
                "sweep_interval_hours": "LOGVAULT_SWEEP_INTERVAL_HOURS",
                "capture_fatal_errors": "LOGVAULT_CAPTURE_FATAL",
            }
        )
    )
    if "storage_method" in data:
        data["storage_method"] = data["storage_method"].lower()

    return LogVaultConfig(**data)


__all__ = [
    "DEFAULT_MAX_FILE_SIZE",
    "LogVaultConfig",
    "StorageConfig",
    "DatabaseConfig",
    "load_app_config",
    "load_storage_config",
    "load_database_config",
]
