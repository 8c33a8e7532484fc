"""Shared fixtures: temporary log directories, a controllable clock, SQLite."""

import io
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from pydantic import SecretStr

from common.config import (
    DatabaseConfig,
    LogVaultConfig,
    StorageConfig,
    StorageMethod,
    configure_structlog,
    reset_config,
)
from logvault.clock import Clock
from logvault.db import DbManager
from logvault.storage import FileBackend, TableBackend


class ManualTime:
    """Time source that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)

    def set(self, moment: datetime) -> None:
        self.current = moment


@pytest.fixture
def manual_time():
    """Controllable time source starting at 2024-05-01 12:00 UTC."""
    return ManualTime(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def clock(manual_time):
    """UTC clock driven by manual_time."""
    return Clock(timezone.utc, source=manual_time)


@pytest.fixture
def log_dir(tmp_path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def file_backend(log_dir, clock):
    """File backend in a fresh temporary directory."""
    return FileBackend(log_dir, clock=clock)


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'logvault.db'}"


@pytest.fixture
def db_manager(db_url):
    """File-backed SQLite database."""
    manager = DbManager(db_url)
    yield manager
    manager.dispose()


@pytest.fixture
def table_backend(db_manager, clock):
    """Table backend on the SQLite database."""
    return TableBackend(db_manager, clock=clock)


@pytest.fixture
def make_config(log_dir, db_url):
    """Build a LogVaultConfig pointing at the temporary directory and database."""

    def _make(**overrides) -> LogVaultConfig:
        data = {
            "logging_enabled": True,
            "storage_method": StorageMethod.FILE,
            "storage": StorageConfig(log_dir=log_dir),
            "database": DatabaseConfig(url=SecretStr(db_url)),
        }
        data.update(overrides)
        return LogVaultConfig(**data)

    return _make


@pytest.fixture(autouse=True)
def _reset_process_config():
    """Keep initialize_config() and structlog state from leaking between tests."""
    yield
    reset_config()


ENV_KEYS = [
    "LOGVAULT_ENABLED",
    "LOGVAULT_STORAGE_METHOD",
    "LOGVAULT_RETENTION_DAYS",
    "LOGVAULT_PAGE_SIZE",
    "LOGVAULT_SWEEP_INTERVAL_HOURS",
    "LOGVAULT_CAPTURE_FATAL",
    "LOGVAULT_LOG_DIR",
    "LOGVAULT_MAX_FILE_SIZE",
    "LOGVAULT_TIMEZONE",
    "LOGVAULT_DB_URL",
    "LOGVAULT_DB_POOL_SIZE",
    "LOGVAULT_DB_MAX_OVERFLOW",
    "LOGVAULT_DB_POOL_TIMEOUT",
    "LOGVAULT_DB_POOL_RECYCLE",
    "LOGVAULT_DB_ECHO",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without any logvault variables."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def closed_diagnostics_stream(monkeypatch):
    """Structlog configured onto a stderr stream that has since been closed."""
    stream = io.StringIO()
    monkeypatch.setattr(sys, "stderr", stream)
    configure_structlog(logging.DEBUG, rich_tracebacks=False)
    stream.close()
    return stream
