# logvault/core.py
"""
The handle a host application builds once and passes around.

Usage:
    from common.config import initialize_config
    from logvault import LogVault

    vault = LogVault.from_config(initialize_config())
    vault.init()
    vault.log("info", "User {id} logged in", {"id": 42}, stream="auth")

    for summary in vault.list_all():
        ...

    vault.shutdown()
"""

from typing import Dict, List, Optional

from common.config import LogVaultConfig, StorageMethod
from common.logger import get_app_logger
from logvault.clock import Clock
from logvault.explorer import Explorer, LogSelector
from logvault.facade import LogFacade
from logvault.interpolate import Context
from logvault.levels import LevelLike
from logvault.retention import RetentionScheduler, RetentionSweeper
from logvault.schemas import LogPage, LogSummary, LogView, SweepReport
from logvault.storage import FileBackend, StorageBackend, TableBackend, build_backends

logger = get_app_logger(__name__)


class LogVault:
    """
    Facade, explorer and retention over one set of backends.

    Entries go to the backend chosen by ``storage_method``; listing,
    viewing and retention cover every configured backend.
    """

    def __init__(
        self,
        config: LogVaultConfig,
        backends: Dict[StorageMethod, StorageBackend],
        clock: Clock,
    ):
        self.config = config
        self.clock = clock
        self._backends = backends
        self._scheduler: Optional[RetentionScheduler] = None

        file_backend = backends.get(StorageMethod.FILE)
        table_backend = backends.get(StorageMethod.DATABASE)

        self.logger = LogFacade(
            backends[config.storage_method],
            enabled=config.logging_enabled,
        )
        self.explorer = Explorer(
            file_backend if isinstance(file_backend, FileBackend) else None,
            table_backend if isinstance(table_backend, TableBackend) else None,
            page_size=config.page_size,
        )
        self.sweeper = RetentionSweeper(backends.values(), clock=clock)

    @classmethod
    def from_config(cls, config: LogVaultConfig, clock: Optional[Clock] = None) -> "LogVault":
        """
        Build every configured backend and wire them up.

        Raises:
            ConfigurationError: If the selected storage method is not configured
        """
        clock = clock or Clock(config.storage.tzinfo)
        vault = cls(config, build_backends(config, clock), clock)
        logger.debug(
            "LogVault created",
            storage_method=config.storage_method.value,
            logging_enabled=config.logging_enabled,
            backends=[backend.name for backend in vault.backends],
        )
        return vault

    @property
    def backends(self) -> List[StorageBackend]:
        return list(self._backends.values())

    @property
    def file_backend(self) -> Optional[FileBackend]:
        return self.explorer.file_backend

    @property
    def table_backend(self) -> Optional[TableBackend]:
        return self.explorer.table_backend

    def init(self) -> None:
        """
        Prepare the active backend (log directory or database connection).

        With ``capture_fatal_errors`` on, also hook uncaught exceptions so the
        last one is written to the fatal-error stream at exit.
        """
        self.logger.init()
        if self.config.capture_fatal_errors:
            self.logger.install_fatal_handler()

    def log(
        self,
        level: LevelLike,
        message: str,
        context: Optional[Context] = None,
        stream: Optional[str] = None,
    ) -> None:
        self.logger.log(level, message, context, stream=stream)

    def set_stream(self, name: str) -> None:
        self.logger.set_stream(name)

    def list_all(self) -> List[LogSummary]:
        return self.explorer.list_all()

    def page(self, number: int = 1) -> LogPage:
        return self.explorer.page(number)

    def view(self, selector: LogSelector) -> LogView:
        return self.explorer.view(selector)

    def delete(self, selector: LogSelector) -> int:
        return self.explorer.delete(selector)

    def download(self, selector: LogSelector) -> bytes:
        return self.explorer.download(selector)

    def sweep(self, retention_days: Optional[int] = None) -> SweepReport:
        """Delete everything older than *retention_days* (default from config)."""
        days = self.config.retention_days if retention_days is None else retention_days
        return self.sweeper.sweep(days)

    def start_retention(self) -> RetentionScheduler:
        """Start the background retention sweep, once per configured interval."""
        if self._scheduler is None:
            self._scheduler = RetentionScheduler(
                self.sweeper,
                retention_days=self.config.retention_days,
                interval_seconds=self.config.sweep_interval_hours * 3600,
            )
        self._scheduler.start()
        return self._scheduler

    def directory_size(self) -> int:
        """Bytes used by the log directory; 0 when there is no file backend."""
        if self.file_backend is None:
            return 0
        return self.file_backend.directory_size()

    def shutdown(self) -> None:
        """
        Stop background work and release backend resources.

        A captured fatal error is written first and the exception hooks are
        restored.
        """
        if self._scheduler is not None:
            self._scheduler.stop()
        self.logger.handle_shutdown()
        self.logger.uninstall_fatal_handler()
        for backend in self.backends:
            backend.shutdown()


__all__ = ["LogVault"]
