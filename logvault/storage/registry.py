# logvault/storage/registry.py
"""
Backend registry for building storage backends from configuration.

The file backend is always built, so its files stay listable and sweepable
even while entries are written to the database. The table backend is built
only when a database is configured:
    LOGVAULT_STORAGE_METHOD=file          # Write to files
    LOGVAULT_STORAGE_METHOD=database      # Write rows, needs LOGVAULT_DATABASE_URL
"""

from typing import Callable, Dict, Optional

from common.api_error import ConfigurationError
from common.config import LogVaultConfig, StorageMethod
from common.logger import get_app_logger
from logvault.clock import Clock
from .base import StorageBackend
from .file_backend import FileBackend
from .table_backend import TableBackend

logger = get_app_logger(__name__)

BackendFactory = Callable[[LogVaultConfig, Clock], Optional[StorageBackend]]


def _build_file_backend(config: LogVaultConfig, clock: Clock) -> StorageBackend:
    return FileBackend.from_config(config.storage, clock=clock)


def _build_table_backend(config: LogVaultConfig, clock: Clock) -> Optional[StorageBackend]:
    if config.database is None:
        return None
    return TableBackend.from_config(config.database, clock=clock)


# Registry of backend factories, keyed by storage method
_BACKEND_REGISTRY: Dict[StorageMethod, BackendFactory] = {
    StorageMethod.FILE: _build_file_backend,
    StorageMethod.DATABASE: _build_table_backend,
}


def register_backend(method: StorageMethod, factory: BackendFactory) -> None:
    """
    Register a backend factory for a storage method, replacing the default.

    Args:
        method: Storage method the factory serves
        factory: Callable taking (config, clock) and returning a backend,
            or None when the backend is not configured

    Example:
        >>> register_backend(StorageMethod.FILE, lambda cfg, clock: FileBackend("/tmp/logs", clock))
    """
    _BACKEND_REGISTRY[method] = factory


def build_backends(config: LogVaultConfig, clock: Clock) -> Dict[StorageMethod, StorageBackend]:
    """
    Build every configured backend.

    Returns:
        Backends keyed by storage method; methods that are not configured
        are absent

    Raises:
        ConfigurationError: If the selected storage method has no backend
    """
    backends: Dict[StorageMethod, StorageBackend] = {}
    for method, factory in _BACKEND_REGISTRY.items():
        backend = factory(config, clock)
        if backend is None:
            continue
        backends[method] = backend
        logger.debug("Built log backend", backend=backend.name)

    if config.storage_method not in backends:
        raise ConfigurationError(
            f"Storage method '{config.storage_method.value}' is selected but not configured"
        )
    return backends


__all__ = [
    "BackendFactory",
    "build_backends",
    "register_backend",
]
