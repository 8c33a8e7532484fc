# common/config/initialize_config.py
"""
Configuration initialization module.

Handles the configuration lifecycle of a logvault process (the CLI, or an
application that prefers environment-driven setup). The engine itself never
reads this state: it receives a LogVaultConfig explicitly.
"""
import threading
from typing import Optional, List
from pydantic import ValidationError
from .app_config import LogVaultConfig, load_app_config
from .structlog_config import configure_structlog, reset_structlog
from common.api_error import ConfigurationError


class _ConfigState:
    """
    Thread-safe singleton for process configuration.
    """

    _instance: Optional["_ConfigState"] = None
    _lock = threading.Lock()

    _config: Optional[LogVaultConfig]

    def __new__(cls) -> "_ConfigState":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._config = None
                    cls._instance = instance
        return cls._instance

    @property
    def config(self) -> LogVaultConfig:
        """Get process configuration."""
        if self._config is None:
            raise RuntimeError(
                "Configuration not initialized. Call initialize_config() at startup."
            )
        return self._config

    def set_config(self, config: LogVaultConfig) -> None:
        """Set process configuration."""
        self._config = config

    def reset(self) -> None:
        """Reset state. FOR TESTING ONLY."""
        self._config = None


_state = _ConfigState()


def format_validation_error(error: ValidationError) -> ConfigurationError:
    """Convert Pydantic errors to ConfigurationError with better messages."""
    errors: List[str] = []
    for item in error.errors():
        field = ".".join(str(x) for x in item["loc"]) or "config"
        errors.append(f"{field}: {item['msg']}")

    return ConfigurationError(
        "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
    )


def initialize_config() -> LogVaultConfig:
    """
    Initialize and validate configuration from the environment.

    Call once at process startup. Configuration is validated using Pydantic
    and will fail fast with clear error messages if invalid.

    Returns:
        The validated configuration

    Raises:
        ConfigurationError: If configuration is invalid or missing
    """
    try:
        # Load and validate all config (Pydantic validates here)
        config = load_app_config()
    except ValidationError as e:
        raise format_validation_error(e) from e

    # Configure structlog (process-safe)
    configure_structlog(config.logging.level_int)

    _state.set_config(config)
    return config


def get_config() -> LogVaultConfig:
    """
    Get validated process configuration.

    Raises:
        RuntimeError: If not initialized
    """
    return _state.config


def reset_config() -> None:
    """Reset process configuration and diagnostics logging (mainly for testing)."""
    _state.reset()
    reset_structlog()


__all__ = [
    "initialize_config",
    "get_config",
    "reset_config",
    "format_validation_error",
]
