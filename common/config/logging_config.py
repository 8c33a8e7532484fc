# common/config/logging_config.py
from dataclasses import dataclass
from .env_config import get_env
from .config_types import EnvLogLevel
from common.api_error import ConfigurationError

_default_log_level_env_key = "LOG_LEVEL"


@dataclass(frozen=True)
class LoggingConfig:
    """Diagnostics logging configuration."""

    log_level: EnvLogLevel = EnvLogLevel.WARNING

    @property
    def level_int(self) -> int:
        """Get numeric log level."""
        return self.log_level.level


def load_logging_config(
    log_level_env_key: str = _default_log_level_env_key,
) -> LoggingConfig:
    """
    Load diagnostics logging configuration from environment.

    Args:
        log_level_env_key: Environment variable name

    Returns:
        LoggingConfig instance

    Raises:
        ConfigurationError: If LOG_LEVEL is invalid
    """
    raw = get_env(log_level_env_key)
    if not raw:
        return LoggingConfig()

    try:
        return LoggingConfig(log_level=EnvLogLevel(raw.upper()))
    except ValueError as exc:
        valid_levels = ", ".join(level.value for level in EnvLogLevel)
        raise ConfigurationError(
            f"Invalid logging configuration. "
            f"{log_level_env_key} must be one of [{valid_levels}]"
        ) from exc


__all__ = [
    "_default_log_level_env_key",
    "LoggingConfig",
    "load_logging_config",
]
