# common/api_error/config_error.py
from .ApiError import AppError


class ConfigurationError(AppError, RuntimeError):
    """
    Raised when configuration is invalid or the log directory is unusable.
    """

    def __init__(self, message: str, code: str = "CONFIGURATION_ERROR"):
        super().__init__(message, status_code=500, code=code)


__all__ = ["ConfigurationError"]
