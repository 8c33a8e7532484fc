# common/api_error/__init__.py
"""Error taxonomy shared by the engine and its collaborators."""

from .ApiError import AppError, NotFoundError, StoreError, WriteError
from .config_error import ConfigurationError

__all__ = [
    "AppError",
    "ConfigurationError",
    "NotFoundError",
    "StoreError",
    "WriteError",
]
