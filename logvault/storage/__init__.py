# logvault/storage/__init__.py
"""
Log storage backends.

Two backends share one contract: rotating files and a SQL table.
Select the write target via LOGVAULT_STORAGE_METHOD.

Example:
    LOGVAULT_STORAGE_METHOD=database
"""

from .base import StorageBackend
from .file_backend import FileBackend, format_line, parse_log_lines
from .registry import build_backends, register_backend
from .table_backend import TableBackend

__all__ = [
    "StorageBackend",
    "FileBackend",
    "TableBackend",
    "build_backends",
    "format_line",
    "parse_log_lines",
    "register_backend",
]
