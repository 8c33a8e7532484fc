# logvault/db/models/__init__.py
from .db_base_model import DbBaseModel
from .log_table import LOG_TABLE_NAME, LogRow

__all__ = ["DbBaseModel", "LogRow", "LOG_TABLE_NAME"]
