# logvault/db/__init__.py
from .db_manager import DbManager
from .models import LOG_TABLE_NAME, DbBaseModel, LogRow

__all__ = ["DbManager", "DbBaseModel", "LogRow", "LOG_TABLE_NAME"]
