# logvault/db/models/db_base_model.py
from sqlalchemy.orm import DeclarativeBase


class DbBaseModel(DeclarativeBase):
    """Declarative base for logvault tables; adds no columns of its own."""


__all__ = ["DbBaseModel"]
