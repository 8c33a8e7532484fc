# logvault/db/db_manager.py
"""
Database manager focused on connection management and session handling.

Design principles:
- Single responsibility: Connection/session management only
- Fail fast: Invalid configuration crashes on startup
- Synchronous: every call completes or fails before returning
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional, Union

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from common.api_error import ConfigurationError, StoreError
from common.config import DatabaseConfig
from common.logger import get_app_logger

logger = get_app_logger(__name__)


class DbManager:
    """
    Database connection and session manager.

    Responsibilities:
    - Engine/connection pool management
    - Session lifecycle management
    - Connection validation

    NOT responsible for:
    - The logs table itself (the table backend creates it lazily)

    Usage:
        db_manager = DbManager.from_config(config.database)
        db_manager.verify_connection()

        with db_manager.session() as session:
            session.execute(...)

        db_manager.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        echo: bool = False,
        connect_args: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize database manager.

        Args:
            url: SQLAlchemy database URL with a synchronous driver
            pool_size: Number of persistent connections
            max_overflow: Additional connections beyond pool_size
            pool_timeout: Seconds to wait for connection from pool
            pool_recycle: Recycle connections after N seconds
            pool_pre_ping: Test connections before using
            echo: Log all SQL statements (use for debugging)
            connect_args: Driver-specific connection arguments

        Raises:
            ConfigurationError: If the URL cannot be parsed
        """
        parsed = self._validate_url(url)

        # Store config for introspection
        self._config: dict[str, Union[str, int]] = {
            "url": parsed.render_as_string(hide_password=True),
            "dialect": parsed.get_backend_name(),
            "pool_size": pool_size,
            "max_overflow": max_overflow,
        }

        if self._config["dialect"] == "sqlite":
            # SQLite locks the whole file; a fresh connection per session
            # keeps threads from sharing one
            self.engine: Engine = create_engine(
                url,
                echo=echo,
                poolclass=NullPool,
                connect_args={"check_same_thread": False, **(connect_args or {})},
            )
        else:
            self.engine = create_engine(
                url,
                echo=echo,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=pool_pre_ping,
                connect_args=connect_args or {},
            )

        self.session_maker = sessionmaker(
            self.engine,
            class_=Session,
            expire_on_commit=False,
        )

        logger.debug(
            "DbManager initialized",
            url=self._config["url"],
            pool_size=pool_size,
            max_overflow=max_overflow,
        )

    @classmethod
    def from_config(cls, config: DatabaseConfig, **kwargs: Any) -> "DbManager":
        """
        Create DbManager from DatabaseConfig.

        Example:
            db_manager = DbManager.from_config(config.database)
        """
        return cls(
            url=config.get_connection_url(include_password=True),
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            echo=config.echo,
            **kwargs,
        )

    @staticmethod
    def _validate_url(url: str):
        """Validate database URL format."""
        if not url:
            raise ConfigurationError("Database URL is empty")
        try:
            return make_url(url)
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid database URL: {url[:20]}...") from e

    @property
    def url(self) -> str:
        """Connection URL with the password masked."""
        return str(self._config["url"])

    def verify_connection(self) -> None:
        """
        Verify database connection on startup.
        Fails fast if connection cannot be established.

        Raises:
            StoreError: If connection fails
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified", url=self.url)
        except SQLAlchemyError as e:
            logger.error("Database connection failed", url=self.url, error=str(e))
            raise StoreError(f"Failed to connect to database: {e}") from e

    def has_table(self, table_name: str) -> bool:
        """Check whether a table exists."""
        with self.engine.connect() as conn:
            return inspect(conn).has_table(table_name)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Provide a transactional database session.

        Automatically commits on success, rolls back on exception.

        Usage:
            with db_manager.session() as session:
                session.add(row)
                # Commits automatically on exit
        """
        session = self.session_maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """
        Dispose of all connections and cleanup resources.
        Call this on shutdown.
        """
        self.engine.dispose()
        logger.debug("Database connections disposed", url=self.url)


__all__ = ["DbManager"]
