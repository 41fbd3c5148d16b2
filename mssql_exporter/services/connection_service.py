"""Database session acquisition for scrapes.

Every scrape opens its own session and closes it when the scrape is done.
Connection failures surface as ``ConnectError``; failures of an individual
statement surface as ``QueryError`` so the scheduler can tell them apart.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy import URL, Engine, create_engine, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from mssql_exporter.config import Settings
from mssql_exporter.exceptions import ConnectError, QueryError

logger = logging.getLogger(__name__)


class DatabaseSession(Protocol):
    """One logical connection used sequentially by a single scrape."""

    def execute(self, query: str) -> Sequence[Sequence[Any]]: ...

    def close(self) -> None: ...


class ConnectionServiceProtocol(ABC):
    """Protocol for session lifecycle implementations."""

    @abstractmethod
    def open(self) -> DatabaseSession:
        """Open a session, raising ``ConnectError`` on failure."""
        pass

    @abstractmethod
    def close(self, session: DatabaseSession) -> None:
        """Close a session; never raises."""
        pass


class SqlAlchemySession:
    """``DatabaseSession`` backed by a SQLAlchemy connection."""

    def __init__(self, connection: Connection) -> None:
        self._connection = connection
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, query: str) -> Sequence[Sequence[Any]]:
        try:
            return self._connection.exec_driver_sql(query).fetchall()
        except SQLAlchemyError as e:
            raise QueryError(query, _error_message(e)) from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._connection.close()


def _error_message(error: SQLAlchemyError) -> str:
    """Prefer the driver's own message over SQLAlchemy's wrapper text.

    pymssql raises with ``(code, message)`` args where the message is often
    bytes; only the decoded message text is returned in that case.
    """
    orig = getattr(error, "orig", None)
    if orig is None:
        return str(error)

    args = getattr(orig, "args", ())
    if len(args) == 2 and isinstance(args[0], int) and isinstance(args[1], (bytes, str)):
        message = args[1]
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        return message.strip()
    return str(orig)


def build_database_url(settings: Settings) -> URL:
    return URL.create(
        "mssql+pymssql",
        username=settings.username,
        password=settings.password,
        host=settings.server,
        port=settings.port,
        database=settings.database,
    )


def build_connect_args(settings: Settings) -> dict[str, Any]:
    connect_args: dict[str, Any] = {"encryption": settings.encryption}
    if settings.login_timeout is not None:
        connect_args["login_timeout"] = settings.login_timeout
    if settings.query_timeout is not None:
        connect_args["timeout"] = settings.query_timeout
    return connect_args


class ConnectionService(ConnectionServiceProtocol):
    """Opens one dedicated SQL Server connection per scrape."""

    def __init__(self, settings: Settings, engine: Engine | None = None) -> None:
        """Initialize connection service.

        Args:
            settings: Application settings with the database coordinates
            engine: Engine override (tests); built from settings if omitted
        """
        self.settings = settings
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            # NullPool: a scrape's session is never reused by another scrape
            self._engine = create_engine(
                build_database_url(self.settings),
                poolclass=NullPool,
                isolation_level="AUTOCOMMIT",
                connect_args=build_connect_args(self.settings),
            )
        return self._engine

    def open(self) -> DatabaseSession:
        logger.debug(
            "Connecting to database",
            extra={"server": self.settings.server, "port": self.settings.port},
        )
        try:
            connection = self.engine.connect()
        except SQLAlchemyError as e:
            message = _error_message(e)
            logger.error(f"Failed to connect to database: {message}")
            raise ConnectError(message) from e

        logger.debug("Connected to database")
        return SqlAlchemySession(connection)

    def close(self, session: DatabaseSession) -> None:
        try:
            session.close()
            logger.debug("Connection to database ended")
        except Exception as e:
            logger.warning(f"Error closing database connection: {e}")

    def check_connection(self) -> tuple[bool, str]:
        """Probe the database with a trivial query.

        Returns:
            Tuple of (reachable, message)
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True, "Database is reachable"
        except SQLAlchemyError as e:
            message = _error_message(e)
            logger.error(f"Database health check failed: {message}")
            return False, message
