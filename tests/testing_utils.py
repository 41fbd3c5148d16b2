"""Shared testing utilities: database session and lifecycle stubs."""

from collections.abc import Callable, Mapping, Sequence
from typing import Any

from mssql_exporter.exceptions import ConnectError, QueryError
from mssql_exporter.services.connection_service import (
    ConnectionServiceProtocol,
    DatabaseSession,
)
from mssql_exporter.utils.lifecycle_coordinator import (
    LifecycleCoordinatorProtocol,
    LifecycleEvent,
)


class StubSession:
    """In-memory session returning canned rows per query.

    Queries mapped to an exception instance raise it; unknown queries raise
    ``QueryError`` like a server rejecting the statement would.
    """

    def __init__(self, results: Mapping[str, Sequence[Sequence[Any]] | Exception] | None = None):
        self.results = dict(results or {})
        self.executed: list[str] = []
        self.close_calls = 0

    def execute(self, query: str) -> Sequence[Sequence[Any]]:
        self.executed.append(query)
        result = self.results.get(query)
        if result is None:
            raise QueryError(query, "Invalid object name")
        if isinstance(result, Exception):
            raise result
        return result

    def close(self) -> None:
        self.close_calls += 1


class StubConnectionService(ConnectionServiceProtocol):
    """Connection service handing out a fixed session, or failing to connect."""

    def __init__(
        self,
        session: StubSession | None = None,
        connect_error: str | None = None,
    ):
        self.session = session if session is not None else StubSession()
        self.connect_error = connect_error
        self.open_calls = 0
        self.closed_sessions: list[DatabaseSession] = []

    def open(self) -> DatabaseSession:
        self.open_calls += 1
        if self.connect_error is not None:
            raise ConnectError(self.connect_error)
        return self.session

    def close(self, session: DatabaseSession) -> None:
        self.closed_sessions.append(session)
        session.close()

    def check_connection(self) -> tuple[bool, str]:
        if self.connect_error is not None:
            return False, self.connect_error
        return True, "Database is reachable"


class StubLifecycleCoordinator(LifecycleCoordinatorProtocol):
    """Basic lifecycle coordinator stub for testing.

    Stores registrations and state; ``simulate_shutdown`` drives the
    PREPARE_SHUTDOWN notifications when a test needs them.
    """

    def __init__(self):
        self._shutting_down = False
        self._notifications: list[Callable[[LifecycleEvent], None]] = []
        self._waiters: dict[str, Callable[[float], bool]] = {}

    def initialize(self) -> None:
        """Initialize (noop)."""
        pass

    def register_lifecycle_notification(self, callback: Callable[[LifecycleEvent], None]) -> None:
        """Store notification callback."""
        self._notifications.append(callback)

    def register_shutdown_waiter(self, name: str, handler: Callable[[float], bool]) -> None:
        """Store shutdown waiter."""
        self._waiters[name] = handler

    def is_shutting_down(self) -> bool:
        """Return current shutdown state."""
        return self._shutting_down

    def shutdown(self) -> None:
        """Shutdown (noop for stub)."""
        pass

    def simulate_shutdown(self) -> None:
        """Set shutdown state and execute PREPARE_SHUTDOWN callbacks."""
        self._shutting_down = True
        for callback in self._notifications:
            callback(LifecycleEvent.PREPARE_SHUTDOWN)
