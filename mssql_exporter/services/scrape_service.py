"""Per-scrape collection scheduler.

Each scrape walks a small state machine:

    IDLE -> CONNECTING -> COLLECTING -> CLOSING -> DONE
                       \\-> FAILED

While COLLECTING, collectors run one after another on the scrape's single
session, in registry order. A failing collector is logged and skipped; its
gauges keep whatever value they had before. Only a connection failure turns
the availability gauge off.
"""

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from mssql_exporter.collectors.base import Collector
from mssql_exporter.exceptions import (
    ConnectError,
    QueryError,
    ShuttingDownError,
    UpdateError,
)
from mssql_exporter.services.connection_service import (
    ConnectionServiceProtocol,
    DatabaseSession,
)
from mssql_exporter.services.metrics_service import MetricsService
from mssql_exporter.utils.lifecycle_coordinator import LifecycleEvent

if TYPE_CHECKING:
    from mssql_exporter.utils.lifecycle_coordinator import LifecycleCoordinatorProtocol

logger = logging.getLogger(__name__)


class ScrapeState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    COLLECTING = "collecting"
    CLOSING = "closing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ScrapeResult:
    """Outcome of one scrape: the response body and an optional connect error."""

    body: bytes
    content_type: str
    state: ScrapeState
    error: str | None = None


class ScrapeService:
    """Runs the collector registry against one fresh session per scrape."""

    def __init__(
        self,
        connection_service: ConnectionServiceProtocol,
        collectors: Sequence[Collector],
        metrics_service: MetricsService,
        lifecycle_coordinator: "LifecycleCoordinatorProtocol",
    ) -> None:
        """Initialize ScrapeService.

        Args:
            connection_service: Opens and closes database sessions
            collectors: Collector registry in execution order
            metrics_service: Owner of the registry and the availability gauge
            lifecycle_coordinator: Coordinator for graceful shutdown
        """
        self.connection_service = connection_service
        self.collectors = tuple(collectors)
        self.metrics_service = metrics_service
        self.lifecycle_coordinator = lifecycle_coordinator

        self._lock = threading.Lock()
        self._in_flight = 0
        self._shutting_down = False
        self._drained = threading.Event()
        self._drained.set()

        self.lifecycle_coordinator.register_lifecycle_notification(
            self._on_lifecycle_event
        )
        self.lifecycle_coordinator.register_shutdown_waiter(
            "ScrapeService", self._wait_for_scrapes
        )

        logger.info(f"ScrapeService initialized with {len(self.collectors)} collectors")

    def scrape(self) -> ScrapeResult:
        """Run one full collection cycle and render the response body.

        Raises:
            ShuttingDownError: The exporter no longer accepts scrapes
        """
        self._enter()
        try:
            return self._scrape()
        finally:
            self._leave()

    def _scrape(self) -> ScrapeResult:
        self._transition(ScrapeState.CONNECTING)
        try:
            session = self.connection_service.open()
        except ConnectError as e:
            self._transition(ScrapeState.FAILED)
            self.metrics_service.set_up(False)
            return ScrapeResult(
                body=self.metrics_service.render_availability(),
                content_type=self.metrics_service.content_type,
                state=ScrapeState.FAILED,
                error=e.message,
            )

        self._transition(ScrapeState.COLLECTING)
        try:
            self.metrics_service.set_up(True)
            self.collect(session)
        finally:
            self._transition(ScrapeState.CLOSING)
            self.connection_service.close(session)

        self._transition(ScrapeState.DONE)
        return ScrapeResult(
            body=self.metrics_service.render_all(),
            content_type=self.metrics_service.content_type,
            state=ScrapeState.DONE,
        )

    def _transition(self, state: ScrapeState) -> None:
        logger.debug(f"Scrape {state.value}")

    def collect(self, session: DatabaseSession) -> None:
        """Execute every collector in order, isolating failures."""
        for collector in self.collectors:
            try:
                rows = session.execute(collector.query)
                collector.execute(rows)
            except QueryError as e:
                logger.error(
                    f"Error executing SQL query {collector.query}: {e.cause}",
                    extra={"collector": collector.name},
                )
            except UpdateError as e:
                logger.error(
                    f"Error updating metrics from SQL query {collector.query}: {e.cause}",
                    extra={"collector": collector.name},
                )
            except Exception as e:
                logger.error(
                    f"Collector {collector.name} failed for SQL query {collector.query}: {e}",
                    exc_info=True,
                    extra={"collector": collector.name},
                )

    def _enter(self) -> None:
        with self._lock:
            if self._shutting_down:
                raise ShuttingDownError()
            self._in_flight += 1
            self._drained.clear()

    def _leave(self) -> None:
        with self._lock:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._drained.set()

    def _on_lifecycle_event(self, event: LifecycleEvent) -> None:
        """Stop accepting scrapes when shutdown starts."""
        if event == LifecycleEvent.PREPARE_SHUTDOWN:
            with self._lock:
                self._shutting_down = True
                logger.info(
                    f"ScrapeService shutdown initiated with {self._in_flight} scrapes in flight"
                )

    def _wait_for_scrapes(self, timeout: float) -> bool:
        """Wait for in-flight scrapes to finish within timeout."""
        completed = self._drained.wait(timeout=timeout)
        if completed:
            logger.info("All scrapes completed")
        else:
            logger.warning(f"Timeout waiting for {self._in_flight} in-flight scrapes")
        return completed
