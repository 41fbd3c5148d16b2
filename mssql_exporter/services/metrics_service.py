"""Prometheus registry ownership and exposition rendering.

The exporter keeps every gauge in one explicit ``CollectorRegistry`` created
at startup rather than the process-global default registry, so tests and the
DI container control its lifetime.

Besides rendering, this service owns the ``up`` availability gauge: it is
not tied to any collector and reflects whether the latest scrape could reach
the database at all.
"""

import logging

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

logger = logging.getLogger(__name__)

UP_METRIC_NAME = "up"


class MetricsService:
    """Owns the metrics registry, the availability gauge and rendering."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics service.

        Args:
            registry: Registry to render; a private one is created if omitted
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        self.up = Gauge(UP_METRIC_NAME, "UP Status", registry=self.registry)

    @property
    def content_type(self) -> str:
        return CONTENT_TYPE_LATEST

    def set_up(self, is_up: bool) -> None:
        """Set the availability gauge."""
        self.up.set(1 if is_up else 0)

    def render_all(self) -> bytes:
        """Render every metric family in the registry."""
        return generate_latest(self.registry)

    def render_availability(self) -> bytes:
        """Render only the availability gauge.

        Used when the database is unreachable: gauges left over from earlier
        scrapes are deliberately not included.
        """
        return generate_latest(self.registry.restricted_registry([UP_METRIC_NAME]))
