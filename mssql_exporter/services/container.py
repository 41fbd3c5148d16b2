"""Dependency injection container for the exporter."""

from dependency_injector import containers, providers
from prometheus_client import CollectorRegistry

from mssql_exporter.collectors.catalog import build_collectors
from mssql_exporter.config import Settings
from mssql_exporter.services.connection_service import ConnectionService
from mssql_exporter.services.metrics_service import MetricsService
from mssql_exporter.services.scrape_service import ScrapeService
from mssql_exporter.utils.lifecycle_coordinator import LifecycleCoordinator


class ServiceContainer(containers.DeclarativeContainer):
    """Container for service dependency injection."""

    # Configuration provider
    config = providers.Dependency(instance_of=Settings)

    # Lifecycle coordinator - manages graceful shutdown
    lifecycle_coordinator = providers.Singleton(
        LifecycleCoordinator,
        graceful_shutdown_timeout=config.provided.graceful_shutdown_timeout,
    )

    # One registry for the whole process; every gauge lives here
    metrics_registry = providers.Singleton(CollectorRegistry)

    metrics_service = providers.Singleton(
        MetricsService,
        registry=metrics_registry,
    )

    # Built exactly once: a second build would re-register gauge names
    collectors = providers.Singleton(
        build_collectors,
        support_mssql_2012=config.provided.support_mssql_2012,
        registry=metrics_registry,
    )

    connection_service = providers.Singleton(
        ConnectionService,
        settings=config,
    )

    scrape_service = providers.Singleton(
        ScrapeService,
        connection_service=connection_service,
        collectors=collectors,
        metrics_service=metrics_service,
        lifecycle_coordinator=lifecycle_coordinator,
    )
