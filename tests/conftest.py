"""Pytest configuration and fixtures.

No live SQL Server is needed: the connection service is replaced by
``StubConnectionService`` and every test gets a fresh metrics registry
through a fresh DI container.
"""

from collections.abc import Generator

import pytest
from flask import Flask
from prometheus_client import CollectorRegistry

from mssql_exporter import create_app
from mssql_exporter.config import Settings
from mssql_exporter.services.container import ServiceContainer
from mssql_exporter.services.metrics_service import MetricsService
from tests.testing_utils import (
    StubConnectionService,
    StubLifecycleCoordinator,
    StubSession,
)


def _build_test_settings() -> Settings:
    """Construct base Settings object for tests."""
    return Settings(
        server="sql.example.com",
        port=1433,
        username="exporter",
        password="secret",
        database="master",
        encryption="require",
        support_mssql_2012=False,
        expose=4000,
        host="127.0.0.1",
        waitress_threads=4,
        flask_env="testing",
        log_level="DEBUG",
        graceful_shutdown_timeout=5,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return _build_test_settings()


@pytest.fixture
def registry() -> CollectorRegistry:
    """A private registry so gauges never leak between tests."""
    return CollectorRegistry()


@pytest.fixture
def metrics_service(registry: CollectorRegistry) -> MetricsService:
    return MetricsService(registry=registry)


@pytest.fixture
def lifecycle_coordinator() -> StubLifecycleCoordinator:
    return StubLifecycleCoordinator()


@pytest.fixture
def stub_session() -> StubSession:
    return StubSession()


@pytest.fixture
def connection_service(stub_session: StubSession) -> StubConnectionService:
    return StubConnectionService(session=stub_session)


@pytest.fixture
def app(
    test_settings: Settings,
    connection_service: StubConnectionService,
    lifecycle_coordinator: StubLifecycleCoordinator,
) -> Generator[Flask, None, None]:
    """Create the Flask app with database access stubbed out."""
    application = create_app(test_settings, skip_background_services=True)
    application.container.connection_service.override(connection_service)
    application.container.lifecycle_coordinator.override(lifecycle_coordinator)

    try:
        yield application
    finally:
        application.container.unwire()
        application.container.reset_override()


@pytest.fixture
def client(app: Flask):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def container(app: Flask) -> ServiceContainer:
    """Access to the DI container of the test app."""
    return app.container
