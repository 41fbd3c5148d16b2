"""Prometheus exporter for Microsoft SQL Server."""

from typing import Any

from flask import jsonify

from mssql_exporter.app import App
from mssql_exporter.config import Settings
from mssql_exporter.exceptions import ShuttingDownError


def create_app(
    settings: "Settings | None" = None,
    skip_background_services: bool = False,
) -> App:
    """Create and configure the Flask application.

    Args:
        settings: Settings instance (loaded from the environment if omitted)
        skip_background_services: Skip eager service start-up (for CLI/tests)

    Returns:
        Configured Flask application instance
    """
    app = App(__name__)

    # Load configuration
    if settings is None:
        settings = Settings.load()

    # Validate configuration before proceeding
    settings.validate_config()

    from mssql_exporter.services.container import ServiceContainer

    container = ServiceContainer()
    container.config.override(settings)

    # Wire container to all API modules via package scanning
    container.wire(packages=["mssql_exporter.api"])

    app.container = container

    @app.errorhandler(ShuttingDownError)
    def handle_shutting_down(error: ShuttingDownError) -> Any:
        return jsonify({"error": error.message, "code": error.error_code}), 503

    from mssql_exporter.api import health_bp, metrics_bp

    app.register_blueprint(metrics_bp)
    app.register_blueprint(health_bp)

    if not skip_background_services:
        # Build the collector registry now so declaration errors fail startup
        # instead of the first scrape
        scrape_service = container.scrape_service()
        app.logger.info(
            f"Monitoring {settings.target} with {len(scrape_service.collectors)} collectors"
        )

    return app
