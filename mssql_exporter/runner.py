"""Exporter runner with graceful shutdown support."""

import logging
import os
import threading

from paste.translogger import TransLogger  # type: ignore[import-untyped]
from waitress import serve

from mssql_exporter import create_app
from mssql_exporter.config import Settings
from mssql_exporter.utils.lifecycle_coordinator import LifecycleEvent


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def run(settings: "Settings | None" = None) -> None:
    """Serve ``/metrics`` until SIGINT/SIGTERM.

    The Flask development server is used when FLASK_ENV is development or
    testing; otherwise waitress serves the app from a daemon thread while the
    main thread waits for the lifecycle coordinator to finish shutdown.
    """
    if settings is None:
        settings = Settings.load()

    configure_logging(settings.log_level)

    app = create_app(settings)
    lifecycle_coordinator = app.container.lifecycle_coordinator()

    if settings.is_development:
        app.logger.info("Running in debug mode")

        if os.environ.get("WERKZEUG_RUN_MAIN") == "true":
            lifecycle_coordinator.initialize()

        def signal_shutdown(lifecycle_event: LifecycleEvent) -> None:
            if lifecycle_event == LifecycleEvent.AFTER_SHUTDOWN:
                # Need os._exit because sys.exit doesn't work with reloader
                os._exit(0)

        lifecycle_coordinator.register_lifecycle_notification(signal_shutdown)
        app.run(host=settings.host, port=settings.expose, debug=True)
        return

    lifecycle_coordinator.initialize()

    def runner() -> None:
        wsgi = TransLogger(app, setup_console_handler=False)
        wsgi.logger.info(
            f"Prometheus-MSSQL Exporter listening on local port {settings.expose} "
            f"monitoring {settings.target} with {settings.waitress_threads} threads"
        )
        serve(wsgi, host=settings.host, port=settings.expose, threads=settings.waitress_threads)

    # Server runs in a daemon thread so the lifecycle coordinator controls exit
    thread = threading.Thread(target=runner, daemon=True)
    thread.start()

    event = threading.Event()

    def signal_shutdown_prod(lifecycle_event: LifecycleEvent) -> None:
        if lifecycle_event == LifecycleEvent.AFTER_SHUTDOWN:
            event.set()

    lifecycle_coordinator.register_lifecycle_notification(signal_shutdown_prod)
    event.wait()
