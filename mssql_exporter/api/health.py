"""Health check endpoints for container orchestration."""

from typing import Any

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, jsonify

from mssql_exporter.services.connection_service import ConnectionService
from mssql_exporter.services.container import ServiceContainer
from mssql_exporter.utils.lifecycle_coordinator import LifecycleCoordinatorProtocol

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.route("/healthz", methods=["GET"])
@inject
def healthz(
    lifecycle_coordinator: LifecycleCoordinatorProtocol = Provide[
        ServiceContainer.lifecycle_coordinator
    ],
) -> Any:
    """Liveness probe: the process is up and not shutting down."""
    if lifecycle_coordinator.is_shutting_down():
        return jsonify({"status": "shutting down", "ready": False}), 503
    return jsonify({"status": "alive", "ready": True}), 200


@health_bp.route("/readyz", methods=["GET"])
@inject
def readyz(
    connection_service: ConnectionService = Provide[ServiceContainer.connection_service],
    lifecycle_coordinator: LifecycleCoordinatorProtocol = Provide[
        ServiceContainer.lifecycle_coordinator
    ],
) -> Any:
    """Readiness probe: the monitored database accepts connections."""
    if lifecycle_coordinator.is_shutting_down():
        return jsonify({"status": "shutting down", "ready": False}), 503

    connected, message = connection_service.check_connection()
    body = {
        "status": "ready" if connected else "not ready",
        "ready": connected,
        "database": {"connected": connected, "message": message},
    }
    return jsonify(body), 200 if connected else 503
