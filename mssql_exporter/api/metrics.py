"""Metrics API endpoint for Prometheus scraping."""

from typing import Any

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, Response

from mssql_exporter.services.container import ServiceContainer
from mssql_exporter.services.scrape_service import ScrapeService

metrics_bp = Blueprint("metrics", __name__, url_prefix="/metrics")

ERROR_HEADER = "X-Error"


@metrics_bp.route("", methods=["GET"])
@inject
def get_metrics(
    scrape_service: ScrapeService = Provide[ServiceContainer.scrape_service],
) -> Any:
    """Scrape the database and return metrics in Prometheus text format.

    A database that cannot be reached still yields 200: the body then holds
    only ``up 0`` and the connection error is reported in ``X-Error``.
    """
    result = scrape_service.scrape()

    response = Response(result.body, content_type=result.content_type)
    if result.error is not None:
        response.headers[ERROR_HEADER] = _header_safe(result.error)
    return response


def _header_safe(message: str) -> str:
    # Driver messages can span lines, which is not allowed in a header value
    return " ".join(message.split()) or "Connection failed"
