"""HTTP blueprints: ``/metrics`` for Prometheus and ``/health`` for probes."""

from mssql_exporter.api.health import health_bp
from mssql_exporter.api.metrics import metrics_bp

__all__ = ["health_bp", "metrics_bp"]
