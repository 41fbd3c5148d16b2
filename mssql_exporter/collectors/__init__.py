"""Collector model and the SQL Server collector catalog."""

from mssql_exporter.collectors.base import (
    Collector,
    GaugeSpec,
    MetricHandle,
    MetricHandles,
    Observation,
    RowPolicy,
    declare_metrics,
)
from mssql_exporter.collectors.catalog import build_collectors

__all__ = [
    "Collector",
    "GaugeSpec",
    "MetricHandle",
    "MetricHandles",
    "Observation",
    "RowPolicy",
    "build_collectors",
    "declare_metrics",
]
