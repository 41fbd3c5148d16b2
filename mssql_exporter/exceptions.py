"""Exporter exceptions with operator-ready messages."""


class ConfigurationError(Exception):
    """Raised when application configuration is invalid."""

    pass


class ExporterException(Exception):
    """Base exception class for scrape-time errors."""

    def __init__(self, message: str, error_code: str) -> None:
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class ConnectError(ExporterException):
    """Exception raised when a database session cannot be established."""

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="CONNECT_FAILED")


class QueryError(ExporterException):
    """Exception raised when a collector query fails at the SQL or transport level."""

    def __init__(self, query: str, cause: str) -> None:
        self.query = query
        self.cause = cause
        super().__init__(f"Query failed: {cause}", error_code="QUERY_FAILED")


class UpdateError(ExporterException):
    """Exception raised when a collector cannot interpret the rows of its query."""

    def __init__(self, collector: str, cause: str) -> None:
        self.collector = collector
        self.cause = cause
        super().__init__(
            f"Cannot update {collector} because {cause}", error_code="UPDATE_FAILED"
        )


class ShuttingDownError(ExporterException):
    """Exception raised when a scrape is requested during graceful shutdown."""

    def __init__(self, message: str = "Exporter is shutting down") -> None:
        super().__init__(message, error_code="SHUTTING_DOWN")


class LabelMismatchError(ValueError):
    """Raised when supplied label names differ from a gauge's declared label names."""

    def __init__(self, metric: str, declared: "tuple[str, ...]", supplied: "tuple[str, ...]") -> None:
        self.metric = metric
        self.declared = declared
        self.supplied = supplied
        missing = sorted(set(declared) - set(supplied))
        extra = sorted(set(supplied) - set(declared))
        super().__init__(
            f"Label mismatch for {metric}: missing={missing} unexpected={extra}"
        )


class UnknownMetricError(KeyError):
    """Raised when a collector refers to a metric key it did not declare."""

    def __init__(self, key: str, declared: "tuple[str, ...]") -> None:
        self.key = key
        self.declared = declared
        super().__init__(f"Metric {key!r} is not declared (declared: {list(declared)})")
