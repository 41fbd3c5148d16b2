"""Collector model: typed gauge declarations bound to query-and-update units.

A collector pairs one SQL query with the gauges it is allowed to update.
Each gauge is declared once with its full label-name set; the resulting
``MetricHandle`` refuses any update that does not supply exactly that set.

Collectors built from declarative ``Observation`` rules are checked against
their declarations when they are constructed, so a label mismatch surfaces at
startup rather than during a scrape:

    Collector(
        name="mssql_database_state",
        query="SELECT name, state FROM master.sys.databases",
        metrics={
            "mssql_database_state": GaugeSpec(
                "mssql_database_state", "Databases states", ("database",)
            ),
        },
        observations=[
            Observation("mssql_database_state", value=1, labels={"database": 0}),
        ],
        registry=registry,
    )
"""

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from prometheus_client import CollectorRegistry, Gauge

from mssql_exporter.exceptions import (
    LabelMismatchError,
    UnknownMetricError,
    UpdateError,
)

logger = logging.getLogger(__name__)

Row = Sequence[Any]
UpdateProcedure = Callable[[Sequence[Row], "MetricHandles"], None]


@dataclass(frozen=True)
class GaugeSpec:
    """Declaration of one gauge: name, help text and label names."""

    name: str
    documentation: str
    labelnames: tuple[str, ...] = ()


def declare_metrics(
    declaration: "str | Mapping[str, GaugeSpec]", documentation: str = ""
) -> dict[str, GaugeSpec]:
    """Normalise a metric declaration into a ``key -> GaugeSpec`` mapping.

    A bare string declares a single unlabeled gauge named after the key.
    """
    if isinstance(declaration, str):
        return {declaration: GaugeSpec(declaration, documentation or declaration)}
    return dict(declaration)


class MetricHandle:
    """A registered gauge that only accepts its declared label set."""

    def __init__(self, spec: GaugeSpec, registry: CollectorRegistry) -> None:
        self.spec = spec
        self._gauge = Gauge(
            spec.name,
            spec.documentation,
            labelnames=spec.labelnames,
            registry=registry,
        )

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def documentation(self) -> str:
        return self.spec.documentation

    @property
    def labelnames(self) -> tuple[str, ...]:
        return self.spec.labelnames

    def check_labels(self, names: Iterable[str]) -> None:
        """Raise ``LabelMismatchError`` unless ``names`` equals the declared set."""
        supplied = tuple(names)
        if len(supplied) != len(set(supplied)) or set(supplied) != set(self.labelnames):
            raise LabelMismatchError(self.name, self.labelnames, supplied)

    def set(self, value: float, /, **labels: str) -> None:
        """Set the gauge for one label combination (or the unlabeled gauge).

        ``value`` is positional-only so any label name, ``value`` included,
        can be passed as a keyword.
        """
        self.check_labels(labels)
        if self.labelnames:
            self._gauge.labels(*(labels[name] for name in self.labelnames)).set(value)
        else:
            self._gauge.set(value)


class MetricHandles(Mapping[str, MetricHandle]):
    """Read-only ``key -> MetricHandle`` mapping owned by one collector."""

    def __init__(self, handles: Mapping[str, MetricHandle]) -> None:
        self._handles = dict(handles)

    def __getitem__(self, key: str) -> MetricHandle:
        try:
            return self._handles[key]
        except KeyError:
            raise UnknownMetricError(key, tuple(self._handles)) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._handles)

    def __len__(self) -> int:
        return len(self._handles)


class RowPolicy(str, Enum):
    """How many result rows a collector consumes."""

    SINGLE = "single"  # exactly the first row, which must exist
    FIRST = "first"  # the first row if any
    EACH = "each"  # every row independently


@dataclass(frozen=True)
class Observation:
    """Maps columns of a result row onto one gauge update.

    Args:
        metric: Key of the gauge in the collector's declaration
        value: Column index holding the numeric value
        labels: Label name -> column index holding the label value
        constants: Label name -> fixed label value
    """

    metric: str
    value: int
    labels: Mapping[str, int] = field(default_factory=dict)
    constants: Mapping[str, str] = field(default_factory=dict)

    def label_names(self) -> tuple[str, ...]:
        return (*self.labels, *self.constants)


def to_float(value: Any) -> float:
    """Coerce a database cell to a 64-bit float without rounding."""
    value = getattr(value, "value", value)
    if value is None:
        raise ValueError("value is NULL")
    if isinstance(value, (bool, int, float, Decimal)):
        return float(value)
    if isinstance(value, (str, bytes)):
        return float(value)
    raise ValueError(f"value {value!r} of type {type(value).__name__} is not numeric")


def to_label(value: Any) -> str:
    value = getattr(value, "value", value)
    if value is None:
        return ""
    return str(value)


class Collector:
    """One database observation: a fixed query and the gauges it updates."""

    def __init__(
        self,
        name: str,
        query: str,
        metrics: "str | Mapping[str, GaugeSpec]",
        registry: CollectorRegistry,
        observations: Sequence[Observation] = (),
        rows: RowPolicy = RowPolicy.EACH,
        update: UpdateProcedure | None = None,
    ) -> None:
        """Declare the gauges and validate the update rules against them.

        Args:
            name: Identifier used in logs
            query: SQL text, fixed for the lifetime of the collector
            metrics: Gauge declaration (see ``declare_metrics``)
            registry: Registry the gauges are registered with
            observations: Declarative row-to-gauge rules
            rows: Row consumption policy for the observations
            update: Custom update procedure, used instead of observations

        Raises:
            LabelMismatchError: An observation's labels differ from its gauge's
            UnknownMetricError: An observation refers to an undeclared gauge
            ValueError: Neither or both of observations and update were given
        """
        if bool(observations) == (update is not None):
            raise ValueError(
                f"Collector {name} needs either observations or an update procedure"
            )

        self._name = name
        self._query = query
        self._rows = rows
        self._observations = tuple(observations)
        self._update = update

        specs = declare_metrics(metrics)
        handles = MetricHandles(
            {key: MetricHandle(spec, registry) for key, spec in specs.items()}
        )

        for observation in self._observations:
            handle = handles[observation.metric]
            overlap = set(observation.labels) & set(observation.constants)
            if overlap:
                raise LabelMismatchError(
                    handle.name, handle.labelnames, observation.label_names()
                )
            handle.check_labels(observation.label_names())

        self._handles = handles

    @property
    def name(self) -> str:
        return self._name

    @property
    def query(self) -> str:
        return self._query

    @property
    def handles(self) -> MetricHandles:
        return self._handles

    def execute(self, rows: Sequence[Row]) -> None:
        """Update the bound gauges from the rows returned by ``query``.

        Raises:
            UpdateError: The rows do not have the expected shape or values
            LabelMismatchError: A custom update procedure used the wrong labels
        """
        if self._update is not None:
            self._update(rows, self._handles)
            return

        for row in self._select_rows(rows):
            for observation in self._observations:
                self._apply(observation, row)

    def _select_rows(self, rows: Sequence[Row]) -> Sequence[Row]:
        if self._rows is RowPolicy.EACH:
            return rows
        if not rows:
            if self._rows is RowPolicy.SINGLE:
                raise UpdateError(self._name, "the query returned no rows")
            return ()
        return rows[:1]

    def _apply(self, observation: Observation, row: Row) -> None:
        try:
            # A NULL value cell fails the update instead of exporting 0
            value = to_float(row[observation.value])
            labels = {name: to_label(row[index]) for name, index in observation.labels.items()}
        except IndexError:
            raise UpdateError(
                self._name, f"row has {len(row)} columns"
            ) from None
        except (TypeError, ValueError) as e:
            raise UpdateError(self._name, str(e)) from e

        labels.update(observation.constants)
        logger.debug(
            "Fetch %s", self._handles[observation.metric].name,
            extra={"collector": self._name, "labels": labels, "value": value},
        )
        self._handles[observation.metric].set(value, **labels)
