"""Shared building blocks: metric descriptors, metrics, database access and the collector registry."""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple

NAMESPACE = "pg"
LOGGER = logging.getLogger("pgcollectors")

_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:[-+][0-9A-Za-z.+-]*)?$")


class ValueType(enum.Enum):
    """Kind of value a metric carries."""

    COUNTER = "counter"
    GAUGE = "gauge"
    UNTYPED = "untyped"
    HISTOGRAM = "histogram"


def build_fq_name(namespace: str, subsystem: str, name: str) -> str:
    """Join the non-empty parts with underscores; an empty name gives an empty result."""
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


def parse_version(text: str) -> tuple[int, int, int]:
    """Parse a ``major.minor.patch`` version string."""
    match = _VERSION_RE.match(text.strip())
    if match is None:
        raise ValueError(f"invalid version: {text!r}")
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


@dataclass(frozen=True)
class Metric:
    """A single sample produced by a collector."""

    desc: Desc
    value_type: ValueType
    value: float = 0.0
    label_values: tuple[str, ...] = ()
    count: int = 0
    total: float = 0.0
    buckets: Mapping[float, int] = field(default_factory=dict)

    def label_map(self) -> dict[str, str]:
        """All labels of the metric, constant ones included."""
        labels = dict(self.desc.const_labels)
        labels.update(zip(self.desc.variable_labels, self.label_values))
        return labels


@dataclass(frozen=True)
class Desc:
    """Describes a metric family: name, help text and labels."""

    fq_name: str
    help: str
    variable_labels: tuple[str, ...] = ()
    const_labels: Mapping[str, str] = field(default_factory=dict)

    def _check_labels(self, label_values: tuple[Any, ...]) -> tuple[str, ...]:
        if len(label_values) != len(self.variable_labels):
            raise ValueError(
                f"{self.fq_name}: expected {len(self.variable_labels)} label values, "
                f"got {len(label_values)}"
            )
        return tuple(str(value) for value in label_values)

    def metric(self, value_type: ValueType, value: float, *args: Any) -> Metric:
        """Build a constant counter, gauge or untyped metric."""
        if value_type is ValueType.HISTOGRAM:
            raise ValueError("use Desc.histogram for histogram metrics")
        return Metric(self, value_type, float(value), self._check_labels(args))

    def histogram(
        self, count: int, total: float, buckets: Mapping[float, int], *args: Any
    ) -> Metric:
        """Build a constant histogram metric from cumulative bucket counts."""
        return Metric(
            self,
            ValueType.HISTOGRAM,
            label_values=self._check_labels(args),
            count=int(count),
            total=float(total),
            buckets={float(bound): int(n) for bound, n in buckets.items()},
        )


@dataclass
class Instance:
    """A monitored server: a DB-API connection and the server version."""

    connection: Any
    version: tuple[int, int, int] | str = (0, 0, 0)

    def __post_init__(self) -> None:
        if isinstance(self.version, str):
            self.version = parse_version(self.version)

    def query(self, sql: str) -> Iterator[tuple]:
        """Run a query and yield its rows."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            yield from iter(cursor.fetchone, None)
        finally:
            cursor.close()

    def query_row(self, sql: str) -> tuple:
        """Run a query and return its first row; raise LookupError if there is none."""
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
            row = cursor.fetchone()
        finally:
            cursor.close()
        if row is None:
            raise LookupError("no rows in result set")
        return tuple(row)

    def version_at_least(self, version: str | tuple[int, int, int]) -> bool:
        """Whether the server version is greater than or equal to ``version``."""
        if isinstance(version, str):
            version = parse_version(version)
        return tuple(self.version) >= tuple(version)


class _Registration(NamedTuple):
    factory: Callable[..., Any]
    enabled_by_default: bool


_REGISTRY: dict[str, _Registration] = {}


def register_collector(subsystem: str, enabled_by_default: bool):
    """Class decorator recording a collector under its subsystem name."""

    def decorator(factory):
        if subsystem in _REGISTRY:
            raise ValueError(f"collector already registered: {subsystem}")
        _REGISTRY[subsystem] = _Registration(factory, bool(enabled_by_default))
        return factory

    return decorator


def registered_collectors() -> dict[str, _Registration]:
    """A snapshot of the registered collectors keyed by subsystem."""
    return dict(_REGISTRY)